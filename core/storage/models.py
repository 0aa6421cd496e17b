from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

# Milliseconds since the epoch; injectable for deterministic expiry in tests
Clock = Callable[[], float]


def now_ms() -> float:
    return time.time() * 1000


class StorageEventType(str, Enum):
    SET = "set"
    DELETE = "delete"
    CLEAR = "clear"
    EXPIRE = "expire"
    EVICT = "evict"


@dataclass(frozen=True)
class StorageEvent(Generic[T]):
    type: StorageEventType
    key: str
    timestamp: float
    value: Optional[T] = None


StorageEventListener = Callable[[StorageEvent[Any]], None]


@dataclass(frozen=True)
class StorageOptions:
    """Store configuration captured at construction time.

    ``max_size`` of 0 means unbounded. ``default_ttl_ms`` of 0 means entries
    written through ``set_with_ttl`` without an explicit TTL never expire.
    """

    max_size: int = 0
    default_ttl_ms: int = 0
    cleanup_interval_ms: int = 60_000
    auto_cleanup: bool = False
    on_evict: Optional[Callable[[str, Any], None]] = None
    on_expire: Optional[Callable[[str, Any], None]] = None

    def __post_init__(self):
        if self.max_size < 0:
            raise ValueError("max_size cannot be negative")
        if self.default_ttl_ms < 0:
            raise ValueError("default_ttl_ms cannot be negative")
        if self.cleanup_interval_ms < 0:
            raise ValueError("cleanup_interval_ms cannot be negative")


@dataclass(frozen=True)
class StorageStats:
    size: int
    keys: int
    expired: int
    memory_usage: int


@dataclass(frozen=True)
class ExpirableItem(Generic[T]):
    """A stored value with its absolute expiry instant (epoch ms, None = never)."""

    value: T
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass
class QueryOptions(Generic[T]):
    """Query pipeline: filter, then sort, then offset, then limit.

    ``sort`` is a two-argument comparator returning <0, 0 or >0; ``sort_key``
    is the usual one-argument key function. Zero offset/limit are ignored.
    """

    filter: Optional[Callable[[T], bool]] = None
    sort: Optional[Callable[[T, T], int]] = None
    sort_key: Optional[Callable[[T], Any]] = None
    reverse: bool = False
    offset: int = 0
    limit: int = 0
