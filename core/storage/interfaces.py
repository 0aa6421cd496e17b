from __future__ import annotations

from typing import Any, Callable, Hashable, Optional, Protocol, runtime_checkable

from .models import ExpirableItem, StorageEventListener


@runtime_checkable
class KeyValueStore(Protocol):
    """Contract consumed by collaborators that only need plain key/value access."""

    def has(self, key: Hashable) -> bool:
        ...

    def get(self, key: Hashable) -> Any:
        ...

    def set(self, key: Hashable, value: Any) -> None:
        ...

    def delete(self, key: Hashable) -> bool:
        ...

    def on(self, listener: StorageEventListener) -> Callable[[], None]:
        ...


@runtime_checkable
class ExpiringStore(KeyValueStore, Protocol):
    """Contract of the TTL store used by the replay guard, caches and rate limiters."""

    def get(self, key: Hashable) -> Optional[ExpirableItem[Any]]:
        ...

    def set_with_ttl(self, key: Hashable, value: Any, ttl_ms: Optional[float] = None) -> None:
        ...

    def get_value(self, key: Hashable) -> Any:
        ...

    def cleanup(self) -> int:
        ...
