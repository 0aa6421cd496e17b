"""
Utilities layered on top of the in-memory stores: call caching,
pagination/search/aggregation over store contents, a sliding-window
rate limiter and store copy/serialization helpers.
"""

from __future__ import annotations

import asyncio
import functools
import json
from dataclasses import asdict, dataclass, is_dataclass
from functools import cmp_to_key
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

from .memory import InMemoryStorage, InMemoryStorageWithTTL
from .models import Clock, QueryOptions

T = TypeVar("T")
R = TypeVar("R")


def cached(
    storage: InMemoryStorageWithTTL,
    key_fn: Callable[..., Hashable],
    fn: Callable[..., Awaitable[R]],
    ttl_ms: float = 60_000,
) -> Callable[..., Awaitable[R]]:
    """Wrap an async callable so results are served from ``storage`` until they expire."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs) -> R:
        key = key_fn(*args, **kwargs)
        hit = storage.get_value(key)
        if hit is not None:
            return hit
        result = await fn(*args, **kwargs)
        storage.set_with_ttl(key, result, ttl_ms)
        return result

    return wrapper


def memoized(
    storage: InMemoryStorage,
    key_fn: Callable[..., Hashable],
    fn: Callable[..., R],
) -> Callable[..., R]:
    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> R:
        return storage.get_or_create(key_fn(*args, **kwargs), lambda: fn(*args, **kwargs))

    return wrapper


async def batch_operation(
    items: Iterable[T],
    operation: Callable[[T], Awaitable[R]],
    batch_size: int = 10,
) -> List[R]:
    """Run ``operation`` over ``items`` in sequential batches; each batch runs concurrently."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    pending = list(items)
    results: List[R] = []
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        results.extend(await asyncio.gather(*(operation(item) for item in batch)))
    return results


@dataclass(frozen=True)
class Page:
    data: List[Any]
    total: int
    page: int
    page_size: int
    has_next: bool
    has_prev: bool


def paginate(storage: InMemoryStorage, options: Optional[QueryOptions] = None) -> Page:
    """Filter and sort store contents, then cut the offset/limit window out of them."""
    options = options or QueryOptions()
    data = storage.get_all()

    if options.filter is not None:
        data = [item for item in data if options.filter(item)]
    if options.sort is not None:
        data = sorted(data, key=cmp_to_key(options.sort), reverse=options.reverse)
    elif options.sort_key is not None:
        data = sorted(data, key=options.sort_key, reverse=options.reverse)

    total = len(data)
    offset = options.offset or 0
    limit = options.limit or total

    return Page(
        data=data[offset:offset + limit],
        total=total,
        page=(offset // limit) + 1 if limit else 1,
        page_size=limit,
        has_next=offset + limit < total,
        has_prev=offset > 0,
    )


def _fuzzy_match(value: str, term: str) -> bool:
    # Every character of the term must appear in order
    if not term:
        return True
    index = 0
    for char in value:
        if char == term[index]:
            index += 1
            if index == len(term):
                return True
    return False


def search(
    storage: InMemoryStorage,
    term: str,
    selector: Callable[[Any], str] = str,
    fuzzy: bool = False,
) -> List[Any]:
    needle = term.lower()
    matches = []
    for item in storage.get_all():
        haystack = selector(item).lower()
        if (fuzzy and _fuzzy_match(haystack, needle)) or (not fuzzy and needle in haystack):
            matches.append(item)
    return matches


def aggregate(
    storage: InMemoryStorage,
    group_by: Callable[[Any], str],
    aggregate_fn: Callable[[List[Any]], Any] = len,
) -> Dict[str, Any]:
    groups: Dict[str, List[Any]] = {}
    for item in storage.get_all():
        groups.setdefault(group_by(item), []).append(item)
    return {key: aggregate_fn(items) for key, items in groups.items()}


class RateLimiter:
    """Sliding-window limiter keeping per-identifier request timestamps in a TTL store."""

    def __init__(self, storage: InMemoryStorageWithTTL, max_requests: int, window_ms: float,
                 clock: Optional[Clock] = None):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.storage = storage
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock or storage.clock

    def _recent(self, identifier: str, now: float) -> List[float]:
        window_start = now - self.window_ms
        return [ts for ts in (self.storage.get_value(identifier) or []) if ts > window_start]

    def is_allowed(self, identifier: str) -> bool:
        """Record a request for ``identifier`` if it is under the limit."""
        with self.storage.lock:
            now = self._clock()
            timestamps = self._recent(identifier, now)
            if len(timestamps) >= self.max_requests:
                return False
            timestamps.append(now)
            self.storage.set_with_ttl(identifier, timestamps, self.window_ms)
            return True

    def get_remaining(self, identifier: str) -> int:
        return max(0, self.max_requests - len(self._recent(identifier, self._clock())))

    def get_reset_time(self, identifier: str) -> Optional[float]:
        """Epoch ms at which the oldest request in the window stops counting."""
        timestamps = self.storage.get_value(identifier)
        if not timestamps:
            return None
        return timestamps[0] + self.window_ms


def create_rate_limiter(storage: InMemoryStorageWithTTL, max_requests: int, window_ms: float) -> RateLimiter:
    return RateLimiter(storage, max_requests, window_ms)


def clone_storage(source: InMemoryStorage, destination: InMemoryStorage) -> None:
    for key in source.keys():
        value = source.get(key)
        if value is not None:
            destination.set(key, value)


def merge_storages(storages: Iterable[InMemoryStorage], result: InMemoryStorage) -> None:
    for storage in storages:
        clone_storage(storage, result)


def _to_jsonable(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return str(obj)


def export_to_json(storage: InMemoryStorage) -> str:
    return json.dumps(storage.get_all(), default=_to_jsonable, indent=2)


def import_from_json(storage: InMemoryStorage, payload: str, key_fn: Callable[[Any], Hashable]) -> None:
    """Replace the store contents with the items of a JSON array."""
    items = json.loads(payload)
    if not isinstance(items, list):
        raise ValueError("Expected a JSON array")
    storage.clear()
    for item in items:
        storage.set(key_fn(item), item)


def create_storage_key(*parts: Any) -> str:
    return ":".join(str(part) for part in parts)


def parse_storage_key(key: str, separator: str = ":") -> List[str]:
    return key.split(separator)
