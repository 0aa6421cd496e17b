"""
In-memory key/value stores.

``InMemoryStorage`` is a plain insertion-ordered map with optional FIFO
eviction and event notification. ``InMemoryStorageWithTTL`` wraps every
value in an ``ExpirableItem`` and enforces expiry lazily on read, plus an
optional periodic sweep running on a daemon thread.

Every operation holds a re-entrant lock, so listeners may call back into
the store that notified them.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, is_dataclass
from functools import cmp_to_key
from typing import Any, Callable, Dict, Generic, Hashable, Iterable, List, Optional, Tuple, TypeVar

from core.logging import get_error_logger_safe, get_storage_logger_safe

from .models import (
    Clock,
    ExpirableItem,
    QueryOptions,
    StorageEvent,
    StorageEventListener,
    StorageEventType,
    StorageOptions,
    StorageStats,
    now_ms,
)

T = TypeVar("T")

logger = get_storage_logger_safe(__name__)
error_logger = get_error_logger_safe(__name__)


def _estimate_size(key: Any, value: Any) -> int:
    """Rough UTF-16 byte estimate of a key/value pair."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    try:
        encoded = json.dumps(value, default=str)
    except (TypeError, ValueError):
        encoded = repr(value)
    return (len(str(key)) + len(encoded)) * 2


class InMemoryStorage(Generic[T]):
    """Insertion-ordered store with optional max-size FIFO eviction."""

    def __init__(self, options: Optional[StorageOptions] = None, clock: Clock = now_ms):
        self.options = options or StorageOptions()
        self._clock = clock
        self._data: Dict[Hashable, T] = {}
        self._listeners: List[StorageEventListener] = []
        self._lock = threading.RLock()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def lock(self) -> threading.RLock:
        """Held by every operation; callers may hold it to group several operations."""
        return self._lock

    # --- Reads ---
    def get(self, key: Hashable) -> Optional[T]:
        with self._lock:
            return self._data.get(key)

    def has(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    def get_all(self) -> List[T]:
        with self._lock:
            return list(self._data.values())

    def values(self) -> List[T]:
        return self.get_all()

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._data.keys())

    def items(self) -> List[Tuple[Hashable, T]]:
        with self._lock:
            return list(self._data.items())

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    # --- Writes ---
    def set(self, key: Hashable, value: T) -> None:
        with self._lock:
            max_size = self.options.max_size
            if max_size > 0 and len(self._data) >= max_size and key not in self._data:
                evicted_key = next(iter(self._data))
                evicted_value = self._data.pop(evicted_key)
                self._run_callback(self.options.on_evict, evicted_key, evicted_value)
                self._emit(StorageEventType.EVICT, evicted_key, evicted_value)

            self._data[key] = value
            self._emit(StorageEventType.SET, key, value)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            self._emit(StorageEventType.DELETE, key)
            return True

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._emit(StorageEventType.CLEAR, "")

    def update(self, key: Hashable, updater: Callable[[T], T]) -> bool:
        """Replace an existing value in place; returns False for missing keys."""
        with self._lock:
            current = self.get(key)
            if current is None:
                return False
            self._data[key] = updater(current)
            self._emit(StorageEventType.SET, key, self._data[key])
            return True

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        with self._lock:
            existing = self.get(key)
            if existing is not None or key in self._data:
                return existing
            created = factory()
            self.set(key, created)
            return created

    def set_many(self, entries: Iterable[Tuple[Hashable, T]]) -> None:
        with self._lock:
            for key, value in entries:
                self.set(key, value)

    def delete_many(self, keys: Iterable[Hashable]) -> int:
        with self._lock:
            return sum(1 for key in list(keys) if self.delete(key))

    # --- Queries ---
    def find(self, predicate: Callable[[T, Hashable], bool]) -> List[T]:
        with self._lock:
            return [value for key, value in self._live_items() if predicate(value, key)]

    def query(self, options: QueryOptions) -> List[T]:
        results = self.get_all()

        if options.filter is not None:
            results = [item for item in results if options.filter(item)]

        if options.sort is not None:
            results.sort(key=cmp_to_key(options.sort), reverse=options.reverse)
        elif options.sort_key is not None:
            results.sort(key=options.sort_key, reverse=options.reverse)

        if options.offset:
            results = results[options.offset:]

        if options.limit:
            results = results[:options.limit]

        return results

    def get_stats(self) -> StorageStats:
        with self._lock:
            return StorageStats(
                size=len(self._data),
                keys=len(self._data),
                expired=0,
                memory_usage=self._estimate_memory_usage(),
            )

    # --- Events ---
    def on(self, listener: StorageEventListener) -> Callable[[], None]:
        """Subscribe to store events; returns the unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event_type: StorageEventType, key: Hashable, value: Any = None) -> None:
        event = StorageEvent(type=event_type, key=str(key), timestamp=self._clock(), value=value)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                error_logger.error(
                    "Error in storage event listener",
                    event_type=event_type.value,
                    key=event.key,
                    error=str(e),
                    exc_info=True,
                )

    def _run_callback(self, callback: Optional[Callable[[str, Any], None]], key: Hashable, value: Any) -> None:
        if callback is None:
            return
        try:
            callback(str(key), value)
        except Exception as e:
            error_logger.error("Error in storage callback", key=str(key), error=str(e), exc_info=True)

    def _live_items(self) -> List[Tuple[Hashable, T]]:
        return list(self._data.items())

    def _estimate_memory_usage(self) -> int:
        return sum(_estimate_size(key, value) for key, value in self._data.items())


class InMemoryStorageWithTTL(InMemoryStorage[ExpirableItem[T]]):
    """TTL store.

    ``get``/``get_value`` delete an expired entry when they find it and fire
    ``expire``. ``get_all``/``values``/``query``/``find`` only hide expired
    entries; they are removed by the next read of that key or by ``cleanup``.
    ``has`` reports raw presence, expired or not.
    """

    def __init__(self, options: Optional[StorageOptions] = None, clock: Clock = now_ms):
        super().__init__(options, clock)
        self._cleanup_thread: Optional[threading.Thread] = None
        self._cleanup_stop: Optional[threading.Event] = None

        if self.options.auto_cleanup and self.options.cleanup_interval_ms > 0:
            self.start_cleanup()

    def set_with_ttl(self, key: Hashable, value: T, ttl_ms: Optional[float] = None) -> None:
        ttl = self.options.default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl_ms is None and ttl == 0:
            expires_at = None
        else:
            expires_at = self._clock() + ttl
        self.set(key, ExpirableItem(value=value, expires_at=expires_at))

    def get(self, key: Hashable) -> Optional[ExpirableItem[T]]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            if item.is_expired(self._clock()):
                del self._data[key]
                self._expired(key, item)
                return None
            return item

    def get_value(self, key: Hashable) -> Optional[T]:
        item = self.get(key)
        return None if item is None else item.value

    def get_all(self) -> List[ExpirableItem[T]]:
        return [item for _, item in self._live_items()]

    def cleanup(self) -> int:
        """Remove every expired entry, firing ``expire`` for each; returns the count."""
        removed = 0
        with self._lock:
            now = self._clock()
            for key, item in list(self._data.items()):
                if item.is_expired(now):
                    del self._data[key]
                    self._expired(key, item)
                    removed += 1
        if removed:
            logger.debug("Expired entries swept", removed=removed)
        return removed

    def get_stats(self) -> StorageStats:
        with self._lock:
            now = self._clock()
            return StorageStats(
                size=len(self._data),
                keys=len(self._data),
                expired=sum(1 for item in self._data.values() if item.is_expired(now)),
                memory_usage=self._estimate_memory_usage(),
            )

    # --- Periodic sweep ---
    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_thread is not None and self._cleanup_thread.is_alive()

    def start_cleanup(self) -> None:
        """(Re)start the periodic sweep. A no-op when the interval is 0."""
        self.stop_cleanup()
        interval_ms = self.options.cleanup_interval_ms
        if interval_ms <= 0:
            return

        stop = threading.Event()

        def _worker():
            while not stop.wait(interval_ms / 1000):
                try:
                    self.cleanup()
                except Exception as e:
                    error_logger.error("Storage cleanup sweep failed", error=str(e), exc_info=True)

        thread = threading.Thread(target=_worker, name="storage-cleanup", daemon=True)
        self._cleanup_stop = stop
        self._cleanup_thread = thread
        thread.start()

    def stop_cleanup(self) -> None:
        """Stop the periodic sweep; safe to call repeatedly."""
        stop, thread = self._cleanup_stop, self._cleanup_thread
        self._cleanup_stop = None
        self._cleanup_thread = None
        if stop is not None:
            stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _expired(self, key: Hashable, item: ExpirableItem[T]) -> None:
        self._run_callback(self.options.on_expire, key, item.value)
        self._emit(StorageEventType.EXPIRE, key, item.value)

    def _live_items(self) -> List[Tuple[Hashable, ExpirableItem[T]]]:
        with self._lock:
            now = self._clock()
            return [(key, item) for key, item in self._data.items() if not item.is_expired(now)]
