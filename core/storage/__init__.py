from .interfaces import ExpiringStore, KeyValueStore
from .memory import InMemoryStorage, InMemoryStorageWithTTL
from .models import (
    ExpirableItem,
    QueryOptions,
    StorageEvent,
    StorageEventType,
    StorageOptions,
    StorageStats,
)

__all__ = [
    "ExpirableItem",
    "ExpiringStore",
    "InMemoryStorage",
    "InMemoryStorageWithTTL",
    "KeyValueStore",
    "QueryOptions",
    "StorageEvent",
    "StorageEventType",
    "StorageOptions",
    "StorageStats",
]
