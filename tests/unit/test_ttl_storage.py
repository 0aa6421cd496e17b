import threading
import time

from core.storage import ExpiringStore, InMemoryStorage, InMemoryStorageWithTTL, KeyValueStore, StorageEventType, StorageOptions


def test_value_is_readable_until_expiry_instant(ttl_store, clock):
    ttl_store.set_with_ttl("k", "v", 500)

    clock.advance(499)
    assert ttl_store.get_value("k") == "v"

    # expires_at <= now counts as expired
    clock.advance(1)
    assert ttl_store.get_value("k") is None


def test_get_lazily_deletes_and_fires_expire(clock):
    expired = []
    storage = InMemoryStorageWithTTL(
        StorageOptions(on_expire=lambda key, value: expired.append((key, value))),
        clock=clock,
    )
    events = []
    storage.on(events.append)

    storage.set_with_ttl("nonce-1", {"ip": "1.2.3.4"}, 100)
    clock.advance(100)

    assert storage.get("nonce-1") is None
    assert storage.size() == 0
    assert expired == [("nonce-1", {"ip": "1.2.3.4"})]
    assert events[-1].type == StorageEventType.EXPIRE
    assert events[-1].value == {"ip": "1.2.3.4"}


def test_has_reports_raw_presence_of_expired_entry(ttl_store, clock):
    ttl_store.set_with_ttl("k", "v", 10)
    clock.advance(20)

    assert ttl_store.has("k") is True
    assert ttl_store.get("k") is None
    assert ttl_store.has("k") is False


def test_get_all_hides_expired_without_deleting(ttl_store, clock):
    ttl_store.set_with_ttl("short", "s", 10)
    ttl_store.set_with_ttl("long", "l", 10_000)
    clock.advance(50)

    assert [item.value for item in ttl_store.get_all()] == ["l"]
    assert [item.value for item in ttl_store.values()] == ["l"]
    assert ttl_store.size() == 2
    assert ttl_store.get_stats().expired == 1


def test_cleanup_removes_expired_and_returns_count(ttl_store, clock):
    events = []
    ttl_store.on(events.append)
    ttl_store.set_with_ttl("a", 1, 10)
    ttl_store.set_with_ttl("b", 2, 10)
    ttl_store.set_with_ttl("c", 3, 1_000)
    clock.advance(10)

    assert ttl_store.cleanup() == 2
    assert ttl_store.keys() == ["c"]
    assert sum(1 for e in events if e.type == StorageEventType.EXPIRE) == 2
    assert ttl_store.cleanup() == 0


def test_lazy_and_swept_expiry_reach_the_same_state(clock):
    lazy = InMemoryStorageWithTTL(StorageOptions(auto_cleanup=False), clock=clock)
    swept = InMemoryStorageWithTTL(StorageOptions(auto_cleanup=False), clock=clock)
    lazy_events, swept_events = [], []
    lazy.on(lazy_events.append)
    swept.on(swept_events.append)

    for store in (lazy, swept):
        store.set_with_ttl("gone", "x", 10)
        store.set_with_ttl("kept", "y", 1_000)
    clock.advance(10)

    # Lazy path: the read removes the entry and fires expire exactly once
    assert lazy.get("gone") is None
    assert [e.key for e in lazy_events if e.type == StorageEventType.EXPIRE] == ["gone"]
    assert [item.value for item in lazy.get_all()] == ["y"]
    assert lazy.cleanup() == 0
    assert [e.key for e in lazy_events if e.type == StorageEventType.EXPIRE] == ["gone"]

    # Swept path ends identically
    assert swept.cleanup() == 1
    assert [e.key for e in swept_events if e.type == StorageEventType.EXPIRE] == ["gone"]
    assert swept.get("gone") is None
    assert [e.key for e in swept_events if e.type == StorageEventType.EXPIRE] == ["gone"]

    assert lazy.keys() == swept.keys() == ["kept"]


def test_default_ttl_applies_when_none_given(ttl_store, clock):
    ttl_store.set_with_ttl("k", "v")
    clock.advance(999)
    assert ttl_store.get_value("k") == "v"
    clock.advance(1)
    assert ttl_store.get_value("k") is None


def test_zero_default_ttl_never_expires(clock):
    storage = InMemoryStorageWithTTL(StorageOptions(default_ttl_ms=0), clock=clock)
    storage.set_with_ttl("k", "v")
    clock.advance(10 ** 12)

    assert storage.get_value("k") == "v"


def test_bounded_ttl_store_evicts_fifo(clock):
    storage = InMemoryStorageWithTTL(StorageOptions(max_size=2, default_ttl_ms=1_000), clock=clock)
    storage.set_with_ttl("a", 1)
    storage.set_with_ttl("b", 2)
    storage.set_with_ttl("c", 3)

    assert storage.get("a") is None
    assert storage.get_value("b") == 2
    assert storage.get_value("c") == 3


def test_cleanup_timer_start_stop_is_idempotent():
    storage = InMemoryStorageWithTTL(StorageOptions(cleanup_interval_ms=10_000, auto_cleanup=True))
    assert storage.cleanup_running

    storage.start_cleanup()
    assert storage.cleanup_running
    assert sum(1 for t in threading.enumerate() if t.name == "storage-cleanup" and t.is_alive()) >= 1

    storage.stop_cleanup()
    storage.stop_cleanup()
    assert not storage.cleanup_running


def test_zero_interval_disables_timer():
    storage = InMemoryStorageWithTTL(StorageOptions(cleanup_interval_ms=0, auto_cleanup=True))
    assert not storage.cleanup_running
    storage.start_cleanup()
    assert not storage.cleanup_running


def test_background_sweep_removes_expired_entries():
    storage = InMemoryStorageWithTTL(StorageOptions(cleanup_interval_ms=20, auto_cleanup=True))
    try:
        storage.set_with_ttl("k", "v", 1)
        deadline = time.time() + 2
        while storage.size() and time.time() < deadline:
            time.sleep(0.02)
        assert storage.size() == 0
    finally:
        storage.stop_cleanup()


def test_stores_satisfy_their_contracts(ttl_store):
    assert isinstance(ttl_store, ExpiringStore)
    assert isinstance(ttl_store, KeyValueStore)
    assert isinstance(InMemoryStorage(), KeyValueStore)
    assert not isinstance(InMemoryStorage(), ExpiringStore)
