import asyncio
import json

import pytest

from core.storage import InMemoryStorage, InMemoryStorageWithTTL, QueryOptions, StorageOptions
from core.storage.helpers import (
    RateLimiter,
    aggregate,
    batch_operation,
    cached,
    clone_storage,
    create_storage_key,
    export_to_json,
    import_from_json,
    memoized,
    merge_storages,
    paginate,
    parse_storage_key,
    search,
)


@pytest.mark.asyncio
async def test_cached_serves_hits_until_ttl_passes(clock):
    storage = InMemoryStorageWithTTL(clock=clock)
    calls = []

    async def fetch(symbol):
        calls.append(symbol)
        return f"quote:{symbol}"

    cached_fetch = cached(storage, lambda symbol: f"quote:{symbol}", fetch, ttl_ms=100)

    assert await cached_fetch("BBCA") == "quote:BBCA"
    assert await cached_fetch("BBCA") == "quote:BBCA"
    assert calls == ["BBCA"]

    clock.advance(100)
    await cached_fetch("BBCA")
    assert calls == ["BBCA", "BBCA"]


def test_memoized_runs_function_once_per_key(store):
    calls = []

    def square(n):
        calls.append(n)
        return n * n

    fast_square = memoized(store, lambda n: n, square)

    assert fast_square(4) == 16
    assert fast_square(4) == 16
    assert fast_square(5) == 25
    assert calls == [4, 5]


@pytest.mark.asyncio
async def test_batch_operation_preserves_order():
    async def double(n):
        await asyncio.sleep(0)
        return n * 2

    assert await batch_operation(range(7), double, batch_size=3) == [0, 2, 4, 6, 8, 10, 12]

    with pytest.raises(ValueError):
        await batch_operation([1], double, batch_size=0)


def test_paginate_reports_window_and_neighbours(store):
    store.set_many((f"k{i}", i) for i in range(10))

    page = paginate(store, QueryOptions(filter=lambda v: v % 2 == 0, offset=2, limit=2))

    assert page.data == [4, 6]
    assert page.total == 5
    assert page.page == 2
    assert page.page_size == 2
    assert page.has_next is True
    assert page.has_prev is True


def test_search_substring_and_fuzzy(store):
    store.set_many([("1", "Mandiri Sekuritas"), ("2", "Mirae Asset"), ("3", "UBS")])

    assert search(store, "sekur") == ["Mandiri Sekuritas"]
    assert search(store, "mst", fuzzy=True) == ["Mandiri Sekuritas", "Mirae Asset"]


def test_aggregate_groups_items(store):
    store.set_many([("AK", "GROUP_FOREIGN"), ("BK", "GROUP_FOREIGN"), ("PD", "GROUP_LOCAL")])

    assert aggregate(store, group_by=lambda g: g) == {"GROUP_FOREIGN": 2, "GROUP_LOCAL": 1}


def test_rate_limiter_sliding_window(clock):
    storage = InMemoryStorageWithTTL(clock=clock)
    limiter = RateLimiter(storage, max_requests=2, window_ms=1_000)

    assert limiter.is_allowed("10.0.0.1")
    clock.advance(100)
    assert limiter.is_allowed("10.0.0.1")
    assert limiter.get_remaining("10.0.0.1") == 0
    assert not limiter.is_allowed("10.0.0.1")
    assert limiter.is_allowed("10.0.0.2")

    assert limiter.get_reset_time("10.0.0.1") == clock.now - 100 + 1_000

    clock.advance(901)
    assert limiter.is_allowed("10.0.0.1")


def test_rate_limiter_rejects_bad_arguments(clock):
    storage = InMemoryStorageWithTTL(clock=clock)
    with pytest.raises(ValueError):
        RateLimiter(storage, max_requests=0, window_ms=1_000)
    with pytest.raises(ValueError):
        RateLimiter(storage, max_requests=1, window_ms=0)


def test_clone_and_merge(store, clock):
    other = InMemoryStorage(clock=clock)
    other.set("b", 2)
    store.set("a", 1)

    merged = InMemoryStorage(StorageOptions(), clock=clock)
    merge_storages([store, other], merged)

    assert dict(merged.items()) == {"a": 1, "b": 2}

    copy = InMemoryStorage(clock=clock)
    clone_storage(store, copy)
    assert copy.get("a") == 1


def test_json_export_import(store):
    store.set_many([("AK", {"code": "AK"}), ("PD", {"code": "PD"})])

    payload = export_to_json(store)
    assert json.loads(payload) == [{"code": "AK"}, {"code": "PD"}]

    store.set("stale", {"code": "XX"})
    import_from_json(store, payload, key_fn=lambda item: item["code"])
    assert store.keys() == ["AK", "PD"]

    with pytest.raises(ValueError):
        import_from_json(store, '{"not": "a list"}', key_fn=str)


def test_storage_keys_round_trip():
    key = create_storage_key("stockbit", "brokers", 1)

    assert key == "stockbit:brokers:1"
    assert parse_storage_key(key) == ["stockbit", "brokers", "1"]
