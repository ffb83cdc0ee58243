from __future__ import annotations

from typing import Optional

from authentik.services.errors import CacheStoreError
from authentik.services.lookup_cache import (
    CacheEntry,
    CacheStore,
    LookupCache,
    make_cache_key,
    normalize_query,
    round_coordinate,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class InMemoryStore(CacheStore):
    def __init__(self) -> None:
        self.rows: dict[str, CacheEntry] = {}
        self.kinds: dict[str, str] = {}
        self.fetch_calls = 0

    def fetch(self, key: str) -> Optional[CacheEntry]:
        self.fetch_calls += 1
        return self.rows.get(key)

    def save(self, entry: CacheEntry, kind: str) -> None:
        self.rows[entry.key] = entry
        self.kinds[entry.key] = kind


class BrokenStore(CacheStore):
    def fetch(self, key: str) -> Optional[CacheEntry]:
        raise CacheStoreError("fetch", "connection refused")

    def save(self, entry: CacheEntry, kind: str) -> None:
        raise CacheStoreError("save", "connection refused")


class TestCacheKeys:
    def test_normalize_query(self) -> None:
        assert normalize_query("  Mỳ Quảng   NHUNG  Da Nang ") == "mỳ quảng nhung da nang"

    def test_round_coordinate(self) -> None:
        assert round_coordinate(16.054449) == 16.054

    def test_same_input_same_key(self) -> None:
        first = make_cache_key("places_search", "pho 10", 16.054, 108.202)
        second = make_cache_key("places_search", "pho 10", 16.054, 108.202)

        assert first == second
        assert len(first) == 64

    def test_kind_changes_key(self) -> None:
        assert make_cache_key("a", "x") != make_cache_key("b", "x")


class TestMemoryTier:
    async def test_put_then_get(self) -> None:
        cache = LookupCache(clock=FakeClock())

        await cache.put("k", {"v": 1}, ttl_seconds=60)

        assert await cache.get("k") == {"v": 1}
        assert "k" in cache

    async def test_expired_entry_is_never_returned(self) -> None:
        clock = FakeClock()
        cache = LookupCache(clock=clock)
        await cache.put("k", "value", ttl_seconds=60)

        clock.now += 60

        assert await cache.get("k") is None
        assert "k" not in cache

    async def test_evicts_oldest_inserted(self) -> None:
        cache = LookupCache(capacity=2, clock=FakeClock())
        await cache.put("a", 1, ttl_seconds=60)
        await cache.put("b", 2, ttl_seconds=60)
        await cache.put("c", 3, ttl_seconds=60)

        assert len(cache) == 2
        assert await cache.get("a") is None
        assert await cache.get("b") == 2
        assert await cache.get("c") == 3

    async def test_updating_key_keeps_position(self) -> None:
        cache = LookupCache(capacity=2, clock=FakeClock())
        await cache.put("a", 1, ttl_seconds=60)
        await cache.put("b", 2, ttl_seconds=60)
        await cache.put("a", 10, ttl_seconds=60)
        await cache.put("c", 3, ttl_seconds=60)

        assert await cache.get("a") is None
        assert await cache.get("b") == 2


class TestDurableTier:
    async def test_put_writes_through(self) -> None:
        store = InMemoryStore()
        cache = LookupCache(store=store, clock=FakeClock(1000.0))

        await cache.put("k", [1, 2], ttl_seconds=30, kind="places_search")

        assert store.rows["k"].expires_at == 1030.0
        assert store.kinds["k"] == "places_search"

    async def test_durable_hit_is_promoted(self) -> None:
        store = InMemoryStore()
        store.rows["k"] = CacheEntry(key="k", value="durable", expires_at=2000.0)
        cache = LookupCache(store=store, clock=FakeClock(1000.0))

        assert await cache.get("k") == "durable"
        assert await cache.get("k") == "durable"
        assert store.fetch_calls == 1

    async def test_expired_durable_row_is_a_miss(self) -> None:
        store = InMemoryStore()
        store.rows["k"] = CacheEntry(key="k", value="stale", expires_at=999.0)
        cache = LookupCache(store=store, clock=FakeClock(1000.0))

        assert await cache.get("k") is None
        assert "k" not in cache

    async def test_store_failures_degrade_to_memory(self) -> None:
        cache = LookupCache(store=BrokenStore(), clock=FakeClock())

        assert await cache.get("missing") is None
        await cache.put("k", "v", ttl_seconds=60)
        assert await cache.get("k") == "v"
