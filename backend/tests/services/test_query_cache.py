"""Tests for the in-process query cache."""

import pytest

from kg_memory.services.query_cache import QueryCache, make_cache_key


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestCacheKey:
    def test_independent_of_key_order(self):
        assert make_cache_key({"a": 1, "b": [1, 2]}) == make_cache_key({"b": [1, 2], "a": 1})

    def test_differs_by_value(self):
        assert make_cache_key({"task": "add api"}) != make_cache_key({"task": "add apis"})


class TestQueryCache:
    def test_hit_after_set(self, clock):
        cache = QueryCache(ttl_seconds=60, clock=clock)
        cache.set("k", "value")

        assert cache.get("k") == "value"
        stats = cache.get_stats()
        assert stats.hits == 1
        assert stats.misses == 0
        assert stats.size == 1

    def test_miss_on_unknown_key(self, clock):
        cache = QueryCache(clock=clock)
        assert cache.get("missing") is None
        assert cache.get_stats().misses == 1

    def test_entry_expires_after_ttl(self, clock):
        cache = QueryCache(ttl_seconds=60, clock=clock)
        cache.set("k", "value")

        clock.now = 59.9
        assert cache.get("k") == "value"

        clock.now = 60.0
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_overwrite_refreshes_timestamp(self, clock):
        cache = QueryCache(ttl_seconds=60, clock=clock)
        cache.set("k", "old")
        clock.now = 50
        cache.set("k", "new")
        clock.now = 100

        assert cache.get("k") == "new"

    def test_evicts_least_recently_used(self, clock):
        cache = QueryCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        # Reading "a" makes "b" the eviction candidate
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2
        assert cache.get_stats().evictions == 1

    def test_clear(self, clock):
        cache = QueryCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.clear() == 2
        assert len(cache) == 0

    def test_hit_rate(self, clock):
        cache = QueryCache(clock=clock)
        assert cache.get_stats().hit_rate == 0.0

        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        assert cache.get_stats().to_dict()["hit_rate"] == 0.5

    @pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"ttl_seconds": 0}])
    def test_rejects_non_positive_limits(self, kwargs):
        with pytest.raises(ValueError):
            QueryCache(**kwargs)
