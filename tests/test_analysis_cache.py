"""Tests for the analysis result cache."""
from __future__ import annotations

from app.core.analysis_cache import AnalysisCache, make_cache_key


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestMakeCacheKey:
    def test_stable_regardless_of_key_order(self):
        assert make_cache_key("v", {"a": 1, "b": 2}) == make_cache_key("v", {"b": 2, "a": 1})

    def test_variant_is_part_of_key(self):
        assert make_cache_key("x", {"a": 1}) != make_cache_key("y", {"a": 1})


class TestAnalysisCache:
    """Test TTL expiry and LRU eviction."""

    def test_get_returns_copy(self):
        cache = AnalysisCache()
        cache.set("k", {"keyPoints": ["a"]})
        hit = cache.get("k")
        hit["keyPoints"].append("b")
        assert cache.get("k") == {"keyPoints": ["a"]}

    def test_entries_expire(self):
        clock = FakeClock()
        cache = AnalysisCache(ttl_seconds=300, clock=clock)
        cache.set("k", {"v": 1})
        clock.now = 299
        assert cache.get("k") == {"v": 1}
        clock.now = 301
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_evicts_least_recently_used(self):
        cache = AnalysisCache(max_entries=2)
        cache.set("a", {"v": "a"})
        cache.set("b", {"v": "b"})
        cache.get("a")
        cache.set("c", {"v": "c"})

        assert cache.get("b") is None
        assert cache.get("a") == {"v": "a"}
        assert cache.get("c") == {"v": "c"}

    def test_purge_expired(self):
        clock = FakeClock()
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("old", {})
        clock.now = 8
        cache.set("new", {})
        clock.now = 12
        assert cache.purge_expired() == 1
        assert len(cache) == 1

    def test_stats_count_hits_and_misses(self):
        cache = AnalysisCache()
        cache.get("missing")
        cache.set("k", {})
        cache.get("k")
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["entries"] == 1
