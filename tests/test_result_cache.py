"""Tests for the result cache and its cache keys."""

from __future__ import annotations

from course_search.application.search import CachedSearch, build_cache_key, normalize_query
from course_search.domain.entities import SearchFilters
from course_search.infrastructure.cache import ResultCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ============================================================
# Cache keys
# ============================================================


class TestCacheKey:
    def test_normalize_query(self):
        assert normalize_query("  Machine   LEARNING \t") == "machine learning"

    def test_equivalent_queries_share_a_key(self):
        filters = SearchFilters(max_price=10)
        assert build_cache_key("Python  Basics", filters, 5) == build_cache_key(" python basics", filters, 5)

    def test_platform_order_irrelevant(self):
        a = SearchFilters(platforms=frozenset({"edX", "SWAYAM"}))
        b = SearchFilters(platforms=frozenset({"SWAYAM", "edX"}))
        assert build_cache_key("q", a, 5) == build_cache_key("q", b, 5)

    def test_limit_and_filters_distinguish_keys(self):
        base = build_cache_key("q", SearchFilters(), 5)
        assert base != build_cache_key("q", SearchFilters(), 6)
        assert base != build_cache_key("q", SearchFilters(max_price=0), 5)

    def test_key_prefix(self):
        assert build_cache_key("q", SearchFilters(), 5).startswith("search:")


# ============================================================
# ResultCache
# ============================================================


class TestResultCache:
    def test_get_missing(self):
        cache = ResultCache()
        assert cache.get("nope") is None
        assert cache.stats.misses == 1

    def test_set_and_get(self, make_listing):
        cache = ResultCache()
        value = CachedSearch((make_listing(),), "rec-1")
        cache.set("k", value)

        assert cache.get("k") is value
        assert cache.stats.hits == 1
        assert cache.stats.hit_rate == 1.0

    def test_expiry_is_lazy_on_read(self):
        clock = FakeClock()
        cache = ResultCache(ttl=60, timer=clock)
        cache.set("k", "v")

        clock.now += 59
        assert cache.get("k") == "v"
        clock.now += 2
        assert cache.get("k") is None

    def test_write_replaces_entry(self):
        cache = ResultCache()
        cache.set("k", "old")
        cache.set("k", "new")
        assert cache.get("k") == "new"
        assert len(cache) == 1

    def test_bounded_size(self):
        cache = ResultCache(max_size=2)
        for i in range(5):
            cache.set(f"k{i}", i)
        assert len(cache) == 2

    def test_invalidate_and_clear(self):
        cache = ResultCache()
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        assert cache.clear() == 1
        assert len(cache) == 0

    def test_stats_to_dict(self):
        cache = ResultCache()
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        assert cache.stats.to_dict() == {"hits": 1, "misses": 1, "writes": 1, "hit_rate": 0.5}
