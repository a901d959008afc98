"""Tests for SearchAggregator: fan-out, degradation, filtering, ranking, caching and recording."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from course_search.application.search import AggregatorTimeouts, SearchAggregator
from course_search.application.search.aggregator import concatenate, summarize_yield, validate_ranking
from course_search.domain.entities import Platform, SearchFilters, SearchRequest
from course_search.shared.exceptions import (
    AnalyticsWriteFailure,
    ExternalCallFailure,
    InvalidParameterError,
    InvalidQueryError,
)

FAST = AggregatorTimeouts(enhancer=0.05, ranker=0.05, provider=0.05)


# ============================================================================
# Validation
# ============================================================================


class TestValidation:
    @pytest.mark.parametrize("query", ["", "   ", "\t\n"])
    async def test_empty_query_rejected_without_provider_call(
        self, query, fake_provider, make_aggregator, analytics_store
    ):
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider])

        with pytest.raises(InvalidQueryError):
            await aggregator.search(query)

        assert provider.calls == []
        assert len(analytics_store) == 0

    async def test_query_too_long_rejected(self, fake_provider, make_aggregator):
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider])

        with pytest.raises(InvalidQueryError):
            await aggregator.search("x" * 201)
        assert provider.calls == []

    @pytest.mark.parametrize("limit", [0, 21, -1])
    async def test_limit_out_of_range(self, limit, fake_provider, make_aggregator):
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider])

        with pytest.raises(InvalidParameterError):
            await aggregator.search("python", limit=limit)
        assert provider.calls == []

    async def test_query_is_trimmed(self, fake_provider, make_aggregator):
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider])

        outcome = await aggregator.execute(SearchRequest(query="  python  ", limit=3))

        assert outcome.query == "python"
        assert provider.calls == [("python", 3)]


# ============================================================================
# Fan-out
# ============================================================================


class TestFanOut:
    async def test_result_count_never_exceeds_limit(self, fake_provider, make_listing, make_aggregator):
        providers = [
            fake_provider(name, [make_listing(f"{name} course {i}", platform) for i in range(10)], platform=platform)
            for name, platform in (("edx", Platform.EDX), ("gfg", Platform.GEEKSFORGEEKS))
        ]
        aggregator = make_aggregator(providers)

        for limit in (1, 5, 7, 20):
            aggregator_courses = await aggregator.search(f"course {limit}", limit=limit)
            assert len(aggregator_courses) <= limit

    async def test_each_provider_asked_for_ceil_share(self, fake_provider, make_aggregator):
        providers = [fake_provider(name) for name in ("a", "b", "c")]
        aggregator = make_aggregator(providers)

        await aggregator.search("python", limit=5)

        assert [p.calls for p in providers] == [[("python", 2)]] * 3

    async def test_providers_queried_concurrently(self, fake_provider, make_listing, make_aggregator):
        providers = [
            fake_provider(name, [make_listing(f"{name} course", platform)], platform=platform, delay=0.3)
            for name, platform in (("edx", Platform.EDX), ("gfg", Platform.GEEKSFORGEEKS), ("swayam", Platform.SWAYAM))
        ]
        aggregator = make_aggregator(providers, timeouts=AggregatorTimeouts(provider=2.0))

        started = time.perf_counter()
        courses = await aggregator.search("course", limit=3)
        elapsed = time.perf_counter() - started

        assert elapsed < 0.6
        assert [c.title for c in courses] == ["edx course", "gfg course", "swayam course"]

    async def test_one_failing_provider_loses_only_its_share(
        self, fake_provider, failing_provider, make_listing, make_aggregator
    ):
        a = make_listing("Python A", Platform.EDX)
        c = make_listing("Python C", Platform.SWAYAM)
        aggregator = make_aggregator(
            [
                fake_provider("edx", [a]),
                failing_provider("geeksforgeeks"),
                fake_provider("swayam", [c], platform=Platform.SWAYAM),
            ]
        )

        outcome = await aggregator.execute(SearchRequest(query="python", limit=6))

        assert outcome.courses == [a, c]
        assert outcome.degraded == ["geeksforgeeks"]

    async def test_all_providers_failing_is_empty_success(
        self, failing_provider, make_aggregator, analytics_store
    ):
        aggregator = make_aggregator([failing_provider("a"), failing_provider("b")])

        outcome = await aggregator.execute(SearchRequest(query="python"))

        assert outcome.courses == []
        record = await analytics_store.get(outcome.record_id)
        assert record is not None
        assert record.is_successful is True
        assert record.results.total_found == 0

    async def test_no_providers_registered(self, make_aggregator):
        aggregator = make_aggregator([])
        assert await aggregator.search("python") == []

    async def test_slow_provider_times_out(self, fake_provider, make_listing, make_aggregator):
        fast = make_listing("Fast Python")
        aggregator = make_aggregator(
            [fake_provider("fast", [fast]), fake_provider("slow", [make_listing("Slow")], delay=1.0)],
            timeouts=FAST,
        )

        outcome = await aggregator.execute(SearchRequest(query="python"))

        assert outcome.courses == [fast]
        assert outcome.degraded == ["slow"]

    async def test_registration_order_then_provider_order(self, fake_provider, make_listing, make_aggregator):
        a1, a2 = make_listing("A1"), make_listing("A2")
        b1 = make_listing("B1", Platform.SWAYAM)
        aggregator = make_aggregator([fake_provider("a", [a1, a2]), fake_provider("b", [b1])])

        assert await aggregator.search("anything", limit=3) == [a1, a2, b1]

    async def test_two_one_three_scenario(self, fake_provider, make_listing, make_aggregator, analytics_store):
        edx = [make_listing(f"edX {i}", Platform.EDX) for i in range(2)]
        gfg = [make_listing("GfG 0", Platform.GEEKSFORGEEKS)]
        swayam = [make_listing(f"SWAYAM {i}", Platform.SWAYAM) for i in range(3)]
        aggregator = make_aggregator(
            [
                fake_provider("edx", edx),
                fake_provider("geeksforgeeks", gfg, platform=Platform.GEEKSFORGEEKS),
                fake_provider("swayam", swayam, platform=Platform.SWAYAM),
            ]
        )

        outcome = await aggregator.execute(SearchRequest(query="python", limit=5))

        assert len(outcome.courses) <= 5
        assert outcome.courses == [*edx, *gfg, *swayam][:5]
        record = await analytics_store.get(outcome.record_id)
        assert record.results.total_found == 6
        assert sum(p.count for p in record.results.platforms) == 6
        assert [(p.platform, p.count) for p in record.results.platforms] == [
            ("edX", 2),
            ("GeeksforGeeks", 1),
            ("SWAYAM", 3),
        ]


# ============================================================================
# Filtering
# ============================================================================


class TestFiltering:
    async def test_filters_applied_but_yield_counts_prefilter(
        self, fake_provider, sample_listings, make_aggregator, analytics_store
    ):
        aggregator = make_aggregator([fake_provider("mixed", sample_listings)])

        outcome = await aggregator.execute(
            SearchRequest(query="python", filters=SearchFilters(max_price=0), limit=10)
        )

        assert [c.title for c in outcome.courses] == ["Python Basics", "Python for Data"]
        assert outcome.total_found == 4
        record = await analytics_store.get(outcome.record_id)
        assert record.results.total_found == 4
        assert record.filters == {"max_price": 0.0}


# ============================================================================
# Enhancer
# ============================================================================


class TestEnhancer:
    async def test_enhanced_query_sent_to_providers(self, fake_provider, mock_enhancer, make_aggregator):
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider], enhancer=mock_enhancer)

        outcome = await aggregator.execute(SearchRequest(query="python", limit=2))

        assert provider.calls == [("python course", 2)]
        assert outcome.enhanced_query == "python course"

    async def test_enhancer_failure_falls_back_to_original(self, fake_provider, make_aggregator):
        enhancer = AsyncMock()
        enhancer.enhance.side_effect = RuntimeError("quota exceeded")
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider], enhancer=enhancer)

        outcome = await aggregator.execute(SearchRequest(query="python", limit=2))

        assert provider.calls == [("python", 2)]
        assert outcome.degraded == ["query_enhancer"]

    async def test_blank_enhancement_ignored(self, fake_provider, make_aggregator):
        enhancer = AsyncMock()
        enhancer.enhance.return_value = "   "
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider], enhancer=enhancer)

        await aggregator.search("python", limit=2)

        assert provider.calls == [("python", 2)]


# ============================================================================
# Ranker
# ============================================================================


class TestRanker:
    @pytest.fixture
    def listings(self, make_listing):
        return [make_listing(f"Course {i}") for i in range(4)]

    async def test_ranked_order_then_remainder(self, fake_provider, listings, mock_ranker, make_aggregator):
        mock_ranker.rank.return_value = [2, 0]
        aggregator = make_aggregator([fake_provider("edx", listings)], ranker=mock_ranker)

        courses = await aggregator.search("course", limit=4)

        assert courses == [listings[2], listings[0], listings[1], listings[3]]

    async def test_ranker_receives_original_query(
        self, fake_provider, listings, mock_enhancer, mock_ranker, make_aggregator
    ):
        mock_ranker.rank.return_value = [0]
        aggregator = make_aggregator([fake_provider("edx", listings)], enhancer=mock_enhancer, ranker=mock_ranker)

        await aggregator.search("course", limit=3)

        candidates, query, count = mock_ranker.rank.call_args.args
        assert query == "course"
        assert count == 3
        assert list(candidates) == listings

    async def test_ranker_timeout_falls_back(self, fake_provider, listings, make_aggregator):
        async def slow_rank(*args):
            await asyncio.sleep(1.0)
            return [3, 2, 1, 0]

        ranker = AsyncMock()
        ranker.rank.side_effect = slow_rank
        aggregator = make_aggregator([fake_provider("edx", listings)], ranker=ranker, timeouts=FAST)

        outcome = await aggregator.execute(SearchRequest(query="course", limit=3))

        assert outcome.courses == listings[:3]
        assert outcome.degraded == ["relevance_ranker"]

    @pytest.mark.parametrize("answer", [[7], [0, 0], [-1]])
    async def test_malformed_ranking_falls_back(self, answer, fake_provider, listings, mock_ranker, make_aggregator):
        mock_ranker.rank.return_value = answer
        aggregator = make_aggregator([fake_provider("edx", listings)], ranker=mock_ranker)

        outcome = await aggregator.execute(SearchRequest(query="course", limit=2))

        assert outcome.courses == listings[:2]
        assert "relevance_ranker" in outcome.degraded

    async def test_ranker_skipped_for_single_candidate(self, fake_provider, make_listing, mock_ranker, make_aggregator):
        only = make_listing("Only")
        aggregator = make_aggregator([fake_provider("edx", [only])], ranker=mock_ranker)

        assert await aggregator.search("only") == [only]
        mock_ranker.rank.assert_not_called()


# ============================================================================
# Cache
# ============================================================================


class TestCaching:
    async def test_second_identical_search_served_from_cache(
        self, fake_provider, make_listing, mock_ranker, make_aggregator, analytics_store
    ):
        listings = [make_listing("Python 1"), make_listing("Python 2")]
        mock_ranker.rank.return_value = [1, 0]
        provider = fake_provider("edx", listings)
        aggregator = make_aggregator([provider], ranker=mock_ranker)

        first = await aggregator.execute(SearchRequest(query="Python", limit=5))
        second = await aggregator.execute(SearchRequest(query="  python ", limit=5))

        assert second.courses == first.courses
        assert second.from_cache is True
        assert second.record_id == first.record_id
        assert len(provider.calls) == 1
        assert mock_ranker.rank.await_count == 1
        assert len(analytics_store) == 1

    async def test_different_limit_is_a_different_key(self, fake_provider, make_aggregator):
        provider = fake_provider("edx")
        aggregator = make_aggregator([provider])

        await aggregator.search("python", limit=5)
        await aggregator.search("python", limit=6)

        assert len(provider.calls) == 2

    async def test_cache_failure_returns_partial_and_records_failure(self, fake_provider, analytics_store):
        cache = MagicMock()
        cache.get.side_effect = RuntimeError("cache unavailable")
        provider = fake_provider("edx")
        aggregator = SearchAggregator([provider], cache, analytics_store)

        outcome = await aggregator.execute(SearchRequest(query="python"))

        assert outcome.courses == []
        record = await analytics_store.get(outcome.record_id)
        assert record.is_successful is False
        assert record.error_message == "cache unavailable"


# ============================================================================
# Analytics
# ============================================================================


class TestRecording:
    async def test_record_carries_request_metadata(self, fake_provider, make_aggregator, analytics_store):
        from course_search.domain.entities import ClientInfo

        aggregator = make_aggregator([fake_provider("edx")])
        outcome = await aggregator.execute(
            SearchRequest(
                query="python",
                caller_id="u1",
                client=ClientInfo(user_agent="pytest", ip_address="10.0.0.1"),
            )
        )

        record = await analytics_store.get(outcome.record_id)
        assert record.caller_id == "u1"
        assert record.user_agent == "pytest"
        assert record.ip_address == "10.0.0.1"
        assert record.search_time_ms >= 0

    async def test_analytics_failure_does_not_fail_search(self, fake_provider, make_listing, result_cache):
        listing = make_listing("Python")
        analytics = AsyncMock()
        analytics.record.side_effect = AnalyticsWriteFailure("disk full")
        aggregator = SearchAggregator([fake_provider("edx", [listing])], result_cache, analytics)

        assert await aggregator.search("python") == [listing]


# ============================================================================
# Helpers
# ============================================================================


class TestHelpers:
    def test_concatenate_keeps_first_duplicate(self, make_listing):
        a = make_listing("Same", link="https://x.example/1")
        dup = make_listing("Same again", link="https://x.example/1")
        b = make_listing("Other")

        assert concatenate([[a], [dup, b]]) == [a, b]

    def test_summarize_yield_first_seen_order(self, make_listing):
        summary = summarize_yield(
            [[make_listing("s", Platform.SWAYAM)], [make_listing("e", Platform.EDX), make_listing("s2", Platform.SWAYAM)]]
        )
        assert summary.total_found == 3
        assert [(p.platform, p.count) for p in summary.platforms] == [("SWAYAM", 2), ("edX", 1)]

    def test_validate_ranking_accepts_permutation_prefix(self):
        assert validate_ranking([2, 0], 3) == [2, 0]

    @pytest.mark.parametrize("indices", [[3], [1, 1], ["1"], [True]])
    def test_validate_ranking_rejects(self, indices):
        with pytest.raises(ExternalCallFailure):
            validate_ranking(indices, 3)
