"""
SearchAggregator - Federated course search orchestrator.

One request/response cycle:

    validate → cache lookup ─hit─────────────────────────────────→ return
                   │miss
                   ↓
    enhance query → fan-out to providers → concatenate → filter → rank
                   ↓
    cache write → analytics record → return

Architecture Decision:
    Providers, enhancer and ranker are long-lived collaborators injected at
    construction time; all per-request state lives in local variables, so a
    single aggregator serves many concurrent requests.

    Every external call is individually guarded with its own timeout and
    degrades instead of failing the search:
    - enhancer failure  → original query
    - provider failure  → zero results from that provider
    - ranker failure    → first ``limit`` filtered listings, concatenation order
    - analytics failure → logged and swallowed

    Anything else raised inside the pipeline is caught at the outer boundary:
    the listings computed so far are returned and an unsuccessful
    SearchRecord is written best-effort.

    Analytics yield (``total_found`` and per-platform counts) is computed from
    the provider output *before* filtering, so it reflects source yield rather
    than the size of the returned list.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from course_search.domain.entities import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MAX_QUERY_LENGTH,
    MIN_LIMIT,
    PlatformCount,
    ResultSummary,
    SearchFilters,
    SearchRecord,
    SearchRequest,
)
from course_search.shared.async_utils import call_with_timeout, gather_settled
from course_search.shared.exceptions import (
    ExternalCallError,
    ExternalCallFailure,
    InvalidParameterError,
    InvalidQueryError,
)

from .cache_key import build_cache_key
from .filter_engine import apply_filters

if TYPE_CHECKING:
    from collections.abc import Sequence

    from course_search.domain.entities import CourseListing
    from course_search.domain.ports import (
        PlatformProvider,
        QueryEnhancer,
        RelevanceRanker,
        SearchAnalytics,
        SearchCache,
    )

logger = logging.getLogger(__name__)

ENHANCER = "query_enhancer"
RANKER = "relevance_ranker"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class AggregatorTimeouts:
    """Latency ceilings (seconds) for each kind of external call."""

    enhancer: float = 3.0
    ranker: float = 5.0
    provider: float = 20.0


@dataclass(frozen=True)
class CachedSearch:
    """Cache value: the final ordered listings and the record that produced them."""

    courses: tuple[CourseListing, ...]
    record_id: str | None = None


@dataclass
class SearchOutcome:
    """Result of one search cycle, with diagnostics for the outer surfaces."""

    query: str
    courses: list[CourseListing]
    filters: dict[str, Any] = field(default_factory=dict)
    record_id: str | None = None
    search_time_ms: float = 0.0
    from_cache: bool = False
    enhanced_query: str | None = None
    total_found: int = 0
    degraded: list[str] = field(default_factory=list)

    @property
    def total_results(self) -> int:
        return len(self.courses)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "search_id": self.record_id,
            "total_results": self.total_results,
            "search_time_ms": round(self.search_time_ms, 1),
            "from_cache": self.from_cache,
            "courses": [c.to_dict() for c in self.courses],
            "filters": self.filters,
            "degraded": self.degraded,
        }


# =============================================================================
# Validation helpers
# =============================================================================


def validate_query(query: str | None) -> str:
    """Trim *query*; raise InvalidQueryError if empty or longer than 200 chars."""
    trimmed = (query or "").strip()
    if not trimmed:
        raise InvalidQueryError(query)
    if len(trimmed) > MAX_QUERY_LENGTH:
        raise InvalidQueryError(query, "Search query must be between 1 and 200 characters")
    return trimmed


def validate_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or not MIN_LIMIT <= limit <= MAX_LIMIT:
        raise InvalidParameterError("limit", limit, f"an integer between {MIN_LIMIT} and {MAX_LIMIT}")
    return limit


def validate_ranking(indices: Sequence[int], candidate_count: int) -> list[int]:
    """Reject out-of-range, duplicate or non-integer indices."""
    seen: set[int] = set()
    for index in indices:
        if isinstance(index, bool) or not isinstance(index, int):
            raise ExternalCallFailure(RANKER, f"non-integer index {index!r}")
        if not 0 <= index < candidate_count:
            raise ExternalCallFailure(RANKER, f"index {index} out of range 0..{candidate_count - 1}")
        if index in seen:
            raise ExternalCallFailure(RANKER, f"duplicate index {index}")
        seen.add(index)
    return list(indices)


def summarize_yield(batches: Sequence[Sequence[CourseListing]]) -> ResultSummary:
    """Per-platform counts over the raw provider output, first-seen order."""
    counts: dict[str, int] = {}
    for batch in batches:
        for listing in batch:
            counts[listing.platform.value] = counts.get(listing.platform.value, 0) + 1
    return ResultSummary(
        total_found=sum(counts.values()),
        platforms=tuple(PlatformCount(platform, count) for platform, count in counts.items()),
    )


def concatenate(batches: Sequence[Sequence[CourseListing]]) -> list[CourseListing]:
    """Registration order, then intra-provider order; first occurrence of a listing wins."""
    seen: set[str] = set()
    merged: list[CourseListing] = []
    for batch in batches:
        for listing in batch:
            if listing.listing_id in seen:
                continue
            seen.add(listing.listing_id)
            merged.append(listing)
    return merged


# =============================================================================
# Aggregator
# =============================================================================


class SearchAggregator:
    """
    Federated search over every registered Platform Provider.

    Example:
        aggregator = SearchAggregator(
            providers=[edx, gfg, swayam],
            cache=ResultCache(ttl=3600),
            analytics=SearchAnalyticsStore(),
            enhancer=enhancer,
            ranker=ranker,
        )
        courses = await aggregator.search("machine learning", limit=5)
    """

    def __init__(
        self,
        providers: Sequence[PlatformProvider],
        cache: SearchCache,
        analytics: SearchAnalytics,
        *,
        enhancer: QueryEnhancer | None = None,
        ranker: RelevanceRanker | None = None,
        timeouts: AggregatorTimeouts | None = None,
    ) -> None:
        self._providers = tuple(providers)
        self._cache = cache
        self._analytics = analytics
        self._enhancer = enhancer
        self._ranker = ranker
        self._timeouts = timeouts or AggregatorTimeouts()

    @property
    def providers(self) -> tuple[PlatformProvider, ...]:
        return self._providers

    @property
    def has_enhancer(self) -> bool:
        return self._enhancer is not None

    @property
    def has_ranker(self) -> bool:
        return self._ranker is not None

    async def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[CourseListing]:
        """
        Ordered, size-capped listings for *query*.

        Raises:
            InvalidQueryError: Query empty after trimming, or too long.
            InvalidParameterError: Limit outside 1-20.
        """
        outcome = await self.execute(SearchRequest(query=query, filters=filters or SearchFilters(), limit=limit))
        return outcome.courses

    async def execute(self, request: SearchRequest) -> SearchOutcome:
        """Run one full search cycle; only validation errors propagate."""
        query = validate_query(request.query)
        limit = validate_limit(request.limit)
        filters = request.filters
        key = build_cache_key(query, filters, limit)

        started = time.perf_counter()
        outcome = SearchOutcome(query=query, courses=[], filters=filters.canonical())
        record_id = uuid.uuid4().hex
        summary = ResultSummary()

        try:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info(f"Cache hit for '{query}' ({len(cached.courses)} courses)")
                outcome.courses = list(cached.courses)
                outcome.record_id = cached.record_id
                outcome.from_cache = True
                outcome.search_time_ms = _elapsed_ms(started)
                return outcome

            enhanced = await self._enhance(query, outcome.degraded)
            outcome.enhanced_query = enhanced

            batches = await self._fan_out(enhanced, limit, outcome.degraded)
            summary = summarize_yield(batches)
            outcome.total_found = summary.total_found

            candidates = apply_filters(concatenate(batches), filters)
            outcome.courses = await self._rank(candidates, query, limit, outcome.degraded)

            self._cache.set(key, CachedSearch(tuple(outcome.courses), record_id))

            outcome.search_time_ms = _elapsed_ms(started)
            outcome.record_id = record_id
            await self._record(request, query, record_id, summary, outcome.search_time_ms)

            logger.info(
                f"Search '{query}': {summary.total_found} found, "
                f"{len(candidates)} after filters, {len(outcome.courses)} returned "
                f"in {outcome.search_time_ms:.0f}ms"
            )
            return outcome

        except Exception as e:
            logger.exception(f"Search pipeline failed for '{query}': {e}")
            outcome.search_time_ms = _elapsed_ms(started)
            outcome.record_id = record_id
            await self._record(
                request,
                query,
                record_id,
                summary,
                outcome.search_time_ms,
                error=str(e) or type(e).__name__,
            )
            return outcome

    # ── Pipeline steps ───────────────────────────────────────────────────

    async def _enhance(self, query: str, degraded: list[str]) -> str:
        if self._enhancer is None:
            return query
        try:
            enhanced = await call_with_timeout(ENHANCER, self._enhancer.enhance(query), self._timeouts.enhancer)
        except ExternalCallError as e:
            logger.warning(f"Query enhancement skipped: {e}")
            degraded.append(ENHANCER)
            return query
        enhanced = (enhanced or "").strip()
        return enhanced or query

    async def _fan_out(self, query: str, limit: int, degraded: list[str]) -> list[list[CourseListing]]:
        if not self._providers:
            logger.warning("No platform providers registered")
            return []

        per_provider = math.ceil(limit / len(self._providers))
        results = await gather_settled(
            *(
                call_with_timeout(provider.name, provider.search(query, per_provider), self._timeouts.provider)
                for provider in self._providers
            )
        )

        batches: list[list[CourseListing]] = []
        for provider, result in zip(self._providers, results):
            if isinstance(result, Exception):
                logger.warning(f"Provider {provider.name} contributed no results: {result}")
                degraded.append(provider.name)
                batches.append([])
            else:
                batches.append(list(result))

        if all(isinstance(r, Exception) for r in results):
            logger.warning(f"All {len(self._providers)} providers failed for '{query}'")
        return batches

    async def _rank(
        self,
        candidates: list[CourseListing],
        query: str,
        limit: int,
        degraded: list[str],
    ) -> list[CourseListing]:
        fallback = candidates[:limit]
        if self._ranker is None or len(candidates) < 2:
            return fallback

        try:
            indices = await call_with_timeout(
                RANKER,
                self._ranker.rank(candidates, query, limit),
                self._timeouts.ranker,
            )
            preferred = validate_ranking(indices, len(candidates))
        except ExternalCallError as e:
            logger.warning(f"Ranking skipped, keeping provider order: {e}")
            degraded.append(RANKER)
            return fallback

        chosen = set(preferred)
        ordered = [candidates[i] for i in preferred]
        ordered.extend(c for i, c in enumerate(candidates) if i not in chosen)
        return ordered[:limit]

    async def _record(
        self,
        request: SearchRequest,
        query: str,
        record_id: str,
        summary: ResultSummary,
        elapsed_ms: float,
        *,
        error: str | None = None,
    ) -> None:
        record = SearchRecord(
            record_id=record_id,
            query=query,
            caller_id=request.caller_id,
            filters=request.filters.canonical(),
            results=summary,
            user_agent=request.client.user_agent,
            ip_address=request.client.ip_address,
            search_time_ms=elapsed_ms,
            is_successful=error is None,
            error_message=error,
        )
        try:
            await self._analytics.record(record)
        except Exception as e:
            logger.warning(f"Search analytics not recorded for '{query}': {e}")


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
