"""
Application Service: Course Search

Facade used by the HTTP and MCP surfaces. Wraps the SearchAggregator and
adds the features built on top of it:

- Recommendations from a learner profile (LLM-proposed queries)
- Per-listing insights (LLM analysis)
- Click tracking and view counting
- Search history, popularity and the analytics bundle
- The platform catalog

Architecture:
    Presentation → Application (here) → Aggregator / Infrastructure
    CourseListing and SearchRecord flow upward.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from course_search.domain.entities import PLATFORM_CATALOG, SearchRequest
from course_search.shared.async_utils import gather_settled
from course_search.shared.exceptions import AnalyticsWriteFailure, InvalidParameterError

if TYPE_CHECKING:
    from course_search.domain.entities import CourseListing, SearchRecord
    from course_search.domain.ports import CourseAdvisor, ListingCatalog, SearchAnalytics

    from .aggregator import SearchAggregator, SearchOutcome

logger = logging.getLogger(__name__)

ANALYSIS_NOT_AVAILABLE = "Analysis not available."
MAX_RECOMMENDATION_QUERIES = 3
MAX_HISTORY_LIMIT = 50
MAX_ANALYTICS_DAYS = 365


def _check_range(name: str, value: int, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise InvalidParameterError(name, value, f"an integer between {low} and {high}")
    return value


class CourseSearchService:
    """
    Course search application service.

    Example:
        service = CourseSearchService(aggregator, analytics, catalog, advisor=advisor)
        outcome = await service.search(SearchRequest(query="python", limit=5))
        await service.track_click(outcome.courses[0].listing_id, record_id=outcome.record_id)
    """

    def __init__(
        self,
        aggregator: SearchAggregator,
        analytics: SearchAnalytics,
        catalog: ListingCatalog,
        *,
        advisor: CourseAdvisor | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._analytics = analytics
        self._catalog = catalog
        self._advisor = advisor

    @property
    def aggregator(self) -> SearchAggregator:
        return self._aggregator

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, request: SearchRequest) -> SearchOutcome:
        outcome = await self._aggregator.execute(request)
        self._catalog.remember(outcome.courses)
        return outcome

    async def recommendations(
        self,
        profile: dict[str, Any],
        limit: int = 10,
        *,
        caller_id: str | None = None,
    ) -> list[CourseListing]:
        """
        Listings for a learner profile.

        Up to three queries are derived from the profile and searched concurrently,
        each for ``ceil(limit / n)`` results; the merged list is de-duplicated by
        (title, platform) and capped at *limit*. Best-effort: returns an empty
        list when no query can be derived.
        """
        _check_range("limit", limit, 1, 20)
        queries = await self._recommendation_queries(profile)
        if not queries:
            return []

        per_query = math.ceil(limit / len(queries))
        outcomes = await gather_settled(
            *(self.search(SearchRequest(query=query, limit=per_query, caller_id=caller_id)) for query in queries)
        )

        seen: set[tuple[str, str]] = set()
        merged: list[CourseListing] = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"Recommendation query '{query}' skipped: {outcome}")
                continue
            for listing in outcome.courses:
                key = (listing.title.strip().lower(), listing.platform.value)
                if key not in seen:
                    seen.add(key)
                    merged.append(listing)

        return merged[:limit]

    async def _recommendation_queries(self, profile: dict[str, Any]) -> list[str]:
        queries: list[str] = []
        if self._advisor is not None:
            try:
                queries = await self._advisor.suggest_queries(profile, MAX_RECOMMENDATION_QUERIES)
            except Exception as e:
                logger.warning(f"Recommendation queries unavailable: {e}")
                return []
        else:
            interests = profile.get("interests") or []
            if isinstance(interests, str):
                interests = interests.split(",")
            queries = [str(i) for i in interests]

        cleaned = [q.strip()[:200] for q in queries if q and q.strip()]
        return cleaned[:MAX_RECOMMENDATION_QUERIES]

    async def insights(self, listing_id: str) -> dict[str, Any] | None:
        """Listing plus an LLM analysis; None when the listing is unknown."""
        listing = self._catalog.get(listing_id)
        if listing is None:
            return None

        analysis = ANALYSIS_NOT_AVAILABLE
        if self._advisor is not None:
            try:
                analysis = (await self._advisor.analyze(listing)).strip() or ANALYSIS_NOT_AVAILABLE
            except Exception as e:
                logger.warning(f"Insights unavailable for {listing_id}: {e}")
        return {"course": listing.to_dict(), "analysis": analysis}

    # ── Tracking ─────────────────────────────────────────────────────────

    async def track_click(
        self,
        listing_id: str,
        *,
        record_id: str | None = None,
        caller_id: str | None = None,
    ) -> dict[str, Any]:
        """Append the click to the search record (if given) and bump the listing's views."""
        if not listing_id or not listing_id.strip():
            raise InvalidParameterError("listing_id", listing_id, "a non-empty listing id")

        recorded = False
        if record_id:
            try:
                recorded = await self._analytics.record_click(record_id, listing_id)
            except AnalyticsWriteFailure as e:
                logger.warning(f"Click on {listing_id} not recorded: {e}")
            else:
                if not recorded:
                    logger.info(f"Click on {listing_id} for unknown search {record_id} ignored")

        views = self._catalog.increment_view(listing_id)
        logger.debug(f"Click on {listing_id} by {caller_id or 'anonymous'} ({views} views)")
        return {"listing_id": listing_id, "search_id": record_id, "recorded": recorded, "views": views}

    # ── Analytics ────────────────────────────────────────────────────────

    async def history(self, caller_id: str, limit: int = 20) -> list[SearchRecord]:
        _check_range("limit", limit, 1, MAX_HISTORY_LIMIT)
        return await self._analytics.history(caller_id, limit)

    async def popular(self, limit: int = 10) -> list[dict[str, Any]]:
        _check_range("limit", limit, 1, MAX_HISTORY_LIMIT)
        return await self._analytics.popular(limit)

    async def analytics(self, days: int = 7) -> dict[str, Any]:
        """Trends, platform usage and popular queries in one bundle."""
        _check_range("days", days, 1, MAX_ANALYTICS_DAYS)
        return {
            "period_days": days,
            "trends": await self._analytics.trends(days),
            "platform_stats": await self._analytics.platform_stats(days),
            "popular_queries": await self._analytics.popular(10),
        }

    def platforms(self) -> list[dict[str, Any]]:
        active = {platform for p in self._aggregator.providers for platform in p.platforms}
        return [
            {"name": platform.value, "active": platform in active, **details}
            for platform, details in PLATFORM_CATALOG.items()
        ]

    def health(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "providers": [p.name for p in self._aggregator.providers],
            "enhancer": self._aggregator.has_enhancer,
            "ranker": self._aggregator.has_ranker,
        }

