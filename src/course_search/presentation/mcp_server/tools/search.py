"""
Course Search Tools

Tools:
- search_courses: federated search with filters
- recommend_courses: listings for a learner profile
- get_course_insights: LLM analysis of one listing
- list_platforms: known content sources
- track_course_click: record a click on a search result
- get_popular_searches: most frequent queries
- get_search_analytics: trends, platform usage and popular queries
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from course_search.domain.entities import ClientInfo, SearchFilters, SearchRequest
from course_search.infrastructure.ratelimit import ANALYTICS_SCOPE
from course_search.shared.exceptions import RateLimitExceeded, ValidationError

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from course_search.application.search import CourseSearchService, SearchOutcome
    from course_search.domain.entities import CourseListing
    from course_search.infrastructure.ratelimit import SearchRateLimiter

logger = logging.getLogger(__name__)

MCP_CLIENT = "mcp"


def format_listing(index: int, listing: CourseListing) -> str:
    lines = [f"**{index}. {listing.title}** ({listing.platform.value})"]
    details = [
        f"Instructor: {listing.instructor}",
        f"Price: {listing.price}",
        f"Rating: {listing.rating}",
        f"Duration: {listing.duration}",
        f"Level: {listing.level}",
    ]
    if listing.institution:
        details.insert(1, f"Institution: {listing.institution}")
    lines.append("   " + " | ".join(details))
    lines.append(f"   🔗 {listing.link}")
    lines.append(f"   id: `{listing.listing_id}`")
    return "\n".join(lines)


def format_outcome(outcome: SearchOutcome) -> str:
    if not outcome.courses:
        header = f'No courses found for "{outcome.query}".'
    else:
        header = f'Found {outcome.total_results} courses for "{outcome.query}"'
        if outcome.from_cache:
            header += " (cached)"
    parts = [header]
    parts.extend(format_listing(i, c) for i, c in enumerate(outcome.courses, 1))
    footer = f"search_id: `{outcome.record_id}` · {outcome.search_time_ms:.0f} ms"
    if outcome.degraded:
        footer += f" · unavailable: {', '.join(outcome.degraded)}"
    parts.append(footer)
    return "\n\n".join(parts)


def register_search_tools(mcp: FastMCP, service: CourseSearchService, limiter: SearchRateLimiter) -> None:
    """Register course search tools."""

    @mcp.tool()
    async def search_courses(
        query: str,
        limit: int = 7,
        max_price: float | None = None,
        platforms: list[str] | None = None,
        level: str | None = None,
        max_duration_hours: int | None = None,
        language: str | None = None,
        caller_id: str | None = None,
    ) -> str:
        """
        Search online courses across edX, GeeksforGeeks, SWAYAM and the curated catalog.

        Args:
            query: Free-text topic (1-200 characters), e.g. "machine learning".
            limit: Maximum number of results (1-20, default 7).
            max_price: Only listings at or below this price; "Free" always passes. 0 = free only.
            platforms: Restrict to these platforms, e.g. ["edX", "SWAYAM"].
            level: "Beginner", "Intermediate" or "Advanced".
            max_duration_hours: Maximum course length in hours.
            language: Language substring, e.g. "English".
            caller_id: Optional user id for search history.
        """
        logger.info(f"MCP search_courses: '{query}' (limit={limit})")
        try:
            limiter.check(caller_id, MCP_CLIENT)
            filters = SearchFilters(
                max_price=max_price,
                platforms=frozenset(platforms or ()),
                level=level,
                max_duration_hours=max_duration_hours,
                language=language,
            )
            outcome = await service.search(
                SearchRequest(
                    query=query,
                    filters=filters,
                    limit=limit,
                    caller_id=caller_id,
                    client=ClientInfo(user_agent=MCP_CLIENT),
                )
            )
        except RateLimitExceeded as e:
            return f"Error: {e} Retry after {int(e.retry_after)} seconds."
        except ValidationError as e:
            return f"Error: {e}"
        return format_outcome(outcome)

    @mcp.tool()
    async def recommend_courses(
        interests: list[str],
        skills: list[str] | None = None,
        level: str | None = None,
        goals: str | None = None,
        limit: int = 10,
        caller_id: str | None = None,
    ) -> str:
        """
        Recommend courses for a learner profile.

        Args:
            interests: Topics the learner cares about, e.g. ["data science", "python"].
            skills: Skills the learner already has.
            level: Current level, e.g. "Beginner".
            goals: Free-text career or learning goal.
            limit: Maximum number of recommendations (1-20).
            caller_id: Optional stable user id for rate limiting.
        """
        profile: dict[str, Any] = {"interests": interests, "skills": skills or []}
        if level:
            profile["level"] = level
        if goals:
            profile["goals"] = goals
        try:
            limiter.check(caller_id, MCP_CLIENT)
            courses = await service.recommendations(profile, limit, caller_id=caller_id)
        except RateLimitExceeded as e:
            return f"Error: {e} Retry after {int(e.retry_after)} seconds."
        except ValidationError as e:
            return f"Error: {e}"
        if not courses:
            return "No recommendations available for this profile."
        return "\n\n".join(format_listing(i, c) for i, c in enumerate(courses, 1))

    @mcp.tool()
    async def get_course_insights(listing_id: str) -> str:
        """
        Pros, cons and target audience for a listing returned by an earlier search.

        Args:
            listing_id: The `id` shown next to a search result.
        """
        try:
            limiter.check(None, MCP_CLIENT)
        except RateLimitExceeded as e:
            return f"Error: {e} Retry after {int(e.retry_after)} seconds."
        insights = await service.insights(listing_id)
        if insights is None:
            return f"Course {listing_id} not found. Run search_courses first."
        course = insights["course"]
        return f"## {course['title']} ({course['platform']})\n\n{insights['analysis']}"

    @mcp.tool()
    def list_platforms() -> str:
        """List the course platforms this server can search."""
        lines = ["| Platform | Active | Description | URL |", "|---|---|---|---|"]
        for platform in service.platforms():
            active = "✅" if platform["active"] else "❌"
            lines.append(f"| {platform['name']} | {active} | {platform['description']} | {platform['url']} |")
        return "\n".join(lines)

    @mcp.tool()
    async def track_course_click(listing_id: str, search_id: str | None = None) -> str:
        """
        Record that a search result was opened.

        Args:
            listing_id: The `id` of the clicked listing.
            search_id: The `search_id` of the search that returned it.
        """
        try:
            result = await service.track_click(listing_id, record_id=search_id)
        except ValidationError as e:
            return f"Error: {e}"
        return json.dumps(result)

    @mcp.tool()
    async def get_popular_searches(limit: int = 10) -> str:
        """
        Most frequent search queries.

        Args:
            limit: Number of queries (1-50).
        """
        try:
            rows = await service.popular(limit)
        except ValidationError as e:
            return f"Error: {e}"
        if not rows:
            return "No searches recorded yet."
        return "\n".join(
            f"{i}. {row['query']} ({row['count']} searches, avg {row['avg_results']} results)"
            for i, row in enumerate(rows, 1)
        )

    @mcp.tool()
    async def get_search_analytics(days: int = 7) -> str:
        """
        Search trends, per-platform yield and popular queries.

        Args:
            days: Trailing window in days (1-365).
        """
        try:
            limiter.check(None, MCP_CLIENT, scope=ANALYTICS_SCOPE)
            bundle = await service.analytics(days)
        except RateLimitExceeded as e:
            return f"Error: {e} Retry after {int(e.retry_after)} seconds."
        except ValidationError as e:
            return f"Error: {e}"
        return json.dumps(bundle, indent=2)
