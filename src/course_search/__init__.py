"""
Course Search - Federated course search aggregator

A free-text query is sent to several course platforms concurrently; results
are normalized into CourseListing, filtered, re-ranked, cached, and every
attempt is recorded for analytics.

Usage:
    from course_search.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({"providers": ["edx", "swayam"]})

    courses = await container.aggregator().search("machine learning", limit=5)
    for course in courses:
        print(f"{course.platform.value}: {course.title}")

Features:
    - Concurrent fan-out with per-provider timeouts and partial-failure tolerance
    - Structured filters (price, platform, level, duration, language)
    - LLM query enhancement and relevance ranking (optional)
    - TTL result cache
    - Search analytics: history, popular queries, trends, platform usage
    - Burst + sustained rate limiting
    - HTTP API (FastAPI) and MCP server surfaces
"""

__version__ = "0.1.0"

from .domain.entities import CourseListing, Platform, SearchFilters, SearchRecord, SearchRequest

__all__ = [
    "__version__",
    "CourseListing",
    "Platform",
    "SearchFilters",
    "SearchRecord",
    "SearchRequest",
]
