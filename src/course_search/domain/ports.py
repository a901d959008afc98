"""
Collaborator contracts used by the application layer.

Concrete implementations live in ``course_search.infrastructure`` and are
wired together by the DI container.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .entities import CourseListing, Platform, SearchRecord


@runtime_checkable
class PlatformProvider(Protocol):
    """One content source. Raises ProviderError when it cannot produce listings."""

    name: str
    platforms: frozenset[Platform]

    async def search(self, query: str, limit: int) -> list[CourseListing]: ...


class QueryEnhancer(Protocol):
    """Rewrites raw text into a better search string."""

    async def enhance(self, text: str) -> str: ...


class RelevanceRanker(Protocol):
    """Returns candidate indices in order of preference."""

    async def rank(self, candidates: Sequence[CourseListing], query: str, count: int) -> list[int]: ...


class SearchAnalytics(Protocol):
    """Append-only store of SearchRecord with aggregate read queries."""

    async def record(self, record: SearchRecord) -> None: ...

    async def record_click(self, record_id: str, listing_id: str) -> bool: ...

    async def popular(self, limit: int = 10) -> list[dict[str, Any]]: ...

    async def history(self, caller_id: str, limit: int = 20) -> list[SearchRecord]: ...

    async def trends(self, days: int = 7) -> list[dict[str, Any]]: ...

    async def platform_stats(self, days: int = 30) -> list[dict[str, Any]]: ...


class ListingCatalog(Protocol):
    """Remembers listings seen by searches and counts their views."""

    def remember(self, listings: Sequence[CourseListing]) -> None: ...

    def get(self, listing_id: str) -> CourseListing | None: ...

    def increment_view(self, listing_id: str) -> int: ...


class SearchCache(Protocol):
    """TTL key-value store for final search results."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...


class CourseAdvisor(Protocol):
    """LLM-backed helper for recommendations and per-listing insights."""

    async def suggest_queries(self, profile: dict[str, Any], count: int = 3) -> list[str]: ...

    async def analyze(self, listing: CourseListing) -> str: ...
