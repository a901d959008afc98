"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from course_search.application.search import SearchAggregator
from course_search.domain.entities import CourseListing, Platform
from course_search.infrastructure.analytics import SearchAnalyticsStore
from course_search.infrastructure.cache import ResultCache
from course_search.shared.exceptions import ProviderError

# ============================================================
# Environment Fixtures
# ============================================================


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================
# Listings
# ============================================================


@pytest.fixture
def make_listing():
    """Factory for CourseListing with sensible defaults."""

    def _make(title: str = "Intro to Python", platform: Platform = Platform.EDX, **kwargs) -> CourseListing:
        slug = title.lower().replace(" ", "-")
        kwargs.setdefault("link", f"https://{platform.value.lower()}.example.com/{slug}")
        return CourseListing(title=title, platform=platform, **kwargs)

    return _make


@pytest.fixture
def sample_listings(make_listing):
    return [
        make_listing("Python Basics", Platform.EDX, price="Free", level="Beginner", duration="10 hours"),
        make_listing("Advanced Python", Platform.EDX, price="$150", level="Advanced", duration="40 hours"),
        make_listing("DSA in Python", Platform.GEEKSFORGEEKS, price="$20", level="Intermediate"),
        make_listing("Python for Data", Platform.SWAYAM, price="Free", duration="N/A", language="English, Hindi"),
    ]


# ============================================================
# Fake Collaborators
# ============================================================


class FakeProvider:
    """Platform Provider returning canned listings, failing, or stalling."""

    def __init__(
        self,
        name: str,
        listings: list[CourseListing] | None = None,
        *,
        platform: Platform = Platform.EDX,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.platforms = frozenset({platform})
        self._listings = listings or []
        self._error = error
        self._delay = delay
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, limit: int) -> list[CourseListing]:
        self.calls.append((query, limit))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._listings)

    async def close(self) -> None:
        return None


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider."""

    def _make(name: str, listings=None, **kwargs) -> FakeProvider:
        return FakeProvider(name, listings, **kwargs)

    return _make


@pytest.fixture
def failing_provider():
    def _make(name: str) -> FakeProvider:
        return FakeProvider(name, error=ProviderError(name, "HTTP 503"))

    return _make


@pytest.fixture
def mock_enhancer():
    enhancer = AsyncMock()
    enhancer.enhance.side_effect = lambda text: f"{text} course"
    return enhancer


@pytest.fixture
def mock_ranker():
    ranker = AsyncMock()
    ranker.rank.return_value = []
    return ranker


@pytest.fixture
def result_cache():
    return ResultCache(ttl=3600)


@pytest.fixture
def analytics_store():
    return SearchAnalyticsStore()


@pytest.fixture
def make_aggregator(result_cache, analytics_store):
    """Build an aggregator over the given providers with in-memory stores."""

    def _make(providers, **kwargs) -> SearchAggregator:
        return SearchAggregator(providers, result_cache, analytics_store, **kwargs)

    return _make
