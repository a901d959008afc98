"""
Base HTML Provider - Common fetch-and-parse pattern for scraped course sources.

Provides a reusable base class for every platform whose search results are
an HTML page of course cards:
- httpx.AsyncClient management (owned or injected)
- Minimum interval between requests
- Circuit breaker for fault tolerance
- BeautifulSoup card extraction with per-field CSS selectors and defaults
- Consistent error mapping: any fetch failure raises ProviderError
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, ClassVar
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from typing_extensions import Self

from course_search.domain.entities import FREE, NOT_AVAILABLE, CourseListing, Platform
from course_search.shared.async_utils import CircuitBreaker
from course_search.shared.exceptions import ExternalCallFailure, ProviderError

if TYPE_CHECKING:
    from bs4 import Tag

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def _outermost(cards: list[Tag]) -> list[Tag]:
    """Drop matches nested inside another match (broad selectors hit card children too)."""
    matched = {id(card) for card in cards}
    return [card for card in cards if not any(id(parent) in matched for parent in card.parents)]


class HtmlCourseProvider:
    """
    Base class for scraped Platform Providers.

    Subclasses set the class attributes and override ``_search_url()``; they
    can also override ``_accept()`` to post-filter cards client-side.

    Example:
        class MyProvider(HtmlCourseProvider):
            name = "my_platform"
            platform = Platform.EDX
            base_url = "https://courses.example.com"
            card_selector = ".course-card"
            field_selectors = {"instructor": ".teacher"}

            def _search_url(self, query: str) -> str:
                return f"{self.base_url}/search"

        async with MyProvider() as provider:
            listings = await provider.search("python", limit=3)
    """

    name: ClassVar[str] = "html"
    platform: ClassVar[Platform]
    base_url: ClassVar[str] = ""
    source_host: ClassVar[str] = ""
    card_selector: ClassVar[str] = ".course-card"
    title_selector: ClassVar[str] = "h3, .course-title"
    field_selectors: ClassVar[dict[str, str]] = {}
    field_defaults: ClassVar[dict[str, str]] = {"price": FREE}

    def __init__(
        self,
        timeout: float = 20.0,
        min_interval: float = 0.0,
        client: httpx.AsyncClient | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        """
        Initialize provider.

        Args:
            timeout: Per-request timeout in seconds
            min_interval: Minimum seconds between requests to this source
            client: Optional shared client; a private one is created otherwise
            circuit_breaker: Optional breaker; default opens after 5 failures for 60s
        """
        self._timeout = timeout
        self._min_interval = min_interval
        self._last_request_time = 0.0
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5, keepalive_expiry=30.0),
        )
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name=self.name,
            failure_threshold=5,
            recovery_timeout=60.0,
        )

    @property
    def platforms(self) -> frozenset[Platform]:
        return frozenset({self.platform})

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def _search_url(self, query: str) -> str:
        raise NotImplementedError

    def _accept(self, title: str, query: str) -> bool:
        """Client-side post-filter for sources without server-side search."""
        return True

    async def search(self, query: str, limit: int) -> list[CourseListing]:
        """
        Fetch the search page and extract at most *limit* listings.

        Raises:
            ProviderError: Network failure, non-2xx status or open circuit.
        """
        if limit < 1:
            return []

        html = await self._fetch(self._search_url(query))
        soup = BeautifulSoup(html, "html.parser")

        listings: list[CourseListing] = []
        for card in _outermost(soup.select(self.card_selector)):
            if len(listings) >= limit:
                break
            try:
                listing = self._parse_card(card, query)
            except (ValueError, AttributeError, TypeError) as e:
                logger.debug(f"{self.name}: dropped unparsable card: {e}")
                continue
            if listing is not None:
                listings.append(listing)

        logger.info(f"{self.name}: {len(listings)} listings for '{query}'")
        return listings

    # ── Fetching ─────────────────────────────────────────────────────────

    async def _rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request_time = time.time()

    async def _fetch(self, url: str) -> str:
        await self._rate_limit()
        try:
            async with self._circuit_breaker:
                response = await self._client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            logger.warning(f"{self.name} HTTP error {e.response.status_code}: {e.response.reason_phrase}")
            raise ProviderError(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.warning(f"{self.name} request failed: {e}")
            raise ProviderError(self.name, str(e) or type(e).__name__) from e
        except ExternalCallFailure as e:
            logger.warning(f"{self.name}: circuit breaker open, skipping request")
            raise ProviderError(self.name, "circuit breaker is open") from e

    # ── Parsing ──────────────────────────────────────────────────────────

    def _parse_card(self, card: Tag, query: str) -> CourseListing | None:
        link = self._resolve_link(card)
        if not link:
            return None

        title = self._text(card, self.title_selector) or NOT_AVAILABLE
        if not self._accept(title, query):
            return None

        fields = {
            field_name: self._text(card, selector) or self.field_defaults.get(field_name, NOT_AVAILABLE)
            for field_name, selector in self.field_selectors.items()
        }
        for field_name, default in self.field_defaults.items():
            fields.setdefault(field_name, default)

        return CourseListing(
            title=title,
            link=link,
            platform=self.platform,
            image=self._resolve_image(card),
            source=self.source_host,
            **fields,
        )

    @staticmethod
    def _text(card: Tag, selector: str) -> str:
        element = card.select_one(selector)
        if element is None:
            return ""
        return " ".join(element.get_text(" ", strip=True).split())

    def _resolve_link(self, card: Tag) -> str | None:
        anchor = card if card.name == "a" and card.get("href") else card.select_one("a[href]")
        if anchor is None:
            return None
        href = str(anchor.get("href", "")).strip()
        if not href or href.startswith(("#", "javascript:")):
            return None
        return urljoin(self.base_url + "/", href)

    def _resolve_image(self, card: Tag) -> str:
        image = card.select_one("img")
        if image is None:
            return ""
        src = str(image.get("src") or image.get("data-src") or "").strip()
        return urljoin(self.base_url + "/", src) if src else ""

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
