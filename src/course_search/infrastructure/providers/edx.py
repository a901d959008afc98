"""edX course search (server-side search page)."""

from __future__ import annotations

from urllib.parse import quote_plus

from course_search.domain.entities import FREE, Platform

from .base import HtmlCourseProvider


class EdxProvider(HtmlCourseProvider):
    """Scrapes ``https://www.edx.org/search?q=...`` course cards."""

    name = "edx"
    platform = Platform.EDX
    base_url = "https://www.edx.org"
    source_host = "edx.org"
    card_selector = '[data-testid="course-card"]'
    title_selector = 'h3, .course-title, [data-testid="course-title"]'
    field_selectors = {
        "instructor": ".instructor, .course-instructor",
        "price": ".price, .course-price",
        "rating": ".rating, .course-rating",
        "duration": ".duration, .course-duration",
        "description": ".description, .course-description",
    }
    field_defaults = {"price": FREE}

    def _search_url(self, query: str) -> str:
        return f"{self.base_url}/search?q={quote_plus(query)}"
