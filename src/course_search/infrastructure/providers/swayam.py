"""SWAYAM (Indian government MOOC platform) course search."""

from __future__ import annotations

from urllib.parse import quote_plus

from course_search.domain.entities import FREE, Platform

from .base import HtmlCourseProvider


class SwayamProvider(HtmlCourseProvider):
    """SWAYAM courses are free; level and language default to Undergraduate / English."""

    name = "swayam"
    platform = Platform.SWAYAM
    base_url = "https://swayam.gov.in"
    source_host = "swayam.gov.in"
    card_selector = '.course-card, .card, [class*="course"]'
    title_selector = "h3, h4, .course-title, .title"
    field_selectors = {
        "instructor": ".instructor, .coordinator, .faculty",
        "institution": ".institution, .university, .college",
        "price": ".price, .cost, .fee",
        "duration": ".duration, .time, .weeks",
        "description": ".description, .desc, .summary",
        "level": ".level, .difficulty",
        "language": ".language, .medium",
    }
    field_defaults = {"price": FREE, "level": "Undergraduate", "language": "English"}

    def _search_url(self, query: str) -> str:
        return f"{self.base_url}/search?q={quote_plus(query)}"
