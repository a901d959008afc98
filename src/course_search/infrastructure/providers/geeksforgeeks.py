"""
GeeksforGeeks course catalogue.

The catalogue page has no server-side search, so every card is fetched and
filtered client-side on a case-insensitive title match.
"""

from __future__ import annotations

from course_search.domain.entities import FREE, Platform

from .base import HtmlCourseProvider


class GeeksforGeeksProvider(HtmlCourseProvider):
    name = "geeksforgeeks"
    platform = Platform.GEEKSFORGEEKS
    base_url = "https://practice.geeksforgeeks.org"
    source_host = "geeksforgeeks.org"
    card_selector = '.course-card, .card, [class*="course"]'
    title_selector = "h3, h4, .course-title, .title"
    field_selectors = {
        "instructor": ".instructor, .author, .teacher",
        "price": ".price, .cost, .fee",
        "rating": ".rating, .stars",
        "duration": ".duration, .time, .length",
        "description": ".description, .desc, .summary",
        "level": ".level, .difficulty",
    }
    field_defaults = {"price": FREE, "instructor": "GeeksforGeeks", "level": "Beginner"}

    def _search_url(self, query: str) -> str:
        return f"{self.base_url}/courses"

    def _accept(self, title: str, query: str) -> bool:
        wanted = query.strip().lower()
        return not wanted or wanted in title.lower()
