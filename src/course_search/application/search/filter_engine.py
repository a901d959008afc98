"""
Filter Engine - Structured constraints over normalized listings.

Pure and synchronous. All clauses are AND-combined and an unset clause
imposes no constraint. Free-form fields are parsed leniently: a price or
duration that cannot be read as a number passes its clause rather than
being rejected.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from course_search.domain.entities import FREE, NOT_AVAILABLE

if TYPE_CHECKING:
    from collections.abc import Iterable

    from course_search.domain.entities import CourseListing, SearchFilters

_PRICE_TOKEN = re.compile(r"\d[\d,]*(?:\.\d+)?")
_INTEGER_TOKEN = re.compile(r"\d+")


def parse_price(price: str) -> float | None:
    """First numeric token of a price string ("$1,299.00" -> 1299.0), or None."""
    match = _PRICE_TOKEN.search(price or "")
    if not match:
        return None
    try:
        return float(match.group().replace(",", ""))
    except ValueError:
        return None


def parse_duration_hours(duration: str) -> int | None:
    """First integer of a duration string ("12 hours" -> 12), or None."""
    match = _INTEGER_TOKEN.search(duration or "")
    return int(match.group()) if match else None


def passes_price(listing: CourseListing, max_price: float | None) -> bool:
    if max_price is None:
        return True
    if listing.price.strip().lower() == FREE.lower():
        return True
    amount = parse_price(listing.price)
    if amount is None:
        return True
    return amount <= max_price


def passes_duration(listing: CourseListing, max_hours: int | None) -> bool:
    if max_hours is None:
        return True
    if listing.duration.strip() == NOT_AVAILABLE:
        return True
    hours = parse_duration_hours(listing.duration)
    if hours is None:
        return True
    return hours <= max_hours


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()  # type: ignore[union-attr]


def matches(listing: CourseListing, filters: SearchFilters) -> bool:
    """Check one listing against every clause of *filters*."""
    if not passes_price(listing, filters.max_price):
        return False
    if filters.platforms and listing.platform not in filters.platforms:
        return False
    if filters.level is not None and not _contains(listing.level, filters.level.value):
        return False
    if not passes_duration(listing, filters.max_duration_hours):
        return False
    if filters.language is not None and not _contains(listing.language, filters.language):
        return False
    return True


def apply_filters(listings: Iterable[CourseListing], filters: SearchFilters) -> list[CourseListing]:
    """Return the listings matching *filters*, preserving order."""
    if filters.is_empty:
        return list(listings)
    return [listing for listing in listings if matches(listing, filters)]
