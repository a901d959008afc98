"""Domain entities."""

from .course import FREE, NOT_AVAILABLE, PLATFORM_CATALOG, CourseListing, Platform
from .search import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MAX_QUERY_LENGTH,
    MIN_LIMIT,
    ClickEvent,
    ClientInfo,
    Level,
    PlatformCount,
    ResultSummary,
    SearchFilters,
    SearchRecord,
    SearchRequest,
    utc_now,
)

__all__ = [
    "FREE",
    "NOT_AVAILABLE",
    "PLATFORM_CATALOG",
    "CourseListing",
    "Platform",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "MAX_QUERY_LENGTH",
    "MIN_LIMIT",
    "ClickEvent",
    "ClientInfo",
    "Level",
    "PlatformCount",
    "ResultSummary",
    "SearchFilters",
    "SearchRecord",
    "SearchRequest",
    "utc_now",
]
