"""
Search application layer.

- SearchAggregator: federated fan-out, filter, rank, cache and record
- CourseSearchService: facade adding recommendations, insights and tracking
- filter_engine / cache_key: pure helpers
"""

from .aggregator import (
    AggregatorTimeouts,
    CachedSearch,
    SearchAggregator,
    SearchOutcome,
)
from .cache_key import build_cache_key, normalize_query
from .filter_engine import apply_filters, matches
from .service import ANALYSIS_NOT_AVAILABLE, CourseSearchService

__all__ = [
    "ANALYSIS_NOT_AVAILABLE",
    "AggregatorTimeouts",
    "CachedSearch",
    "CourseSearchService",
    "SearchAggregator",
    "SearchOutcome",
    "apply_filters",
    "build_cache_key",
    "matches",
    "normalize_query",
]
