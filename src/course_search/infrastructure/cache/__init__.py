"""
Cache Infrastructure

Provides the TTL result cache in front of providers and the ranker.
"""

from __future__ import annotations

from course_search.infrastructure.cache.result_cache import CacheStats, ResultCache

__all__ = [
    "CacheStats",
    "ResultCache",
]
