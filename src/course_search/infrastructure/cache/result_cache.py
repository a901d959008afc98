"""
Result Cache

In-memory TTL cache for final (ranked, capped) search results.
Uses cachetools.TTLCache for bounded size and lazy, read-time expiration.

Features:
- Time-based expiration (TTL) checked on access, no background sweep
- Bounded by maxsize (LRU eviction)
- Safe for concurrent requests via a lock; last write wins per key
- Hit/miss statistics
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cachetools import TTLCache

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_MAX_ENTRIES = 1024


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    writes: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "hit_rate": round(self.hit_rate, 3),
        }


class ResultCache:
    """
    TTL cache for search results.

    Example:
        cache = ResultCache(ttl=3600)
        cache.set(key, cached_search)
        hit = cache.get(key)  # None once the TTL has elapsed
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache.

        Args:
            ttl: Time-to-live in seconds, fixed for the cache's lifetime
            max_size: Maximum number of entries
            timer: Clock used for expiry (injectable for tests)
        """
        self._ttl = ttl
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)
        self._lock = threading.RLock()
        self._stats = CacheStats()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            try:
                value = self._cache[key]
            except KeyError:
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        """Store *value*, replacing any prior entry under *key*."""
        with self._lock:
            self._cache[key] = value
            self._stats.writes += 1
        logger.debug(f"Cached results under {key}")

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
