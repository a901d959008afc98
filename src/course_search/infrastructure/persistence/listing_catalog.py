"""
In-memory listing catalog.

Remembers every listing returned by a search so it can be resolved by
``listing_id`` later (course insights, click tracking), and counts views.
Listings and view counters are each held in a bounded LRU.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from cachetools import LRUCache

if TYPE_CHECKING:
    from collections.abc import Sequence

    from course_search.domain.entities import CourseListing

logger = logging.getLogger(__name__)


class InMemoryListingCatalog:
    def __init__(self, max_listings: int = 10_000, max_counters: int = 50_000) -> None:
        self._listings: LRUCache[str, CourseListing] = LRUCache(maxsize=max_listings)
        self._views: LRUCache[str, int] = LRUCache(maxsize=max_counters)
        self._lock = threading.Lock()

    def remember(self, listings: Sequence[CourseListing]) -> None:
        with self._lock:
            for listing in listings:
                self._listings[listing.listing_id] = listing

    def get(self, listing_id: str) -> CourseListing | None:
        with self._lock:
            return self._listings.get(listing_id)

    def increment_view(self, listing_id: str) -> int:
        with self._lock:
            self._views[listing_id] = self._views.get(listing_id, 0) + 1
            return self._views[listing_id]

    def views(self, listing_id: str) -> int:
        with self._lock:
            return self._views.get(listing_id, 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listings)
