"""Deterministic cache keys for search results."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from course_search.domain.entities import SearchFilters

CACHE_KEY_PREFIX = "search:"


def normalize_query(query: str) -> str:
    """Trim, collapse internal whitespace and lower-case."""
    return " ".join(query.split()).lower()


def build_cache_key(query: str, filters: SearchFilters, limit: int) -> str:
    """Key over (normalized query, canonical filters, limit)."""
    payload = json.dumps(
        {"query": normalize_query(query), "filters": filters.canonical(), "limit": limit},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return CACHE_KEY_PREFIX + hashlib.sha256(payload.encode("utf-8")).hexdigest()
