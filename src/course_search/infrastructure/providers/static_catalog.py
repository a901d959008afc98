"""
StaticCatalogProvider: Platform Provider backed by a curated YAML dataset.

File format::

    courses:
      - title: Machine Learning Specialization
        platform: Coursera
        link: https://www.coursera.org/specializations/machine-learning-introduction
        instructor: Andrew Ng
        price: "$49/month"
        level: Beginner
        tags: [machine learning, python]

Matching is token based: a listing matches when any query token appears in
its title, description, category or tags. Listings with more matching tokens
come first; ties keep file order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from course_search.domain.entities import CourseListing, Platform
from course_search.shared.exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "catalog.yaml"


def load_catalog(path: Path) -> list[CourseListing]:
    """Parse a catalog file. Entries without a link or platform are skipped."""
    try:
        raw_data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        msg = f"Cannot read course catalog {path}: {e}"
        raise ConfigurationError(msg) from e

    entries: list[Any] = raw_data.get("courses", []) if isinstance(raw_data, dict) else raw_data or []
    if not isinstance(entries, list):
        msg = f"Course catalog {path} must hold a list under 'courses'"
        raise ConfigurationError(msg)

    listings: list[CourseListing] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"Catalog entry #{index} is not a mapping, skipped")
            continue
        try:
            listing = CourseListing.from_dict({"source": "catalog", **entry})
        except (KeyError, ValueError) as e:
            logger.warning(f"Catalog entry #{index} skipped: {e}")
            continue
        listings.append(listing)

    logger.info(f"Loaded {len(listings)} catalog listings from {path}")
    return listings


class StaticCatalogProvider:
    """Serves listings from a YAML file loaded once at construction."""

    name = "static_catalog"

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path).expanduser() if path else DEFAULT_CATALOG_PATH
        self._listings = load_catalog(self._path)
        self._platforms = frozenset(listing.platform for listing in self._listings)

    @property
    def platforms(self) -> frozenset[Platform]:
        return self._platforms

    @property
    def listings(self) -> tuple[CourseListing, ...]:
        return tuple(self._listings)

    async def search(self, query: str, limit: int) -> list[CourseListing]:
        if limit < 1:
            return []
        if not self._listings:
            raise ProviderError(self.name, f"catalog {self._path} is empty")

        tokens = {t for t in query.lower().split() if len(t) > 1}
        if not tokens:
            return []

        scored: list[tuple[int, int, CourseListing]] = []
        for position, listing in enumerate(self._listings):
            haystack = " ".join(
                [listing.title, listing.description, listing.category or "", *sorted(listing.tags)]
            ).lower()
            score = sum(1 for token in tokens if token in haystack)
            if score:
                scored.append((-score, position, listing))

        scored.sort(key=lambda item: (item[0], item[1]))
        return [listing for _, _, listing in scored[:limit]]

    async def close(self) -> None:
        return None
