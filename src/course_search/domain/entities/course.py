"""
CourseListing - Provider-agnostic representation of one learning resource.

Every Platform Provider normalizes its raw output into CourseListing.
Downstream consumers (filter engine, ranker, cache, analytics) read only
this model.

Sentinels:
    "N/A"  - the provider could not extract the field
    "Free" - the listing has no price

Both are meaningful tokens for the filter engine and are preserved verbatim;
they are never coerced to None.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

NOT_AVAILABLE = "N/A"
FREE = "Free"


class Platform(str, Enum):
    """Known content sources."""

    EDX = "edX"
    GEEKSFORGEEKS = "GeeksforGeeks"
    SWAYAM = "SWAYAM"
    COURSERA = "Coursera"
    UDEMY = "Udemy"

    @classmethod
    def parse(cls, value: str | Platform) -> Platform:
        """Resolve a platform from its display value or member name (case-insensitive)."""
        if isinstance(value, Platform):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        msg = f"Unknown platform: {value!r}"
        raise ValueError(msg)


@dataclass(frozen=True)
class CourseListing:
    """
    Normalized course listing.

    ``platform`` and ``link`` are required: a listing without a link cannot be
    de-duplicated or click-tracked, so providers must drop such items instead
    of building them.
    """

    title: str
    link: str
    platform: Platform
    description: str = NOT_AVAILABLE
    instructor: str = NOT_AVAILABLE
    institution: str | None = None
    price: str = NOT_AVAILABLE
    rating: str = NOT_AVAILABLE
    duration: str = NOT_AVAILABLE
    level: str = NOT_AVAILABLE
    language: str = NOT_AVAILABLE
    image: str = ""
    category: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    source: str = ""

    def __post_init__(self) -> None:
        if not self.link or not self.link.strip():
            msg = "CourseListing.link is required"
            raise ValueError(msg)
        object.__setattr__(self, "platform", Platform.parse(self.platform))
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(t.strip() for t in self.tags if t and t.strip()))

    @property
    def listing_id(self) -> str:
        """Stable identity derived from (platform, link)."""
        digest = hashlib.sha1(f"{self.platform.value}|{self.link.strip()}".encode())
        return digest.hexdigest()[:16]

    @property
    def is_free(self) -> bool:
        return self.price.strip().lower() == FREE.lower()

    def summary_line(self) -> str:
        """One-line description used in ranking prompts."""
        return f"{self.title} ({self.platform.value}) - {self.instructor}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.listing_id,
            "title": self.title,
            "description": self.description,
            "instructor": self.instructor,
            "institution": self.institution,
            "platform": self.platform.value,
            "source": self.source,
            "price": self.price,
            "rating": self.rating,
            "duration": self.duration,
            "level": self.level,
            "language": self.language,
            "image": self.image,
            "link": self.link,
            "category": self.category,
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CourseListing:
        return cls(
            title=data.get("title") or NOT_AVAILABLE,
            link=data["link"],
            platform=Platform.parse(data["platform"]),
            description=data.get("description") or NOT_AVAILABLE,
            instructor=data.get("instructor") or NOT_AVAILABLE,
            institution=data.get("institution"),
            price=data.get("price") or NOT_AVAILABLE,
            rating=str(data.get("rating") or NOT_AVAILABLE),
            duration=data.get("duration") or NOT_AVAILABLE,
            level=data.get("level") or NOT_AVAILABLE,
            language=data.get("language") or NOT_AVAILABLE,
            image=data.get("image") or "",
            category=data.get("category"),
            tags=frozenset(data.get("tags") or ()),
            source=data.get("source") or "",
        )


PLATFORM_CATALOG: dict[Platform, dict[str, str]] = {
    Platform.EDX: {
        "description": "High-quality courses from top universities",
        "url": "https://www.edx.org",
    },
    Platform.GEEKSFORGEEKS: {
        "description": "Programming and computer science courses",
        "url": "https://www.geeksforgeeks.org",
    },
    Platform.SWAYAM: {
        "description": "Indian government online learning platform",
        "url": "https://swayam.gov.in",
    },
    Platform.COURSERA: {
        "description": "University and industry courses (curated catalog)",
        "url": "https://www.coursera.org",
    },
    Platform.UDEMY: {
        "description": "Practical courses from independent instructors (curated catalog)",
        "url": "https://www.udemy.com",
    },
}
