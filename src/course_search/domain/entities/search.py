"""
Search request and analytics entities.

- SearchFilters: structured, AND-combined constraints on listings
- SearchRequest: one inbound search
- SearchRecord: persisted audit/analytics row for one search attempt
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from course_search.shared.exceptions import InvalidParameterError

from .course import Platform

MAX_QUERY_LENGTH = 200
DEFAULT_LIMIT = 7
MIN_LIMIT = 1
MAX_LIMIT = 20
MAX_LANGUAGE_LENGTH = 50


class Level(str, Enum):
    """Accepted values for the level filter."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @classmethod
    def parse(cls, value: str | Level) -> Level:
        if isinstance(value, Level):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise InvalidParameterError("level", value, "Beginner, Intermediate, or Advanced")


@dataclass(frozen=True)
class SearchFilters:
    """
    Structured filters. Every clause is optional; an unset clause imposes
    no constraint. ``max_price=0`` is a set clause (free listings only).
    """

    max_price: float | None = None
    platforms: frozenset[Platform] = field(default_factory=frozenset)
    level: Level | None = None
    max_duration_hours: int | None = None
    language: str | None = None

    def __post_init__(self) -> None:
        if self.max_price is not None:
            if isinstance(self.max_price, bool) or not isinstance(self.max_price, (int, float)) or self.max_price < 0:
                raise InvalidParameterError("max_price", self.max_price, "a number >= 0")
            object.__setattr__(self, "max_price", float(self.max_price))

        try:
            platforms = frozenset(Platform.parse(p) for p in self.platforms)
        except ValueError as e:
            raise InvalidParameterError("platforms", sorted(map(str, self.platforms)), "known platform names") from e
        object.__setattr__(self, "platforms", platforms)

        if self.level is not None:
            object.__setattr__(self, "level", Level.parse(self.level))

        if self.max_duration_hours is not None:
            if (
                isinstance(self.max_duration_hours, bool)
                or not isinstance(self.max_duration_hours, int)
                or self.max_duration_hours < 1
            ):
                raise InvalidParameterError("max_duration_hours", self.max_duration_hours, "an integer >= 1")

        if self.language is not None:
            language = self.language.strip()
            if not 1 <= len(language) <= MAX_LANGUAGE_LENGTH:
                raise InvalidParameterError("language", self.language, "1-50 characters")
            object.__setattr__(self, "language", language)

    @property
    def is_empty(self) -> bool:
        return not self.canonical()

    def canonical(self) -> dict[str, Any]:
        """Deterministic snapshot: unset clauses omitted, platforms sorted."""
        data: dict[str, Any] = {}
        if self.max_price is not None:
            data["max_price"] = self.max_price
        if self.platforms:
            data["platforms"] = sorted(p.value for p in self.platforms)
        if self.level is not None:
            data["level"] = self.level.value
        if self.max_duration_hours is not None:
            data["max_duration_hours"] = self.max_duration_hours
        if self.language is not None:
            data["language"] = self.language
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SearchFilters:
        """Build filters from a payload; accepts both snake_case and camelCase keys."""
        if not data:
            return cls()

        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        return cls(
            max_price=pick("max_price", "maxPrice"),
            platforms=frozenset(pick("platforms") or ()),
            level=pick("level"),
            max_duration_hours=pick("max_duration_hours", "maxDurationHours", "maxDuration"),
            language=pick("language"),
        )


@dataclass(frozen=True)
class ClientInfo:
    """Client metadata captured for analytics."""

    user_agent: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class SearchRequest:
    """One inbound search. Validation happens in the aggregator."""

    query: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    limit: int = DEFAULT_LIMIT
    caller_id: str | None = None
    client: ClientInfo = field(default_factory=ClientInfo)


# =============================================================================
# Analytics
# =============================================================================


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PlatformCount:
    platform: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"platform": self.platform, "count": self.count}


@dataclass(frozen=True)
class ResultSummary:
    """Per-attempt yield: total listings and per-platform counts."""

    total_found: int = 0
    platforms: tuple[PlatformCount, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_found": self.total_found,
            "platforms": [p.to_dict() for p in self.platforms],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultSummary:
        return cls(
            total_found=int(data.get("total_found", 0)),
            platforms=tuple(PlatformCount(p["platform"], int(p["count"])) for p in data.get("platforms", [])),
        )


@dataclass(frozen=True)
class ClickEvent:
    listing_id: str
    clicked_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"listing_id": self.listing_id, "clicked_at": self.clicked_at.isoformat()}


@dataclass
class SearchRecord:
    """
    Persisted audit/analytics row for one search attempt.

    Created once per attempt (successful or not); afterwards only click
    events are appended. Never deleted by normal operation.
    """

    query: str
    filters: dict[str, Any] = field(default_factory=dict)
    results: ResultSummary = field(default_factory=ResultSummary)
    caller_id: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    search_time_ms: float = 0.0
    is_successful: bool = True
    error_message: str | None = None
    clicked_courses: list[ClickEvent] = field(default_factory=list)
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.record_id,
            "query": self.query,
            "caller_id": self.caller_id,
            "filters": self.filters,
            "results": self.results.to_dict(),
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "search_time_ms": self.search_time_ms,
            "is_successful": self.is_successful,
            "clicked_courses": [c.to_dict() for c in self.clicked_courses],
            "created_at": self.created_at.isoformat(),
        }
        if self.error_message is not None:
            data["error_message"] = self.error_message
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchRecord:
        return cls(
            record_id=data["id"],
            query=data["query"],
            caller_id=data.get("caller_id"),
            filters=data.get("filters") or {},
            results=ResultSummary.from_dict(data.get("results") or {}),
            user_agent=data.get("user_agent"),
            ip_address=data.get("ip_address"),
            search_time_ms=float(data.get("search_time_ms", 0.0)),
            is_successful=bool(data.get("is_successful", True)),
            error_message=data.get("error_message"),
            clicked_courses=[
                ClickEvent(c["listing_id"], datetime.fromisoformat(c["clicked_at"]))
                for c in data.get("clicked_courses", [])
            ],
            created_at=datetime.fromisoformat(data["created_at"]),
        )
