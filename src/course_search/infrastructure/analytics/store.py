"""
Search Analytics Store - Append-only SearchRecord store with aggregate queries.

Records live in memory. When a data directory is configured every mutation
is appended as one JSON line to ``search_records.jsonl``:

    {"event": "search", "record": {...}}
    {"event": "click", "record_id": "...", "listing_id": "...", "clicked_at": "..."}

On start the log is replayed. A line that cannot be parsed is skipped and
logged; the file itself is never rewritten. A file that cannot be read at
all is moved aside to ``search_records.jsonl.corrupt-<timestamp>`` and a
fresh log is started.

Aggregates:
- popular(limit):        [{query, count, avg_results}] by count desc
- history(caller, limit): caller's records, newest first
- trends(days):          [{date, query, count}] by date desc, count desc
- platform_stats(days):  [{platform, total_searches, total_courses,
                           avg_courses_per_search}] by total_searches desc
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from course_search.domain.entities import ClickEvent, SearchRecord, utc_now
from course_search.shared.exceptions import AnalyticsWriteFailure

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

RECORDS_FILENAME = "search_records.jsonl"


class SearchAnalyticsStore:
    """
    Analytics store with optional JSON-lines persistence.

    Example:
        store = SearchAnalyticsStore(data_dir="~/.course-search")
        await store.record(record)
        await store.record_click(record.record_id, listing_id)
        top = await store.popular(limit=10)
    """

    def __init__(
        self,
        data_dir: str | Path | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize store.

        Args:
            data_dir: Directory for persistence. If None, memory only.
            clock: Source of "now" for clicks and trailing windows.
        """
        self._data_dir = Path(data_dir).expanduser() if data_dir else None
        self._clock = clock
        self._records: list[SearchRecord] = []
        self._by_id: dict[str, SearchRecord] = {}
        self._lock = asyncio.Lock()
        # the last line on disk was cut short; start the next append on a new line
        self._needs_newline = False

        if self._data_dir:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    @property
    def records_file(self) -> Path | None:
        return self._data_dir / RECORDS_FILENAME if self._data_dir else None

    def __len__(self) -> int:
        return len(self._records)

    # ── Persistence ──────────────────────────────────────────────────────

    def _load(self) -> None:
        path = self.records_file
        if path is None or not path.exists():
            return
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._move_aside(path, e)
            return

        skipped = 0
        for line_no, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            try:
                self._replay(json.loads(line))
            except (ValueError, KeyError, TypeError) as e:
                skipped += 1
                logger.warning(f"Skipping unreadable analytics line {line_no} in {path}: {e}")

        self._needs_newline = bool(text) and not text.endswith("\n")
        logger.info(f"Loaded {len(self._records)} search records from {path} ({skipped} lines skipped)")

    def _replay(self, event: dict[str, Any]) -> None:
        kind = event["event"]
        if kind == "search":
            record = SearchRecord.from_dict(event["record"])
            if record.record_id not in self._by_id:
                self._records.append(record)
                self._by_id[record.record_id] = record
        elif kind == "click":
            record = self._by_id.get(event["record_id"])
            if record is None:
                raise KeyError(f"click for unknown search {event['record_id']}")
            record.clicked_courses.append(
                ClickEvent(event["listing_id"], datetime.fromisoformat(event["clicked_at"]))
            )
        else:
            raise ValueError(f"unknown event type {kind!r}")

    def _move_aside(self, path: Path, error: Exception) -> None:
        target = path.with_name(f"{path.name}.corrupt-{self._clock().strftime('%Y%m%dT%H%M%S')}")
        try:
            path.replace(target)
        except OSError as e:
            msg = f"Cannot read {path} ({error}) and cannot move it aside: {e}"
            raise AnalyticsWriteFailure(msg) from e
        logger.warning(f"Unreadable search records moved to {target}: {error}")

    def _append_line(self, path: Path, line: str) -> None:
        with path.open("a", encoding="utf-8") as f:
            if self._needs_newline:
                f.write("\n")
            f.write(line + "\n")
        self._needs_newline = False

    async def _append(self, event: dict[str, Any]) -> None:
        path = self.records_file
        if path is None:
            return
        line = json.dumps(event, ensure_ascii=False)
        try:
            await asyncio.to_thread(self._append_line, path, line)
        except OSError as e:
            msg = f"Failed to persist search records to {path}: {e}"
            raise AnalyticsWriteFailure(msg) from e

    # ── Writes ───────────────────────────────────────────────────────────

    async def record(self, record: SearchRecord) -> None:
        """
        Append *record*.

        Raises:
            AnalyticsWriteFailure: Persistence failed; the record is not kept.
        """
        async with self._lock:
            if record.record_id in self._by_id:
                logger.debug(f"Search record {record.record_id} already stored")
                return
            await self._append({"event": "search", "record": record.to_dict()})
            self._records.append(record)
            self._by_id[record.record_id] = record

    async def record_click(self, record_id: str, listing_id: str) -> bool:
        """Append a click to an existing record. Unknown ids are a no-op returning False."""
        async with self._lock:
            record = self._by_id.get(record_id)
            if record is None:
                return False
            click = ClickEvent(listing_id=listing_id, clicked_at=self._clock())
            await self._append({"event": "click", "record_id": record_id, **click.to_dict()})
            record.clicked_courses.append(click)
            return True

    async def get(self, record_id: str) -> SearchRecord | None:
        async with self._lock:
            return self._by_id.get(record_id)

    # ── Aggregates ───────────────────────────────────────────────────────

    def _since(self, days: int) -> Iterable[SearchRecord]:
        cutoff = self._clock() - timedelta(days=days)
        return (r for r in self._records if r.created_at >= cutoff)

    async def popular(self, limit: int = 10) -> list[dict[str, Any]]:
        async with self._lock:
            groups: dict[str, list[int]] = {}
            for record in self._records:
                groups.setdefault(record.query, []).append(record.results.total_found)

        rows = [
            {"query": query, "count": len(totals), "avg_results": round(sum(totals) / len(totals), 2)}
            for query, totals in groups.items()
        ]
        rows.sort(key=lambda row: row["count"], reverse=True)
        return rows[:limit]

    async def history(self, caller_id: str, limit: int = 20) -> list[SearchRecord]:
        async with self._lock:
            mine = [r for r in self._records if r.caller_id == caller_id]
        mine.sort(key=lambda r: r.created_at, reverse=True)
        return mine[:limit]

    async def trends(self, days: int = 7) -> list[dict[str, Any]]:
        async with self._lock:
            counts: dict[tuple[str, str], int] = {}
            for record in self._since(days):
                key = (record.created_at.strftime("%Y-%m-%d"), record.query)
                counts[key] = counts.get(key, 0) + 1

        rows = [{"date": date, "query": query, "count": count} for (date, query), count in counts.items()]
        rows.sort(key=lambda row: row["count"], reverse=True)
        rows.sort(key=lambda row: row["date"], reverse=True)
        return rows

    async def platform_stats(self, days: int = 30) -> list[dict[str, Any]]:
        async with self._lock:
            searches: dict[str, int] = {}
            courses: dict[str, int] = {}
            for record in self._since(days):
                for entry in record.results.platforms:
                    searches[entry.platform] = searches.get(entry.platform, 0) + 1
                    courses[entry.platform] = courses.get(entry.platform, 0) + entry.count

        rows = [
            {
                "platform": platform,
                "total_searches": total,
                "total_courses": courses[platform],
                "avg_courses_per_search": round(courses[platform] / total, 2),
            }
            for platform, total in searches.items()
        ]
        rows.sort(key=lambda row: row["total_searches"], reverse=True)
        return rows
