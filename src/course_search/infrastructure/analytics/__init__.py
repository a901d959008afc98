"""Search analytics persistence."""

from .store import RECORDS_FILENAME, SearchAnalyticsStore

__all__ = ["RECORDS_FILENAME", "SearchAnalyticsStore"]
