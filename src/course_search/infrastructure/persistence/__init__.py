"""Listing catalog and view counters."""

from .listing_catalog import InMemoryListingCatalog

__all__ = ["InMemoryListingCatalog"]
