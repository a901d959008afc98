"""Per-caller request rate limiting."""

from .limiter import (
    ANALYTICS_SCOPE,
    SEARCH_SCOPE,
    RateLimitConfig,
    RateLimitDecision,
    RateWindow,
    SearchRateLimiter,
    caller_identity,
)

__all__ = [
    "ANALYTICS_SCOPE",
    "SEARCH_SCOPE",
    "RateLimitConfig",
    "RateLimitDecision",
    "RateWindow",
    "SearchRateLimiter",
    "caller_identity",
]
