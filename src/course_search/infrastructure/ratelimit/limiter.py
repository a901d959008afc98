"""
Search Rate Limiter

Independent fixed windows per caller identity. Search traffic counts against
burst and sustained; analytics reads have their own window:

    burst      20 requests / 60 s
    sustained  100 requests / 15 min (anonymous), 200 / 15 min (authenticated)
    analytics  50 requests / hour

Identity is the caller id when one is known, otherwise the client IP.
A request is admitted only when every window has room; counters move only
on admission. A denied request carries ``retry_after``: whole seconds until
the denying window resets.

Window state is held in cachetools.TTLCache with the window length as TTL,
so idle identities are evicted when their window expires.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cachetools import TTLCache

from course_search.shared.exceptions import RateLimitExceeded

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTITY = "anonymous"

SEARCH_SCOPE = "search"
ANALYTICS_SCOPE = "analytics"


@dataclass(frozen=True)
class RateWindow:
    """A fixed window: at most ``limit`` requests per ``seconds``."""

    name: str
    limit: int
    seconds: float


@dataclass(frozen=True)
class RateLimitConfig:
    burst: RateWindow = RateWindow("burst", 20, 60.0)
    anonymous: RateWindow = RateWindow("sustained", 100, 15 * 60.0)
    authenticated: RateWindow = RateWindow("sustained", 200, 15 * 60.0)
    analytics: RateWindow = RateWindow("analytics", 50, 60 * 60.0)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    identity: str
    remaining: int = 0
    retry_after: int = 0
    window: str | None = None


def caller_identity(caller_id: str | None, ip_address: str | None) -> str:
    """``user:<id>`` when authenticated, else ``ip:<addr>``."""
    if caller_id:
        return f"user:{caller_id}"
    if ip_address:
        return f"ip:{ip_address}"
    return ANONYMOUS_IDENTITY


class SearchRateLimiter:
    """
    Burst + sustained fixed-window limiter.

    Example:
        limiter = SearchRateLimiter()
        decision = limiter.admit(caller_id=None, ip_address="10.0.0.1")
        if not decision.allowed:
            ...  # respond 429 with Retry-After: decision.retry_after
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        max_identities: int = 100_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or RateLimitConfig()
        self._timer = timer
        self._lock = threading.Lock()
        ttls: dict[str, float] = {}
        for window in (self._config.burst, self._config.anonymous, self._config.authenticated, self._config.analytics):
            ttls[window.name] = max(ttls.get(window.name, 0.0), window.seconds)
        # window name -> identity -> [window_start, count]
        self._windows: dict[str, TTLCache[str, list[float]]] = {
            name: TTLCache(maxsize=max_identities, ttl=ttl, timer=timer) for name, ttl in ttls.items()
        }

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    def _windows_for(self, caller_id: str | None, scope: str) -> tuple[RateWindow, ...]:
        if scope == ANALYTICS_SCOPE:
            return (self._config.analytics,)
        sustained = self._config.authenticated if caller_id else self._config.anonymous
        return (self._config.burst, sustained)

    def admit(
        self,
        caller_id: str | None = None,
        ip_address: str | None = None,
        *,
        scope: str = SEARCH_SCOPE,
    ) -> RateLimitDecision:
        """Count the request against every window, or deny without counting."""
        identity = caller_identity(caller_id, ip_address)
        windows = self._windows_for(caller_id, scope)

        with self._lock:
            now = self._timer()
            states: list[tuple[RateWindow, list[float]]] = []
            denial: tuple[int, str] | None = None

            for window in windows:
                store = self._windows[window.name]
                state = store.get(identity)
                if state is None or now >= state[0] + window.seconds:
                    state = [now, 0]
                if state[1] >= window.limit:
                    retry_after = max(1, math.ceil(state[0] + window.seconds - now))
                    if denial is None or retry_after > denial[0]:
                        denial = (retry_after, window.name)
                states.append((window, state))

            if denial is not None:
                logger.info(f"Rate limit hit for {identity} ({denial[1]} window, retry in {denial[0]}s)")
                return RateLimitDecision(False, identity, 0, denial[0], denial[1])

            remaining = []
            for window, state in states:
                state[1] += 1
                self._windows[window.name][identity] = state
                remaining.append(window.limit - int(state[1]))

        return RateLimitDecision(True, identity, min(remaining))

    def check(
        self,
        caller_id: str | None = None,
        ip_address: str | None = None,
        *,
        scope: str = SEARCH_SCOPE,
    ) -> RateLimitDecision:
        """
        Like ``admit()``, but raise on denial.

        Raises:
            RateLimitExceeded: A window is full.
        """
        decision = self.admit(caller_id, ip_address, scope=scope)
        if not decision.allowed:
            raise RateLimitExceeded(decision.retry_after, window=decision.window)
        return decision

    def reset(self) -> None:
        with self._lock:
            for store in self._windows.values():
                store.clear()
