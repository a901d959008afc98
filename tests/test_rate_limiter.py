"""Tests for the burst + sustained rate limiter."""

from __future__ import annotations

import pytest

from course_search.infrastructure.ratelimit import (
    ANALYTICS_SCOPE,
    SEARCH_SCOPE,
    RateLimitConfig,
    RateWindow,
    SearchRateLimiter,
    caller_identity,
)
from course_search.shared.exceptions import RateLimitExceeded


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return SearchRateLimiter(timer=clock)


# ============================================================
# Identity
# ============================================================


class TestIdentity:
    def test_caller_id_wins(self):
        assert caller_identity("u1", "10.0.0.1") == "user:u1"

    def test_ip_fallback(self):
        assert caller_identity(None, "10.0.0.1") == "ip:10.0.0.1"

    def test_anonymous(self):
        assert caller_identity(None, None) == "anonymous"


# ============================================================
# Burst window
# ============================================================


class TestBurstWindow:
    def test_twenty_first_request_denied_with_retry_after_60(self, limiter):
        for _ in range(20):
            assert limiter.admit(ip_address="10.0.0.1").allowed

        decision = limiter.admit(ip_address="10.0.0.1")

        assert not decision.allowed
        assert decision.retry_after == 60
        assert decision.window == "burst"

    def test_retry_after_shrinks_with_time(self, limiter, clock):
        for _ in range(20):
            limiter.admit(ip_address="ip")
        clock.now = 45.5

        assert limiter.admit(ip_address="ip").retry_after == 15

    def test_window_resets(self, limiter, clock):
        for _ in range(20):
            limiter.admit(ip_address="ip")
        clock.now = 60.0

        assert limiter.admit(ip_address="ip").allowed

    def test_identities_are_independent(self, limiter):
        for _ in range(20):
            limiter.admit(ip_address="a")
        assert limiter.admit(ip_address="b").allowed
        assert limiter.admit(caller_id="u1", ip_address="a").allowed

    def test_remaining_counts_down(self, limiter):
        assert limiter.admit(ip_address="ip").remaining == 19
        assert limiter.admit(ip_address="ip").remaining == 18


# ============================================================
# Sustained window
# ============================================================


class TestSustainedWindow:
    @pytest.fixture
    def small(self, clock):
        config = RateLimitConfig(
            burst=RateWindow("burst", 3, 60.0),
            anonymous=RateWindow("sustained", 5, 900.0),
            authenticated=RateWindow("sustained", 8, 900.0),
        )
        return SearchRateLimiter(config, timer=clock)

    def _drain(self, limiter, clock, count, **identity):
        admitted = 0
        for _ in range(count):
            decision = limiter.admit(**identity)
            if decision.allowed:
                admitted += 1
            else:
                clock.now += 60.0
                if limiter.admit(**identity).allowed:
                    admitted += 1
        return admitted

    def test_anonymous_sustained_limit(self, small, clock):
        assert self._drain(small, clock, 5, ip_address="ip") == 5
        clock.now += 60.0

        decision = small.admit(ip_address="ip")

        assert not decision.allowed
        assert decision.window == "sustained"
        assert decision.retry_after == 900 - int(clock.now)

    def test_authenticated_gets_higher_limit(self, small, clock):
        assert self._drain(small, clock, 8, caller_id="u1") == 8
        clock.now += 60.0
        assert not small.admit(caller_id="u1").allowed

    def test_denial_does_not_consume_other_window(self, small, clock):
        for _ in range(3):
            small.admit(ip_address="ip")
        for _ in range(10):
            assert not small.admit(ip_address="ip").allowed

        clock.now = 60.0
        assert small.admit(ip_address="ip").allowed
        assert small.admit(ip_address="ip").remaining == 0


# ============================================================
# Analytics window
# ============================================================


class TestAnalyticsWindow:
    def test_fifty_per_hour(self, limiter, clock):
        for _ in range(50):
            assert limiter.admit("u1", scope=ANALYTICS_SCOPE).allowed

        decision = limiter.admit("u1", scope=ANALYTICS_SCOPE)

        assert not decision.allowed
        assert decision.window == "analytics"
        assert decision.retry_after == 3600

        clock.now = 3600.0
        assert limiter.admit("u1", scope=ANALYTICS_SCOPE).allowed

    def test_independent_of_search_windows(self, limiter):
        for _ in range(20):
            limiter.admit("u1")
        assert not limiter.admit("u1").allowed

        assert limiter.admit("u1", scope=ANALYTICS_SCOPE).allowed

    def test_analytics_reads_leave_search_quota(self, limiter):
        for _ in range(50):
            limiter.admit("u1", scope=ANALYTICS_SCOPE)

        assert limiter.admit("u1", scope=SEARCH_SCOPE).remaining == 19


# ============================================================
# check()
# ============================================================


class TestCheck:
    def test_check_raises_when_denied(self, limiter):
        for _ in range(20):
            limiter.check(None, "ip")

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check(None, "ip")

        assert exc_info.value.retry_after == 60
        assert exc_info.value.context.metadata == {"window": "burst"}

    def test_reset(self, limiter):
        for _ in range(20):
            limiter.admit(ip_address="ip")
        limiter.reset()
        assert limiter.admit(ip_address="ip").allowed
