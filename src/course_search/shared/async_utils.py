"""
Async Utilities for External Calls.

Provides:
- Settled fan-out with asyncio.TaskGroup (structured concurrency)
- Hard latency ceilings that map onto the collaborator error taxonomy
- Circuit breaker for fault tolerance of scraped sources
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from .exceptions import ExternalCallError, ExternalCallFailure, ExternalCallTimeout

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Timeouts
# =============================================================================


async def call_with_timeout(
    collaborator: str,
    awaitable: Awaitable[T],
    timeout: float,
) -> T:
    """
    Await *awaitable* under a hard ceiling.

    The in-flight call is cancelled when the ceiling is hit, so nothing it
    produces afterwards can leak into the caller.

    Raises:
        ExternalCallTimeout: The ceiling was reached.
        ExternalCallFailure: The call raised anything else.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        raise ExternalCallTimeout(collaborator, timeout) from e
    except ExternalCallError:
        raise
    except Exception as e:
        raise ExternalCallFailure(collaborator, str(e) or type(e).__name__) from e


# =============================================================================
# Parallel Execution with TaskGroup
# =============================================================================


async def gather_settled(*aws: Awaitable[T]) -> list[T | Exception]:
    """
    Run awaitables concurrently and wait for every one of them to settle.

    Unlike ``TaskGroup`` on its own, one failure does not cancel the
    siblings: each slot holds either the result or the exception raised.
    Results keep the input order.

    Example:
        results = await gather_settled(fetch_a(), fetch_b())
        ok = [r for r in results if not isinstance(r, Exception)]
    """
    results: list[T | Exception] = [None] * len(aws)  # type: ignore[list-item]

    async def settle(aw: Awaitable[T], index: int) -> None:
        try:
            results[index] = await aw
        except Exception as e:
            results[index] = e

    async with asyncio.TaskGroup() as tg:
        for i, aw in enumerate(aws):
            tg.create_task(settle(aw, i))

    return results


# =============================================================================
# Circuit Breaker
# =============================================================================

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """
    Stops calling a source that keeps failing.

    The breaker opens once ``failure_threshold`` failures have accumulated;
    each success while closed takes one away. While open, entering raises
    ExternalCallFailure without touching the source. Once ``recovery_timeout``
    seconds have passed since the last failure, up to ``half_open_max_calls``
    trial calls go through; the first success closes the breaker again.

    Example:
        breaker = CircuitBreaker(name="edX", failure_threshold=5)

        async with breaker:
            html = await fetch_search_page()
    """

    name: str = "service"
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default=CLOSED)
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """True while calls are rejected outright."""
        return self._state == OPEN and not self._cooled_down()

    def _cooled_down(self) -> bool:
        if self._last_failure_time is None:
            return False
        return time.monotonic() - self._last_failure_time > self.recovery_timeout

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise ExternalCallFailure(self.name, "circuit breaker is open")

            if self._state == OPEN:
                self._state = HALF_OPEN
                self._half_open_calls = 0
                logger.info(f"{self.name}: circuit breaker half-open, allowing trial calls")

            if self._state == HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise ExternalCallFailure(self.name, "circuit breaker is half-open (max calls reached)")
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if exc_val is None:
                self._on_success()
                return

            self._failure_count += 1
            self._last_failure_time = time.monotonic()
            if self._failure_count >= self.failure_threshold and self._state != OPEN:
                self._state = OPEN
                logger.warning(f"{self.name}: circuit breaker opened after {self._failure_count} failures")

    def _on_success(self) -> None:
        if self._state == HALF_OPEN:
            self._state = CLOSED
            self._failure_count = 0
            logger.info(f"{self.name}: circuit breaker closed (recovered)")
        elif self._state == CLOSED and self._failure_count:
            self._failure_count -= 1
