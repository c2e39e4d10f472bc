"""Rate limit policies pacing polls against the change stream source.

Architecture:
    Every partition reader owns one policy instance. After each poll the
    reader reports the batch through on_success(); when the source signals
    congestion the reader calls on_throttle(). The policy decides how long
    the reader pauses before polling again.

Design Decisions:
    - Protocol-based: readers accept any object with the two coroutines
    - Async sleeps: a pause only blocks its own reader and is cancelled with
      the reader's task on shutdown
    - Injectable sleep: tests record delays instead of sleeping
    - Two backoff sequences in the default policy: an empty poll and an
      explicit throttle are different causes and never share a counter

Policies:
    - NoopRateLimitPolicy: never pauses
    - FixedDelayRateLimitPolicy: pauses a constant delay after every poll
    - DynamicDelayRateLimitPolicy: pauses a delay computed for every poll
    - DefaultRateLimitPolicy: adaptive backoff on empty polls and throttles
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from ..core.config import (
    DEFAULT_BACKOFF_EXPONENT,
    DEFAULT_EMPTY_SUCCESS_BASE_DELAY,
    DEFAULT_FIXED_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_RANDOMIZATION_FACTOR,
    DEFAULT_THROTTLED_BASE_DELAY,
)
from ..core.exceptions import ThrottledError
from ..telemetry import log_rate_limit_sleep
from .backoff import BackoffSequence

Sleeper = Callable[[float], Awaitable[None]]


class RateLimitPolicy(Protocol):
    """Decides whether and how long a reader pauses between polls."""

    async def on_success(self, records: Sequence[Any]) -> None:
        """Called after a poll returned ``records`` (possibly none)."""
        ...

    async def on_throttle(self, error: ThrottledError) -> None:
        """Called after the source rejected a poll with a congestion signal."""
        ...


class NoopRateLimitPolicy(RateLimitPolicy):
    """Policy used when rate limiting is disabled."""

    async def on_success(self, records: Sequence[Any]) -> None:
        pass

    async def on_throttle(self, error: ThrottledError) -> None:
        pass


class DynamicDelayRateLimitPolicy(RateLimitPolicy):
    """Pauses after every poll for a delay computed fresh on each call."""

    sleep_reason = "dynamic"

    def __init__(self, delay: Callable[[], float], *, sleep: Sleeper = asyncio.sleep) -> None:
        self._delay = delay
        self._sleep = sleep

    async def on_success(self, records: Sequence[Any]) -> None:
        delay = self._delay()
        log_rate_limit_sleep(policy=type(self).__name__, reason=self.sleep_reason, delay=delay)
        await self._sleep(delay)

    async def on_throttle(self, error: ThrottledError) -> None:
        pass


class FixedDelayRateLimitPolicy(DynamicDelayRateLimitPolicy):
    """Pauses a constant delay after every poll, whatever it returned."""

    sleep_reason = "fixed"

    def __init__(self, delay: float = DEFAULT_FIXED_DELAY, *, sleep: Sleeper = asyncio.sleep) -> None:
        if delay < 0:
            raise ValueError("delay cannot be negative")
        super().__init__(lambda: delay, sleep=sleep)
        self.delay = delay


class DefaultRateLimitPolicy(RateLimitPolicy):
    """Adaptive policy with separate backoff for empty polls and throttles.

    - A poll with records resets both sequences and does not pause.
    - An empty poll resets the throttle sequence and pauses for the next
      empty-poll delay.
    - A throttle pauses for the next throttle delay and leaves the empty-poll
      sequence alone.
    """

    def __init__(
        self,
        empty_success: BackoffSequence,
        throttled: BackoffSequence,
        *,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._empty_success = empty_success
        self._throttled = throttled
        self._sleep = sleep

    async def on_success(self, records: Sequence[Any]) -> None:
        self._throttled.reset()
        if records:
            self._empty_success.reset()
            return
        delay = self._empty_success.next_backoff()
        log_rate_limit_sleep(policy=type(self).__name__, reason="empty_poll", delay=delay)
        await self._sleep(delay)

    async def on_throttle(self, error: ThrottledError) -> None:
        delay = self._throttled.next_backoff()
        log_rate_limit_sleep(policy=type(self).__name__, reason="throttled", delay=delay)
        await self._sleep(delay)


def without_limiter() -> RateLimitPolicy:
    """Policy that never pauses."""
    return NoopRateLimitPolicy()


def with_fixed_delay(delay: float = DEFAULT_FIXED_DELAY, *, sleep: Sleeper = asyncio.sleep) -> RateLimitPolicy:
    """Policy pausing ``delay`` seconds after every poll."""
    return FixedDelayRateLimitPolicy(delay, sleep=sleep)


def with_delay(delay: Callable[[], float], *, sleep: Sleeper = asyncio.sleep) -> RateLimitPolicy:
    """Policy pausing ``delay()`` seconds after every poll."""
    return DynamicDelayRateLimitPolicy(delay, sleep=sleep)


def with_default_rate_limiter(
    empty_success_base_delay: float = DEFAULT_EMPTY_SUCCESS_BASE_DELAY,
    throttled_base_delay: float = DEFAULT_THROTTLED_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    *,
    exponent: float = DEFAULT_BACKOFF_EXPONENT,
    randomization_factor: float = DEFAULT_RANDOMIZATION_FACTOR,
    sleep: Sleeper = asyncio.sleep,
) -> RateLimitPolicy:
    """Adaptive policy backing off independently on empty polls and throttles.

    Args:
        empty_success_base_delay: First pause after an empty poll (seconds)
        throttled_base_delay: First pause after a throttle (seconds)
        max_delay: Upper bound for both sequences (seconds)
        exponent: Growth factor between consecutive pauses
        randomization_factor: Jitter applied to every pause
        sleep: Coroutine used to pause
    """
    return DefaultRateLimitPolicy(
        BackoffSequence(
            empty_success_base_delay,
            max_delay,
            exponent=exponent,
            randomization_factor=randomization_factor,
        ),
        BackoffSequence(
            throttled_base_delay,
            max_delay,
            exponent=exponent,
            randomization_factor=randomization_factor,
        ),
        sleep=sleep,
    )
