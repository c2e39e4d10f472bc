"""Unit tests for rate limit policies."""

import asyncio
import logging

import pytest

from laakhay.cdc.core import ThrottledError
from laakhay.cdc.runtime import (
    BackoffSequence,
    DefaultRateLimitPolicy,
    FixedDelayRateLimitPolicy,
    NoopRateLimitPolicy,
    with_default_rate_limiter,
    with_delay,
    with_fixed_delay,
    without_limiter,
)


class RecordingSleep:
    """Sleep replacement recording requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep():
    """Recording sleep."""
    return RecordingSleep()


def default_policy(sleep) -> DefaultRateLimitPolicy:
    return DefaultRateLimitPolicy(
        BackoffSequence(1.0, 8.0, exponent=2.0, randomization_factor=0),
        BackoffSequence(0.5, 8.0, exponent=2.0, randomization_factor=0),
        sleep=sleep,
    )


@pytest.mark.asyncio
async def test_without_limiter_never_sleeps():
    """The no-op policy returns immediately for both signals."""
    policy = without_limiter()
    assert isinstance(policy, NoopRateLimitPolicy)
    await policy.on_success([])
    await policy.on_throttle(ThrottledError("busy"))


@pytest.mark.asyncio
async def test_fixed_delay_sleeps_after_every_poll(sleep):
    """Fixed delay pauses the same amount regardless of results."""
    policy = with_fixed_delay(0.5, sleep=sleep)
    assert isinstance(policy, FixedDelayRateLimitPolicy)
    assert policy.delay == 0.5

    await policy.on_success([])
    await policy.on_success(["record"])
    await policy.on_throttle(ThrottledError("busy"))
    assert sleep.delays == [0.5, 0.5]


def test_fixed_delay_default_is_one_second():
    """The default fixed delay is one second."""
    assert FixedDelayRateLimitPolicy().delay == 1.0


@pytest.mark.asyncio
async def test_dynamic_delay_evaluated_each_call(sleep):
    """The delay function is called fresh for every poll."""
    delays = iter([0.1, 0.2, 0.3])
    policy = with_delay(lambda: next(delays), sleep=sleep)
    for _ in range(3):
        await policy.on_success(["record"])
    assert sleep.delays == [0.1, 0.2, 0.3]


class TestDefaultPolicy:
    """Adaptive backoff behavior."""

    @pytest.mark.asyncio
    async def test_records_never_sleep(self, sleep):
        """A poll with records does not pause."""
        policy = default_policy(sleep)
        await policy.on_success(["record"])
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_empty_polls_back_off(self, sleep):
        """Consecutive empty polls grow the delay."""
        policy = default_policy(sleep)
        for _ in range(4):
            await policy.on_success([])
        assert sleep.delays == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_records_reset_empty_backoff(self, sleep):
        """Data resets the empty-poll sequence."""
        policy = default_policy(sleep)
        await policy.on_success([])
        await policy.on_success([])
        await policy.on_success(["record"])
        await policy.on_success([])
        assert sleep.delays == [1.0, 2.0, 1.0]

    @pytest.mark.asyncio
    async def test_throttles_back_off_independently(self, sleep):
        """Throttles use their own sequence and leave the empty one alone."""
        policy = default_policy(sleep)
        await policy.on_success([])
        await policy.on_throttle(ThrottledError("busy"))
        await policy.on_throttle(ThrottledError("busy"))
        await policy.on_success([])
        assert sleep.delays == [1.0, 0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_success_resets_throttle_backoff(self, sleep):
        """Any successful poll resets the throttle sequence."""
        policy = default_policy(sleep)
        await policy.on_throttle(ThrottledError("busy"))
        await policy.on_throttle(ThrottledError("busy"))
        await policy.on_success(["record"])
        await policy.on_throttle(ThrottledError("busy"))
        assert sleep.delays == [0.5, 1.0, 0.5]

    @pytest.mark.asyncio
    async def test_factory_builds_adaptive_policy(self, sleep):
        """with_default_rate_limiter wires both sequences."""
        policy = with_default_rate_limiter(
            empty_success_base_delay=0.2,
            throttled_base_delay=0.4,
            max_delay=1.0,
            exponent=2.0,
            randomization_factor=0,
            sleep=sleep,
        )
        await policy.on_success([])
        await policy.on_throttle(ThrottledError("busy"))
        assert sleep.delays == [0.2, 0.4]


@pytest.mark.asyncio
async def test_sleep_is_cancellable():
    """A pausing reader can be cancelled promptly."""
    policy = with_fixed_delay(60.0)
    task = asyncio.create_task(policy.on_success([]))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("factory", "reason"),
    [
        (lambda sleep: with_fixed_delay(0.5, sleep=sleep), "fixed"),
        (lambda sleep: with_delay(lambda: 0.5, sleep=sleep), "dynamic"),
    ],
)
async def test_delay_policies_log_their_own_reason(caplog, sleep, factory, reason):
    """Each delay policy tags its pauses with its own reason."""
    policy = factory(sleep)
    with caplog.at_level(logging.DEBUG, logger="laakhay.cdc.telemetry"):
        await policy.on_success(["record"])

    sleeps = [record for record in caplog.records if record.getMessage() == "rate_limit_sleep"]
    assert [record.reason for record in sleeps] == [reason]
    assert sleeps[0].policy == type(policy).__name__
