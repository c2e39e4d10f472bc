"""Unit tests for ThroughputEstimator."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from laakhay.cdc.restriction import ThroughputEstimator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    return EPOCH + timedelta(seconds=seconds)


@pytest.fixture
def estimator():
    """Estimator with the default 60 second window."""
    return ThroughputEstimator()


def test_empty_estimator_returns_zero(estimator):
    """Nothing recorded means no throughput."""
    assert estimator.get_from(at(10)) == 0.0


def test_pending_entry_is_not_counted(estimator):
    """A single timestamp stays pending until a different one arrives."""
    estimator.update(at(10), 100)
    estimator.update(at(10), 50)
    assert estimator.get_from(at(11)) == 0.0


def test_average_per_distinct_timestamp(estimator):
    """Settled entries are averaged per timestamp."""
    estimator.update(at(20), 10)
    estimator.update(at(30), 20)
    estimator.update(at(59), 30)
    estimator.update(at(60), 40)  # pending
    assert estimator.get_from(at(61)) == pytest.approx(20.0)


def test_same_timestamp_updates_accumulate(estimator):
    """Updates for one timestamp count as one entry."""
    estimator.update(at(100), 10)
    estimator.update(at(110), 20)
    estimator.update(at(110), 10)
    estimator.update(at(140), 40)  # pending
    assert estimator.get_from(at(141)) == pytest.approx(20.0)


def test_entries_outside_window_are_evicted(estimator):
    """Entries at or before the window boundary fall out."""
    estimator.update(at(201), 10)
    estimator.update(at(250), 40)  # pending
    assert estimator.get_from(at(260)) == pytest.approx(10.0)
    assert estimator.get_from(at(261)) == 0.0
    assert estimator.get_from(at(350)) == 0.0


def test_accumulates_within_window():
    """Random samples inside one window average over distinct timestamps."""
    rng = random.Random(7)
    estimator = ThroughputEstimator(window_size_seconds=60)
    samples = sorted((rng.randint(1, 59), rng.randint(0, 10_000)) for _ in range(100))
    for seconds, size in samples:
        estimator.update(at(seconds), size)
    estimator.update(at(60), 10)

    distinct = len({seconds for seconds, _ in samples})
    expected = sum(size for _, size in samples) / distinct
    assert estimator.get_from(at(60)) == pytest.approx(expected)


def test_window_must_be_positive():
    """A zero window is rejected."""
    with pytest.raises(ValueError):
        ThroughputEstimator(window_size_seconds=0)
