"""Shared fixtures for unit tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from laakhay.cdc.core import ROOT_PARTITION_TOKEN, PartitionState
from laakhay.cdc.models import PartitionMetadata
from laakhay.cdc.store import InMemoryPartitionMetadataStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def t0() -> datetime:
    """Fixed start instant for partitions under test."""
    return T0


@pytest.fixture
def at():
    """Build an instant ``seconds`` after the fixed start."""

    def _at(seconds: float) -> datetime:
        return T0 + timedelta(seconds=seconds)

    return _at


@pytest.fixture
def store() -> InMemoryPartitionMetadataStore:
    """Fresh in-memory metadata store."""
    return InMemoryPartitionMetadataStore()


@pytest.fixture
def make_partition():
    """Factory for partition rows."""

    def _make(
        token: str = "A",
        parents=("Parent0",),
        start: datetime = T0,
        end: datetime | None = None,
        state: PartitionState = PartitionState.CREATED,
        heartbeat_millis: int = 1000,
    ) -> PartitionMetadata:
        return PartitionMetadata(
            token=token,
            parent_tokens=() if token == ROOT_PARTITION_TOKEN else parents,
            start_timestamp=start,
            end_timestamp=end,
            heartbeat_millis=heartbeat_millis,
            state=state,
        )

    return _make
