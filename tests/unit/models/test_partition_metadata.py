"""Unit tests for partition models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from laakhay.cdc.core import ROOT_PARTITION_TOKEN, PartitionState
from laakhay.cdc.models import ChildPartition, PartitionMetadata

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestChildPartition:
    """ChildPartition split/merge classification."""

    def test_single_parent_is_split(self):
        """One parent means a split."""
        child = ChildPartition(token="B", parent_tokens={"A"})
        assert child.is_split
        assert not child.is_merge

    def test_several_parents_is_merge(self):
        """Two or more parents mean a merge."""
        child = ChildPartition(token="C", parent_tokens=["A", "B"])
        assert child.is_merge
        assert child.parent_tokens == frozenset({"A", "B"})

    def test_requires_a_parent(self):
        """A child without parents is invalid."""
        with pytest.raises(ValidationError):
            ChildPartition(token="C", parent_tokens=set())


class TestPartitionMetadata:
    """PartitionMetadata validation."""

    def test_defaults(self):
        """New rows start CREATED with inclusive start and exclusive end."""
        row = PartitionMetadata(
            token="A", parent_tokens=["Parent0"], start_timestamp=START, heartbeat_millis=1000
        )
        assert row.state is PartitionState.CREATED
        assert row.inclusive_start
        assert not row.inclusive_end
        assert row.created_at is None

    def test_root_has_no_parents(self):
        """The root partition is the only row allowed without parents."""
        root = PartitionMetadata(
            token=ROOT_PARTITION_TOKEN, start_timestamp=START, heartbeat_millis=5000
        )
        assert root.is_root
        assert root.parent_tokens == frozenset()

        with pytest.raises(ValidationError, match="parent"):
            PartitionMetadata(token="A", start_timestamp=START, heartbeat_millis=5000)

    def test_end_before_start_rejected(self):
        """The end timestamp cannot precede the start."""
        with pytest.raises(ValidationError):
            PartitionMetadata(
                token="A",
                parent_tokens=["Parent0"],
                start_timestamp=START,
                end_timestamp=START - timedelta(seconds=1),
                heartbeat_millis=1000,
            )

    def test_heartbeat_must_be_positive(self):
        """Heartbeat interval must be positive."""
        with pytest.raises(ValidationError):
            PartitionMetadata(
                token="A", parent_tokens=["Parent0"], start_timestamp=START, heartbeat_millis=0
            )

    def test_rows_are_frozen(self):
        """Rows are immutable."""
        row = PartitionMetadata(
            token="A", parent_tokens=["Parent0"], start_timestamp=START, heartbeat_millis=1000
        )
        with pytest.raises(ValidationError):
            row.state = PartitionState.RUNNING

    def test_from_child_inherits_parent_bounds(self):
        """A child row starts at the record and inherits end and heartbeat."""
        end = START + timedelta(hours=1)
        child = ChildPartition(token="C", parent_tokens={"A", "B"})
        row = PartitionMetadata.from_child(
            child,
            start_timestamp=START + timedelta(seconds=30),
            end_timestamp=end,
            heartbeat_millis=2000,
        )
        assert row.token == "C"
        assert row.parent_tokens == frozenset({"A", "B"})
        assert row.start_timestamp == START + timedelta(seconds=30)
        assert row.end_timestamp == end
        assert row.heartbeat_millis == 2000
        assert row.state is PartitionState.CREATED
