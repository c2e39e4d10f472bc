"""Partition positions claimed by the restriction tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import PartitionMode
from ..core.exceptions import RestrictionError


@dataclass(frozen=True)
class PartitionPosition:
    """A point in the processing of one partition.

    Attributes:
        mode: Processing phase
        timestamp: Change stream cursor, only for QUERY_CHANGE_STREAM
        child_partitions_to_wait_for: Unscheduled children, only for
            WAIT_FOR_CHILD_PARTITIONS
    """

    mode: PartitionMode
    timestamp: datetime | None = None
    child_partitions_to_wait_for: int | None = None

    def __post_init__(self) -> None:
        """Validate that only the mode's own progress marker is set."""
        if self.mode is PartitionMode.QUERY_CHANGE_STREAM:
            if self.timestamp is None:
                raise RestrictionError("QUERY_CHANGE_STREAM position requires a timestamp")
        elif self.timestamp is not None:
            raise RestrictionError(f"{self.mode} position cannot carry a timestamp")

        if self.mode is PartitionMode.WAIT_FOR_CHILD_PARTITIONS:
            if self.child_partitions_to_wait_for is None or self.child_partitions_to_wait_for < 0:
                raise RestrictionError(
                    "WAIT_FOR_CHILD_PARTITIONS position requires a non-negative child count"
                )
        elif self.child_partitions_to_wait_for is not None:
            raise RestrictionError(f"{self.mode} position cannot carry a child count")

    @classmethod
    def query_change_stream(cls, timestamp: datetime) -> PartitionPosition:
        return cls(PartitionMode.QUERY_CHANGE_STREAM, timestamp=timestamp)

    @classmethod
    def wait_for_child_partitions(cls, count: int) -> PartitionPosition:
        return cls(PartitionMode.WAIT_FOR_CHILD_PARTITIONS, child_partitions_to_wait_for=count)

    @classmethod
    def finish_partition(cls) -> PartitionPosition:
        return cls(PartitionMode.FINISH_PARTITION)

    @classmethod
    def wait_for_parent_partitions(cls) -> PartitionPosition:
        return cls(PartitionMode.WAIT_FOR_PARENT_PARTITIONS)

    @classmethod
    def delete_partition(cls) -> PartitionPosition:
        return cls(PartitionMode.DELETE_PARTITION)

    @classmethod
    def done(cls) -> PartitionPosition:
        return cls(PartitionMode.DONE)

    def is_behind(self, other: PartitionPosition) -> bool:
        """Whether this position precedes ``other`` in processing order.

        Positions in an earlier mode are behind. Within QUERY_CHANGE_STREAM a
        smaller timestamp is behind; within WAIT_FOR_CHILD_PARTITIONS a larger
        count is behind, since the count only shrinks as children get
        scheduled. Equal positions are never behind each other.
        """
        if self.mode.order != other.mode.order:
            return self.mode.order < other.mode.order
        if self.mode is PartitionMode.QUERY_CHANGE_STREAM:
            return self.timestamp < other.timestamp
        if self.mode is PartitionMode.WAIT_FOR_CHILD_PARTITIONS:
            return self.child_partitions_to_wait_for > other.child_partitions_to_wait_for
        return False

    def __str__(self) -> str:
        if self.timestamp is not None:
            return f"{self.mode}({self.timestamp.isoformat()})"
        if self.child_partitions_to_wait_for is not None:
            return f"{self.mode}({self.child_partitions_to_wait_for})"
        return str(self.mode)
