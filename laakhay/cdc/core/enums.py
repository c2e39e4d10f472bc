"""Core enumerations shared by the partition tracking engine.

Architecture:
    This module defines the standardized enums used throughout the library.
    String enums keep the values readable in logs and in the metadata table,
    where states are stored as plain strings.

Key Types:
    - PartitionState: Lifecycle state of a partition row
    - PartitionMode: Processing phase of a partition reader
    - ModType: Kind of mutation carried by a data change record
    - InsertResult: Outcome of inserting a partition row

See Also:
    - PartitionMetadata: Stores PartitionState per row
    - PartitionPosition: Orders claims by PartitionMode
"""

from enum import Enum


class PartitionState(str, Enum):
    """Lifecycle state of a partition in the metadata table.

    States only move forward: CREATED -> SCHEDULED -> RUNNING -> FINISHED.
    """

    CREATED = "CREATED"
    SCHEDULED = "SCHEDULED"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    @property
    def order(self) -> int:
        """Position of this state in the lifecycle."""
        return _STATE_ORDER.index(self)

    def can_transition_to(self, target: "PartitionState") -> bool:
        """Whether moving to ``target`` keeps the lifecycle monotonic."""
        return target.order >= self.order


_STATE_ORDER = (
    PartitionState.CREATED,
    PartitionState.SCHEDULED,
    PartitionState.RUNNING,
    PartitionState.FINISHED,
)


class PartitionMode(str, Enum):
    """Processing phase of a single partition.

    Architecture:
        Every partition proceeds through these phases left to right. The
        restriction tracker uses ``order`` to reject claims that move
        backwards. DONE is terminal.
    """

    QUERY_CHANGE_STREAM = "QUERY_CHANGE_STREAM"
    WAIT_FOR_CHILD_PARTITIONS = "WAIT_FOR_CHILD_PARTITIONS"
    FINISH_PARTITION = "FINISH_PARTITION"
    WAIT_FOR_PARENT_PARTITIONS = "WAIT_FOR_PARENT_PARTITIONS"
    DELETE_PARTITION = "DELETE_PARTITION"
    DONE = "DONE"

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    @property
    def order(self) -> int:
        """Position of this phase in the processing sequence."""
        return _MODE_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is PartitionMode.DONE


_MODE_ORDER = (
    PartitionMode.QUERY_CHANGE_STREAM,
    PartitionMode.WAIT_FOR_CHILD_PARTITIONS,
    PartitionMode.FINISH_PARTITION,
    PartitionMode.WAIT_FOR_PARENT_PARTITIONS,
    PartitionMode.DELETE_PARTITION,
    PartitionMode.DONE,
)

MODE_SEQUENCE: tuple[PartitionMode, ...] = _MODE_ORDER


class ModType(str, Enum):
    """Mutation kind of a data change record."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value


class InsertResult(str, Enum):
    """Outcome of inserting a partition row.

    Duplicate keys are an expected outcome under concurrent split/merge
    registration, so they are reported as a value instead of an exception.
    """

    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    @property
    def inserted(self) -> bool:
        return self is InsertResult.INSERTED
