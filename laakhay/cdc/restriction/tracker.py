"""Partition restriction and its claim tracker.

Architecture:
    A restriction describes the remaining work of one partition: the phase
    to start from and, for the query phase, the time range still to read.
    The tracker is owned by the single reader of that partition and records
    the last claimed position. Every action claims before it acts, so a
    reader that lost the race (or resumed from a stale restriction) stops
    instead of repeating work.

Design Decisions:
    - try_claim returns False for ordinary "yield now" outcomes; exceptions
      are reserved for programming errors
    - checkpoint() re-derives the residual restriction from the last claimed
      phase, which is what a resumed reader starts from
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..core.enums import PartitionMode
from ..core.exceptions import RestrictionError
from ..models.partition import PartitionMetadata
from .position import PartitionPosition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionRestriction:
    """Remaining work of a partition.

    Attributes:
        start_timestamp: Inclusive lower bound of the query phase
        end_timestamp: Exclusive upper bound of the query phase (None = open-ended)
        mode: Phase the restriction starts in
        child_partitions_to_wait_for: Child count carried by a resumed
            WAIT_FOR_CHILD_PARTITIONS restriction
    """

    start_timestamp: datetime
    end_timestamp: datetime | None = None
    mode: PartitionMode = PartitionMode.QUERY_CHANGE_STREAM
    child_partitions_to_wait_for: int | None = None

    def __post_init__(self) -> None:
        """Validate the time range."""
        if self.end_timestamp is not None and self.end_timestamp < self.start_timestamp:
            raise RestrictionError("restriction end_timestamp must be >= start_timestamp")

    @classmethod
    def from_partition(cls, partition: PartitionMetadata) -> PartitionRestriction:
        """Initial restriction for a partition about to be read."""
        return cls(
            start_timestamp=partition.start_timestamp,
            end_timestamp=partition.end_timestamp,
        )

    def contains(self, timestamp: datetime) -> bool:
        """Whether ``timestamp`` lies in the [start, end) query range."""
        if timestamp < self.start_timestamp:
            return False
        return self.end_timestamp is None or timestamp < self.end_timestamp

    def starting_position(self) -> PartitionPosition | None:
        """Position a fresh tracker compares its first claim against."""
        if self.mode is PartitionMode.QUERY_CHANGE_STREAM:
            return None
        if self.mode is PartitionMode.WAIT_FOR_CHILD_PARTITIONS:
            if self.child_partitions_to_wait_for is None:
                return None
            return PartitionPosition.wait_for_child_partitions(self.child_partitions_to_wait_for)
        return PartitionPosition(self.mode)


class PartitionRestrictionTracker:
    """Tracks claimed positions of one partition restriction."""

    def __init__(self, restriction: PartitionRestriction) -> None:
        self._restriction = restriction
        self._last_claimed: PartitionPosition | None = None

    @property
    def last_claimed(self) -> PartitionPosition | None:
        return self._last_claimed

    def current_restriction(self) -> PartitionRestriction:
        return self._restriction

    def current_mode(self) -> PartitionMode:
        """Phase the partition is in right now."""
        if self._last_claimed is not None:
            return self._last_claimed.mode
        return self._restriction.mode

    def try_claim(self, position: PartitionPosition) -> bool:
        """Claim ``position`` if it does not move processing backwards.

        Returns:
            True if the position was claimed and the cursor advanced, False if
            the caller should stop processing and yield.
        """
        if position.mode.order < self._restriction.mode.order:
            logger.debug(f"Claim {position} rejected: restriction starts at {self._restriction.mode}")
            return False

        if self._last_claimed is not None:
            if self._last_claimed.mode.is_terminal:
                logger.debug(f"Claim {position} rejected: restriction is done")
                return False
            if position.is_behind(self._last_claimed):
                logger.debug(f"Claim {position} rejected: behind {self._last_claimed}")
                return False
        else:
            start = self._restriction.starting_position()
            if start is not None and position.is_behind(start):
                logger.debug(f"Claim {position} rejected: behind restriction start {start}")
                return False

        if position.mode is PartitionMode.QUERY_CHANGE_STREAM and not self._restriction.contains(
            position.timestamp
        ):
            logger.debug(f"Claim {position} rejected: outside restriction range")
            return False

        self._last_claimed = position
        return True

    def checkpoint(self) -> PartitionRestriction:
        """Residual restriction to resume this partition from.

        The residual starts at the last claimed position, inclusive. Nothing
        claimed yet means the whole restriction is still residual.
        """
        claimed = self._last_claimed
        if claimed is None:
            return self._restriction
        if claimed.mode is PartitionMode.QUERY_CHANGE_STREAM:
            return PartitionRestriction(
                start_timestamp=claimed.timestamp,
                end_timestamp=self._restriction.end_timestamp,
                mode=PartitionMode.QUERY_CHANGE_STREAM,
            )
        return PartitionRestriction(
            start_timestamp=self._restriction.start_timestamp,
            end_timestamp=self._restriction.end_timestamp,
            mode=claimed.mode,
            child_partitions_to_wait_for=claimed.child_partitions_to_wait_for,
        )

    def is_done(self) -> bool:
        return self._last_claimed is not None and self._last_claimed.mode.is_terminal
