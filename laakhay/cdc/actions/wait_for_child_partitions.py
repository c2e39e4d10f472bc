"""Holds a partition until the children it registered are scheduled."""

from __future__ import annotations

import logging

from ..core.config import DEFAULT_WAIT_FOR_CHILDREN_DELAY
from ..core.enums import PartitionMode, PartitionState
from ..models.partition import PartitionMetadata
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from ..store.base import PartitionMetadataStore
from ..telemetry import log_action_stopped
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class WaitForChildPartitionsAction:
    """Resumes later while any child of the partition is still CREATED."""

    def __init__(
        self,
        store: PartitionMetadataStore,
        resume_delay: float = DEFAULT_WAIT_FOR_CHILDREN_DELAY,
    ) -> None:
        self._store = store
        self._resume_delay = resume_delay

    async def run(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation | None:
        token = partition.token
        unscheduled = await self._store.count_children_in_states(token, [PartitionState.CREATED])
        logger.debug(f"[{token}] Waiting for {unscheduled} child partitions to be scheduled")

        # Merge children registered by another parent can raise the count;
        # the claimed marker itself never increases.
        previous = self._previous_count(tracker)
        to_claim = unscheduled if previous is None else min(unscheduled, previous)

        position = PartitionPosition.wait_for_child_partitions(to_claim)
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()
        if unscheduled > 0:
            return ProcessContinuation.resume(self._resume_delay)

        logger.debug(f"[{token}] Wait for child partitions action completed successfully")
        return None

    @staticmethod
    def _previous_count(tracker: PartitionRestrictionTracker) -> int | None:
        claimed = tracker.last_claimed
        if claimed is not None and claimed.mode is PartitionMode.WAIT_FOR_CHILD_PARTITIONS:
            return claimed.child_partitions_to_wait_for
        if claimed is None:
            return tracker.current_restriction().child_partitions_to_wait_for
        return None
