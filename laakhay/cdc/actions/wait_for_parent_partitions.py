"""Holds a finished partition until all of its parents are deleted."""

from __future__ import annotations

import logging

from ..core.config import DEFAULT_WAIT_FOR_PARENTS_DELAY
from ..models.partition import PartitionMetadata
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from ..store.base import PartitionMetadataStore
from ..telemetry import log_action_stopped
from .child_partitions import register_pending_merge_child
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class WaitForParentPartitionsAction:
    """Resumes later while a parent row exists or a merge child is pending.

    A partition whose merge children are not registered yet keeps its row,
    so the co-parents still count it as FINISHED.
    """

    def __init__(
        self,
        store: PartitionMetadataStore,
        resume_delay: float = DEFAULT_WAIT_FOR_PARENTS_DELAY,
    ) -> None:
        self._store = store
        self._resume_delay = resume_delay

    async def run(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation | None:
        token = partition.token

        position = PartitionPosition.wait_for_parent_partitions()
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()

        existing_parents = await self._store.count_existing_parents(token)
        if existing_parents > 0:
            logger.debug(f"[{token}] {existing_parents} parent partitions still exist, resuming later")
            return ProcessContinuation.resume(self._resume_delay)

        current = await self._store.get(token) or partition
        pending = [
            child.token
            for child in current.pending_merge_children
            if not await register_pending_merge_child(self._store, current, child)
        ]
        if pending:
            logger.debug(f"[{token}] Merge children {pending} not registered yet, resuming later")
            return ProcessContinuation.resume(self._resume_delay)

        logger.debug(f"[{token}] Wait for parent partitions action completed successfully")
        return None
