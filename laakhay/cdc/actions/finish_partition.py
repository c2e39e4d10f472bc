"""Marks a partition FINISHED once its stream and children are settled."""

from __future__ import annotations

import logging

from ..core.enums import PartitionState
from ..models.partition import PartitionMetadata
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from ..store.base import PartitionMetadataStore
from ..telemetry import log_action_stopped, log_partition_state_changed
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class FinishPartitionAction:
    def __init__(self, store: PartitionMetadataStore) -> None:
        self._store = store

    async def run(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation | None:
        token = partition.token
        logger.debug(f"[{token}] Finishing partition")

        position = PartitionPosition.finish_partition()
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()
        await self._store.update_state(token, PartitionState.FINISHED)
        log_partition_state_changed(token=token, state=str(PartitionState.FINISHED))

        logger.debug(f"[{token}] Finish partition action completed successfully")
        return None
