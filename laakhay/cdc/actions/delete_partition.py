"""Terminal cleanup of a partition row."""

from __future__ import annotations

import logging

from ..models.partition import PartitionMetadata
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from ..store.base import PartitionMetadataStore
from ..telemetry import log_action_stopped
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class DeletePartitionAction:
    """Deletes the metadata row of a partition whose work is complete."""

    def __init__(self, store: PartitionMetadataStore) -> None:
        self._store = store

    async def run(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation | None:
        token = partition.token
        logger.info(f"[{token}] Deleting partition")

        position = PartitionPosition.delete_partition()
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()
        await self._store.delete(token)

        logger.info(f"[{token}] Delete partition action completed successfully")
        return None
