"""Detection of partitions ready to be read."""

from __future__ import annotations

import logging

from ..core.enums import PartitionState
from ..core.exceptions import InvalidStateTransitionError
from ..models.partition import PartitionMetadata
from ..store.base import PartitionMetadataStore
from ..telemetry import log_partition_state_changed, log_partitions_detected

logger = logging.getLogger(__name__)


class DetectNewPartitionsAction:
    """Moves CREATED partitions to SCHEDULED and hands them out.

    Partitions are returned in start timestamp order. A partition whose
    state moved on concurrently is skipped.
    """

    def __init__(self, store: PartitionMetadataStore) -> None:
        self._store = store

    async def run(self) -> list[PartitionMetadata]:
        created = await self._store.find_in_state(PartitionState.CREATED)
        scheduled: list[PartitionMetadata] = []
        for partition in created:
            try:
                updated = await self._store.update_state(partition.token, PartitionState.SCHEDULED)
            except InvalidStateTransitionError as e:
                logger.debug(f"[{partition.token}] Already {e.current}, not scheduling")
                continue
            log_partition_state_changed(token=partition.token, state=str(PartitionState.SCHEDULED))
            scheduled.append(updated)
        if scheduled:
            log_partitions_detected(count=len(scheduled), tokens=[p.token for p in scheduled])
        return scheduled
