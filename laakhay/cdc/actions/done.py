"""Final phase of a partition."""

from __future__ import annotations

import logging

from ..models.partition import PartitionMetadata
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class DoneAction:
    async def run(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation:
        if tracker.try_claim(PartitionPosition.done()):
            logger.debug(f"[{partition.token}] Partition done")
        return ProcessContinuation.stop()
