"""Heartbeat record handling."""

from __future__ import annotations

import logging

from ..models.partition import PartitionMetadata
from ..models.records import HeartbeatRecord
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from ..restriction.watermark import WatermarkEstimator
from ..telemetry import log_action_stopped
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class HeartbeatRecordAction:
    """Advances the cursor and watermark on heartbeats; never touches the store."""

    def run(
        self,
        partition: PartitionMetadata,
        record: HeartbeatRecord,
        tracker: PartitionRestrictionTracker,
        watermark_estimator: WatermarkEstimator,
    ) -> ProcessContinuation | None:
        token = partition.token
        logger.debug(f"[{token}] Processing heartbeat record {record.timestamp.isoformat()}")

        position = PartitionPosition.query_change_stream(record.timestamp)
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()
        watermark_estimator.set_watermark(record.timestamp)

        logger.debug(f"[{token}] Heartbeat record action completed successfully")
        return None
