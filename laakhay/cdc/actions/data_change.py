"""Data change record handling."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..models.partition import PartitionMetadata
from ..models.records import ChangeStreamRecordMetadata, DataChangeRecord
from ..restriction.position import PartitionPosition
from ..restriction.throughput import ThroughputEstimator
from ..restriction.tracker import PartitionRestrictionTracker
from ..restriction.watermark import WatermarkEstimator
from ..telemetry import log_action_stopped
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)

RecordEmitter = Callable[[DataChangeRecord], None]


class DataChangeRecordAction:
    """Claims the commit timestamp and forwards the record downstream."""

    def __init__(self, emit: RecordEmitter) -> None:
        self._emit = emit

    def run(
        self,
        partition: PartitionMetadata,
        record: DataChangeRecord,
        tracker: PartitionRestrictionTracker,
        watermark_estimator: WatermarkEstimator,
        throughput_estimator: ThroughputEstimator | None = None,
        metadata: ChangeStreamRecordMetadata | None = None,
    ) -> ProcessContinuation | None:
        token = partition.token
        commit_timestamp = record.commit_timestamp
        logger.debug(
            f"[{token}] Processing data change record {record.transaction_id} "
            f"at {commit_timestamp.isoformat()}"
        )

        position = PartitionPosition.query_change_stream(commit_timestamp)
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()

        if metadata is not None:
            record = record.model_copy(update={"metadata": metadata})
        self._emit(record)
        if throughput_estimator is not None:
            throughput_estimator.update(commit_timestamp, record.size_bytes())
        watermark_estimator.set_watermark(commit_timestamp)

        logger.debug(f"[{token}] Data change record action completed successfully")
        return None
