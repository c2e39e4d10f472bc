"""Reads a partition's change stream and dispatches its records.

Architecture:
    The query phase pulls batches from the source starting at the
    restriction's start timestamp and hands every record to exactly one
    record action, chosen by the record's ``record_type`` discriminant. The
    first continuation returned by a record action ends the phase.

    After each batch the reader's rate limit policy decides how long to
    pause. A ThrottledError from the source goes to the policy's throttle
    path, then waits out the server's retry_after (when given) before the
    query restarts from the last claimed timestamp.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..core.enums import PartitionMode
from ..core.exceptions import MalformedRecordError, ThrottledError
from ..io.base import ChangeStreamSource
from ..models.partition import PartitionMetadata
from ..models.records import ChangeStreamRecordMetadata, DataChangeRecord
from ..restriction.throughput import ThroughputEstimator
from ..restriction.tracker import PartitionRestrictionTracker
from ..restriction.watermark import WatermarkEstimator
from .child_partitions import ChildPartitionsRecordAction
from .continuation import ProcessContinuation
from .data_change import DataChangeRecordAction
from .heartbeat import HeartbeatRecordAction

if TYPE_CHECKING:
    from ..runtime.rate_limit import RateLimitPolicy

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryChangeStreamAction:
    """Runs the QUERY_CHANGE_STREAM phase of a partition."""

    def __init__(
        self,
        source: ChangeStreamSource,
        data_change_action: DataChangeRecordAction,
        heartbeat_action: HeartbeatRecordAction,
        child_partitions_action: ChildPartitionsRecordAction,
        *,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._source = source
        self._data_change_action = data_change_action
        self._heartbeat_action = heartbeat_action
        self._child_partitions_action = child_partitions_action
        self._clock = clock
        self._sleep = sleep

    async def run(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
        watermark_estimator: WatermarkEstimator,
        rate_limit_policy: RateLimitPolicy,
        throughput_estimator: ThroughputEstimator | None = None,
    ) -> ProcessContinuation | None:
        token = partition.token
        end_timestamp = tracker.current_restriction().end_timestamp
        query_started_at = self._clock()
        records_read = 0

        while True:
            start_timestamp = self._resume_timestamp(tracker)
            logger.debug(
                f"[{token}] Querying change stream from {start_timestamp.isoformat()} "
                f"to {end_timestamp.isoformat() if end_timestamp else 'unbounded'}"
            )
            stream_started_at = self._clock()
            try:
                async for batch in self._source.read(partition, start_timestamp, end_timestamp):
                    stream_ended_at = self._clock()
                    for record in batch:
                        records_read += 1
                        continuation = await self._dispatch(
                            partition,
                            record,
                            tracker,
                            watermark_estimator,
                            throughput_estimator,
                            query_started_at,
                            stream_started_at,
                            stream_ended_at,
                            records_read,
                        )
                        if continuation is not None:
                            logger.debug(f"[{token}] Continuation present, stopping query")
                            return continuation
                    await rate_limit_policy.on_success(batch)
                    stream_started_at = self._clock()
            except ThrottledError as e:
                logger.warning(f"[{token}] Change stream query throttled: {e}")
                await rate_limit_policy.on_throttle(e)
                if e.retry_after:
                    await self._sleep(e.retry_after)
                continue
            break

        logger.debug(f"[{token}] Query change stream action completed after {records_read} records")
        return None

    async def _dispatch(
        self,
        partition: PartitionMetadata,
        record,
        tracker: PartitionRestrictionTracker,
        watermark_estimator: WatermarkEstimator,
        throughput_estimator: ThroughputEstimator | None,
        query_started_at: datetime,
        stream_started_at: datetime,
        stream_ended_at: datetime,
        records_read: int,
    ) -> ProcessContinuation | None:
        record_type = getattr(record, "record_type", None)
        if record_type == "data_change":
            metadata = self._record_metadata(
                partition,
                record,
                query_started_at,
                stream_started_at,
                stream_ended_at,
                records_read,
            )
            return self._data_change_action.run(
                partition,
                record,
                tracker,
                watermark_estimator,
                throughput_estimator,
                metadata,
            )
        if record_type == "heartbeat":
            return self._heartbeat_action.run(partition, record, tracker, watermark_estimator)
        if record_type == "child_partitions":
            return await self._child_partitions_action.run(
                partition, record, tracker, watermark_estimator
            )
        raise MalformedRecordError(
            f"unknown change stream record type {type(record).__name__}", token=partition.token
        )

    def _record_metadata(
        self,
        partition: PartitionMetadata,
        record: DataChangeRecord,
        query_started_at: datetime,
        stream_started_at: datetime,
        stream_ended_at: datetime,
        records_read: int,
    ) -> ChangeStreamRecordMetadata:
        read_at = self._clock()
        return ChangeStreamRecordMetadata(
            partition_token=partition.token,
            record_timestamp=record.commit_timestamp,
            partition_start_timestamp=partition.start_timestamp,
            partition_end_timestamp=partition.end_timestamp,
            partition_created_at=partition.created_at,
            partition_scheduled_at=partition.scheduled_at,
            partition_running_at=partition.running_at,
            query_started_at=query_started_at,
            record_stream_started_at=stream_started_at,
            record_stream_ended_at=stream_ended_at,
            record_read_at=read_at,
            total_stream_time_millis=int((read_at - query_started_at).total_seconds() * 1000),
            number_of_records_read=records_read,
        )

    @staticmethod
    def _resume_timestamp(tracker: PartitionRestrictionTracker) -> datetime:
        claimed = tracker.last_claimed
        if claimed is not None and claimed.mode is PartitionMode.QUERY_CHANGE_STREAM:
            return claimed.timestamp
        return tracker.current_restriction().start_timestamp
