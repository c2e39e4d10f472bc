"""Per-partition reader driving a partition through its phases.

Architecture:
    One PartitionReader exists per partition being read. It owns the
    partition's rate limit policy, throughput estimator and watermark
    estimator, so none of them are shared between readers and none need
    locking. The reader runs the phase actions in MODE_SEQUENCE order,
    starting from the tracker's current mode, and returns the first
    continuation an action produces.

    Each phase has exactly one handler, selected by the current mode.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from ..actions.child_partitions import ChildPartitionsRecordAction
from ..actions.continuation import ProcessContinuation
from ..actions.data_change import DataChangeRecordAction, RecordEmitter
from ..actions.delete_partition import DeletePartitionAction
from ..actions.done import DoneAction
from ..actions.finish_partition import FinishPartitionAction
from ..actions.heartbeat import HeartbeatRecordAction
from ..actions.query_change_stream import QueryChangeStreamAction
from ..actions.wait_for_child_partitions import WaitForChildPartitionsAction
from ..actions.wait_for_parent_partitions import WaitForParentPartitionsAction
from ..core.config import (
    DEFAULT_THROUGHPUT_WINDOW_SECONDS,
    DEFAULT_WAIT_FOR_CHILDREN_DELAY,
    DEFAULT_WAIT_FOR_PARENTS_DELAY,
)
from ..core.enums import MODE_SEQUENCE, PartitionMode, PartitionState
from ..io.base import ChangeStreamSource
from ..models.partition import PartitionMetadata
from ..restriction.throughput import ThroughputEstimator
from ..restriction.tracker import PartitionRestrictionTracker
from ..restriction.watermark import ManualWatermarkEstimator, WatermarkEstimator
from ..store.base import PartitionMetadataStore
from ..telemetry import log_partition_resumed, log_partition_state_changed
from .rate_limit import RateLimitPolicy, Sleeper, without_limiter

logger = logging.getLogger(__name__)

PhaseHandler = Callable[
    [PartitionMetadata, PartitionRestrictionTracker], Awaitable[ProcessContinuation | None]
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PartitionReader:
    """Reads one partition from its current phase until it stops or resumes."""

    def __init__(
        self,
        store: PartitionMetadataStore,
        source: ChangeStreamSource,
        *,
        emit: RecordEmitter | None = None,
        rate_limit_policy: RateLimitPolicy | None = None,
        throughput_estimator: ThroughputEstimator | None = None,
        watermark_estimator: WatermarkEstimator | None = None,
        wait_for_children_delay: float = DEFAULT_WAIT_FOR_CHILDREN_DELAY,
        wait_for_parents_delay: float = DEFAULT_WAIT_FOR_PARENTS_DELAY,
        clock: Callable[[], datetime] | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._store = store
        self.rate_limit_policy = rate_limit_policy or without_limiter()
        self.throughput_estimator = throughput_estimator or ThroughputEstimator(
            DEFAULT_THROUGHPUT_WINDOW_SECONDS
        )
        self.watermark_estimator = watermark_estimator or ManualWatermarkEstimator()

        self._query_action = QueryChangeStreamAction(
            source,
            DataChangeRecordAction(emit or (lambda record: None)),
            HeartbeatRecordAction(),
            ChildPartitionsRecordAction(store),
            clock=clock or _utcnow,
            sleep=sleep,
        )
        self._wait_for_children_action = WaitForChildPartitionsAction(store, wait_for_children_delay)
        self._finish_action = FinishPartitionAction(store)
        self._wait_for_parents_action = WaitForParentPartitionsAction(store, wait_for_parents_delay)
        self._delete_action = DeletePartitionAction(store)
        self._done_action = DoneAction()

        self._phases: dict[PartitionMode, PhaseHandler] = {
            PartitionMode.QUERY_CHANGE_STREAM: self._query,
            PartitionMode.WAIT_FOR_CHILD_PARTITIONS: self._wait_for_children_action.run,
            PartitionMode.FINISH_PARTITION: self._finish_action.run,
            PartitionMode.WAIT_FOR_PARENT_PARTITIONS: self._wait_for_parents_action.run,
            PartitionMode.DELETE_PARTITION: self._delete_action.run,
            PartitionMode.DONE: self._done_action.run,
        }

    def estimated_throughput(self) -> float:
        """Average bytes per commit timestamp up to the current watermark.

        Returns 0.0 before the first record was processed.
        """
        watermark = self.watermark_estimator.current_watermark()
        if watermark is None:
            return 0.0
        return self.throughput_estimator.get_from(watermark)

    async def process(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation:
        """Run phases from the tracker's current mode.

        Returns:
            stop() once the partition is done or a claim was rejected,
            resume(delay) when the partition has to wait on other partitions
        """
        token = partition.token
        mode = tracker.current_mode()
        logger.debug(f"[{token}] Processing partition from {mode}")

        if mode is PartitionMode.QUERY_CHANGE_STREAM and partition.state in (
            PartitionState.CREATED,
            PartitionState.SCHEDULED,
        ):
            partition = await self._store.update_state(token, PartitionState.RUNNING)
            log_partition_state_changed(token=token, state=str(PartitionState.RUNNING))

        for phase in MODE_SEQUENCE[mode.order :]:
            continuation = await self._phases[phase](partition, tracker)
            if continuation is None:
                continue
            if continuation.should_resume:
                log_partition_resumed(
                    token=token,
                    mode=str(tracker.current_mode()),
                    delay=continuation.resume_delay,
                )
            return continuation
        return ProcessContinuation.stop()

    async def _query(
        self,
        partition: PartitionMetadata,
        tracker: PartitionRestrictionTracker,
    ) -> ProcessContinuation | None:
        return await self._query_action.run(
            partition,
            tracker,
            self.watermark_estimator,
            self.rate_limit_policy,
            self.throughput_estimator,
        )
