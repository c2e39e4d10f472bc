"""Child partitions record handling.

Architecture:
    A child partitions record announces the partitions that continue the
    current one. Each child is registered in the metadata store exactly
    once, no matter how many readers observe the record:

    - Split (one parent): the only parent inserts the child directly.
    - Merge (several parents): every parent runs a transaction counting the
      child's parents already FINISHED and inserts the child only when that
      count equals ``len(parent_tokens) - 1``.

    In both cases a duplicate key is an expected outcome (a retry or a
    racing parent already inserted the row) and is ignored. The store's
    uniqueness on the token is the actual exactly-once guarantee.

    A parent that skips a merge insert records the child as pending on its
    own row. Once that parent is FINISHED it retries with
    register_pending_merge_child(), counting its co-parents: the child is
    inserted when all ``len(parent_tokens) - 1`` of them are FINISHED. A
    partition keeps its row until none of its merge children are pending,
    so a co-parent always finds it when counting.
"""

from __future__ import annotations

import logging

from ..core.enums import InsertResult, PartitionState
from ..core.exceptions import MalformedRecordError
from ..models.partition import ChildPartition, PartitionMetadata, PendingMergeChild
from ..models.records import ChildPartitionsRecord
from ..restriction.position import PartitionPosition
from ..restriction.tracker import PartitionRestrictionTracker
from ..restriction.watermark import WatermarkEstimator
from ..store.base import PartitionMetadataStore, StoreTransaction
from ..telemetry import log_action_stopped, log_child_partition_registered
from .continuation import ProcessContinuation

logger = logging.getLogger(__name__)


class ChildPartitionsRecordAction:
    """Registers split and merge children announced by a partition."""

    def __init__(self, store: PartitionMetadataStore) -> None:
        self._store = store

    async def run(
        self,
        partition: PartitionMetadata,
        record: ChildPartitionsRecord,
        tracker: PartitionRestrictionTracker,
        watermark_estimator: WatermarkEstimator,
    ) -> ProcessContinuation | None:
        token = partition.token
        logger.debug(f"[{token}] Processing child partitions record {record.record_sequence}")

        start_timestamp = record.start_timestamp
        position = PartitionPosition.query_change_stream(start_timestamp)
        if not tracker.try_claim(position):
            log_action_stopped(token=token, action=type(self).__name__, position=str(position))
            return ProcessContinuation.stop()
        watermark_estimator.set_watermark(start_timestamp)

        for child in record.child_partitions:
            if token not in child.parent_tokens:
                raise MalformedRecordError(
                    f"child partition {child.token} does not list {token} among its parents "
                    f"{sorted(child.parent_tokens)}",
                    token=token,
                )
            if child.is_split:
                await self._process_split(partition, record, child)
            else:
                await self._process_merge(partition, record, child)

        logger.debug(f"[{token}] Child partitions action completed successfully")
        return None

    async def _process_split(
        self,
        partition: PartitionMetadata,
        record: ChildPartitionsRecord,
        child: ChildPartition,
    ) -> None:
        token = partition.token
        logger.debug(f"[{token}] Processing child partition split event for {child.token}")

        result = await self._store.insert(self._to_partition_metadata(partition, record, child))
        if result is InsertResult.ALREADY_EXISTS:
            logger.debug(f"[{token}] Child partition token {child.token} already exists, skipping")
        log_child_partition_registered(
            token=token,
            child_token=child.token,
            kind="split",
            inserted=result.inserted,
            start_timestamp=record.start_timestamp,
        )

    async def _process_merge(
        self,
        partition: PartitionMetadata,
        record: ChildPartitionsRecord,
        child: ChildPartition,
    ) -> None:
        token = partition.token
        logger.debug(f"[{token}] Processing child partition merge event for {child.token}")
        expected_finished = len(child.parent_tokens) - 1

        async def register(transaction: StoreTransaction) -> InsertResult | None:
            finished_parents = await transaction.count_in_states(
                child.parent_tokens, [PartitionState.FINISHED]
            )
            if finished_parents != expected_finished:
                logger.debug(
                    f"[{token}] At least one parent is not finished "
                    f"(finished_parents = {finished_parents}, "
                    f"expected_to_be_finished = {expected_finished}), "
                    f"skipping child partition insertion"
                )
                return None
            logger.debug(f"[{token}] All other parents are finished, inserting child {child.token}")
            return await transaction.insert(self._to_partition_metadata(partition, record, child))

        result = await self._store.run_in_transaction(register)
        if result is InsertResult.ALREADY_EXISTS:
            logger.debug(f"[{token}] Child partition token {child.token} already exists, skipping")
        elif result is None:
            await self._store.add_pending_merge_child(
                token,
                PendingMergeChild(
                    token=child.token,
                    parent_tokens=child.parent_tokens,
                    start_timestamp=record.start_timestamp,
                ),
            )
        log_child_partition_registered(
            token=token,
            child_token=child.token,
            kind="merge",
            inserted=result is InsertResult.INSERTED,
            start_timestamp=record.start_timestamp,
        )

    @staticmethod
    def _to_partition_metadata(
        partition: PartitionMetadata,
        record: ChildPartitionsRecord,
        child: ChildPartition,
    ) -> PartitionMetadata:
        return PartitionMetadata.from_child(
            child,
            start_timestamp=record.start_timestamp,
            end_timestamp=partition.end_timestamp,
            heartbeat_millis=partition.heartbeat_millis,
        )


async def register_pending_merge_child(
    store: PartitionMetadataStore,
    partition: PartitionMetadata,
    child: PendingMergeChild,
) -> bool:
    """Retry registering a merge child ``partition`` announced earlier.

    Runs once ``partition`` is FINISHED, so only its co-parents are counted.

    Returns:
        True if the child row exists after the call
    """
    token = partition.token
    co_parents = child.parent_tokens - {token}
    expected_finished = len(child.parent_tokens) - 1

    async def register(transaction: StoreTransaction) -> InsertResult | None:
        if await transaction.get(child.token) is not None:
            return InsertResult.ALREADY_EXISTS
        finished_parents = await transaction.count_in_states(co_parents, [PartitionState.FINISHED])
        if finished_parents != expected_finished:
            logger.debug(
                f"[{token}] {finished_parents}/{expected_finished} co-parents of "
                f"{child.token} finished, child stays pending"
            )
            return None
        return await transaction.insert(
            PartitionMetadata.from_child(
                child,
                start_timestamp=child.start_timestamp,
                end_timestamp=partition.end_timestamp,
                heartbeat_millis=partition.heartbeat_millis,
            )
        )

    result = await store.run_in_transaction(register)
    if result is InsertResult.INSERTED:
        log_child_partition_registered(
            token=token,
            child_token=child.token,
            kind="merge",
            inserted=True,
            start_timestamp=child.start_timestamp,
        )
    return result is not None
