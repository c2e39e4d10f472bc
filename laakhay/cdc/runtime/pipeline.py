"""Change stream pipeline orchestration.

Architecture:
    The pipeline bootstraps the metadata table, then alternates between
    detecting newly CREATED partitions and reading them. Every scheduled
    partition gets its own task and its own PartitionReader; concurrency
    is bounded by a semaphore so at most ``max_concurrency`` partitions
    are being read at once.

    A reader that asks to resume releases its slot while it waits and is
    re-run from the residual restriction of its tracker. A reader that
    stops before DONE (a rejected claim) yields the same way and is re-run
    from its checkpoint after ``detect_interval``. A reader that fails on a
    store or source error is retried from its checkpoint with exponential
    backoff. Readers pace their polls with the adaptive default rate limit
    policy unless a factory is given.

Design Decisions:
    - Store instances are passed in explicitly, there is no global registry
    - The pipeline ends once the metadata table is empty or on stop()
    - Malformed records are fatal and propagate out of run()
    - Rows an earlier run left SCHEDULED or RUNNING restart from their
      query phase, FINISHED rows restart from waiting on their parents
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from ..actions.continuation import ProcessContinuation
from ..actions.data_change import RecordEmitter
from ..core.config import PipelineConfig
from ..core.enums import PartitionMode, PartitionState
from ..core.exceptions import SourceError, StoreError
from ..io.base import ChangeStreamSource
from ..models.partition import PartitionMetadata
from ..restriction.throughput import ThroughputEstimator
from ..restriction.tracker import PartitionRestriction, PartitionRestrictionTracker
from ..store.base import PartitionMetadataStore, SchemaAdmin
from .detect import DetectNewPartitionsAction
from .initializer import PipelineInitializer
from .rate_limit import RateLimitPolicy, Sleeper, with_default_rate_limiter
from .reader import PartitionReader

logger = logging.getLogger(__name__)

RateLimitFactory = Callable[[], RateLimitPolicy]

MAX_RETRY_BACKOFF = 30.0


class ChangeStreamPipeline:
    """Reads every partition of a change stream until all are deleted."""

    def __init__(
        self,
        config: PipelineConfig,
        store: PartitionMetadataStore,
        source: ChangeStreamSource,
        *,
        schema_admin: SchemaAdmin | None = None,
        emit: RecordEmitter | None = None,
        rate_limit_factory: RateLimitFactory | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config
        self._store = store
        self._source = source
        self._emit = emit
        self._rate_limit_factory = rate_limit_factory or self._default_rate_limit_policy
        self._clock = clock
        self._sleep = sleep

        self._initializer = PipelineInitializer(schema_admin, store, config)
        self._detect_action = DetectNewPartitionsAction(store)
        self._semaphore = asyncio.Semaphore(config.max_concurrency)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._readers: dict[str, PartitionReader] = {}
        self._stopping = asyncio.Event()

    @property
    def active_partitions(self) -> list[str]:
        """Tokens of partitions with a live reader task."""
        return sorted(self._tasks)

    @property
    def throughput(self) -> dict[str, float]:
        """Estimated bytes per commit timestamp of every live reader."""
        return {token: reader.estimated_throughput() for token, reader in self._readers.items()}

    def stop(self) -> None:
        """Ask run() to cancel its readers and return."""
        self._stopping.set()

    async def run(self) -> None:
        """Initialize the metadata table and read partitions until none remain.

        Raises:
            MalformedRecordError: If a partition received an inconsistent record
            StoreError: If a partition kept failing after max_retries attempts
            SourceError: If a partition kept failing after max_retries attempts
        """
        await self._initializer.initialize()
        logger.info(f"Pipeline started on table {self._config.metadata_table}")
        await self._recover()

        try:
            while not self._stopping.is_set():
                for partition in await self._detect_action.run():
                    self._spawn(partition)

                self._raise_failures()
                if not self._tasks and await self._store.count() == 0:
                    logger.info("All partitions deleted, pipeline finished")
                    return

                await self._wait_for_progress()
                self._raise_failures()
        finally:
            await self._cancel_all()

    async def _recover(self) -> None:
        """Pick up partitions left in flight by a previous run."""
        for state in (PartitionState.SCHEDULED, PartitionState.RUNNING, PartitionState.FINISHED):
            for partition in await self._store.find_in_state(state):
                logger.info(f"[{partition.token}] Recovering partition in state {state}")
                self._spawn(partition)

    def _spawn(self, partition: PartitionMetadata) -> None:
        if partition.token in self._tasks:
            return
        logger.debug(f"[{partition.token}] Spawning reader")
        task = asyncio.create_task(self._read_partition(partition), name=f"partition-{partition.token}")
        self._tasks[partition.token] = task

    async def _wait_for_progress(self) -> None:
        stop_waiter = asyncio.create_task(self._stopping.wait())
        try:
            await asyncio.wait(
                [stop_waiter, *self._tasks.values()],
                timeout=self._config.detect_interval,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stop_waiter.cancel()

    def _raise_failures(self) -> None:
        for token, task in list(self._tasks.items()):
            if not task.done():
                continue
            del self._tasks[token]
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                logger.error(f"[{token}] Reader failed: {error}", exc_info=error)
                raise error

    async def _cancel_all(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _default_rate_limit_policy(self) -> RateLimitPolicy:
        return with_default_rate_limiter(sleep=self._sleep)

    def _new_reader(self) -> PartitionReader:
        return PartitionReader(
            self._store,
            self._source,
            emit=self._emit,
            rate_limit_policy=self._rate_limit_factory(),
            throughput_estimator=ThroughputEstimator(self._config.throughput_window_seconds),
            wait_for_children_delay=self._config.wait_for_children_delay,
            wait_for_parents_delay=self._config.wait_for_parents_delay,
            clock=self._clock,
            sleep=self._sleep,
        )

    async def _read_partition(self, partition: PartitionMetadata) -> None:
        reader = self._new_reader()
        self._readers[partition.token] = reader
        try:
            await self._drive(reader, partition)
        finally:
            self._readers.pop(partition.token, None)

    async def _drive(self, reader: PartitionReader, partition: PartitionMetadata) -> None:
        restriction = PartitionRestriction.from_partition(partition)
        if partition.state is PartitionState.FINISHED:
            restriction = replace(restriction, mode=PartitionMode.WAIT_FOR_PARENT_PARTITIONS)
        attempt = 0

        while True:
            tracker = PartitionRestrictionTracker(restriction)
            try:
                async with self._semaphore:
                    continuation = await reader.process(partition, tracker)
            except (StoreError, SourceError) as e:
                attempt += 1
                restriction = tracker.checkpoint()
                if attempt > self._config.max_retries:
                    raise
                delay = min(2**attempt, MAX_RETRY_BACKOFF)
                logger.warning(
                    f"[{partition.token}] Reader failed (attempt {attempt}/{self._config.max_retries}), "
                    f"retrying from {restriction.mode} in {delay}s: {e}"
                )
                await self._sleep(delay)
                partition = await self._refresh(partition)
                if partition is None:
                    return
                continue

            attempt = 0
            restriction = tracker.checkpoint()
            if continuation.should_resume:
                await self._resume_after(continuation)
            elif tracker.is_done():
                logger.debug(f"[{partition.token}] Reader done")
                return
            else:
                logger.debug(
                    f"[{partition.token}] Reader yielded in {tracker.current_mode()}, "
                    f"rescheduling from {restriction.mode}"
                )
                await self._sleep(self._config.detect_interval)
            partition = await self._refresh(partition)
            if partition is None:
                return

    async def _resume_after(self, continuation: ProcessContinuation) -> None:
        await self._sleep(continuation.resume_delay or 0)

    async def _refresh(self, partition: PartitionMetadata) -> PartitionMetadata | None:
        current = await self._store.get(partition.token)
        if current is None:
            logger.debug(f"[{partition.token}] Partition row is gone, reader exits")
        return current
