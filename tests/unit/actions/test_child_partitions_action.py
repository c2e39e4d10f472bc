"""Unit tests for ChildPartitionsRecordAction."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from laakhay.cdc.actions import ChildPartitionsRecordAction, ProcessContinuation
from laakhay.cdc.core import InsertResult, MalformedRecordError, PartitionState
from laakhay.cdc.actions.child_partitions import register_pending_merge_child
from laakhay.cdc.models import ChildPartition, ChildPartitionsRecord, PendingMergeChild
from laakhay.cdc.restriction import (
    PartitionPosition,
    PartitionRestriction,
    PartitionRestrictionTracker,
)


def tracker_for(partition):
    return PartitionRestrictionTracker(PartitionRestriction.from_partition(partition))


def record(start, *children):
    return ChildPartitionsRecord(
        start_timestamp=start,
        record_sequence="1",
        child_partitions=[
            ChildPartition(token=token, parent_tokens=parents) for token, parents in children
        ],
    )


class TestSplit:
    """Split children are inserted directly."""

    @pytest.mark.asyncio
    async def test_inserts_children(self, store, make_partition, at):
        """Each split child becomes a CREATED row starting at the record."""
        parent = make_partition("A", start=at(0), end=at(60), heartbeat_millis=2000)
        await store.insert(parent)
        watermark = MagicMock()

        result = await ChildPartitionsRecordAction(store).run(
            parent,
            record(at(10), ("B", {"A"}), ("C", {"A"})),
            tracker_for(parent),
            watermark,
        )

        assert result is None
        watermark.set_watermark.assert_called_once_with(at(10))
        for token in ("B", "C"):
            child = await store.get(token)
            assert child.parent_tokens == frozenset({"A"})
            assert child.start_timestamp == at(10)
            assert child.end_timestamp == at(60)
            assert child.heartbeat_millis == 2000
            assert child.state is PartitionState.CREATED

    @pytest.mark.asyncio
    async def test_duplicate_is_ignored(self, store, make_partition, at):
        """Replaying the record leaves the existing row untouched."""
        parent = make_partition("A")
        await store.insert(parent)
        action = ChildPartitionsRecordAction(store)
        await action.run(parent, record(at(10), ("B", {"A"})), tracker_for(parent), MagicMock())
        await store.update_state("B", PartitionState.RUNNING)

        result = await action.run(
            parent, record(at(10), ("B", {"A"})), tracker_for(parent), MagicMock()
        )

        assert result is None
        assert (await store.get("B")).state is PartitionState.RUNNING

    @pytest.mark.asyncio
    async def test_store_error_propagates(self, make_partition, at):
        """Failures other than duplicates are raised."""
        parent = make_partition("A")
        failing = MagicMock()
        failing.insert = AsyncMock(side_effect=RuntimeError("unavailable"))
        with pytest.raises(RuntimeError):
            await ChildPartitionsRecordAction(failing).run(
                parent, record(at(10), ("B", {"A"})), tracker_for(parent), MagicMock()
            )


class TestMerge:
    """Merge children are inserted by the last parent."""

    @pytest.mark.asyncio
    async def test_skipped_while_other_parent_unfinished(self, store, make_partition, at):
        """With no other parent finished the child is not inserted."""
        a = make_partition("A")
        await store.insert(a)
        await store.insert(make_partition("B"))

        await ChildPartitionsRecordAction(store).run(
            a, record(at(10), ("C", {"A", "B"})), tracker_for(a), MagicMock()
        )
        assert await store.get("C") is None
        pending = (await store.get("A")).pending_merge_children
        assert pending == (
            PendingMergeChild(token="C", parent_tokens={"A", "B"}, start_timestamp=at(10)),
        )

    @pytest.mark.asyncio
    async def test_inserted_when_others_finished(self, store, make_partition, at):
        """Exactly n-1 finished parents lets this parent insert the child."""
        a = make_partition("A")
        await store.insert(a)
        await store.insert(make_partition("B", state=PartitionState.FINISHED))

        await ChildPartitionsRecordAction(store).run(
            a, record(at(10), ("C", {"A", "B"})), tracker_for(a), MagicMock()
        )
        child = await store.get("C")
        assert child.parent_tokens == frozenset({"A", "B"})

    @pytest.mark.asyncio
    async def test_concurrent_parents_insert_once(self, store, make_partition, at):
        """Parents racing with n-1 finished yield exactly one row."""
        a = make_partition("A")
        b = make_partition("B")
        await store.insert(a)
        await store.insert(b)
        await store.insert(make_partition("X", state=PartitionState.FINISHED))
        inserts = []
        run_in_transaction = store.run_in_transaction

        async def counting(fn):
            result = await run_in_transaction(fn)
            inserts.append(result)
            return result

        store.run_in_transaction = counting
        # B and X finished: both racing parents see n-1 finished parents
        await store.update_state("B", PartitionState.FINISHED)
        announced = record(at(10), ("C", {"A", "B", "X"}))
        await asyncio.gather(
            ChildPartitionsRecordAction(store).run(a, announced, tracker_for(a), MagicMock()),
            ChildPartitionsRecordAction(store).run(b, announced, tracker_for(b), MagicMock()),
        )

        assert inserts.count(InsertResult.INSERTED) == 1
        assert inserts.count(InsertResult.ALREADY_EXISTS) == 1
        assert await store.count() == 4


class TestPendingMerge:
    """Merge children a finished parent could not register yet."""

    @pytest.mark.asyncio
    async def test_waits_for_co_parents(self, store, make_partition, at):
        """The child stays pending while a co-parent is still running."""
        a = make_partition("A", end=at(60), state=PartitionState.FINISHED)
        await store.insert(a)
        await store.insert(make_partition("B", state=PartitionState.RUNNING))
        child = PendingMergeChild(token="C", parent_tokens={"A", "B"}, start_timestamp=at(10))

        assert await register_pending_merge_child(store, a, child) is False
        assert await store.get("C") is None

    @pytest.mark.asyncio
    async def test_inserted_once_co_parents_finished(self, store, make_partition, at):
        """A finished parent registers the child once every co-parent finished."""
        a = make_partition("A", end=at(60), state=PartitionState.FINISHED, heartbeat_millis=2000)
        await store.insert(a)
        await store.insert(make_partition("B", state=PartitionState.FINISHED))
        child = PendingMergeChild(token="C", parent_tokens={"A", "B"}, start_timestamp=at(10))

        assert await register_pending_merge_child(store, a, child) is True
        row = await store.get("C")
        assert row.parent_tokens == frozenset({"A", "B"})
        assert row.start_timestamp == at(10)
        assert row.end_timestamp == at(60)
        assert row.heartbeat_millis == 2000
        assert row.state is PartitionState.CREATED

    @pytest.mark.asyncio
    async def test_existing_child_is_resolved(self, store, make_partition, at):
        """A child another parent already inserted counts as registered."""
        a = make_partition("A", state=PartitionState.FINISHED)
        await store.insert(a)
        await store.insert(make_partition("B", state=PartitionState.RUNNING))
        await store.insert(make_partition("C", parents=("A", "B"), start=at(10)))
        child = PendingMergeChild(token="C", parent_tokens={"A", "B"}, start_timestamp=at(10))

        assert await register_pending_merge_child(store, a, child) is True
        assert await store.count() == 3


@pytest.mark.asyncio
async def test_malformed_child_rejected(store, make_partition, at):
    """A child that does not list the announcing partition is malformed."""
    parent = make_partition("A")
    await store.insert(parent)
    with pytest.raises(MalformedRecordError):
        await ChildPartitionsRecordAction(store).run(
            parent, record(at(10), ("C", {"X"})), tracker_for(parent), MagicMock()
        )
    assert await store.get("C") is None


@pytest.mark.asyncio
async def test_stops_when_claim_fails(store, make_partition, at):
    """A record behind the cursor stops without inserting."""
    parent = make_partition("A")
    tracker = tracker_for(parent)
    tracker.try_claim(PartitionPosition.query_change_stream(at(30)))

    result = await ChildPartitionsRecordAction(store).run(
        parent, record(at(10), ("B", {"A"})), tracker, MagicMock()
    )
    assert result == ProcessContinuation.stop()
    assert await store.count() == 0
