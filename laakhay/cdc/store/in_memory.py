"""In-memory partition metadata store.

Suitable for tests and local runs. Each instance is independent: create one
per pipeline (or per test) and pass it to the components that need it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from ..core.enums import InsertResult, PartitionState
from ..core.exceptions import InvalidStateTransitionError, PartitionNotFoundError
from ..models.partition import PartitionMetadata, PendingMergeChild
from .base import StoreTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATE_TIMESTAMP_FIELDS = {
    PartitionState.SCHEDULED: "scheduled_at",
    PartitionState.RUNNING: "running_at",
    PartitionState.FINISHED: "finished_at",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _insert_row(
    rows: dict[str, PartitionMetadata], row: PartitionMetadata, now: datetime
) -> InsertResult:
    if row.token in rows:
        return InsertResult.ALREADY_EXISTS
    rows[row.token] = row.model_copy(update={"created_at": now, "updated_at": now})
    return InsertResult.INSERTED


def _count_in_states(
    rows: dict[str, PartitionMetadata],
    tokens: Iterable[str],
    states: Iterable[PartitionState],
) -> int:
    wanted = set(states)
    count = 0
    for token in set(tokens):
        row = rows.get(token)
        if row is not None and row.state in wanted:
            count += 1
    return count


class _InMemoryTransaction(StoreTransaction):
    """Transaction staging writes on a copy of the table."""

    def __init__(self, rows: dict[str, PartitionMetadata], now: datetime) -> None:
        self._rows = dict(rows)
        self._now = now

    async def get(self, token: str) -> PartitionMetadata | None:
        return self._rows.get(token)

    async def count_in_states(self, tokens: Iterable[str], states: Iterable[PartitionState]) -> int:
        return _count_in_states(self._rows, tokens, states)

    async def insert(self, row: PartitionMetadata) -> InsertResult:
        return _insert_row(self._rows, row, self._now)


class InMemoryPartitionMetadataStore:
    """Partition metadata table held in a dict.

    Architecture:
        A single asyncio.Lock serializes every operation, which makes
        run_in_transaction serializable. Transactions stage writes on a copy
        and swap it in only when the callable returns.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._rows: dict[str, PartitionMetadata] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or _utcnow
        self._ddl_statements: list[str] = []

    @property
    def ddl_statements(self) -> list[str]:
        """DDL applied through update_ddl, in order."""
        return list(self._ddl_statements)

    async def update_ddl(self, statements: Sequence[str]) -> None:
        async with self._lock:
            self._ddl_statements.extend(statements)

    async def get(self, token: str) -> PartitionMetadata | None:
        async with self._lock:
            return self._rows.get(token)

    async def insert(self, row: PartitionMetadata) -> InsertResult:
        async with self._lock:
            return _insert_row(self._rows, row, self._clock())

    async def delete(self, token: str) -> None:
        async with self._lock:
            self._rows.pop(token, None)

    async def update_state(self, token: str, state: PartitionState) -> PartitionMetadata:
        async with self._lock:
            row = self._rows.get(token)
            if row is None:
                raise PartitionNotFoundError(f"partition {token} does not exist", token=token)
            if not row.state.can_transition_to(state):
                raise InvalidStateTransitionError(
                    f"partition {token} cannot move from {row.state} to {state}",
                    token=token,
                    current=row.state,
                    target=state,
                )
            if row.state is state:
                return row
            now = self._clock()
            update: dict[str, object] = {"state": state, "updated_at": now}
            timestamp_field = _STATE_TIMESTAMP_FIELDS.get(state)
            if timestamp_field is not None:
                update[timestamp_field] = now
            updated = row.model_copy(update=update)
            self._rows[token] = updated
            return updated

    async def add_pending_merge_child(
        self, token: str, child: PendingMergeChild
    ) -> PartitionMetadata:
        async with self._lock:
            row = self._rows.get(token)
            if row is None:
                raise PartitionNotFoundError(f"partition {token} does not exist", token=token)
            if any(pending.token == child.token for pending in row.pending_merge_children):
                return row
            updated = row.model_copy(
                update={
                    "pending_merge_children": (*row.pending_merge_children, child),
                    "updated_at": self._clock(),
                }
            )
            self._rows[token] = updated
            return updated

    async def find_in_state(self, state: PartitionState) -> list[PartitionMetadata]:
        async with self._lock:
            rows = [row for row in self._rows.values() if row.state is state]
        return sorted(rows, key=lambda row: (row.start_timestamp, row.token))

    async def count_children_in_states(
        self, parent_token: str, states: Iterable[PartitionState]
    ) -> int:
        wanted = set(states)
        async with self._lock:
            return sum(
                1
                for row in self._rows.values()
                if parent_token in row.parent_tokens and row.state in wanted
            )

    async def count_existing_parents(self, token: str) -> int:
        async with self._lock:
            row = self._rows.get(token)
            if row is None:
                raise PartitionNotFoundError(f"partition {token} does not exist", token=token)
            return sum(1 for parent in row.parent_tokens if parent in self._rows)

    async def count(self) -> int:
        async with self._lock:
            return len(self._rows)

    async def run_in_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        async with self._lock:
            transaction = _InMemoryTransaction(self._rows, self._clock())
            result = await fn(transaction)
            # Commit
            self._rows = transaction._rows
            return result
