"""Partition metadata store contract.

Architecture:
    The metadata store is the only mutable resource shared between partition
    readers. All cross-reader coordination (child registration, state
    transitions) goes through these methods; readers never lock in-process
    and never cache rows across calls.

Design Decisions:
    - Protocol-based: any backend implementing these coroutines works
    - Duplicate inserts return InsertResult.ALREADY_EXISTS; every other
      failure raises StoreError
    - run_in_transaction gives serializable read-modify-write, used for
      merge registration
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Protocol, TypeVar

from ..core.enums import InsertResult, PartitionState
from ..models.partition import PartitionMetadata, PendingMergeChild

T = TypeVar("T")


class StoreTransaction(Protocol):
    """Operations available inside a metadata store transaction."""

    async def get(self, token: str) -> PartitionMetadata | None:
        ...

    async def count_in_states(self, tokens: Iterable[str], states: Iterable[PartitionState]) -> int:
        """Count how many of ``tokens`` are currently in one of ``states``."""
        ...

    async def insert(self, row: PartitionMetadata) -> InsertResult:
        ...


class PartitionMetadataStore(Protocol):
    """Durable CRUD and transactional counting over partition rows."""

    async def get(self, token: str) -> PartitionMetadata | None:
        ...

    async def insert(self, row: PartitionMetadata) -> InsertResult:
        """Insert a new row; never overwrites an existing token."""
        ...

    async def delete(self, token: str) -> None:
        """Remove a row; deleting a missing token is a no-op."""
        ...

    async def update_state(self, token: str, state: PartitionState) -> PartitionMetadata:
        """Move a row forward in its lifecycle.

        Raises:
            PartitionNotFoundError: If the token does not exist
            InvalidStateTransitionError: If ``state`` is behind the current state
        """
        ...

    async def add_pending_merge_child(
        self, token: str, child: PendingMergeChild
    ) -> PartitionMetadata:
        """Remember a merge child that partition ``token`` announced but did not register.

        Adding a child token already pending on the row is a no-op.

        Raises:
            PartitionNotFoundError: If the token does not exist
        """
        ...

    async def find_in_state(self, state: PartitionState) -> Sequence[PartitionMetadata]:
        """Rows in ``state`` ordered by start timestamp."""
        ...

    async def count_children_in_states(
        self, parent_token: str, states: Iterable[PartitionState]
    ) -> int:
        ...

    async def count_existing_parents(self, token: str) -> int:
        """How many parents of ``token`` still have a row."""
        ...

    async def count(self) -> int:
        ...

    async def run_in_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        """Run ``fn`` atomically; its writes are discarded if it raises."""
        ...


class SchemaAdmin(Protocol):
    """Applies DDL statements to the metadata database."""

    async def update_ddl(self, statements: Sequence[str]) -> None:
        ...
