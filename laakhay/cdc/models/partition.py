"""Partition metadata data models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.config import ROOT_PARTITION_TOKEN
from ..core.enums import PartitionState


class ChildPartition(BaseModel):
    """Child partition announced inside a child partitions record.

    A single parent means the child came from a split; two or more parents
    mean the child is the product of a merge.
    """

    token: str = Field(..., min_length=1)
    parent_tokens: frozenset[str] = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def is_split(self) -> bool:
        return len(self.parent_tokens) == 1

    @property
    def is_merge(self) -> bool:
        return len(self.parent_tokens) > 1


class PendingMergeChild(ChildPartition):
    """Merge child a partition announced but could not register yet.

    Kept on the announcing partition's row so the partition is not deleted
    before the child exists, even across restarts.
    """

    start_timestamp: datetime


class PartitionMetadata(BaseModel):
    """One row of the partition metadata table.

    Rows are owned by the metadata store. Timestamps for the lifecycle
    states (``created_at`` and friends) are assigned by the store at commit
    time and are None on rows that were never written.
    """

    token: str = Field(..., min_length=1)
    parent_tokens: frozenset[str] = Field(default_factory=frozenset)
    start_timestamp: datetime
    inclusive_start: bool = True
    end_timestamp: datetime | None = None
    inclusive_end: bool = False
    heartbeat_millis: int = Field(..., gt=0)
    state: PartitionState = PartitionState.CREATED
    pending_merge_children: tuple[PendingMergeChild, ...] = ()
    created_at: datetime | None = None
    scheduled_at: datetime | None = None
    running_at: datetime | None = None
    finished_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("parent_tokens", mode="before")
    @classmethod
    def coerce_parent_tokens(cls, v):
        """Accept any iterable of tokens (lists come back from JSON)."""
        if v is None:
            return frozenset()
        return frozenset(v)

    @model_validator(mode="after")
    def validate_bounds(self) -> PartitionMetadata:
        """Validate time range and parent set."""
        if self.end_timestamp is not None and self.end_timestamp < self.start_timestamp:
            raise ValueError("end_timestamp must be >= start_timestamp")
        if not self.parent_tokens and self.token != ROOT_PARTITION_TOKEN:
            raise ValueError(f"partition {self.token} must have at least one parent token")
        return self

    @property
    def is_root(self) -> bool:
        return self.token == ROOT_PARTITION_TOKEN

    @classmethod
    def from_child(
        cls,
        child: ChildPartition,
        *,
        start_timestamp: datetime,
        end_timestamp: datetime | None,
        heartbeat_millis: int,
    ) -> PartitionMetadata:
        """Build the CREATED row registering a discovered child partition.

        The child starts (inclusive) where the announcing record starts and
        inherits the parent's exclusive end and heartbeat interval.
        """
        return cls(
            token=child.token,
            parent_tokens=child.parent_tokens,
            start_timestamp=start_timestamp,
            inclusive_start=True,
            end_timestamp=end_timestamp,
            inclusive_end=False,
            heartbeat_millis=heartbeat_millis,
            state=PartitionState.CREATED,
        )
