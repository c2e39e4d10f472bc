"""Change stream record models.

Architecture:
    The source emits three kinds of records per partition query. They form a
    closed tagged union discriminated by ``record_type`` so that the query
    action can hand each record to exactly one handler with a single check.

Design Decisions:
    - Pydantic discriminated union: JSON payloads from the websocket source
      are parsed straight into the right model
    - Frozen models: records are never mutated; annotated copies are made
      with ``model_copy``
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..core.enums import ModType
from .partition import ChildPartition


class ChangeStreamRecordMetadata(BaseModel):
    """Processing metadata attached to records emitted downstream."""

    partition_token: str
    record_timestamp: datetime
    partition_start_timestamp: datetime
    partition_end_timestamp: datetime | None = None
    partition_created_at: datetime | None = None
    partition_scheduled_at: datetime | None = None
    partition_running_at: datetime | None = None
    query_started_at: datetime | None = None
    record_stream_started_at: datetime | None = None
    record_stream_ended_at: datetime | None = None
    record_read_at: datetime | None = None
    total_stream_time_millis: int = 0
    number_of_records_read: int = 0

    model_config = ConfigDict(frozen=True)


class HeartbeatRecord(BaseModel):
    """Signals that no data was committed in the partition up to ``timestamp``."""

    record_type: Literal["heartbeat"] = "heartbeat"
    timestamp: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def record_timestamp(self) -> datetime:
        return self.timestamp


class ChildPartitionsRecord(BaseModel):
    """Announces partitions that continue this one from ``start_timestamp``."""

    record_type: Literal["child_partitions"] = "child_partitions"
    start_timestamp: datetime
    record_sequence: str = ""
    child_partitions: list[ChildPartition] = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @property
    def record_timestamp(self) -> datetime:
        return self.start_timestamp


class DataChangeRecord(BaseModel):
    """A committed row mutation captured by the change stream."""

    record_type: Literal["data_change"] = "data_change"
    partition_token: str
    commit_timestamp: datetime
    transaction_id: str
    record_sequence: str = ""
    is_last_record_in_transaction: bool = True
    table_name: str
    mod_type: ModType
    mods: list[dict[str, Any]] = Field(default_factory=list)
    number_of_records_in_transaction: int = 1
    number_of_partitions_in_transaction: int = 1
    metadata: ChangeStreamRecordMetadata | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def record_timestamp(self) -> datetime:
        return self.commit_timestamp

    def size_bytes(self) -> int:
        """Serialized size, used for throughput estimation."""
        return len(self.model_dump_json(exclude={"metadata"}).encode("utf-8"))


ChangeStreamRecord = Annotated[
    Union[DataChangeRecord, HeartbeatRecord, ChildPartitionsRecord],
    Field(discriminator="record_type"),
]

_RECORD_ADAPTER: TypeAdapter[ChangeStreamRecord] = TypeAdapter(ChangeStreamRecord)


def parse_record(payload: dict[str, Any]) -> DataChangeRecord | HeartbeatRecord | ChildPartitionsRecord:
    """Parse one JSON payload into its record model.

    Raises:
        pydantic.ValidationError: If the payload matches no record type
    """
    return _RECORD_ADAPTER.validate_python(payload)
