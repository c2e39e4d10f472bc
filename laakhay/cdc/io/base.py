"""Change stream source contract."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from datetime import datetime
from typing import Protocol

from ..models.partition import PartitionMetadata
from ..models.records import ChildPartitionsRecord, DataChangeRecord, HeartbeatRecord

RecordBatch = Sequence[DataChangeRecord | HeartbeatRecord | ChildPartitionsRecord]


class ChangeStreamSource(Protocol):
    """Upstream change stream queried one partition at a time.

    A query yields batches of records in timestamp order and completes once
    the partition has nothing more to emit in the requested range. Sources
    raise ThrottledError when the upstream asks the reader to back off.
    """

    def read(
        self,
        partition: PartitionMetadata,
        start_timestamp: datetime,
        end_timestamp: datetime | None,
    ) -> AsyncIterator[RecordBatch]:
        ...
