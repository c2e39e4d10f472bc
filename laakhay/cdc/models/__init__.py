"""Data models for partitions and change stream records.

Architecture:
    This module exports the Pydantic v2 models used throughout the library.
    All models are immutable (frozen=True): partition rows belong to the
    metadata store and records belong to the source, so processing code only
    ever builds new instances.

Model Categories:
    - Partitions: PartitionMetadata, ChildPartition, PendingMergeChild
    - Records: DataChangeRecord, HeartbeatRecord, ChildPartitionsRecord
    - Metadata: ChangeStreamRecordMetadata
"""

from .partition import ChildPartition, PartitionMetadata, PendingMergeChild
from .records import (
    ChangeStreamRecord,
    ChangeStreamRecordMetadata,
    ChildPartitionsRecord,
    DataChangeRecord,
    HeartbeatRecord,
    parse_record,
)

__all__ = [
    "ChangeStreamRecord",
    "ChangeStreamRecordMetadata",
    "ChildPartition",
    "ChildPartitionsRecord",
    "DataChangeRecord",
    "HeartbeatRecord",
    "PartitionMetadata",
    "PendingMergeChild",
    "parse_record",
]
