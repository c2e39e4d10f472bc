"""Laakhay CDC - Change stream partition tracking and flow control."""

from .actions import ProcessContinuation
from .core import (
    DEFAULT_HEARTBEAT_MILLIS,
    DEFAULT_METADATA_TABLE,
    ROOT_PARTITION_TOKEN,
    CdcError,
    InsertResult,
    InvalidStateTransitionError,
    MalformedRecordError,
    ModType,
    PartitionMode,
    PartitionNotFoundError,
    PartitionState,
    PipelineConfig,
    RestrictionError,
    SchemaAdminError,
    SourceError,
    StoreError,
    ThrottledError,
)
from .io import ChangeStreamSource, HttpSchemaAdmin, WebSocketChangeStreamSource
from .models import (
    ChangeStreamRecordMetadata,
    ChildPartition,
    ChildPartitionsRecord,
    DataChangeRecord,
    HeartbeatRecord,
    PartitionMetadata,
    PendingMergeChild,
    parse_record,
)
from .restriction import (
    ManualWatermarkEstimator,
    PartitionPosition,
    PartitionRestriction,
    PartitionRestrictionTracker,
    ThroughputEstimator,
)
from .runtime import (
    ChangeStreamPipeline,
    PartitionReader,
    PipelineInitializer,
    RateLimitPolicy,
    with_default_rate_limiter,
    with_delay,
    with_fixed_delay,
    without_limiter,
)
from .store import InMemoryPartitionMetadataStore, PartitionMetadataStore, SchemaAdmin

__version__ = "0.1.0"

__all__ = [
    # Config
    "DEFAULT_HEARTBEAT_MILLIS",
    "DEFAULT_METADATA_TABLE",
    "ROOT_PARTITION_TOKEN",
    "PipelineConfig",
    # Enums
    "InsertResult",
    "ModType",
    "PartitionMode",
    "PartitionState",
    # Models
    "ChangeStreamRecordMetadata",
    "ChildPartition",
    "ChildPartitionsRecord",
    "DataChangeRecord",
    "HeartbeatRecord",
    "PartitionMetadata",
    "PendingMergeChild",
    "parse_record",
    # Restriction tracking
    "ManualWatermarkEstimator",
    "PartitionPosition",
    "PartitionRestriction",
    "PartitionRestrictionTracker",
    "ThroughputEstimator",
    # Store
    "InMemoryPartitionMetadataStore",
    "PartitionMetadataStore",
    "SchemaAdmin",
    # IO
    "ChangeStreamSource",
    "HttpSchemaAdmin",
    "WebSocketChangeStreamSource",
    # Runtime
    "ChangeStreamPipeline",
    "PartitionReader",
    "PipelineInitializer",
    "ProcessContinuation",
    "RateLimitPolicy",
    "with_default_rate_limiter",
    "with_delay",
    "with_fixed_delay",
    "without_limiter",
    # Exceptions
    "CdcError",
    "StoreError",
    "PartitionNotFoundError",
    "InvalidStateTransitionError",
    "SchemaAdminError",
    "MalformedRecordError",
    "SourceError",
    "ThrottledError",
    "RestrictionError",
]
