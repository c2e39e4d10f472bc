"""Core components."""

from .config import (
    DEFAULT_HEARTBEAT_MILLIS,
    DEFAULT_METADATA_TABLE,
    ROOT_PARTITION_TOKEN,
    PipelineConfig,
)
from .enums import MODE_SEQUENCE, InsertResult, ModType, PartitionMode, PartitionState
from .exceptions import (
    CdcError,
    InvalidStateTransitionError,
    MalformedRecordError,
    PartitionNotFoundError,
    RestrictionError,
    SchemaAdminError,
    SourceError,
    StoreError,
    ThrottledError,
)

__all__ = [
    # Config
    "DEFAULT_HEARTBEAT_MILLIS",
    "DEFAULT_METADATA_TABLE",
    "ROOT_PARTITION_TOKEN",
    "PipelineConfig",
    # Enums
    "MODE_SEQUENCE",
    "InsertResult",
    "ModType",
    "PartitionMode",
    "PartitionState",
    # Exceptions
    "CdcError",
    "InvalidStateTransitionError",
    "MalformedRecordError",
    "PartitionNotFoundError",
    "RestrictionError",
    "SchemaAdminError",
    "SourceError",
    "StoreError",
    "ThrottledError",
]
