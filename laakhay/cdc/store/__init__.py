"""Partition metadata store contract and implementations."""

from .base import PartitionMetadataStore, SchemaAdmin, StoreTransaction
from .in_memory import InMemoryPartitionMetadataStore
from .schema import METADATA_COLUMNS, build_metadata_table_ddl

__all__ = [
    "InMemoryPartitionMetadataStore",
    "METADATA_COLUMNS",
    "PartitionMetadataStore",
    "SchemaAdmin",
    "StoreTransaction",
    "build_metadata_table_ddl",
]
