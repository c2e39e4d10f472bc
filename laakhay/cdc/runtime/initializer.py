"""Bootstraps the metadata table for a new pipeline.

Provisions the partition metadata table and inserts the synthetic root
partition that every discovered partition descends from.
"""

from __future__ import annotations

import logging

from ..core.config import ROOT_PARENT_TOKENS, ROOT_PARTITION_TOKEN, PipelineConfig
from ..core.enums import InsertResult, PartitionState
from ..models.partition import PartitionMetadata
from ..store.base import PartitionMetadataStore, SchemaAdmin
from ..store.schema import build_metadata_table_ddl

logger = logging.getLogger(__name__)


class PipelineInitializer:
    def __init__(
        self,
        schema_admin: SchemaAdmin | None,
        store: PartitionMetadataStore,
        config: PipelineConfig,
    ) -> None:
        self._schema_admin = schema_admin
        self._store = store
        self._config = config

    async def initialize(self) -> PartitionMetadata:
        """Create the metadata table (if an admin is given) and the root partition.

        Returns:
            The root partition row as it was built
        """
        if self._schema_admin is not None:
            await self.create_metadata_table()
        return await self.create_root_partition()

    async def create_metadata_table(self) -> None:
        table = self._config.metadata_table
        logger.info(f"Creating partition metadata table {table}")
        await self._schema_admin.update_ddl([build_metadata_table_ddl(table)])

    async def create_root_partition(self) -> PartitionMetadata:
        root = PartitionMetadata(
            token=ROOT_PARTITION_TOKEN,
            parent_tokens=ROOT_PARENT_TOKENS,
            start_timestamp=self._config.start_at,
            end_timestamp=self._config.end_at,
            heartbeat_millis=self._config.heartbeat_millis,
            state=PartitionState.CREATED,
        )
        result = await self._store.insert(root)
        if result is InsertResult.ALREADY_EXISTS:
            logger.info(f"Root partition {ROOT_PARTITION_TOKEN} already exists, reusing it")
        else:
            logger.info(
                f"Inserted root partition {ROOT_PARTITION_TOKEN} "
                f"[{root.start_timestamp.isoformat()}, "
                f"{root.end_timestamp.isoformat() if root.end_timestamp else 'unbounded'})"
            )
        return root
