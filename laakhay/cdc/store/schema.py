"""Metadata table layout."""

from __future__ import annotations

COLUMN_PARTITION_TOKEN = "PartitionToken"
COLUMN_PARENT_TOKENS = "ParentTokens"
COLUMN_START_TIMESTAMP = "StartTimestamp"
COLUMN_INCLUSIVE_START = "InclusiveStart"
COLUMN_END_TIMESTAMP = "EndTimestamp"
COLUMN_INCLUSIVE_END = "InclusiveEnd"
COLUMN_HEARTBEAT_MILLIS = "HeartbeatMillis"
COLUMN_STATE = "State"
COLUMN_PENDING_MERGE_CHILDREN = "PendingMergeChildren"
COLUMN_CREATED_AT = "CreatedAt"
COLUMN_UPDATED_AT = "UpdatedAt"

# (column, type, constraint)
METADATA_COLUMNS: tuple[tuple[str, str, str], ...] = (
    (COLUMN_PARTITION_TOKEN, "STRING(MAX)", "NOT NULL"),
    (COLUMN_PARENT_TOKENS, "ARRAY<STRING(MAX)>", "NOT NULL"),
    (COLUMN_START_TIMESTAMP, "TIMESTAMP", "NOT NULL"),
    (COLUMN_INCLUSIVE_START, "BOOL", "NOT NULL"),
    (COLUMN_END_TIMESTAMP, "TIMESTAMP", ""),
    (COLUMN_INCLUSIVE_END, "BOOL", ""),
    (COLUMN_HEARTBEAT_MILLIS, "INT64", "NOT NULL"),
    (COLUMN_STATE, "STRING(MAX)", "NOT NULL"),
    (COLUMN_PENDING_MERGE_CHILDREN, "JSON", ""),
    (COLUMN_CREATED_AT, "TIMESTAMP", "NOT NULL OPTIONS (allow_commit_timestamp=true)"),
    (COLUMN_UPDATED_AT, "TIMESTAMP", "NOT NULL OPTIONS (allow_commit_timestamp=true)"),
)


def build_metadata_table_ddl(table_name: str) -> str:
    """CREATE TABLE statement for the partition metadata table.

    Args:
        table_name: Name of the table to create

    Returns:
        DDL statement keyed by partition token
    """
    if not table_name:
        raise ValueError("table_name cannot be empty")
    columns = ", ".join(
        " ".join(part for part in (name, column_type, constraint) if part)
        for name, column_type, constraint in METADATA_COLUMNS
    )
    return f"CREATE TABLE {table_name} ({columns}) PRIMARY KEY ({COLUMN_PARTITION_TOKEN})"
