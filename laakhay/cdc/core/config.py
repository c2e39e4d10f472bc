"""Shared configuration constants and pipeline settings.

This module centralizes the defaults used by the initializer, the rate limit
policies and the throughput estimator so the runtime modules can stay small
and focused.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# Synthetic root partition inserted at pipeline start
ROOT_PARTITION_TOKEN = "Parent0"
ROOT_PARENT_TOKENS: frozenset[str] = frozenset()

DEFAULT_HEARTBEAT_MILLIS = 5000
DEFAULT_METADATA_TABLE = "CdcPartitionMetadata"

# Throughput estimator window, in seconds of source time
DEFAULT_THROUGHPUT_WINDOW_SECONDS = 60

# Rate limit defaults (seconds)
DEFAULT_FIXED_DELAY = 1.0
DEFAULT_EMPTY_SUCCESS_BASE_DELAY = 1.0
DEFAULT_THROTTLED_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 5.0
DEFAULT_BACKOFF_EXPONENT = 1.5
DEFAULT_RANDOMIZATION_FACTOR = 0.5

# Delay before re-running a partition that asked to resume later (seconds)
DEFAULT_WAIT_FOR_CHILDREN_DELAY = 1.0
DEFAULT_WAIT_FOR_PARENTS_DELAY = 1.0


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for one change stream pipeline.

    Attributes:
        start_at: Inclusive start of the root partition
        end_at: Exclusive end of the root partition (None = open-ended)
        metadata_table: Name of the partition metadata table
        heartbeat_millis: Heartbeat interval requested from the source
        max_concurrency: Maximum number of partitions read at once
        detect_interval: Minimum delay between new-partition polls (seconds)
        wait_for_children_delay: Resume delay while children are unscheduled
        wait_for_parents_delay: Resume delay while parents still exist
        throughput_window_seconds: Window of the per-partition throughput estimator
        max_retries: Attempts per reader on store or source errors before failing
    """

    start_at: datetime
    end_at: datetime | None = None
    metadata_table: str = DEFAULT_METADATA_TABLE
    heartbeat_millis: int = DEFAULT_HEARTBEAT_MILLIS
    max_concurrency: int = 8
    detect_interval: float = DEFAULT_FIXED_DELAY
    wait_for_children_delay: float = DEFAULT_WAIT_FOR_CHILDREN_DELAY
    wait_for_parents_delay: float = DEFAULT_WAIT_FOR_PARENTS_DELAY
    throughput_window_seconds: int = DEFAULT_THROUGHPUT_WINDOW_SECONDS
    max_retries: int = 3

    def __post_init__(self) -> None:
        """Validate pipeline configuration."""
        if self.end_at is not None and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        if not self.metadata_table:
            raise ValueError("metadata_table cannot be empty")
        if self.heartbeat_millis <= 0:
            raise ValueError("heartbeat_millis must be positive")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        if self.detect_interval < 0:
            raise ValueError("detect_interval cannot be negative")
        if self.wait_for_children_delay < 0 or self.wait_for_parents_delay < 0:
            raise ValueError("resume delays cannot be negative")
        if self.throughput_window_seconds <= 0:
            raise ValueError("throughput_window_seconds must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
