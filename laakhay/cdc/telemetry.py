"""Structured logging for partition lifecycle and flow control.

This module provides telemetry hooks for the record actions and the runtime,
emitting structured logs for observability.
"""

from __future__ import annotations

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


def log_partition_state_changed(*, token: str, state: str) -> None:
    """Log a partition lifecycle transition.

    Args:
        token: Partition token
        state: New partition state
    """
    logger.info(
        "partition_state_changed",
        extra={"partition_token": token, "state": state},
    )


def log_child_partition_registered(
    *,
    token: str,
    child_token: str,
    kind: str,
    inserted: bool,
    start_timestamp: datetime,
) -> None:
    """Log the outcome of registering a child partition.

    Args:
        token: Token of the partition that processed the record
        child_token: Token of the child partition
        kind: "split" or "merge"
        inserted: False when the row already existed or the merge was not ours to register
        start_timestamp: Inclusive start of the child partition
    """
    logger.info(
        "child_partition_registered" if inserted else "child_partition_skipped",
        extra={
            "partition_token": token,
            "child_token": child_token,
            "kind": kind,
            "start_timestamp": start_timestamp.isoformat(),
        },
    )


def log_action_stopped(*, token: str, action: str, position: str) -> None:
    """Log an action yielding because its claim was rejected.

    Args:
        token: Partition token
        action: Name of the action that stopped
        position: Position that could not be claimed
    """
    logger.debug(
        "action_stopped",
        extra={"partition_token": token, "action": action, "position": position},
    )


def log_partition_resumed(*, token: str, mode: str, delay: float | None) -> None:
    """Log a partition asking to be resumed later.

    Args:
        token: Partition token
        mode: Phase the partition resumes in
        delay: Requested resume delay in seconds
    """
    logger.info(
        "partition_resume_requested",
        extra={"partition_token": token, "mode": mode, "resume_delay": delay},
    )


def log_rate_limit_sleep(*, policy: str, reason: str, delay: float) -> None:
    """Log a rate limit pause.

    Args:
        policy: Rate limit policy class name
        reason: "empty_poll", "throttled", "fixed" or "dynamic"
        delay: Sleep duration in seconds
    """
    logger.debug(
        "rate_limit_sleep",
        extra={"policy": policy, "reason": reason, "delay": delay},
    )


def log_partitions_detected(*, count: int, tokens: list[str]) -> None:
    """Log newly scheduled partitions.

    Args:
        count: Number of partitions moved to SCHEDULED
        tokens: Their tokens
    """
    logger.info(
        "partitions_detected",
        extra={"count": count, "partition_tokens": tokens},
    )
