"""Sliding-window throughput estimation for a partition reader."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta

from ..core.config import DEFAULT_THROUGHPUT_WINDOW_SECONDS


class ThroughputEstimator:
    """Moving average of bytes processed per distinct source timestamp.

    Updates for the same timestamp accumulate into a pending entry. The
    pending entry joins the window only once a different timestamp arrives,
    so a single upstream instant split across several updates is counted
    once and a partially observed instant is never averaged in.

    The estimate is a per-timestamp average, not a per-second rate.
    """

    def __init__(self, window_size_seconds: int = DEFAULT_THROUGHPUT_WINDOW_SECONDS) -> None:
        if window_size_seconds <= 0:
            raise ValueError("window_size_seconds must be positive")
        self._window_size = timedelta(seconds=window_size_seconds)
        self._window: deque[tuple[datetime, int]] = deque()
        self._pending: tuple[datetime, int] | None = None

    @property
    def window_size(self) -> timedelta:
        return self._window_size

    def update(self, timestamp: datetime, bytes_processed: int) -> None:
        """Record ``bytes_processed`` observed at ``timestamp``."""
        if self._pending is None:
            self._pending = (timestamp, bytes_processed)
            return
        pending_timestamp, pending_bytes = self._pending
        if pending_timestamp == timestamp:
            self._pending = (timestamp, pending_bytes + bytes_processed)
            return
        self._window.append(self._pending)
        self._evict(timestamp)
        self._pending = (timestamp, bytes_processed)

    def get_from(self, timestamp: datetime) -> float:
        """Average bytes per distinct timestamp in the window ending at ``timestamp``."""
        self._evict(timestamp)
        if not self._window:
            return 0.0
        total = sum(entry_bytes for _, entry_bytes in self._window)
        distinct = len({entry_timestamp for entry_timestamp, _ in self._window})
        return total / distinct

    def _evict(self, timestamp: datetime) -> None:
        # Entries at or before the window boundary fall out
        boundary = timestamp - self._window_size
        self._window = deque(entry for entry in self._window if entry[0] > boundary)
