"""Watermark estimators fed by record actions."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class WatermarkEstimator(Protocol):
    """Receives the lower bound below which a partition emits no more data."""

    def set_watermark(self, timestamp: datetime) -> None:
        ...

    def current_watermark(self) -> datetime | None:
        ...


class ManualWatermarkEstimator:
    """Watermark estimator that keeps whatever the actions last published."""

    def __init__(self, initial: datetime | None = None) -> None:
        self._watermark = initial

    def set_watermark(self, timestamp: datetime) -> None:
        self._watermark = timestamp

    def current_watermark(self) -> datetime | None:
        return self._watermark
