"""Per-partition cursors, throughput and watermark tracking."""

from .position import PartitionPosition
from .throughput import ThroughputEstimator
from .tracker import PartitionRestriction, PartitionRestrictionTracker
from .watermark import ManualWatermarkEstimator, WatermarkEstimator

__all__ = [
    "ManualWatermarkEstimator",
    "PartitionPosition",
    "PartitionRestriction",
    "PartitionRestrictionTracker",
    "ThroughputEstimator",
    "WatermarkEstimator",
]
