"""Partition runtime: bootstrap, detection, readers and flow control.

Architecture:
    PipelineInitializer provisions the metadata table and the root
    partition. DetectNewPartitionsAction hands out newly CREATED rows.
    PartitionReader drives one partition through its phases, paced by a
    RateLimitPolicy. ChangeStreamPipeline ties them together with bounded
    concurrency.
"""

from .backoff import BackoffSequence
from .detect import DetectNewPartitionsAction
from .initializer import PipelineInitializer
from .pipeline import ChangeStreamPipeline, RateLimitFactory
from .rate_limit import (
    DefaultRateLimitPolicy,
    DynamicDelayRateLimitPolicy,
    FixedDelayRateLimitPolicy,
    NoopRateLimitPolicy,
    RateLimitPolicy,
    Sleeper,
    with_default_rate_limiter,
    with_delay,
    with_fixed_delay,
    without_limiter,
)
from .reader import PartitionReader

__all__ = [
    "BackoffSequence",
    "ChangeStreamPipeline",
    "DefaultRateLimitPolicy",
    "DetectNewPartitionsAction",
    "DynamicDelayRateLimitPolicy",
    "FixedDelayRateLimitPolicy",
    "NoopRateLimitPolicy",
    "PartitionReader",
    "PipelineInitializer",
    "RateLimitFactory",
    "RateLimitPolicy",
    "Sleeper",
    "with_default_rate_limiter",
    "with_delay",
    "with_fixed_delay",
    "without_limiter",
]
