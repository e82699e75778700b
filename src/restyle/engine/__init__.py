"""Replacement engine: controller, batch scheduling, retry and clone-and-rebind."""

from restyle.engine.batching import AdaptiveBatchScheduler, BatchSizer, BatchSizerConfig
from restyle.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from restyle.engine.controller import LEGAL_TRANSITIONS, MutationStateController
from restyle.engine.progress import ProgressThrottle
from restyle.engine.resolver import CloneAndRebindResolver, ResolvedResourceMap, Resolution, StyleRebinder
from restyle.engine.retry import RetryConfig, RetryManager

__all__ = [
    "DEFAULT_CLOCK",
    "LEGAL_TRANSITIONS",
    "AdaptiveBatchScheduler",
    "BatchSizer",
    "BatchSizerConfig",
    "Clock",
    "CloneAndRebindResolver",
    "MockClock",
    "MutationStateController",
    "ProgressThrottle",
    "ResolvedResourceMap",
    "Resolution",
    "RetryConfig",
    "RetryManager",
    "StyleRebinder",
    "SystemClock",
]
