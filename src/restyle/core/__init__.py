"""Core infrastructure: configuration, logging, events, classification, checkpoints."""

from restyle.core.checkpoint import CheckpointManager
from restyle.core.classification import classify_error, format_error_message, is_retryable
from restyle.core.config import (
    BatchSettings,
    CheckpointSettings,
    ProgressSettings,
    RestyleSettings,
    RetrySettings,
    load_settings,
)
from restyle.core.events import EventBus, EventBusProtocol, NullEventBus

__all__ = [
    "BatchSettings",
    "CheckpointManager",
    "CheckpointSettings",
    "EventBus",
    "EventBusProtocol",
    "NullEventBus",
    "ProgressSettings",
    "RestyleSettings",
    "RetrySettings",
    "classify_error",
    "format_error_message",
    "is_retryable",
    "load_settings",
]
