"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
restyle.core.config.

Import patterns:
    from restyle.contracts import Phase, ReplacementResult, StyleReplacementRequest
    from restyle.core.config import RestyleSettings
"""

from restyle.contracts.document import BoundValue, DocumentNode, SharedResource
from restyle.contracts.enums import ErrorKind, Phase, ReplacementKind, RunCompletionStatus
from restyle.contracts.errors import (
    CheckpointCreationError,
    HostContractError,
    IllegalPhaseTransitionError,
    MutationAbortedError,
    MutationAttemptError,
    NodeNotFoundError,
    RequestValidationError,
    RestyleError,
    RunInProgressError,
    SourceReferenceNotFoundError,
    WrongNodeTypeError,
)
from restyle.contracts.events import BatchCompleted, PhaseChanged, ProgressUpdated, RunSummary
from restyle.contracts.requests import BindingReplacementRequest, MutationRequest, StyleReplacementRequest
from restyle.contracts.results import Batch, BatchOutcome, Checkpoint, FailureRecord, ReplacementResult

__all__ = [
    "Batch",
    "BatchCompleted",
    "BatchOutcome",
    "BindingReplacementRequest",
    "BoundValue",
    "Checkpoint",
    "CheckpointCreationError",
    "DocumentNode",
    "ErrorKind",
    "FailureRecord",
    "HostContractError",
    "IllegalPhaseTransitionError",
    "MutationAbortedError",
    "MutationAttemptError",
    "MutationRequest",
    "NodeNotFoundError",
    "Phase",
    "PhaseChanged",
    "ProgressUpdated",
    "ReplacementKind",
    "ReplacementResult",
    "RequestValidationError",
    "RestyleError",
    "RunCompletionStatus",
    "RunInProgressError",
    "RunSummary",
    "SharedResource",
    "SourceReferenceNotFoundError",
    "StyleReplacementRequest",
    "WrongNodeTypeError",
]
