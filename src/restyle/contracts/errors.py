"""Exception hierarchy for replacement runs.

Top-level run failures (validation, checkpoint, abort) are raised to the
caller. Item-level failures are raised inside the batch loop, classified,
and recorded as FailureRecords instead of ending the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from restyle.contracts.enums import ErrorKind, Phase
    from restyle.contracts.results import ReplacementResult


class RestyleError(Exception):
    """Base class for every error raised by restyle itself."""


# =============================================================================
# Run-level errors
# =============================================================================


class RequestValidationError(RestyleError):
    """Raised when a request fails structural validation.

    Always raised before a checkpoint exists, so no mutation has happened.
    The message wording is matched by the classifier as ``validation``.
    """


class CheckpointCreationError(RestyleError):
    """Raised when the host could not create the pre-mutation snapshot.

    Distinct from RequestValidationError so callers can tell "your request
    was wrong" apart from "the document could not be protected".
    """

    def __init__(self, title: str, cause: BaseException) -> None:
        self.title = title
        self.cause = cause
        super().__init__(f"Checkpoint creation failed for '{title}': {cause}")


class MutationAbortedError(RestyleError):
    """Raised when processing stopped because of an unexpected failure.

    Carries the partial result so the checkpoint handle is never lost.
    """

    def __init__(self, message: str, *, result: ReplacementResult) -> None:
        self.result = result
        super().__init__(message)


class IllegalPhaseTransitionError(RestyleError):
    """Raised when the controller is asked for a transition the table forbids.

    This is a logic fault in the caller or in restyle, never a user error.
    """

    def __init__(self, current: Phase, requested: Phase) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Illegal phase transition: {current.value} -> {requested.value}")


class RunInProgressError(RestyleError):
    """Raised when run() is called while another run is still in flight."""


# =============================================================================
# Item-level errors
# =============================================================================


class NodeNotFoundError(RestyleError):
    """Raised when an affected node id does not resolve in the document."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found")


class WrongNodeTypeError(RestyleError):
    """Raised when a node cannot carry the resource being replaced."""

    def __init__(self, node_id: str, node_type: str) -> None:
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(f"Node '{node_id}' is not a text node (got {node_type})")


class SourceReferenceNotFoundError(RestyleError):
    """Raised when a node neither binds the source directly nor through its resource."""

    def __init__(self, node_id: str, source_id: str) -> None:
        self.node_id = node_id
        self.source_id = source_id
        super().__init__(f"Source reference not found on node '{node_id}' (source: {source_id})")


class MutationAttemptError(RestyleError):
    """Raised by RetryManager when an item could not be mutated.

    Either the failure was not transient, or the retry budget ran out.
    The final error and the number of attempts are both preserved.

    Attributes:
        last_error: The exception raised by the final attempt
        attempts: Total attempts made (1 = no retries)
        kind: Classification of last_error
    """

    def __init__(self, last_error: BaseException, *, attempts: int, kind: ErrorKind) -> None:
        self.last_error = last_error
        self.attempts = attempts
        self.kind = kind
        super().__init__(f"Failed after {attempts} attempt(s) [{kind.value}]: {last_error}")

    @property
    def retry_count(self) -> int:
        return self.attempts - 1


# =============================================================================
# Host boundary errors
# =============================================================================


class HostContractError(RestyleError):
    """Raised when a host payload does not have the shape the adapter expects.

    A malformed payload is a defect in the host integration, so this is
    classified as persistent and never retried.
    """
