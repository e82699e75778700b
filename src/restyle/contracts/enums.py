"""All status codes, phases, and kinds used across subsystem boundaries."""

from enum import StrEnum


class Phase(StrEnum):
    """Lifecycle phase of a MutationStateController.

    Owned exclusively by the controller. Exactly one request is in flight
    per controller instance.
    """

    IDLE = "idle"
    VALIDATING = "validating"
    CREATING_CHECKPOINT = "creating_checkpoint"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_PHASES


_TERMINAL_PHASES = frozenset({Phase.COMPLETE, Phase.ERROR, Phase.CANCELLED})


class ErrorKind(StrEnum):
    """Classification of a raised failure.

    Values:
        TRANSIENT: Timeouts, rate limits, connectivity. Worth retrying.
        PERSISTENT: Permission/authorization, and anything unrecognized.
        VALIDATION: Malformed input, missing resources, same source and target.
        PARTIAL: Item-level refusal (locked, read-only, wrong node type).
    """

    TRANSIENT = "transient"
    PERSISTENT = "persistent"
    VALIDATION = "validation"
    PARTIAL = "partial"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.TRANSIENT


class RunCompletionStatus(StrEnum):
    """Final status reported on a ReplacementResult."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ReplacementKind(StrEnum):
    """Which class of resource a request replaces."""

    STYLE = "style"
    BINDING = "binding"
