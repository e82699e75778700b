"""Result contracts produced by the batch scheduler and the controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from restyle.contracts.enums import ErrorKind, RunCompletionStatus


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Opaque handle for the host snapshot taken before any mutation.

    The engine only cares that it exists; the title is what a user looks
    for in the host's version history to roll back manually.
    """

    title: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class FailureRecord:
    """One node that could not be migrated.

    Attributes:
        node_id: Host node id
        node_label: Node name when it could be looked up, else the id
        error_kind: Classification of the final error
        message: Final error message
        retry_count: Retries performed before giving up (0 = single attempt)
    """

    node_id: str
    node_label: str
    error_kind: ErrorKind
    message: str
    retry_count: int


@dataclass(frozen=True, slots=True)
class Batch:
    """A contiguous slice of the work list. Ephemeral, owned by the scheduler."""

    number: int
    items: tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.items)


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    """Aggregate result of one batch, emitted only after every item settled.

    Attributes:
        batch_number: 1-based position in submission order
        batch_size: Number of items in the batch
        succeeded: Items migrated
        failed: Items that raised
        failures: One FailureRecord per failed item
        duration_ms: Wall time for the batch
        skipped: Items never started because cancellation was observed
    """

    batch_number: int
    batch_size: int
    succeeded: int
    failed: int
    failures: tuple[FailureRecord, ...] = ()
    duration_ms: float = 0.0
    skipped: int = 0

    @property
    def had_failures(self) -> bool:
        return self.failed > 0

    @property
    def was_cancelled(self) -> bool:
        return self.skipped > 0


@dataclass(frozen=True, slots=True)
class ReplacementResult:
    """Terminal artifact returned to the caller of MutationStateController.run().

    ``checkpoint`` is set whenever one was created, however the run ended.
    """

    success: bool
    items_updated: int
    items_failed: int
    failures: tuple[FailureRecord, ...]
    checkpoint: Checkpoint | None
    duration_ms: float
    has_warnings: bool
    status: RunCompletionStatus
    resources_cloned: int = 0
    batch_outcomes: tuple[BatchOutcome, ...] = field(default=())

    @property
    def checkpoint_title(self) -> str | None:
        return self.checkpoint.title if self.checkpoint is not None else None

    @property
    def batch_sizes(self) -> list[int]:
        return [outcome.batch_size for outcome in self.batch_outcomes]
