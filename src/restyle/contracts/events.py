"""Observability events for replacement runs.

These events replace per-callback notification lists: the controller emits
them on a single EventBus and callers subscribe by event type. Events are
delivered in the order produced.
"""

from dataclasses import dataclass

from restyle.contracts.enums import Phase, RunCompletionStatus


@dataclass(frozen=True, slots=True)
class PhaseChanged:
    """Emitted on every controller phase transition. Never throttled."""

    old: Phase
    new: Phase


@dataclass(frozen=True, slots=True)
class ProgressUpdated:
    """Progress snapshot for a run.

    Throttled to at most one per configured interval, except terminal
    updates (percentage 100, or any non-processing phase), which always go out.

    Attributes:
        phase: Phase the run was in when the snapshot was taken
        percentage: 0-100
        batch_number: Last completed batch (0 before processing)
        total_batches: Estimated total given the current batch size
        batch_size: Size of the last completed batch
        items_processed: Items attempted so far (succeeded + failed)
        items_failed: Items failed so far
        checkpoint_title: Title of the checkpoint, once created
    """

    phase: Phase
    percentage: int
    batch_number: int
    total_batches: int
    batch_size: int
    items_processed: int
    items_failed: int
    checkpoint_title: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.percentage >= 100 or self.phase is not Phase.PROCESSING


@dataclass(frozen=True, slots=True)
class BatchCompleted:
    """Emitted after each batch settles, with the size chosen for the next one."""

    batch_number: int
    batch_size: int
    succeeded: int
    failed: int
    next_batch_size: int


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Emitted once when a run reaches a terminal phase."""

    status: RunCompletionStatus
    items_updated: int
    items_failed: int
    resources_cloned: int
    duration_ms: float
    checkpoint_title: str | None = None
