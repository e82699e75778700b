# src/restyle/engine/progress.py
"""Progress percentage and throttling for replacement runs."""

from __future__ import annotations

from restyle.contracts import ProgressUpdated
from restyle.engine.clock import DEFAULT_CLOCK, Clock

# Share of the bar reserved for validation and the checkpoint
CHECKPOINT_PERCENTAGE = 10


def processing_percentage(processed: int, total: int) -> int:
    """10 once the checkpoint exists, then 10 + 90 * processed / total, capped at 100."""
    if total <= 0:
        return 100
    share = (100 - CHECKPOINT_PERCENTAGE) * processed // total
    return min(CHECKPOINT_PERCENTAGE + share, 100)


class ProgressThrottle:
    """Rate limit for ProgressUpdated events.

    At most one update per interval is let through. Terminal updates
    (100%, or any phase other than processing) always pass and reset the
    window, so the caller never misses the final state.
    """

    def __init__(self, interval_ms: int = 150, clock: Clock = DEFAULT_CLOCK) -> None:
        if interval_ms < 0:
            raise ValueError(f"interval_ms must be >= 0, got {interval_ms}")
        self._interval = interval_ms / 1000.0
        self._clock = clock
        self._last_emit: float | None = None

    def should_emit(self, update: ProgressUpdated) -> bool:
        now = self._clock.monotonic()
        if update.is_terminal or self._last_emit is None or now - self._last_emit >= self._interval:
            self._last_emit = now
            return True
        return False

    def reset(self) -> None:
        self._last_emit = None
