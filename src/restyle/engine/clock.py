# src/restyle/engine/clock.py
"""Clock abstraction for throttling and duration measurement.

Progress throttling and batch durations read time through a Clock so tests
can drive them deterministically. Production code uses SystemClock.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic time in seconds."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds (never goes backwards)."""
        ...


class SystemClock:
    """Production clock backed by time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Controllable clock for deterministic tests.

    Example:
        clock = MockClock()
        throttle = ProgressThrottle(interval_ms=150, clock=clock)
        assert throttle.should_emit(update)      # first update always passes
        clock.advance(0.1)
        assert not throttle.should_emit(update)  # inside the 150ms window
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance time by a non-negative number of seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds


def elapsed_ms(clock: Clock, started: float) -> float:
    """Milliseconds elapsed on clock since a previous monotonic() reading."""
    return (clock.monotonic() - started) * 1000.0


DEFAULT_CLOCK: Clock = SystemClock()
