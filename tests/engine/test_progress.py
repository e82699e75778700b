# tests/engine/test_progress.py
"""Tests for progress percentage and throttling."""

import pytest

from restyle.contracts import Phase, ProgressUpdated
from restyle.engine.clock import MockClock
from restyle.engine.progress import ProgressThrottle, processing_percentage


def _update(percentage: int, phase: Phase = Phase.PROCESSING) -> ProgressUpdated:
    return ProgressUpdated(
        phase=phase,
        percentage=percentage,
        batch_number=1,
        total_batches=3,
        batch_size=100,
        items_processed=100,
        items_failed=0,
    )


class TestProcessingPercentage:
    @pytest.mark.parametrize(
        ("processed", "total", "expected"),
        [
            (0, 250, 10),
            (100, 250, 46),
            (250, 250, 100),
            (1, 3, 40),
            (0, 0, 100),
        ],
    )
    def test_scale(self, processed: int, total: int, expected: int) -> None:
        assert processing_percentage(processed, total) == expected


class TestProgressThrottle:
    def test_first_update_passes(self) -> None:
        throttle = ProgressThrottle(150, MockClock())
        assert throttle.should_emit(_update(20))

    def test_updates_inside_window_are_dropped(self) -> None:
        clock = MockClock()
        throttle = ProgressThrottle(150, clock)
        throttle.should_emit(_update(20))

        clock.advance(0.1)
        assert not throttle.should_emit(_update(30))

        clock.advance(0.05)
        assert throttle.should_emit(_update(40))

    def test_terminal_updates_always_pass(self) -> None:
        throttle = ProgressThrottle(150, MockClock())
        throttle.should_emit(_update(20))

        assert throttle.should_emit(_update(100))
        assert throttle.should_emit(_update(30, phase=Phase.CANCELLED))

    def test_zero_interval_lets_everything_through(self) -> None:
        throttle = ProgressThrottle(0, MockClock())
        assert all(throttle.should_emit(_update(p)) for p in (20, 30, 40))

    def test_reset_reopens_window(self) -> None:
        throttle = ProgressThrottle(150, MockClock())
        throttle.should_emit(_update(20))
        throttle.reset()
        assert throttle.should_emit(_update(30))

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValueError):
            ProgressThrottle(-1)
