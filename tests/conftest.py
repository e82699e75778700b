# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from datetime import UTC, datetime

import pytest
from hypothesis import Phase, Verbosity, settings

from restyle.core.config import BatchSettings, RestyleSettings
from restyle.core.events import EventBus
from restyle.engine.clock import MockClock
from restyle.testing.memory_host import FaultPlan, InMemoryDocument

FIXED_NOW = datetime(2026, 10, 18, 9, 30, 0, tzinfo=UTC)


class SleepRecorder:
    """Async sleep replacement that records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def backoff_delays(self) -> list[float]:
        """Delays excluding the short inter-batch pauses."""
        return [d for d in self.delays if d >= 0.5]


class EventRecorder:
    """Subscribes to every event type and keeps them in emission order."""

    def __init__(self, bus: EventBus, event_types: Iterable[type]) -> None:
        self.events: list[object] = []
        for event_type in event_types:
            bus.subscribe(event_type, self.events.append)

    def of_type(self, event_type: type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]


def text_nodes(count: int, *, style_id: str = "S:old", prefix: str = "1:") -> list[dict[str, object]]:
    return [{"id": f"{prefix}{i}", "name": f"Text {i}", "type": "TEXT", "style_id": style_id} for i in range(count)]


def style_document(node_count: int, *, faults: FaultPlan | None = None) -> InMemoryDocument:
    """Document with two compatible text styles and node_count nodes on S:old."""
    return InMemoryDocument(
        nodes=text_nodes(node_count),
        styles=[
            {"id": "S:old", "name": "Body/Old", "type": "TEXT", "bound_variables": {}},
            {"id": "S:new", "name": "Body/New", "type": "TEXT", "bound_variables": {}},
            {"id": "S:fill", "name": "Brand/Fill", "type": "PAINT", "bound_variables": {}},
        ],
        faults=faults,
    )


def binding_document(node_count: int, *, faults: FaultPlan | None = None) -> InMemoryDocument:
    """Document whose nodes inherit V:red through the shared style S:h1."""
    return InMemoryDocument(
        nodes=text_nodes(node_count, style_id="S:h1"),
        styles=[
            {
                "id": "S:h1",
                "name": "Heading/H1",
                "type": "TEXT",
                "bound_variables": {"fills": "V:red", "fontSize": "V:size-lg"},
            },
        ],
        variables=[
            {"id": "V:red", "name": "color/red"},
            {"id": "V:blue", "name": "color/blue"},
            {"id": "V:size-lg", "name": "size/lg"},
        ],
        faults=faults,
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock(start=0.0)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def fast_settings() -> RestyleSettings:
    """Default sizing with no inter-batch pause."""
    return RestyleSettings(batch=BatchSettings(inter_batch_delay_ms=0))


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
