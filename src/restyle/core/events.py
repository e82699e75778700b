"""Typed event channel between the controller and its caller.

The controller writes PhaseChanged / ProgressUpdated / BatchCompleted /
RunSummary events; callers subscribe by event type. Dispatch is synchronous
and in emission order, so ordering is explicit.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class EventBusProtocol(Protocol):
    """Protocol for event bus implementations.

    EventBus and NullEventBus both satisfy it without inheritance, so a
    NullEventBus can never be passed where subscriptions are expected to fire.
    """

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Subscribe a handler to an event type."""
        ...

    def emit(self, event: T) -> None:
        """Emit an event to all subscribers."""
        ...


class EventBus:
    """Synchronous event bus for replacement runs.

    Handler exceptions propagate to the emitter. A progress handler that
    raises aborts the run instead of being logged and forgotten.

    Example:
        bus = EventBus()
        bus.subscribe(PhaseChanged, lambda e: print(f"{e.old} -> {e.new}"))
        controller = MutationStateController(host, event_bus=bus)
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Subscribe a handler to an event type.

        Handlers for the same type are called in subscription order.
        """
        self._subscribers.setdefault(event_type, []).append(handler)

    def subscribe_all(self, handlers: Mapping[type, Callable[..., None]]) -> None:
        """Subscribe a formatter map (event type -> handler) in one call."""
        for event_type, handler in handlers.items():
            self.subscribe(event_type, handler)

    def emit(self, event: T) -> None:
        """Emit an event to all subscribers of its exact type.

        Events with no subscribers are ignored.
        """
        for handler in self._subscribers.get(type(event), []):
            handler(event)


class NullEventBus:
    """No-op event bus for library use without observers.

    Does NOT inherit from EventBus: subscribing here is a no-op, and
    inheritance would hide that from a caller expecting callbacks.
    """

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """No-op subscription - handler will never be called."""

    def emit(self, event: T) -> None:
        """No-op emission."""
