# src/restyle/engine/controller.py
"""MutationStateController: the single entry point for a replacement run.

A run moves through a fixed phase machine:

    idle -> validating -> creating_checkpoint -> processing -> complete
                 |               |                   |
                 +-> error       +-> error           +-> error | cancelled
                 +-> cancelled

Terminal phases return to idle before the next run. Nothing is mutated
before the checkpoint exists, and every result (or abort exception)
produced after that point carries the checkpoint.

Cancellation policy: cancellation is guaranteed only while validating.
Once checkpoint creation has begun, a cancel request is still honored at
item boundaries, but items already started run to completion, so partial
effects are possible. ``request_cancel()`` returns whether the request was
guaranteed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

from restyle.contracts import (
    BatchCompleted,
    BatchOutcome,
    BindingReplacementRequest,
    Checkpoint,
    CheckpointCreationError,
    IllegalPhaseTransitionError,
    MutationAbortedError,
    MutationRequest,
    Phase,
    PhaseChanged,
    ProgressUpdated,
    ReplacementResult,
    RequestValidationError,
    RunCompletionStatus,
    RunInProgressError,
    RunSummary,
    StyleReplacementRequest,
)
from restyle.core.checkpoint import CheckpointManager
from restyle.core.config import RestyleSettings
from restyle.core.events import EventBusProtocol, NullEventBus
from restyle.core.logging import bind_run_context, get_logger, unbind_run_context
from restyle.engine.batching import AdaptiveBatchScheduler, BatchSizerConfig
from restyle.engine.clock import DEFAULT_CLOCK, Clock, elapsed_ms
from restyle.engine.progress import CHECKPOINT_PERCENTAGE, ProgressThrottle, processing_percentage
from restyle.engine.resolver import CloneAndRebindResolver, ResolvedResourceMap, Resolution, StyleRebinder
from restyle.engine.retry import RetryConfig, RetryManager
from restyle.host.adapter import HostAdapter
from restyle.host.protocol import DocumentHost

logger = get_logger(__name__)

LEGAL_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.IDLE: frozenset({Phase.VALIDATING}),
    Phase.VALIDATING: frozenset({Phase.CREATING_CHECKPOINT, Phase.ERROR, Phase.CANCELLED}),
    Phase.CREATING_CHECKPOINT: frozenset({Phase.PROCESSING, Phase.ERROR}),
    Phase.PROCESSING: frozenset({Phase.COMPLETE, Phase.ERROR, Phase.CANCELLED}),
    Phase.COMPLETE: frozenset({Phase.IDLE}),
    Phase.ERROR: frozenset({Phase.IDLE}),
    Phase.CANCELLED: frozenset({Phase.IDLE}),
}

_CANCELLABLE_PHASES = frozenset({Phase.IDLE, Phase.VALIDATING})

_RUN_CONTEXT_KEYS = ("operation", "source", "target", "checkpoint")


class _RunState:
    """Mutable per-run bookkeeping. Discarded when the run ends."""

    def __init__(self, request: MutationRequest, items: tuple[str, ...], started: float) -> None:
        self.request = request
        self.items = items
        self.started = started
        self.checkpoint: Checkpoint | None = None
        self.outcomes: list[BatchOutcome] = []
        self.labels: dict[str, str] = {}
        self.resolver: CloneAndRebindResolver | None = None

    @property
    def processed(self) -> int:
        return sum(o.succeeded + o.failed for o in self.outcomes)

    @property
    def failed(self) -> int:
        return sum(o.failed for o in self.outcomes)

    @property
    def resources_cloned(self) -> int:
        return self.resolver.clones_created if self.resolver is not None else 0


class MutationStateController:
    """Orchestrates validation, checkpoint, batch processing and the terminal result.

    One request is in flight per controller. Observers subscribe to
    PhaseChanged, ProgressUpdated, BatchCompleted and RunSummary on the
    event bus passed in.

    Example:
        bus = EventBus()
        bus.subscribe(ProgressUpdated, lambda e: print(e.percentage))
        controller = MutationStateController(host, event_bus=bus)
        result = await controller.run(StyleReplacementRequest.create("S:old", "S:new", node_ids))
    """

    def __init__(
        self,
        host: DocumentHost | HostAdapter,
        settings: RestyleSettings | None = None,
        *,
        event_bus: EventBusProtocol | None = None,
        clock: Clock = DEFAULT_CLOCK,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            host: Host document API, raw or already wrapped in a HostAdapter
            settings: Engine settings (defaults if None)
            event_bus: Event channel for observers (no-op if None)
            clock: Monotonic clock for durations and progress throttling
            sleep: Async sleep for retry backoff and the inter-batch pause
            now: Wall-clock source for checkpoint titles
        """
        self._adapter = host if isinstance(host, HostAdapter) else HostAdapter(host)
        self._settings = settings or RestyleSettings()
        self._events: EventBusProtocol = event_bus or NullEventBus()
        self._clock = clock
        self._sleep = sleep

        self._checkpoints = CheckpointManager(self._adapter, self._settings.checkpoint, now=now)
        self._retry = RetryManager(RetryConfig.from_settings(self._settings.retry), sleep=sleep)
        self._throttle = ProgressThrottle(self._settings.progress.throttle_interval_ms, clock)

        self._phase = Phase.IDLE
        self._running = False
        self._cancel_requested = False

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._running

    def can_cancel(self) -> bool:
        """True only while a cancel is guaranteed to stop the run before any mutation."""
        return self._phase in _CANCELLABLE_PHASES

    def request_cancel(self) -> bool:
        """Ask the in-flight run to stop.

        Returns:
            True if cancellation is guaranteed (requested while validating).
            False if it is best-effort (requested after checkpoint creation
            began) or if there is no run to cancel.
        """
        if not self._running or self._phase.is_terminal:
            logger.debug("cancel_ignored", phase=self._phase.value)
            return False
        guaranteed = self.can_cancel()
        self._cancel_requested = True
        logger.info("cancel_requested", phase=self._phase.value, guaranteed=guaranteed)
        return guaranteed

    def reset(self) -> None:
        """Return a terminal controller to idle.

        Raises:
            RunInProgressError: If a run is in flight
        """
        if self._running:
            raise RunInProgressError(f"Cannot reset while a run is in progress (phase: {self._phase.value})")
        if self._phase.is_terminal:
            self._transition(Phase.IDLE)
        self._cancel_requested = False

    def _transition(self, new: Phase) -> None:
        old = self._phase
        if new not in LEGAL_TRANSITIONS[old]:
            raise IllegalPhaseTransitionError(old, new)
        self._phase = new
        logger.debug("phase_changed", old=old.value, new=new.value)
        self._events.emit(PhaseChanged(old=old, new=new))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, request: MutationRequest) -> ReplacementResult:
        """Execute a replacement request.

        Returns:
            ReplacementResult with status completed, partial or cancelled

        Raises:
            RunInProgressError: If another run is in flight
            RequestValidationError: If the request is structurally invalid, or the host failed while
                resolving its ids; the host error is chained as __cause__ (no checkpoint, no mutation)
            CheckpointCreationError: If the snapshot could not be created (no mutation)
            MutationAbortedError: If processing stopped unexpectedly; carries the partial result
        """
        if self._running:
            raise RunInProgressError(f"A run is already in progress (phase: {self._phase.value})")
        if self._phase.is_terminal:
            self.reset()

        self._running = True
        self._cancel_requested = False
        self._throttle.reset()
        bind_run_context(
            operation=request.operation_name,
            source=request.source_resource_id,
            target=request.target_resource_id,
        )
        try:
            return await self._run(request)
        finally:
            self._running = False
            if not self._phase.is_terminal and self._phase is not Phase.IDLE:
                # Task cancelled or an event handler raised mid-transition
                self._transition(Phase.ERROR)
            unbind_run_context(*_RUN_CONTEXT_KEYS)

    async def _run(self, request: MutationRequest) -> ReplacementResult:
        state = _RunState(request, tuple(dict.fromkeys(request.affected_node_ids)), self._clock.monotonic())
        logger.info("run_started", kind=request.kind.value, requested_nodes=len(request.affected_node_ids))

        self._transition(Phase.VALIDATING)
        try:
            await self._validate(request)
        except RequestValidationError as e:
            logger.warning("request_rejected", error=str(e))
            self._finish(Phase.ERROR, state)
            raise
        except Exception as e:
            logger.warning("request_validation_failed", error=str(e), error_type=type(e).__name__)
            self._finish(Phase.ERROR, state)
            raise RequestValidationError(f"Could not validate request: {e}") from e

        if self._cancel_requested:
            return self._finish(Phase.CANCELLED, state)

        self._transition(Phase.CREATING_CHECKPOINT)
        try:
            state.checkpoint = await self._checkpoints.create_checkpoint(request.operation_name)
        except CheckpointCreationError:
            self._finish(Phase.ERROR, state)
            raise
        bind_run_context(checkpoint=state.checkpoint.title)
        self._emit_progress(state, Phase.CREATING_CHECKPOINT, CHECKPOINT_PERCENTAGE)

        self._transition(Phase.PROCESSING)
        try:
            await self._process(state)
        except Exception as e:
            logger.error("run_aborted", error=str(e), error_type=type(e).__name__, items_processed=state.processed)
            result = self._finish(Phase.ERROR, state)
            raise MutationAbortedError(f"{request.operation_name} aborted: {e}", result=result) from e

        cancelled = any(o.was_cancelled for o in state.outcomes)
        return self._finish(Phase.CANCELLED if cancelled else Phase.COMPLETE, state)

    async def _validate(self, request: MutationRequest) -> None:
        if request.is_self_replacement:
            raise RequestValidationError("Source and target cannot be the same resource")
        if not request.affected_node_ids:
            raise RequestValidationError("Invalid request: no affected nodes")

        if isinstance(request, StyleReplacementRequest):
            source = await self._adapter.find_resource(request.source_resource_id)
            if source is None:
                raise RequestValidationError(f"Source style '{request.source_resource_id}' not found")
            target = await self._adapter.find_resource(request.target_resource_id)
            if target is None:
                raise RequestValidationError(f"Target style '{request.target_resource_id}' not found")
            if source.resource_type != target.resource_type:
                raise RequestValidationError(
                    f"Invalid request: source style type {source.resource_type} does not match target style type {target.resource_type}"
                )
        elif isinstance(request, BindingReplacementRequest):
            if await self._adapter.find_bound_value(request.source_resource_id) is None:
                raise RequestValidationError(f"Source variable '{request.source_resource_id}' not found")
            if await self._adapter.find_bound_value(request.target_resource_id) is None:
                raise RequestValidationError(f"Target variable '{request.target_resource_id}' not found")
        else:
            raise RequestValidationError(f"Invalid request type: {type(request).__name__}")

    async def _process(self, state: _RunState) -> None:
        request = state.request
        resource_map = ResolvedResourceMap(await self._adapter.local_resource_names())
        resolver = CloneAndRebindResolver(self._adapter, resource_map)
        rebinder = StyleRebinder(self._adapter)
        state.resolver = resolver

        async def migrate_once(node_id: str) -> Resolution:
            node = await self._adapter.get_node(node_id)
            state.labels[node_id] = node.name
            if isinstance(request, StyleReplacementRequest):
                return await rebinder.rebind(
                    node,
                    request.source_resource_id,
                    request.target_resource_id,
                    preserve_overrides=request.preserve_overrides,
                )
            if isinstance(request, BindingReplacementRequest):
                return await resolver.resolve(node, request.source_resource_id, request.target_resource_id, request.property_types)
            raise RequestValidationError(f"Invalid request type: {type(request).__name__}")

        async def migrate(node_id: str) -> None:
            def on_retry(attempt: int, error: BaseException) -> None:
                logger.debug("node_retry", node_id=node_id, attempt=attempt, error=str(error))

            await self._retry.execute_with_retry(lambda: migrate_once(node_id), on_retry=on_retry)

        scheduler = AdaptiveBatchScheduler(
            BatchSizerConfig.from_settings(self._settings.batch),
            inter_batch_delay_ms=self._settings.batch.inter_batch_delay_ms,
            clock=self._clock,
            sleep=self._sleep,
            label_for=state.labels.get,
        )

        async for outcome in scheduler.process_batches(state.items, migrate, should_cancel=lambda: self._cancel_requested):
            state.outcomes.append(outcome)
            for failure in outcome.failures:
                logger.warning(
                    "node_failed",
                    node_id=failure.node_id,
                    error_kind=failure.error_kind.value,
                    retry_count=failure.retry_count,
                    error=failure.message,
                )
            self._events.emit(
                BatchCompleted(
                    batch_number=outcome.batch_number,
                    batch_size=outcome.batch_size,
                    succeeded=outcome.succeeded,
                    failed=outcome.failed,
                    next_batch_size=scheduler.current_batch_size,
                )
            )
            self._emit_progress(
                state,
                Phase.PROCESSING,
                processing_percentage(state.processed, len(state.items)),
                total_batches=scheduler.estimate_total_batches(len(state.outcomes), state.processed, len(state.items)),
            )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _emit_progress(self, state: _RunState, phase: Phase, percentage: int, *, total_batches: int | None = None) -> None:
        last = state.outcomes[-1] if state.outcomes else None
        batch_number = last.batch_number if last is not None else 0
        update = ProgressUpdated(
            phase=phase,
            percentage=percentage,
            batch_number=batch_number,
            total_batches=total_batches if total_batches is not None else batch_number,
            batch_size=last.batch_size if last is not None else 0,
            items_processed=state.processed,
            items_failed=state.failed,
            checkpoint_title=state.checkpoint.title if state.checkpoint is not None else None,
        )
        if self._throttle.should_emit(update):
            self._events.emit(update)

    def _finish(self, phase: Phase, state: _RunState) -> ReplacementResult:
        """Enter a terminal phase and build the result for it."""
        self._transition(phase)

        failures = tuple(f for o in state.outcomes for f in o.failures)
        items_updated = sum(o.succeeded for o in state.outcomes)
        if phase is Phase.COMPLETE:
            status = RunCompletionStatus.PARTIAL if failures else RunCompletionStatus.COMPLETED
            percentage = 100
        elif phase is Phase.CANCELLED:
            status = RunCompletionStatus.CANCELLED
            percentage = processing_percentage(state.processed, len(state.items)) if state.checkpoint is not None else 0
        else:
            status = RunCompletionStatus.FAILED
            percentage = processing_percentage(state.processed, len(state.items)) if state.checkpoint is not None else 0

        result = ReplacementResult(
            success=status is RunCompletionStatus.COMPLETED,
            items_updated=items_updated,
            items_failed=len(failures),
            failures=failures,
            checkpoint=state.checkpoint,
            duration_ms=elapsed_ms(self._clock, state.started),
            has_warnings=bool(failures),
            status=status,
            resources_cloned=state.resources_cloned,
            batch_outcomes=tuple(state.outcomes),
        )

        self._emit_progress(state, phase, percentage, total_batches=len(state.outcomes))
        self._events.emit(
            RunSummary(
                status=status,
                items_updated=result.items_updated,
                items_failed=result.items_failed,
                resources_cloned=result.resources_cloned,
                duration_ms=result.duration_ms,
                checkpoint_title=result.checkpoint_title,
            )
        )
        logger.info(
            "run_finished",
            status=status.value,
            items_updated=result.items_updated,
            items_failed=result.items_failed,
            resources_cloned=result.resources_cloned,
            duration_ms=round(result.duration_ms, 1),
        )
        return result
