# src/restyle/engine/batching.py
"""Adaptive batch scheduling for bulk node mutation.

Implements a fail-fast / recover-slowly sizing rule:
- On any failure in a batch: drop straight to the minimum size
- After N clean batches in a row: grow by a fixed step, capped at the maximum

A single failure is usually systemic (rate limiting, a locked subtree), so
small batches bound the blast radius while probing whether conditions have
recovered. Large batches keep per-item overhead low the rest of the time.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from restyle.contracts import Batch, BatchOutcome, FailureRecord, MutationAttemptError
from restyle.core.classification import classify_error
from restyle.core.logging import get_logger
from restyle.engine.clock import DEFAULT_CLOCK, Clock, elapsed_ms

if TYPE_CHECKING:
    from restyle.core.config import BatchSettings

logger = get_logger(__name__)

ItemOperation = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class BatchSizerConfig:
    """Configuration for adaptive batch sizing.

    Runtime dataclass built from validated BatchSettings, not a Pydantic model.

    Attributes:
        initial_size: Size of the first batch (default: 100)
        min_size: Size after any failure (default: 25)
        max_size: Growth ceiling (default: 100)
        success_threshold: Clean batches in a row before growing (default: 5)
        growth_step: Size increase once the threshold is reached (default: 25)
    """

    initial_size: int = 100
    min_size: int = 25
    max_size: int = 100
    success_threshold: int = 5
    growth_step: int = 25

    def __post_init__(self) -> None:
        if self.min_size < 1:
            raise ValueError("min_size must be >= 1")
        if self.min_size > self.max_size:
            raise ValueError(f"min_size ({self.min_size}) cannot exceed max_size ({self.max_size})")
        if not self.min_size <= self.initial_size <= self.max_size:
            raise ValueError(f"initial_size ({self.initial_size}) must be within [{self.min_size}, {self.max_size}]")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.growth_step < 1:
            raise ValueError("growth_step must be >= 1")

    @classmethod
    def from_settings(cls, settings: BatchSettings) -> BatchSizerConfig:
        return cls(
            initial_size=settings.initial_size,
            min_size=settings.min_size,
            max_size=settings.max_size,
            success_threshold=settings.success_threshold,
            growth_step=settings.growth_step,
        )


class BatchSizer:
    """Batch size state machine.

    Usage:
        sizer = BatchSizer()
        size = sizer.current_batch_size
        ... run a batch of that size ...
        sizer.record(failed=outcome.failed)
    """

    def __init__(self, config: BatchSizerConfig | None = None) -> None:
        self._config = config or BatchSizerConfig()
        self._current_batch_size = self._config.initial_size
        self._consecutive_successes = 0

        # Reported in the batch_processing_finished log event
        self._reductions = 0
        self._increases = 0

    @property
    def config(self) -> BatchSizerConfig:
        return self._config

    @property
    def current_batch_size(self) -> int:
        return self._current_batch_size

    @property
    def consecutive_successes(self) -> int:
        return self._consecutive_successes

    def record(self, *, failed: int) -> int:
        """Record a settled batch and return the size for the next one.

        Args:
            failed: Number of failed items in the batch
        """
        if failed > 0:
            old_size = self._current_batch_size
            self._current_batch_size = self._config.min_size
            self._consecutive_successes = 0
            if old_size != self._current_batch_size:
                self._reductions += 1
                logger.info("batch_size_reduced", failed=failed, old_size=old_size, new_size=self._current_batch_size)
            return self._current_batch_size

        self._consecutive_successes += 1
        if self._consecutive_successes >= self._config.success_threshold:
            old_size = self._current_batch_size
            self._current_batch_size = min(self._current_batch_size + self._config.growth_step, self._config.max_size)
            self._consecutive_successes = 0
            if old_size != self._current_batch_size:
                self._increases += 1
                logger.info(
                    "batch_size_increased",
                    clean_batches=self._config.success_threshold,
                    old_size=old_size,
                    new_size=self._current_batch_size,
                )
        return self._current_batch_size

    def reset(self) -> None:
        """Return to the initial size and clear the success streak and statistics."""
        self._current_batch_size = self._config.initial_size
        self._consecutive_successes = 0
        self._reductions = 0
        self._increases = 0

    def get_stats(self) -> dict[str, int]:
        return {
            "current_batch_size": self._current_batch_size,
            "consecutive_successes": self._consecutive_successes,
            "reductions": self._reductions,
            "increases": self._increases,
        }


@dataclass(frozen=True, slots=True)
class _ItemResult:
    failure: FailureRecord | None = None
    skipped: bool = False


def build_failure_record(item: str, error: BaseException, label: str | None = None) -> FailureRecord:
    """FailureRecord for an item, unwrapping MutationAttemptError for kind and retry count."""
    if isinstance(error, MutationAttemptError):
        return FailureRecord(
            node_id=item,
            node_label=label or item,
            error_kind=error.kind,
            message=str(error.last_error),
            retry_count=error.retry_count,
        )
    return FailureRecord(
        node_id=item,
        node_label=label or item,
        error_kind=classify_error(error),
        message=str(error),
        retry_count=0,
    )


class AdaptiveBatchScheduler:
    """Drives item operations in adaptively sized batches.

    Within a batch every item operation is started without waiting for the
    previous one (fan-out equal to the batch size), and the BatchOutcome is
    only produced once all of them have settled. Batches run strictly in
    submission order, with a cooperative pause between them so the event
    loop is never starved.
    """

    def __init__(
        self,
        config: BatchSizerConfig | None = None,
        *,
        inter_batch_delay_ms: int = 10,
        clock: Clock = DEFAULT_CLOCK,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        label_for: Callable[[str], str | None] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            config: Sizing configuration (defaults if None)
            inter_batch_delay_ms: Pause between batches; 0 still yields to the loop
            clock: Clock used for batch durations
            sleep: Async sleep used for the inter-batch pause
            label_for: Optional lookup of a human-readable label for an item
        """
        self._sizer = BatchSizer(config)
        self._inter_batch_delay_ms = inter_batch_delay_ms
        self._clock = clock
        self._sleep = sleep
        self._label_for = label_for

    @property
    def sizer(self) -> BatchSizer:
        return self._sizer

    @property
    def current_batch_size(self) -> int:
        return self._sizer.current_batch_size

    def estimate_total_batches(self, batches_done: int, items_done: int, total_items: int) -> int:
        """Batches done plus the batches still needed at the current size."""
        remaining = max(total_items - items_done, 0)
        return batches_done + math.ceil(remaining / self._sizer.current_batch_size)

    async def process_batches(
        self,
        items: Sequence[str],
        operation: ItemOperation,
        *,
        should_cancel: Callable[[], bool] = lambda: False,
    ) -> AsyncIterator[BatchOutcome]:
        """Run operation over items in adaptive batches, yielding one outcome per batch.

        Each call starts from the initial batch size; a stream is not
        resumable mid-way. Cancellation is checked before each item starts.
        Items not started are reported as ``skipped`` and the stream ends
        after that batch.

        Args:
            items: Item ids, processed in order
            operation: Coroutine function run once per item; raising marks the item failed
            should_cancel: Polled before each item starts

        Yields:
            BatchOutcome for each batch, in submission order
        """
        self._sizer.reset()
        total = len(items)
        position = 0
        batch_number = 0

        logger.info("batch_processing_started", total_items=total, initial_batch_size=self._sizer.current_batch_size)

        while position < total:
            batch_number += 1
            batch = Batch(number=batch_number, items=tuple(items[position : position + self._sizer.current_batch_size]))
            position += batch.size

            logger.debug("batch_started", batch_number=batch.number, batch_size=batch.size, position=position, total_items=total)
            outcome = await self._run_batch(batch, operation, should_cancel)
            next_size = self._sizer.record(failed=outcome.failed)
            logger.debug(
                "batch_finished",
                batch_number=outcome.batch_number,
                succeeded=outcome.succeeded,
                failed=outcome.failed,
                skipped=outcome.skipped,
                duration_ms=round(outcome.duration_ms, 1),
                next_batch_size=next_size,
            )

            yield outcome

            if outcome.was_cancelled:
                logger.info("batch_processing_cancelled", batch_number=batch_number, skipped=outcome.skipped)
                return
            if position < total:
                await self._sleep(self._inter_batch_delay_ms / 1000.0)

        logger.info("batch_processing_finished", batches=batch_number, **self._sizer.get_stats())

    async def _run_batch(
        self,
        batch: Batch,
        operation: ItemOperation,
        should_cancel: Callable[[], bool],
    ) -> BatchOutcome:
        started = self._clock.monotonic()

        async def run_item(item: str) -> _ItemResult:
            if should_cancel():
                return _ItemResult(skipped=True)
            try:
                await operation(item)
            except Exception as e:
                label = self._label_for(item) if self._label_for is not None else None
                return _ItemResult(failure=build_failure_record(item, e, label))
            return _ItemResult()

        results = await asyncio.gather(*(run_item(item) for item in batch.items))

        failures = tuple(r.failure for r in results if r.failure is not None)
        skipped = sum(1 for r in results if r.skipped)
        return BatchOutcome(
            batch_number=batch.number,
            batch_size=batch.size,
            succeeded=batch.size - len(failures) - skipped,
            failed=len(failures),
            failures=failures,
            duration_ms=elapsed_ms(self._clock, started),
            skipped=skipped,
        )
