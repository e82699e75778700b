# src/restyle/engine/retry.py
"""RetryManager: bounded retry for single item mutations, built on tenacity.

Only failures the classifier marks transient are retried. Delays follow a
fixed schedule (1s, 2s, 4s by default) with the last entry reused if the
retry budget is longer than the schedule. A failure that ends the attempt
loop is never swallowed: it is raised as MutationAttemptError carrying the
final error, its classification and the attempt count.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_chain,
    wait_fixed,
)

from restyle.contracts import ErrorKind, MutationAttemptError
from restyle.core.classification import classify_error
from restyle.core.logging import get_logger

if TYPE_CHECKING:
    from restyle.core.config import RetrySettings

T = TypeVar("T")

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryConfig:
    """Runtime retry configuration.

    max_retries counts RETRIES, not attempts: max_retries=3 means
    try, retry, retry, retry (4 attempts in total).
    """

    max_retries: int = 3
    backoff_delays_ms: tuple[int, ...] = (1000, 2000, 4000)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if not self.backoff_delays_ms:
            raise ValueError("backoff_delays_ms must not be empty")
        if any(delay < 0 for delay in self.backoff_delays_ms):
            raise ValueError("backoff delays must be non-negative")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for_retry(self, retry_number: int) -> float:
        """Seconds to wait before the given 1-based retry."""
        if retry_number < 1:
            raise ValueError(f"retry_number is 1-based, got {retry_number}")
        index = min(retry_number, len(self.backoff_delays_ms)) - 1
        return self.backoff_delays_ms[index] / 1000.0

    @classmethod
    def no_retry(cls) -> "RetryConfig":
        """Factory for a single-attempt configuration."""
        return cls(max_retries=0)

    @classmethod
    def from_settings(cls, settings: "RetrySettings") -> "RetryConfig":
        """Factory from the validated RetrySettings model."""
        return cls(max_retries=settings.max_retries, backoff_delays_ms=tuple(settings.backoff_delays_ms))


class RetryManager:
    """Runs one async mutation with classification-driven retries.

    Example:
        manager = RetryManager(RetryConfig())

        await manager.execute_with_retry(
            lambda: adapter.set_node_style(node_id, target_id),
            on_retry=lambda attempt, error: print(attempt, error),
        )
    """

    def __init__(
        self,
        config: RetryConfig,
        *,
        classify: Callable[[BaseException], ErrorKind] = classify_error,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize with config.

        Args:
            config: Retry configuration
            classify: Error classifier (defaults to restyle's message classifier)
            sleep: Async sleep used between attempts; tests inject a recorder
        """
        self._config = config
        self._classify = classify
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _wait_strategy(self) -> wait_chain:
        return wait_chain(*(wait_fixed(delay_ms / 1000.0) for delay_ms in self._config.backoff_delays_ms))

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Execute an async operation with retry.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt
            on_retry: Optional callback (0-based failed attempt, error), fired
                only when another attempt will follow

        Returns:
            Result of the first successful attempt

        Raises:
            MutationAttemptError: On a non-transient failure, or when every
                attempt failed transiently
        """
        attempt = 0

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome is not None else None
            delay = retry_state.next_action.sleep if retry_state.next_action is not None else 0.0
            logger.info(
                "mutation_retry_scheduled",
                attempt=retry_state.attempt_number,
                delay_seconds=delay,
                error=str(error),
            )
            if on_retry is not None and error is not None:
                on_retry(retry_state.attempt_number - 1, error)

        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(self._config.max_attempts),
                wait=self._wait_strategy(),
                retry=retry_if_exception(lambda e: self._classify(e).retryable),
                before_sleep=before_sleep,
                sleep=self._sleep,
                reraise=False,  # RetryError is converted to MutationAttemptError below
            ):
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    return await operation()
        except RetryError as e:
            # Retry budget exhausted on transient failures
            final_error = e.last_attempt.exception()
            assert final_error is not None, "RetryError without exception is impossible"
            raise MutationAttemptError(final_error, attempts=attempt, kind=ErrorKind.TRANSIENT) from final_error
        except Exception as e:
            # Non-retryable: tenacity re-raises the original exception on the first such failure
            raise MutationAttemptError(e, attempts=attempt, kind=self._classify(e)) from e

        # Should not reach here - AsyncRetrying always returns or raises
        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover
