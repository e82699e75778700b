# tests/engine/test_retry.py
"""Tests for RetryManager."""

import pytest

from restyle.contracts import ErrorKind, MutationAttemptError
from restyle.core.config import RetrySettings
from restyle.engine.retry import RetryConfig, RetryManager
from tests.conftest import SleepRecorder


class Flaky:
    """Async operation that fails with the given messages, then succeeds."""

    def __init__(self, *messages: str, result: str = "ok") -> None:
        self._messages = list(messages)
        self.calls = 0
        self._result = result

    async def __call__(self) -> str:
        self.calls += 1
        if self._messages:
            raise RuntimeError(self._messages.pop(0))
        return self._result


class TestRetryConfig:
    def test_defaults(self) -> None:
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.max_attempts == 4
        assert config.backoff_delays_ms == (1000, 2000, 4000)

    def test_delay_schedule_reuses_last_entry(self) -> None:
        config = RetryConfig(max_retries=5)
        assert [config.delay_for_retry(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 4.0, 4.0]

    def test_delay_for_retry_is_one_based(self) -> None:
        with pytest.raises(ValueError, match="1-based"):
            RetryConfig().delay_for_retry(0)

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"max_retries": -1}, "max_retries"),
            ({"backoff_delays_ms": ()}, "must not be empty"),
            ({"backoff_delays_ms": (100, -1)}, "non-negative"),
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            RetryConfig(**kwargs)

    def test_no_retry(self) -> None:
        assert RetryConfig.no_retry().max_attempts == 1

    def test_from_settings(self) -> None:
        config = RetryConfig.from_settings(RetrySettings(max_retries=1, backoff_delays_ms=(50, 75)))
        assert config == RetryConfig(max_retries=1, backoff_delays_ms=(50, 75))


class TestRetryManager:
    """Classification-driven retry on top of tenacity."""

    async def test_transient_failure_is_retried_until_success(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(), sleep=sleep_recorder)
        operation = Flaky("Request timed out", "429 Too Many Requests")

        result = await manager.execute_with_retry(operation)

        assert result == "ok"
        assert operation.calls == 3
        assert sleep_recorder.delays == [1.0, 2.0]

    async def test_exhausted_retries_follow_fixed_schedule(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(), sleep=sleep_recorder)
        operation = Flaky(*["Network error"] * 10)

        with pytest.raises(MutationAttemptError) as exc_info:
            await manager.execute_with_retry(operation)

        assert operation.calls == 4
        assert sleep_recorder.delays == [1.0, 2.0, 4.0]
        error = exc_info.value
        assert error.kind is ErrorKind.TRANSIENT
        assert error.attempts == 4
        assert error.retry_count == 3
        assert str(error.last_error) == "Network error"

    async def test_longer_budget_reuses_last_delay(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(max_retries=5), sleep=sleep_recorder)

        with pytest.raises(MutationAttemptError):
            await manager.execute_with_retry(Flaky(*["503 Service Unavailable"] * 10))

        assert sleep_recorder.delays == [1.0, 2.0, 4.0, 4.0, 4.0]

    async def test_persistent_failure_is_not_retried(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(), sleep=sleep_recorder)
        operation = Flaky("Permission denied")

        with pytest.raises(MutationAttemptError) as exc_info:
            await manager.execute_with_retry(operation)

        assert operation.calls == 1
        assert sleep_recorder.delays == []
        assert exc_info.value.kind is ErrorKind.PERSISTENT
        assert exc_info.value.retry_count == 0

    @pytest.mark.parametrize(
        ("message", "kind"),
        [
            ("Node is locked", ErrorKind.PARTIAL),
            ("Variable does not exist", ErrorKind.VALIDATION),
            ("something odd happened", ErrorKind.PERSISTENT),
        ],
    )
    async def test_non_transient_kinds_fail_on_first_attempt(self, sleep_recorder: SleepRecorder, message: str, kind: ErrorKind) -> None:
        manager = RetryManager(RetryConfig(), sleep=sleep_recorder)
        operation = Flaky(message)

        with pytest.raises(MutationAttemptError) as exc_info:
            await manager.execute_with_retry(operation)

        assert operation.calls == 1
        assert exc_info.value.kind is kind

    async def test_original_error_is_chained(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(), sleep=sleep_recorder)

        with pytest.raises(MutationAttemptError) as exc_info:
            await manager.execute_with_retry(Flaky("Node is locked"))

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_on_retry_uses_zero_based_attempts(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(), sleep=sleep_recorder)
        seen: list[tuple[int, str]] = []

        await manager.execute_with_retry(
            Flaky("timeout", "timeout"),
            on_retry=lambda attempt, error: seen.append((attempt, str(error))),
        )

        assert seen == [(0, "timeout"), (1, "timeout")]

    async def test_on_retry_not_called_for_final_failure(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(max_retries=1), sleep=sleep_recorder)
        seen: list[int] = []

        with pytest.raises(MutationAttemptError):
            await manager.execute_with_retry(Flaky("timeout", "timeout"), on_retry=lambda attempt, _: seen.append(attempt))

        assert seen == [0]

    async def test_no_retry_config_makes_single_attempt(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig.no_retry(), sleep=sleep_recorder)
        operation = Flaky("timeout")

        with pytest.raises(MutationAttemptError) as exc_info:
            await manager.execute_with_retry(operation)

        assert operation.calls == 1
        assert exc_info.value.kind is ErrorKind.TRANSIENT
        assert sleep_recorder.delays == []

    async def test_custom_classifier(self, sleep_recorder: SleepRecorder) -> None:
        manager = RetryManager(RetryConfig(), classify=lambda _: ErrorKind.TRANSIENT, sleep=sleep_recorder)
        operation = Flaky("Permission denied")

        assert await manager.execute_with_retry(operation) == "ok"
        assert operation.calls == 2
