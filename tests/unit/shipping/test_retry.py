# tests/unit/shipping/test_retry.py
"""Tests for in-cycle retry of remote calls."""

import pytest

from logship.contracts import (
    ObjectNotFound,
    RemoteWriteConflict,
    RuntimeShipperConfig,
    SerializationFailure,
    TransientNetworkFailure,
)
from logship.shipping.retry import RemoteCallRetrier, RetryConfig, is_retryable


class _Flaky:
    """Callable failing with ``error`` for the first ``failures`` calls."""

    def __init__(self, failures: int, error: Exception) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestIsRetryable:
    @pytest.mark.parametrize(
        "error",
        [
            TransientNetworkFailure("read", "k", "down"),
            RemoteWriteConflict("k"),
            TimeoutError(),
            ConnectionResetError(),
        ],
    )
    def test_transient_errors(self, error: Exception) -> None:
        assert is_retryable(error)

    @pytest.mark.parametrize("error", [ObjectNotFound("k"), SerializationFailure("bad"), ValueError("x")])
    def test_answers_are_not_retried(self, error: Exception) -> None:
        assert not is_retryable(error)


class TestRetryConfig:
    def test_defaults_to_single_attempt(self) -> None:
        assert RetryConfig().max_attempts == 1
        assert RetryConfig.no_retry().max_attempts == 1

    def test_zero_attempts_rejected(self) -> None:
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)

    def test_from_runtime(self) -> None:
        config = RuntimeShipperConfig(
            retry_max_attempts=4,
            retry_initial_delay_seconds=0.2,
            retry_max_delay_seconds=2.0,
        )
        retry = RetryConfig.from_runtime(config)
        assert (retry.max_attempts, retry.base_delay, retry.max_delay) == (4, 0.2, 2.0)


class TestRemoteCallRetrier:
    def test_single_attempt_propagates_first_error(self) -> None:
        flaky = _Flaky(1, TransientNetworkFailure("read", "k", "down"))
        with pytest.raises(TransientNetworkFailure):
            RemoteCallRetrier(RetryConfig.no_retry()).call("read", flaky)
        assert flaky.calls == 1

    def test_retries_transient_failures(self) -> None:
        sleeps: list[float] = []
        flaky = _Flaky(2, TransientNetworkFailure("write", "k", "down"))

        result = RemoteCallRetrier(RetryConfig(max_attempts=3), sleep=sleeps.append).call("write", flaky)

        assert result == "ok"
        assert flaky.calls == 3
        assert len(sleeps) == 2

    def test_exhausted_attempts_reraise_original_error(self) -> None:
        error = TransientNetworkFailure("write", "k", "down")
        flaky = _Flaky(5, error)
        with pytest.raises(TransientNetworkFailure) as exc_info:
            RemoteCallRetrier(RetryConfig(max_attempts=2), sleep=lambda _: None).call("write", flaky)
        assert exc_info.value is error
        assert flaky.calls == 2

    def test_non_retryable_error_not_retried(self) -> None:
        flaky = _Flaky(1, ObjectNotFound("k"))
        with pytest.raises(ObjectNotFound):
            RemoteCallRetrier(RetryConfig(max_attempts=3), sleep=lambda _: None).call("read", flaky)
        assert flaky.calls == 1

    def test_delays_bounded_by_max(self) -> None:
        sleeps: list[float] = []
        flaky = _Flaky(4, TimeoutError())
        RemoteCallRetrier(
            RetryConfig(max_attempts=5, base_delay=1.0, max_delay=2.0, jitter=0.0),
            sleep=sleeps.append,
        ).call("read", flaky)
        assert all(delay <= 2.0 for delay in sleeps)
