# src/logship/shipping/retry.py
"""In-cycle retry of remote store calls, using tenacity.

A ship cycle is already retried indefinitely by the schedule, so in-cycle
retry is off by default (max_attempts=1). When enabled it smooths over brief
blips without waiting a whole schedule interval.

Only transient failures are retried. ObjectNotFound, ObjectTooLarge and
SerializationFailure are answers, not blips, and propagate immediately.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import structlog
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from logship.contracts.errors import RemoteWriteConflict, TransientNetworkFailure

if TYPE_CHECKING:
    from logship.contracts.runtime import RuntimeShipperConfig

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    TransientNetworkFailure,
    RemoteWriteConflict,
    TimeoutError,
    ConnectionError,
)


def is_retryable(error: BaseException) -> bool:
    """Whether a remote call failure is worth retrying within the same cycle."""
    return isinstance(error, _RETRYABLE_ERRORS)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for in-cycle retry.

    max_attempts is the TOTAL number of tries, not the number of retries.
    """

    max_attempts: int = 1
    base_delay: float = 0.5  # seconds
    max_delay: float = 5.0  # seconds
    jitter: float = 0.1  # seconds, not exposed in settings

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def no_retry(cls) -> "RetryConfig":
        """Factory for single-attempt configuration."""
        return cls(max_attempts=1)

    @classmethod
    def from_runtime(cls, config: "RuntimeShipperConfig") -> "RetryConfig":
        """Factory from the shipper's runtime configuration."""
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_initial_delay_seconds,
            max_delay=config.retry_max_delay_seconds,
        )


class RemoteCallRetrier:
    """Runs a remote call with exponential backoff on transient failures.

    The final failure is re-raised unchanged so callers see the real error.

    Example:
        retrier = RemoteCallRetrier(RetryConfig(max_attempts=3))
        data = retrier.call("read", lambda: store.read(key, max_bytes=n, timeout=10.0))
    """

    def __init__(self, config: RetryConfig, *, sleep: Callable[[float], None] = time.sleep) -> None:
        """Initialize with config.

        Args:
            config: Retry configuration
            sleep: Sleep function between attempts (tests pass a no-op)
        """
        self._config = config
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    def call(self, operation: str, fn: Callable[[], T]) -> T:
        """Execute ``fn`` with retry.

        Args:
            operation: Name used in log messages (e.g. "read", "write")
            fn: Zero-argument callable performing the remote call

        Returns:
            Result of ``fn``

        Raises:
            Exception: The last error from ``fn`` once attempts are exhausted,
                or the first non-retryable error
        """
        if self._config.max_attempts == 1:
            return fn()

        def _log_retry(retry_state: object) -> None:
            outcome = getattr(retry_state, "outcome", None)
            error = outcome.exception() if outcome is not None else None
            logger.info(
                "Retrying remote call",
                operation=operation,
                attempt=getattr(retry_state, "attempt_number", None),
                error=str(error),
            )

        retrying = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential_jitter(
                initial=self._config.base_delay,
                max=self._config.max_delay,
                jitter=self._config.jitter,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(fn)
