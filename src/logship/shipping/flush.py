# src/logship/shipping/flush.py
"""Blocking "flush now and wait" for shutdown and backgrounding paths.

flush_now() runs a ship cycle in the caller's thread. If another cycle is in
flight it polls (exponential backoff, bounded by a deadline) until that cycle
has finished, then runs one more cycle for whatever is still buffered.
"""

import time
from collections.abc import Callable

import structlog
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_exponential

from logship.contracts.defaults import INTERNAL_DEFAULTS
from logship.contracts.enums import ShipOutcome
from logship.contracts.runtime import RuntimeShipperConfig
from logship.shipping.shipper import LogShipper

logger = structlog.get_logger(__name__)


def _still_in_flight(outcome: ShipOutcome) -> bool:
    return outcome == ShipOutcome.SKIPPED_IN_FLIGHT


class FlushController:
    """Exposes flush_now() over a LogShipper.

    Example:
        controller = FlushController(shipper, config)
        drained = controller.flush_now(timeout=5.0)
    """

    def __init__(
        self,
        shipper: LogShipper,
        config: RuntimeShipperConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            shipper: Shipper whose buffer is flushed
            config: Runtime configuration (flush timeout and poll interval)
            sleep: Sleep function between polls (tests pass a fake)
        """
        self._shipper = shipper
        self._config = config
        self._sleep = sleep

    def flush_now(self, timeout: float | None = None) -> bool:
        """Ship everything currently buffered, waiting for completion.

        Returns immediately (True) without contacting any store when the
        buffer is empty. Explicit flushes ignore failure backoff.

        Args:
            timeout: Seconds to wait for an in-flight cycle before giving up.
                Defaults to flush.timeout_seconds.

        Returns:
            True if the events buffered when flush began have been shipped,
            False if the cycle failed, no actor is signed in, or the wait
            timed out. Never raises for shipping failures.
        """
        if self._shipper.buffer.is_empty():
            return True

        deadline = timeout if timeout is not None else self._config.flush_timeout_seconds
        poll = self._config.flush_poll_interval_seconds
        max_poll = max(poll, float(INTERNAL_DEFAULTS["flush"]["max_poll_interval"]))

        retrying = Retrying(
            stop=stop_after_delay(deadline),
            wait=wait_exponential(multiplier=poll, min=poll, max=max_poll),
            retry=retry_if_result(_still_in_flight),
            sleep=self._sleep,
        )
        try:
            outcome = retrying(self._shipper.ship_once, respect_backoff=False)
        except RetryError:
            logger.warning("Flush timed out waiting for in-flight ship cycle", timeout_seconds=deadline)
            return False

        drained = outcome == ShipOutcome.SHIPPED or self._shipper.buffer.is_empty()
        if not drained:
            logger.warning("Flush did not drain buffer", outcome=outcome.value, buffered=len(self._shipper.buffer))
        return drained
