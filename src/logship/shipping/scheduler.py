# src/logship/shipping/scheduler.py
"""Scheduler abstraction for periodic ship cycles.

Production code uses IntervalScheduler (a background timer thread).
Tests inject ManualScheduler and call tick() to drive cycles without
wall-clock timers.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

import structlog

from logship.contracts.defaults import INTERNAL_DEFAULTS

logger = structlog.get_logger(__name__)


class IntervalScheduler:
    """Invokes a callback every N seconds on a daemon thread.

    The first tick happens one interval after every() is called. Callback
    exceptions are logged and do not stop the schedule.
    """

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def every(self, interval_seconds: float, callback: Callable[[], None]) -> None:
        """Start ticking.

        Raises:
            ValueError: If interval_seconds is not positive
            RuntimeError: If the scheduler is already running
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        if self._thread is not None:
            raise RuntimeError("Scheduler already running")

        def _loop() -> None:
            # wait() returns True once stop() is called
            while not self._stop_event.wait(interval_seconds):
                try:
                    callback()
                except Exception as e:
                    logger.error("Scheduled callback failed", error_type=type(e).__name__, error=str(e))

        self._thread = threading.Thread(target=_loop, name="logship-scheduler", daemon=True)
        self._thread.start()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self) -> None:
        """Stop ticking and wait for the timer thread. Idempotent."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=float(INTERNAL_DEFAULTS["scheduler"]["join_timeout"]))
            if self._thread.is_alive():
                logger.error("Scheduler thread did not exit cleanly within timeout")


class ManualScheduler:
    """Deterministic scheduler for tests.

    Example:
        scheduler = ManualScheduler()
        service = EventLogService(..., scheduler=scheduler)
        service.start()
        scheduler.tick()  # one scheduled tick, synchronously
    """

    def __init__(self) -> None:
        self.interval_seconds: float | None = None
        self._callback: Callable[[], None] | None = None
        self.tick_count = 0
        self.stopped = False

    def every(self, interval_seconds: float, callback: Callable[[], None]) -> None:
        """Record the callback; nothing runs until tick()."""
        self.interval_seconds = interval_seconds
        self._callback = callback

    def tick(self, times: int = 1) -> None:
        """Invoke the registered callback ``times`` times.

        Raises:
            RuntimeError: If every() was never called or stop() was called
        """
        if self._callback is None:
            raise RuntimeError("No callback registered; call every() first")
        if self.stopped:
            raise RuntimeError("Scheduler stopped")
        for _ in range(times):
            self.tick_count += 1
            self._callback()

    def stop(self) -> None:
        """Mark stopped. Idempotent."""
        self.stopped = True
