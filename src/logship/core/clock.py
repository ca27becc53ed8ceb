# src/logship/core/clock.py
"""Clock abstraction for testable timestamps and backoff.

Production code uses SystemClock (the default).
Tests inject MockClock to pin event timestamps and advance time for
backoff windows without sleep().
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract clock.

    Implementations:
    - SystemClock: wall clock + time.monotonic() (production)
    - MockClock: controllable times (testing)
    """

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...

    def monotonic(self) -> float:
        """Return monotonic time in seconds, suitable for elapsed-time checks."""
        ...


class SystemClock:
    """Production clock backed by the system clocks."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(tz=UTC)

    def monotonic(self) -> float:
        """Return system monotonic time."""
        return time.monotonic()


class MockClock:
    """Controllable clock for deterministic testing.

    Both the wall clock and the monotonic clock advance together.

    Example:
        clock = MockClock(start=datetime(2026, 1, 30, 12, 0, tzinfo=UTC))
        service.report(EventKind.APP_ENTERED)   # stamped 12:00:00
        clock.advance(90)
        service.report(EventKind.SETTINGS_OPENED)  # stamped 12:01:30
    """

    def __init__(self, start: datetime | None = None, monotonic_start: float = 0.0) -> None:
        """Initialize mock clock.

        Args:
            start: Initial wall-clock time (default 2026-01-01T00:00:00Z)
            monotonic_start: Initial monotonic value (default 0.0)
        """
        self._now = start or datetime(2026, 1, 1, tzinfo=UTC)
        self._monotonic = monotonic_start

    def now(self) -> datetime:
        """Return current mock wall-clock time."""
        return self._now

    def monotonic(self) -> float:
        """Return current mock monotonic time."""
        return self._monotonic

    def advance(self, seconds: float) -> None:
        """Advance both clocks by ``seconds``.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._now += timedelta(seconds=seconds)
        self._monotonic += seconds


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
