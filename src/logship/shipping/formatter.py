# src/logship/shipping/formatter.py
"""Render events into the remote log's text format.

Line format:
    [2026-01-30 12:00:00 UTC | 2026-01-30 13:00:00 CET] settings_opened
    [2026-01-30 12:00:05 UTC | 2026-01-30 13:00:05 CET] refresh_triggered | {"context":"pull"}

Formatting is a pure function of the events and the local timezone: the
same immutable batch always renders to byte-identical text. This matters
because a failed cycle is retried with the same snapshot content.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, tzinfo

from logship.contracts.events import Event
from logship.core.canonical import canonical_detail

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LINE_SEPARATOR = "\n"


def _as_utc(timestamp: datetime) -> datetime:
    # Naive timestamps are taken to be UTC already
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC)


def _local_zone_label(local: datetime) -> str:
    return local.tzname() or "LOCAL"


def format_event(event: Event, *, local_tz: tzinfo | None = None) -> str:
    """Render one event as a single log line.

    Args:
        event: Event to render
        local_tz: Zone for the local timestamp. None uses the host's zone.
    """
    utc_time = _as_utc(event.timestamp)
    local_time = utc_time.astimezone(local_tz) if local_tz is not None else utc_time.astimezone()

    line = (
        f"[{utc_time.strftime(_TIMESTAMP_FORMAT)} UTC | "
        f"{local_time.strftime(_TIMESTAMP_FORMAT)} {_local_zone_label(local_time)}] "
        f"{event.kind.value}"
    )
    if event.detail:
        line += f" | {canonical_detail(event.detail)}"
    return line


def format_batch(events: Iterable[Event], *, local_tz: tzinfo | None = None) -> str:
    """Render events as newline-joined log lines (no trailing newline)."""
    return LINE_SEPARATOR.join(format_event(event, local_tz=local_tz) for event in events)


def append_to_log(existing: str, new_text: str) -> str:
    """Concatenate a rendered batch onto existing log content.

    A separator is inserted only when there is existing content, so a fresh
    log object never starts with a blank line.
    """
    if not existing:
        return new_text
    return existing + LINE_SEPARATOR + new_text
