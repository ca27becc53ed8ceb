# tests/unit/shipping/test_formatter.py
"""Tests for log line rendering."""

from datetime import UTC, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from logship.contracts import Event, EventKind
from logship.shipping.formatter import LINE_SEPARATOR, append_to_log, format_batch, format_event
from tests.fakes import make_event

CET = ZoneInfo("Europe/Paris")


class TestFormatEvent:
    def test_line_without_detail(self) -> None:
        line = format_event(make_event(EventKind.SETTINGS_OPENED), local_tz=UTC)
        assert line == "[2026-01-30 12:00:00 UTC | 2026-01-30 12:00:00 UTC] settings_opened"

    def test_line_with_detail(self) -> None:
        event = make_event(EventKind.REFRESH_TRIGGERED, {"context": "pull"})
        line = format_event(event, local_tz=UTC)
        assert line.endswith('] refresh_triggered | {"context":"pull"}')

    def test_empty_detail_omitted(self) -> None:
        line = format_event(make_event(EventKind.PREFERENCES_OPENED, {}), local_tz=UTC)
        assert line.endswith("] preferences_opened")

    def test_local_zone_rendered(self) -> None:
        line = format_event(make_event(), local_tz=CET)
        assert line.startswith("[2026-01-30 12:00:00 UTC | 2026-01-30 13:00:00 CET]")

    def test_fixed_offset_zone(self) -> None:
        zone = timezone(timedelta(hours=-5), "EST")
        line = format_event(make_event(), local_tz=zone)
        assert "| 2026-01-30 07:00:00 EST]" in line

    def test_aware_non_utc_timestamp_converted(self) -> None:
        ts = datetime(2026, 1, 30, 14, 0, tzinfo=CET)
        line = format_event(Event(ts, EventKind.APP_ENTERED), local_tz=UTC)
        assert line.startswith("[2026-01-30 13:00:00 UTC")

    def test_naive_timestamp_treated_as_utc(self) -> None:
        line = format_event(Event(datetime(2026, 1, 30, 12, 0), EventKind.APP_ENTERED), local_tz=UTC)
        assert line.startswith("[2026-01-30 12:00:00 UTC")

    def test_null_detail_values(self) -> None:
        event = make_event(EventKind.TOPIC_SUMMARY_VIEWED, {"topic_name": "AI", "topic_id": None})
        assert format_event(event, local_tz=UTC).endswith('| {"topic_id":null,"topic_name":"AI"}')

    def test_deterministic(self) -> None:
        event = make_event(EventKind.PODCAST_SEEKED, {"to": 30.0, "from": 10.0, "seek_delta": 20.0})
        assert format_event(event, local_tz=CET) == format_event(event, local_tz=CET)


class TestFormatBatch:
    def test_lines_in_order_without_trailing_newline(self) -> None:
        events = [
            make_event(EventKind.APP_ENTERED, offset_seconds=0),
            make_event(EventKind.SETTINGS_OPENED, offset_seconds=1),
        ]
        text = format_batch(events, local_tz=UTC)
        lines = text.split(LINE_SEPARATOR)
        assert len(lines) == 2
        assert lines[0].endswith("app_entered")
        assert lines[1].endswith("settings_opened")
        assert not text.endswith("\n")


class TestAppendToLog:
    def test_empty_existing_has_no_leading_separator(self) -> None:
        assert append_to_log("", "new") == "new"

    def test_separator_between_existing_and_new(self) -> None:
        assert append_to_log("old", "new") == "old\nnew"
