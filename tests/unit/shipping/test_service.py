# tests/unit/shipping/test_service.py
"""Tests for EventLogService: reporting, lifecycle, flush and summary."""

import json
from collections.abc import Iterator
from datetime import UTC
from unittest.mock import patch

import pytest

from logship.contracts import EventKind, RuntimeShipperConfig
from logship.core.clock import MockClock
from logship.shipping.scheduler import ManualScheduler
from logship.shipping.service import EventLogService
from tests.fakes import (
    ExplodingIdentity,
    RecordingCounterStore,
    RecordingObjectStore,
    SignedOutIdentity,
    StaticIdentity,
)

LOG_KEY = "logging/user-1.txt"


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def service(
    identity: StaticIdentity,
    object_store: RecordingObjectStore,
    counter_store: RecordingCounterStore,
    config: RuntimeShipperConfig,
    scheduler: ManualScheduler,
    clock: MockClock,
) -> Iterator[EventLogService]:
    instance = EventLogService(
        identity,
        object_store,
        counter_store,
        config,
        scheduler=scheduler,
        clock=clock,
        local_tz=UTC,
        sleep=lambda _: None,
    )
    yield instance
    instance.close(flush=False)


def _detail(service: EventLogService) -> dict[str, object]:
    """Detail mapping of the single buffered event."""
    events = service.shipper.buffer.snapshot().events
    assert len(events) == 1
    assert events[0].detail is not None
    return dict(events[0].detail)


class TestReport:
    def test_buffers_event(self, service: EventLogService, clock: MockClock) -> None:
        assert service.report(EventKind.SETTINGS_OPENED) is True
        events = service.shipper.buffer.snapshot().events
        assert [e.kind for e in events] == [EventKind.SETTINGS_OPENED]
        assert events[0].timestamp == clock.now()

    def test_accepts_wire_value(self, service: EventLogService) -> None:
        assert service.report("preferences_opened") is True
        assert service.shipper.buffer.snapshot().events[0].kind == EventKind.PREFERENCES_OPENED

    def test_unknown_kind_raises(self, service: EventLogService) -> None:
        with pytest.raises(ValueError):
            service.report("not_a_kind")

    def test_dropped_without_actor(self, service: EventLogService, identity: StaticIdentity) -> None:
        identity.actor_id = None
        assert service.report(EventKind.SETTINGS_OPENED) is False
        assert service.shipper.buffer.is_empty()

    def test_dropped_when_identity_lookup_fails(
        self, object_store: RecordingObjectStore, counter_store: RecordingCounterStore, config: RuntimeShipperConfig
    ) -> None:
        service = EventLogService(
            ExplodingIdentity(), object_store, counter_store, config, scheduler=ManualScheduler()
        )
        try:
            with patch("logship.shipping.service.logger") as mock_logger:
                assert service.log_settings_opened() is False
            mock_logger.warning.assert_called_once()
        finally:
            service.close(flush=False)

    def test_dropped_when_identity_raises_no_identity(
        self, object_store: RecordingObjectStore, counter_store: RecordingCounterStore, config: RuntimeShipperConfig
    ) -> None:
        service = EventLogService(
            SignedOutIdentity(), object_store, counter_store, config, scheduler=ManualScheduler()
        )
        try:
            with patch("logship.shipping.service.logger") as mock_logger:
                assert service.log_preferences_opened() is False
                assert service.get_summary() is None
            mock_logger.warning.assert_not_called()
            assert service.shipper.buffer.is_empty()
        finally:
            service.close(flush=False)

    def test_dropped_after_close(self, service: EventLogService) -> None:
        service.close(flush=False)
        assert service.report(EventKind.SETTINGS_OPENED) is False

    def test_detail_is_copied(self, service: EventLogService) -> None:
        detail = {"context": "pull"}
        service.report(EventKind.REFRESH_TRIGGERED, detail)
        detail["context"] = "changed"
        assert _detail(service) == {"context": "pull"}


class TestConvenienceReporters:
    def test_app_entered_carries_session_start(self, service: EventLogService, clock: MockClock) -> None:
        service.log_app_entered()
        assert _detail(service) == {"session_start": clock.now().timestamp()}

    def test_topic_summary_viewed(self, service: EventLogService) -> None:
        service.log_topic_summary_viewed("Science", topic_id="t-1")
        assert _detail(service) == {"topic_name": "Science", "topic_id": "t-1"}

    def test_subtopic_summary_viewed(self, service: EventLogService) -> None:
        service.log_subtopic_summary_viewed("Physics", parent_topic="Science")
        assert _detail(service) == {"subtopic_name": "Physics", "parent_topic": "Science"}

    def test_reddit_summary_viewed(self, service: EventLogService) -> None:
        service.log_reddit_summary_viewed("r/physics")
        assert _detail(service) == {"subtopic_name": "r/physics", "parent_topic": None}

    def test_podcast_played(self, service: EventLogService) -> None:
        service.log_podcast_played("https://example.com/ep1.mp3", duration=1800.0)
        assert _detail(service) == {"podcast_url": "https://example.com/ep1.mp3", "duration_seconds": 1800.0}

    def test_podcast_paused(self, service: EventLogService) -> None:
        service.log_podcast_paused(current_time=12.5, total_duration=300.0)
        assert _detail(service) == {"current_time_seconds": 12.5, "total_duration_seconds": 300.0}

    def test_podcast_seeked_includes_delta(self, service: EventLogService) -> None:
        service.log_podcast_seeked(from_time=120.0, to_time=90.0)
        assert _detail(service) == {"from_time_seconds": 120.0, "to_time_seconds": 90.0, "seek_delta": -30.0}

    def test_refresh_triggered(self, service: EventLogService) -> None:
        service.log_refresh_triggered("pull_to_refresh")
        assert _detail(service) == {"context": "pull_to_refresh"}

    @pytest.mark.parametrize(
        ("method", "kind"),
        [
            ("log_settings_opened", EventKind.SETTINGS_OPENED),
            ("log_preferences_opened", EventKind.PREFERENCES_OPENED),
        ],
    )
    def test_detail_free_events(self, service: EventLogService, method: str, kind: EventKind) -> None:
        getattr(service, method)()
        events = service.shipper.buffer.snapshot().events
        assert events[0].kind == kind
        assert not events[0].has_detail


class TestLifecycle:
    def test_start_registers_tick(
        self, service: EventLogService, scheduler: ManualScheduler, object_store: RecordingObjectStore
    ) -> None:
        service.start()
        service.start()
        assert scheduler.interval_seconds == service.config.interval_seconds

        service.log_settings_opened()
        scheduler.tick()
        service.shipper.join()

        assert object_store.writes == [LOG_KEY]
        assert service.shipper.buffer.is_empty()

    def test_tick_with_empty_buffer_touches_nothing(
        self, service: EventLogService, scheduler: ManualScheduler, object_store: RecordingObjectStore
    ) -> None:
        service.start()
        scheduler.tick(times=3)
        service.shipper.join()
        assert object_store.reads == []

    def test_close_flushes_and_closes_stores(
        self,
        service: EventLogService,
        scheduler: ManualScheduler,
        object_store: RecordingObjectStore,
        counter_store: RecordingCounterStore,
    ) -> None:
        service.start()
        service.log_settings_opened()

        service.close()

        assert scheduler.stopped
        assert object_store.writes == [LOG_KEY]
        assert object_store.closed
        assert counter_store.closed
        assert service.shipper.closed

    def test_close_without_flush_warns_about_unshipped_events(
        self, service: EventLogService, object_store: RecordingObjectStore
    ) -> None:
        service.log_settings_opened()
        with patch("logship.shipping.service.logger") as mock_logger:
            service.close(flush=False)
        assert object_store.writes == []
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["buffered"] == 1

    def test_close_is_idempotent(self, service: EventLogService) -> None:
        service.close()
        service.close()

    def test_context_manager(
        self,
        identity: StaticIdentity,
        object_store: RecordingObjectStore,
        counter_store: RecordingCounterStore,
        config: RuntimeShipperConfig,
    ) -> None:
        scheduler = ManualScheduler()
        with EventLogService(identity, object_store, counter_store, config, scheduler=scheduler) as service:
            assert scheduler.interval_seconds is not None
            service.log_preferences_opened()
        assert object_store.writes == [LOG_KEY]
        assert scheduler.stopped

    def test_ship_on_report_nudges_worker(
        self,
        identity: StaticIdentity,
        object_store: RecordingObjectStore,
        counter_store: RecordingCounterStore,
    ) -> None:
        config = RuntimeShipperConfig(ship_on_report=True)
        service = EventLogService(identity, object_store, counter_store, config, scheduler=ManualScheduler())
        try:
            service.log_settings_opened()
            service.shipper.join()
            assert object_store.writes == [LOG_KEY]
        finally:
            service.close(flush=False)


class TestFlushAndSummary:
    def test_flush_now_ships_and_updates_summary(
        self, service: EventLogService, object_store: RecordingObjectStore, clock: MockClock
    ) -> None:
        service.log_app_entered()
        service.log_refresh_triggered("pull")

        assert service.flush_now() is True

        lines = object_store.text(LOG_KEY).split("\n")
        assert len(lines) == 2
        assert lines[1].endswith('refresh_triggered | {"context":"pull"}')
        summary = service.get_summary()
        assert summary is not None
        assert summary.total_entries == 2
        assert summary.latest_batch_size == 2
        assert summary.last_updated == clock.now()

    def test_metadata_written_with_object(self, service: EventLogService, object_store: RecordingObjectStore) -> None:
        service.log_settings_opened()
        service.flush_now()
        metadata = object_store.metadata[LOG_KEY]
        assert metadata["actor_id"] == "user-1"
        assert metadata["entries_count"] == "1"
        assert metadata["content_type"] == "text/plain"

    def test_summary_document_shape(self, service: EventLogService, counter_store: RecordingCounterStore) -> None:
        service.log_settings_opened()
        service.flush_now()
        document = counter_store.documents["logging_summary/user-1"]
        assert set(document) == {"user_id", "total_entries", "last_updated", "latest_entries_count"}
        json.dumps(document)

    def test_get_summary_without_actor(self, service: EventLogService, identity: StaticIdentity) -> None:
        identity.actor_id = None
        assert service.get_summary() is None

    def test_get_summary_before_any_shipping(self, service: EventLogService) -> None:
        assert service.get_summary() is None

    def test_get_summary_malformed_document(
        self, service: EventLogService, counter_store: RecordingCounterStore
    ) -> None:
        counter_store.documents["logging_summary/user-1"] = {"total_entries": 3, "last_updated": "not-a-date"}
        assert service.get_summary() is None

    def test_health_metrics(self, service: EventLogService) -> None:
        service.log_settings_opened()
        service.flush_now()
        metrics = service.health_metrics
        assert metrics["cycles_shipped"] == 1
        assert metrics["events_shipped"] == 1
        assert metrics["buffer_depth"] == 0
