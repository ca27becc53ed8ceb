# src/logship/shipping/service.py
"""EventLogService: the application-facing handle on event shipping.

Constructed once at process start (see logship.shipping.factory) and passed
to the call sites that report events. Lifecycle:

    service = create_event_log_service(settings, identity)
    service.start()                  # begin scheduled shipping
    service.log_settings_opened()    # fire-and-forget, from any thread
    service.flush_now()              # on backgrounding
    service.close()                  # flush, stop scheduler and worker
"""

import time
from collections.abc import Callable, Mapping
from datetime import tzinfo
from types import TracebackType
from typing import Any, Self

import structlog

from logship.contracts.enums import EventKind
from logship.contracts.errors import NoIdentity
from logship.contracts.events import Event
from logship.contracts.protocols import CounterStore, IdentityProvider, RemoteObjectStore, Scheduler
from logship.contracts.runtime import RuntimeShipperConfig
from logship.contracts.summary import SummaryRecord
from logship.core.clock import DEFAULT_CLOCK, Clock
from logship.shipping.flush import FlushController
from logship.shipping.retry import RemoteCallRetrier, RetryConfig
from logship.shipping.scheduler import IntervalScheduler
from logship.shipping.shipper import LogShipper
from logship.shipping.summary import SummaryReconciler

logger = structlog.get_logger(__name__)


class EventLogService:
    """Reports events, ships them on a schedule, and exposes flush/summary.

    Reporting never blocks on I/O and never raises for delivery problems.
    Events reported while no actor is signed in are dropped.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        object_store: RemoteObjectStore,
        counter_store: CounterStore,
        config: RuntimeShipperConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        local_tz: tzinfo | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Wire the shipping components together.

        Args:
            identity: Identity provider for the current actor
            object_store: Remote log object store
            counter_store: Summary counter store
            config: Runtime configuration (default: RuntimeShipperConfig.default())
            scheduler: Tick source (default: IntervalScheduler)
            clock: Clock for event timestamps (default: system clock)
            local_tz: Zone for local timestamps in log lines (default: host zone)
            sleep: Sleep function for retries and flush polling
        """
        self._identity = identity
        self._object_store = object_store
        self._counter_store = counter_store
        self._config = config or RuntimeShipperConfig.default()
        self._scheduler = scheduler or IntervalScheduler()
        self._clock = clock or DEFAULT_CLOCK
        self._started = False
        self._closed = False

        retrier = RemoteCallRetrier(RetryConfig.from_runtime(self._config), sleep=sleep)
        self._reconciler = SummaryReconciler(counter_store, self._config, clock=self._clock, retrier=retrier)
        self._shipper = LogShipper(
            identity,
            object_store,
            self._reconciler,
            self._config,
            clock=self._clock,
            retrier=retrier,
            local_tz=local_tz,
        )
        self._flush_controller = FlushController(self._shipper, self._config, sleep=sleep)

    @property
    def shipper(self) -> LogShipper:
        return self._shipper

    @property
    def config(self) -> RuntimeShipperConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start scheduled shipping. Idempotent."""
        if self._started or self._closed:
            return
        self._scheduler.every(self._config.interval_seconds, self._shipper.on_tick)
        self._started = True
        logger.debug("Event log service started", interval_seconds=self._config.interval_seconds)

    def close(self, *, flush: bool = True) -> None:
        """Stop scheduling, optionally flush, then stop the worker and stores.

        Idempotent. Events still buffered after the final flush are lost.
        """
        if self._closed:
            return
        self._closed = True
        self._scheduler.stop()
        if flush:
            self._flush_controller.flush_now()
        self._shipper.close()

        remaining = len(self._shipper.buffer)
        if remaining:
            logger.warning("Closing with unshipped events", buffered=remaining)

        for store in (self._object_store, self._counter_store):
            try:
                store.close()
            except Exception as e:
                logger.warning("Store close failed", store=store.name, error=str(e))

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def report(self, kind: EventKind | str, detail: Mapping[str, Any] | None = None) -> bool:
        """Record an event for shipping. Fire-and-forget.

        Args:
            kind: Event kind (enum member or its wire value)
            detail: Optional structured detail

        Returns:
            True if the event was buffered, False if it was dropped because
            no actor is signed in or the service is closed.

        Raises:
            ValueError: If ``kind`` is not a known event kind
        """
        event_kind = EventKind(kind)

        if self._closed:
            logger.debug("Dropping event, service closed", kind=event_kind.value)
            return False

        try:
            actor_id = self._identity.current_actor_id()
        except NoIdentity:
            actor_id = None
        except Exception as e:
            logger.warning("Identity lookup failed, dropping event", kind=event_kind.value, error=str(e))
            return False

        if actor_id is None:
            logger.debug("Dropping event, no signed-in actor", kind=event_kind.value)
            return False

        event = Event(timestamp=self._clock.now(), kind=event_kind, detail=detail)
        self._shipper.submit(event)
        logger.debug("Event reported", kind=event_kind.value, has_detail=event.has_detail)
        return True

    def log_app_entered(self) -> bool:
        """Report that the user entered the app."""
        return self.report(EventKind.APP_ENTERED, {"session_start": self._clock.now().timestamp()})

    def log_topic_summary_viewed(self, topic_name: str, topic_id: str | None = None) -> bool:
        return self.report(EventKind.TOPIC_SUMMARY_VIEWED, {"topic_name": topic_name, "topic_id": topic_id})

    def log_subtopic_summary_viewed(self, subtopic_name: str, parent_topic: str | None = None) -> bool:
        return self.report(
            EventKind.SUBTOPIC_SUMMARY_VIEWED,
            {"subtopic_name": subtopic_name, "parent_topic": parent_topic},
        )

    def log_reddit_summary_viewed(self, subtopic_name: str, parent_topic: str | None = None) -> bool:
        return self.report(
            EventKind.REDDIT_SUMMARY_VIEWED,
            {"subtopic_name": subtopic_name, "parent_topic": parent_topic},
        )

    def log_podcast_played(self, podcast_url: str | None = None, duration: float | None = None) -> bool:
        return self.report(EventKind.PODCAST_PLAYED, {"podcast_url": podcast_url, "duration_seconds": duration})

    def log_podcast_paused(self, current_time: float | None = None, total_duration: float | None = None) -> bool:
        return self.report(
            EventKind.PODCAST_PAUSED,
            {"current_time_seconds": current_time, "total_duration_seconds": total_duration},
        )

    def log_podcast_seeked(self, from_time: float, to_time: float) -> bool:
        """Report a seek, including the signed seek distance."""
        return self.report(
            EventKind.PODCAST_SEEKED,
            {"from_time_seconds": from_time, "to_time_seconds": to_time, "seek_delta": to_time - from_time},
        )

    def log_settings_opened(self) -> bool:
        return self.report(EventKind.SETTINGS_OPENED)

    def log_preferences_opened(self) -> bool:
        return self.report(EventKind.PREFERENCES_OPENED)

    def log_refresh_triggered(self, context: str | None = None) -> bool:
        return self.report(EventKind.REFRESH_TRIGGERED, {"context": context})

    # ------------------------------------------------------------------
    # Flush and summary
    # ------------------------------------------------------------------

    def flush_now(self, timeout: float | None = None) -> bool:
        """Ship buffered events now and wait. See FlushController.flush_now()."""
        return self._flush_controller.flush_now(timeout)

    def get_summary(self) -> SummaryRecord | None:
        """Return the current actor's summary, or None if unavailable."""
        try:
            actor_id = self._identity.current_actor_id()
        except NoIdentity:
            return None
        except Exception as e:
            logger.warning("Identity lookup failed", error=str(e))
            return None
        if actor_id is None:
            return None
        return self._reconciler.fetch(actor_id)

    @property
    def health_metrics(self) -> dict[str, Any]:
        return self._shipper.health_metrics
