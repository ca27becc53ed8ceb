# src/logship/shipping/shipper.py
"""LogShipper: owns the event buffer and ships it to the remote log.

A ship cycle:
1. Takes a snapshot of the buffer (no removal)
2. Resolves the current actor
3. Formats the snapshot into log lines
4. Reads the actor's remote log object ("not found" is empty content)
5. Writes back existing + separator + new lines, with metadata
6. On success removes exactly the snapshot's prefix from the buffer and
   reconciles the summary counter

Any failure in steps 2-5 leaves the buffer untouched and returns the shipper
to IDLE. The next scheduled tick or explicit flush retries with the same
events plus anything enqueued since, so delivery is at-least-once.

Thread Safety:
    - submit() is called from any producer thread (non-blocking)
    - ship_once() may be called from any thread; a non-blocking lock makes it
      single-flight, so at most one cycle touches the remote object at a time
    - request_ship() posts to a single-consumer worker thread
      ("logship-shipper") and returns immediately
    - The buffer lock is never held across remote I/O
    - Metrics are written only while holding the flight lock; reads via
      health_metrics are approximately consistent
"""

import queue
import threading
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

import structlog

from logship.contracts.defaults import INTERNAL_DEFAULTS
from logship.contracts.enums import ShipOutcome, ShipperState
from logship.contracts.errors import NoIdentity, ObjectNotFound, ObjectTooLarge, SerializationFailure
from logship.contracts.events import Event
from logship.contracts.protocols import IdentityProvider, RemoteObjectStore
from logship.contracts.runtime import RuntimeShipperConfig
from logship.core.clock import DEFAULT_CLOCK, Clock
from logship.core.logging import cycle_context
from logship.shipping.buffer import BufferSnapshot, EventBuffer
from logship.shipping.formatter import append_to_log, format_batch
from logship.shipping.retry import RemoteCallRetrier, RetryConfig
from logship.shipping.summary import SummaryReconciler

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _ShipRequest:
    """Message consumed by the worker thread."""

    respect_backoff: bool


class LogShipper:
    """Buffers events and ships them to the per-actor remote log.

    Example:
        shipper = LogShipper(identity, object_store, reconciler, config)
        shipper.submit(event)           # from any thread, never blocks
        outcome = shipper.ship_once()   # run one cycle in this thread
        shipper.close()
    """

    def __init__(
        self,
        identity: IdentityProvider,
        object_store: RemoteObjectStore,
        reconciler: SummaryReconciler,
        config: RuntimeShipperConfig,
        *,
        clock: Clock | None = None,
        retrier: RemoteCallRetrier | None = None,
        local_tz: tzinfo | None = None,
    ) -> None:
        """Initialize the shipper and start its worker thread.

        Args:
            identity: Supplies the actor whose log is appended to
            object_store: Remote whole-object store
            reconciler: Updates the summary counter after successful cycles
            config: Runtime configuration
            clock: Clock for metadata timestamps and backoff (default: system)
            retrier: In-cycle retry for remote calls (default: from config)
            local_tz: Zone for local timestamps in log lines (default: host zone)
        """
        self._identity = identity
        self._store = object_store
        self._reconciler = reconciler
        self._config = config
        self._clock = clock or DEFAULT_CLOCK
        self._retrier = retrier or RemoteCallRetrier(RetryConfig.from_runtime(config))
        self._local_tz = local_tz
        self._buffer = EventBuffer()

        # Single-flight guard for ship cycles
        self._flight_lock = threading.Lock()

        # Backoff state (written under the flight lock)
        self._consecutive_failures = 0
        self._next_attempt_at: float | None = None

        # Health metrics (written under the flight lock)
        self._cycles_shipped = 0
        self._cycles_failed = 0
        self._cycles_skipped = 0
        self._events_shipped = 0
        self._failure_log_interval = int(INTERNAL_DEFAULTS["shipper"]["failure_log_interval"])

        # Worker coordination
        self._shutdown_event = threading.Event()
        self._request_lock = threading.Lock()
        self._request_pending = False
        self._queue: queue.Queue[_ShipRequest | None] = queue.Queue()
        self._worker_ready = threading.Event()

        # Daemon thread: buffered events are lost on hard termination anyway,
        # graceful shutdown goes through close()
        self._worker = threading.Thread(target=self._worker_loop, name="logship-shipper", daemon=True)
        self._worker.start()
        self._worker_ready.wait(timeout=5.0)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    @property
    def buffer(self) -> EventBuffer:
        """The shipper's buffer. Callers must not mutate it directly."""
        return self._buffer

    def submit(self, event: Event) -> None:
        """Buffer an event. Never blocks on I/O and never raises.

        When ship_on_report is enabled, also nudges the worker to ship.
        """
        self._buffer.enqueue(event)
        if self._config.ship_on_report:
            self.request_ship()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ShipperState:
        """Current state. SHIPPING while a cycle holds the flight lock."""
        return ShipperState.SHIPPING if self._flight_lock.locked() else ShipperState.IDLE

    @property
    def closed(self) -> bool:
        return self._shutdown_event.is_set()

    # ------------------------------------------------------------------
    # Ship cycles
    # ------------------------------------------------------------------

    def ship_once(self, *, respect_backoff: bool = False) -> ShipOutcome:
        """Run one ship cycle in the calling thread.

        Args:
            respect_backoff: Skip the cycle while a failure backoff window is
                open. Scheduled ticks pass True; explicit flushes pass False.

        Returns:
            Outcome of the cycle. Never raises for shipping failures.
        """
        if not self._flight_lock.acquire(blocking=False):
            logger.debug("Ship cycle already in flight, skipping")
            return ShipOutcome.SKIPPED_IN_FLIGHT
        try:
            outcome = self._run_cycle(respect_backoff=respect_backoff)
            if outcome not in (ShipOutcome.SHIPPED, ShipOutcome.FAILED):
                self._cycles_skipped += 1
            return outcome
        finally:
            self._flight_lock.release()

    def _run_cycle(self, *, respect_backoff: bool) -> ShipOutcome:
        """Body of a ship cycle. Caller holds the flight lock."""
        if respect_backoff and self._in_backoff():
            return ShipOutcome.SKIPPED_BACKOFF

        snapshot = self._buffer.snapshot()
        if not snapshot:
            return ShipOutcome.SKIPPED_EMPTY

        try:
            actor_id = self._identity.current_actor_id()
        except NoIdentity:
            actor_id = None
        except Exception as e:
            self._record_failure(None, snapshot, e)
            return ShipOutcome.FAILED

        if actor_id is None:
            logger.debug("No signed-in actor, leaving events buffered", buffered=snapshot.count)
            return ShipOutcome.SKIPPED_NO_IDENTITY

        with cycle_context(actor_id=actor_id, batch_size=snapshot.count):
            try:
                self._append_to_remote(actor_id, snapshot)
            except Exception as e:
                self._record_failure(actor_id, snapshot, e)
                return ShipOutcome.FAILED

            # Remote write confirmed: the shipped prefix can go
            self._buffer.remove_prefix(snapshot.count)
            self._record_success(actor_id, snapshot)
            self._reconciler.reconcile(actor_id, snapshot.count)
        return ShipOutcome.SHIPPED

    def _append_to_remote(self, actor_id: str, snapshot: BufferSnapshot) -> None:
        """Read-modify-write the actor's log object.

        Raises:
            SerializationFailure: If the existing object is not valid UTF-8
            ObjectTooLarge: If the existing object exceeds max_object_bytes
            Exception: Any store failure
        """
        new_text = format_batch(snapshot.events, local_tz=self._local_tz)
        key = self._config.object_key(actor_id)
        existing = self._read_existing(key)
        content = append_to_log(existing, new_text)

        try:
            data = content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise SerializationFailure(f"Cannot encode log content for '{key}': {e}") from e

        metadata = {
            "content_type": "text/plain",
            "actor_id": actor_id,
            "last_updated": self._clock.now().isoformat(),
            "entries_count": str(snapshot.count),
        }
        timeout = self._config.network_timeout_seconds
        self._retrier.call("write", lambda: self._store.write(key, data, metadata, timeout=timeout))

    def _read_existing(self, key: str) -> str:
        """Return the existing log text, or "" if the object does not exist."""
        max_bytes = self._config.max_object_bytes
        timeout = self._config.network_timeout_seconds
        try:
            raw = self._retrier.call("read", lambda: self._store.read(key, max_bytes=max_bytes, timeout=timeout))
        except ObjectNotFound:
            logger.info("Creating new remote log object", key=key)
            return ""

        if len(raw) > max_bytes:
            raise ObjectTooLarge(key, len(raw), max_bytes)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationFailure(f"Existing log object '{key}' is not valid UTF-8: {e}") from e

    # ------------------------------------------------------------------
    # Outcome bookkeeping
    # ------------------------------------------------------------------

    def _record_success(self, actor_id: str, snapshot: BufferSnapshot) -> None:
        if self._consecutive_failures:
            logger.info("Shipping recovered", actor_id=actor_id, failed_cycles=self._consecutive_failures)
        self._consecutive_failures = 0
        self._next_attempt_at = None
        self._cycles_shipped += 1
        self._events_shipped += snapshot.count
        logger.info("Shipped events", actor_id=actor_id, count=snapshot.count, remaining=len(self._buffer))

    def _record_failure(self, actor_id: str | None, snapshot: BufferSnapshot, error: Exception) -> None:
        self._consecutive_failures += 1
        self._cycles_failed += 1

        if self._config.backoff_enabled:
            delay = min(
                self._config.backoff_max_delay_seconds,
                self._config.backoff_base_delay_seconds * 2 ** (self._consecutive_failures - 1),
            )
            self._next_attempt_at = self._clock.monotonic() + delay

        # First failure and every N-th after it, to avoid warning fatigue
        streak = self._consecutive_failures
        if streak == 1 or streak % self._failure_log_interval == 0:
            log = logger.warning if streak == 1 else logger.error
            log(
                "Ship cycle failed, events kept for retry",
                actor_id=actor_id,
                buffered=snapshot.count,
                consecutive_failures=streak,
                error_type=type(error).__name__,
                error=str(error),
            )

    def _in_backoff(self) -> bool:
        if self._next_attempt_at is None:
            return False
        return self._clock.monotonic() < self._next_attempt_at

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def request_ship(self, *, respect_backoff: bool = False) -> bool:
        """Ask the worker thread to run a cycle. Returns immediately.

        A request while another is queued or running is a no-op: events
        enqueued meanwhile are picked up by the next request.

        Returns:
            True if a request was queued, False if coalesced or closed
        """
        if self._shutdown_event.is_set():
            return False
        with self._request_lock:
            if self._request_pending or self._flight_lock.locked():
                return False
            self._request_pending = True
        self._queue.put(_ShipRequest(respect_backoff=respect_backoff))
        return True

    def on_tick(self) -> None:
        """Scheduler callback: request a backoff-aware cycle if events are waiting."""
        if self._buffer.is_empty():
            return
        self.request_ship(respect_backoff=True)

    def join(self) -> None:
        """Block until every queued request has been processed."""
        if not self._shutdown_event.is_set():
            self._queue.join()

    def _worker_loop(self) -> None:
        """Background thread: consume ship requests until the sentinel arrives."""
        self._worker_ready.set()
        while True:
            request = self._queue.get()
            try:
                if request is None:
                    break
                self.ship_once(respect_backoff=request.respect_backoff)
            except Exception as e:
                # A bug in a collaborator must not kill the worker
                logger.error("Ship worker failed unexpectedly", error_type=type(e).__name__, error=str(e))
            finally:
                if request is not None:
                    with self._request_lock:
                        self._request_pending = False
                self._queue.task_done()

    def close(self) -> None:
        """Stop the worker thread. Idempotent.

        Does not flush: callers wanting a final ship use FlushController first.
        """
        if self._shutdown_event.is_set():
            return
        self._shutdown_event.set()
        self._queue.put(None)
        self._worker.join(timeout=float(INTERNAL_DEFAULTS["shipper"]["worker_join_timeout"]))
        if self._worker.is_alive():
            logger.error("Ship worker did not exit cleanly within timeout")
        logger.debug("Log shipper closed", **self.health_metrics)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of shipping health for monitoring.

        - cycles_shipped / cycles_failed / cycles_skipped: cycle outcome counts
        - events_shipped: events confirmed written to remote logs
        - consecutive_failures: current failure streak
        - buffer_depth: events awaiting shipment
        - state: idle or shipping
        """
        return {
            "cycles_shipped": self._cycles_shipped,
            "cycles_failed": self._cycles_failed,
            "cycles_skipped": self._cycles_skipped,
            "events_shipped": self._events_shipped,
            "consecutive_failures": self._consecutive_failures,
            "buffer_depth": len(self._buffer),
            "state": self.state.value,
        }
