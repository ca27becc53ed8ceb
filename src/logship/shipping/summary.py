# src/logship/shipping/summary.py
"""Reconcile the per-actor summary counter after a successful ship cycle.

The summary is advisory. The log object written just before reconcile() is
the source of truth, so a reconcile failure is logged and swallowed: it must
not undo or retry the log write (that would duplicate lines).
"""

from datetime import datetime

import structlog

from logship.contracts.protocols import CounterStore, Document
from logship.contracts.runtime import RuntimeShipperConfig
from logship.contracts.summary import SummaryRecord
from logship.core.clock import DEFAULT_CLOCK, Clock
from logship.shipping.retry import RemoteCallRetrier, RetryConfig

logger = structlog.get_logger(__name__)


def increment_summary(current: Document | None, *, actor_id: str, shipped_count: int, now: datetime) -> Document:
    """Compute the next summary document from the current one.

    Pure function handed to CounterStore.transact(). Missing totals count as 0.
    """
    total = int(current.get("total_entries", 0)) if current else 0
    record = SummaryRecord(
        actor_id=actor_id,
        total_entries=total + shipped_count,
        last_updated=now,
        latest_batch_size=shipped_count,
    )
    return record.to_document()


class SummaryReconciler:
    """Applies shipped counts to the counter store.

    Thread Safety:
        Stateless apart from its collaborators. Atomicity of concurrent
        reconciles for the same actor is provided by CounterStore.transact().
    """

    def __init__(
        self,
        store: CounterStore,
        config: RuntimeShipperConfig,
        *,
        clock: Clock | None = None,
        retrier: RemoteCallRetrier | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock or DEFAULT_CLOCK
        self._retrier = retrier or RemoteCallRetrier(RetryConfig.no_retry())

    def reconcile(self, actor_id: str, shipped_count: int) -> SummaryRecord | None:
        """Add ``shipped_count`` to the actor's total.

        Args:
            actor_id: Actor whose log was just appended to
            shipped_count: Number of events in the shipped batch

        Returns:
            The written SummaryRecord, or None if nothing was written (zero
            count or store failure).

        Raises:
            ValueError: If shipped_count is negative (totals never decrease)
        """
        if shipped_count < 0:
            raise ValueError(f"shipped_count must be >= 0, got {shipped_count}")
        if shipped_count == 0:
            return None

        key = self._config.summary_key(actor_id)
        now = self._clock.now()

        def _next(current: Document | None) -> Document:
            return increment_summary(current, actor_id=actor_id, shipped_count=shipped_count, now=now)

        try:
            written = self._retrier.call(
                "transact",
                lambda: self._store.transact(key, _next, timeout=self._config.network_timeout_seconds),
            )
        except Exception as e:
            # Log write already succeeded; the summary may under-count
            logger.warning(
                "Summary reconcile failed",
                actor_id=actor_id,
                shipped_count=shipped_count,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        return SummaryRecord.from_document(actor_id, written)

    def fetch(self, actor_id: str) -> SummaryRecord | None:
        """Read the actor's summary. Returns None if absent or unreadable."""
        key = self._config.summary_key(actor_id)
        try:
            document = self._store.get(key, timeout=self._config.network_timeout_seconds)
        except Exception as e:
            logger.warning("Summary fetch failed", actor_id=actor_id, error_type=type(e).__name__, error=str(e))
            return None
        if document is None:
            return None
        try:
            return SummaryRecord.from_document(actor_id, document)
        except (ValueError, TypeError) as e:
            # Written by something other than increment_summary
            logger.warning("Summary document malformed", actor_id=actor_id, error_type=type(e).__name__, error=str(e))
            return None
