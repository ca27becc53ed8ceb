# src/logship/contracts/summary.py
"""Per-actor aggregate counters derived from shipped batches.

The summary is advisory: the remote log object is the source of truth. The
total may under-count when a reconcile step fails after a successful log
write, but it is never decremented.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class SummaryRecord:
    """Aggregate counters for one actor's shipped events.

    Stored as a document in the counter store. Document field names match the
    ones the mobile client has always written (``latest_entries_count``).
    """

    actor_id: str
    total_entries: int
    last_updated: datetime
    latest_batch_size: int

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible document."""
        return {
            "user_id": self.actor_id,
            "total_entries": self.total_entries,
            "last_updated": self.last_updated.isoformat(),
            "latest_entries_count": self.latest_batch_size,
        }

    @classmethod
    def from_document(cls, actor_id: str, data: dict[str, Any]) -> "SummaryRecord":
        """Deserialize from a stored document.

        Missing counters default to 0. A missing timestamp defaults to the
        epoch so callers can still order records.
        """
        last_updated_raw = data.get("last_updated")
        if isinstance(last_updated_raw, datetime):
            last_updated = last_updated_raw
        elif last_updated_raw:
            last_updated = datetime.fromisoformat(str(last_updated_raw))
        else:
            last_updated = datetime.fromtimestamp(0, tz=UTC)

        return cls(
            actor_id=str(data.get("user_id", actor_id)),
            total_entries=int(data.get("total_entries", 0)),
            last_updated=last_updated,
            latest_batch_size=int(data.get("latest_entries_count", 0)),
        )
