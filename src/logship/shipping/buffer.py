# src/logship/shipping/buffer.py
"""Ordered, thread-safe buffer of events awaiting shipment.

Key design decisions:
- deque under a lock: O(1) append at the tail and removal from the head
- Snapshots are immutable tuple copies, so a ship cycle can format and
  upload without holding the lock
- Removal is by count, never by identity: a cycle removes exactly the
  prefix it shipped, and anything enqueued after its snapshot survives
- Unbounded: events are only ever discarded after confirmed persistence
"""

import threading
from collections import deque
from dataclasses import dataclass

from logship.contracts.events import Event


@dataclass(frozen=True, slots=True)
class BufferSnapshot:
    """Immutable view of the buffer taken at the start of a ship cycle.

    Attributes:
        events: Buffered events in enqueue order
    """

    events: tuple[Event, ...]

    @property
    def count(self) -> int:
        """Number of events in the snapshot."""
        return len(self.events)

    def __bool__(self) -> bool:
        return bool(self.events)


class EventBuffer:
    """FIFO buffer of pending events.

    Thread Safety:
        enqueue(), snapshot(), remove_prefix(), is_empty() and __len__ are
        linearizable with respect to each other. The lock is held only for
        the in-memory operation, never across I/O.

    Ownership:
        Owned by LogShipper. Producers only call enqueue(); remove_prefix()
        is called by the single active ship cycle.

    Example:
        buffer = EventBuffer()
        buffer.enqueue(event)
        snap = buffer.snapshot()
        ...  # ship snap.events
        buffer.remove_prefix(snap.count)
    """

    def __init__(self) -> None:
        self._events: deque[Event] = deque()
        self._lock = threading.Lock()

    def enqueue(self, event: Event) -> None:
        """Append an event at the tail. Never fails."""
        with self._lock:
            self._events.append(event)

    def snapshot(self) -> BufferSnapshot:
        """Return the current contents without removing them."""
        with self._lock:
            return BufferSnapshot(events=tuple(self._events))

    def remove_prefix(self, count: int) -> None:
        """Remove exactly the first ``count`` events.

        Args:
            count: Number of events to remove, normally a prior snapshot's count.

        Raises:
            ValueError: If count is negative or larger than the buffer. Only
                the owning ship cycle removes events, so this indicates a bug.
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        with self._lock:
            if count > len(self._events):
                raise ValueError(f"Cannot remove {count} events from buffer holding {len(self._events)}")
            for _ in range(count):
                self._events.popleft()

    def is_empty(self) -> bool:
        """Whether the buffer holds no events."""
        with self._lock:
            return not self._events

    def __len__(self) -> int:
        """Return the current number of buffered events."""
        with self._lock:
            return len(self._events)
