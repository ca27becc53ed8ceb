# src/logship/contracts/events.py
"""Event record captured by the reporting call.

An Event is immutable once created. It lives in the shipper's buffer until a
ship cycle has confirmed remote persistence, and is never discarded on a
failed attempt.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any

from logship.contracts.detail import DetailScalar, normalize_detail
from logship.contracts.enums import EventKind


@dataclass(frozen=True, slots=True)
class Event:
    """A single user-interaction event.

    Construction always succeeds, whatever the detail mapping holds.

    Attributes:
        timestamp: When the event happened. Aware datetimes are rendered in
            UTC; naive datetimes are assumed to already be UTC.
        kind: Event category
        detail: Optional structured detail. Normalized on construction (see
            logship.contracts.detail) into a read-only mapping of string keys
            to JSON scalars, so nothing the caller mutates afterwards, however
            deeply nested, can change the event or the text it renders to.
    """

    timestamp: datetime
    kind: EventKind
    detail: Mapping[Any, Any] | None = None

    def __post_init__(self) -> None:
        if self.detail is not None:
            normalized: Mapping[str, DetailScalar] = MappingProxyType(normalize_detail(self.detail))
            object.__setattr__(self, "detail", normalized)

    def __hash__(self) -> int:
        # Detail values are scalars after normalization, so items are hashable
        items = tuple(sorted(self.detail.items())) if self.detail is not None else None
        return hash((self.timestamp, self.kind, items))

    @property
    def has_detail(self) -> bool:
        """Whether the event carries a non-empty detail mapping."""
        return bool(self.detail)
