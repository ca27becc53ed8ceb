# src/logship/core/canonical.py
"""Canonical rendering of event detail mappings.

Two-phase approach:
1. Normalize: Coerce keys to strings and values to JSON scalars
   (logship.contracts.detail, already applied when the Event was built)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

Unlike strict canonical hashing, detail rendering never rejects a value.
Events are user telemetry, not audit data: a log line with a coerced value
is better than an event that blocks every event queued behind it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import rfc8785

from logship.contracts.detail import normalize_detail, normalize_detail_value
from logship.contracts.errors import SerializationFailure

__all__ = ["canonical_detail", "normalize_detail_value"]


def canonical_detail(detail: Mapping[Any, Any]) -> str:
    """Render a detail mapping as canonical JSON text.

    Keys are sorted per RFC 8785. Equal mappings always render to identical
    text. Normalization is idempotent, so already-normalized event detail
    renders the same as the raw mapping it came from.

    Raises:
        SerializationFailure: If rfc8785 rejects the normalized mapping,
            which normalization rules out for every input
    """
    normalized = normalize_detail(detail)
    try:
        return rfc8785.dumps(normalized).decode("utf-8")
    except (rfc8785.CanonicalizationError, UnicodeError) as e:
        raise SerializationFailure(f"Cannot canonicalize event detail: {e}") from e
