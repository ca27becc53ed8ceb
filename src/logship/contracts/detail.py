# src/logship/contracts/detail.py
"""Normalization of event detail mappings.

Detail is normalized once, when the Event is constructed: keys become
strings and values become JSON scalars (str, int, float, bool, None). The
stored event then holds no reference to caller-owned objects, and rendering
it later cannot fail or change.

Normalization never raises. Anything without a JSON form is coerced to text:
- Strings that UTF-8 cannot encode (lone surrogates) are backslash-escaped
- Values whose __str__ raises render as ``<unprintable TypeName>``
- Keys that collide after coercion get a ``#TypeName`` suffix, numbered if
  that collides too; the first key in iteration order keeps its text
"""

import math
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

DetailScalar = str | int | float | bool | None

# Largest integer magnitude RFC 8785 (IEEE 754 double) represents exactly
_MAX_SAFE_INTEGER = 2**53 - 1


def _encodable(text: str) -> str:
    # Always returns a plain str, even for str subclasses
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def _safe_text(value: Any) -> str:
    try:
        text = str(value)
    except Exception:
        return f"<unprintable {_encodable(type(value).__name__)}>"
    return _encodable(text)


def _normalize(value: Any) -> DetailScalar:
    # bool before int: bool is an int subclass
    if value is None or isinstance(value, bool):
        return value

    if isinstance(value, str):
        return _encodable(value)

    if isinstance(value, int):
        if abs(value) > _MAX_SAFE_INTEGER:
            return _safe_text(int(value))
        return int(value)

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return str(float(value))
        return float(value)

    if isinstance(value, Enum):
        return normalize_detail_value(value.value)

    if isinstance(value, datetime | date):
        return _encodable(value.isoformat())

    return _safe_text(value)


def normalize_detail_value(value: Any) -> DetailScalar:
    """Coerce a single detail value to a JSON scalar. Never raises."""
    try:
        return _normalize(value)
    except Exception:
        # e.g. an isoformat() or __abs__ override that raises
        return _safe_text(value)


def _normalize_key(key: Any) -> str:
    if isinstance(key, str):
        return _encodable(key)
    return _safe_text(key)


def normalize_detail(detail: Mapping[Any, Any]) -> dict[str, DetailScalar]:
    """Return a new dict with string keys and JSON-scalar values.

    Equal inputs iterated in the same order always give equal output.
    """
    normalized: dict[str, DetailScalar] = {}
    for key, value in detail.items():
        str_key = _normalize_key(key)
        if str_key in normalized:
            base = f"{str_key}#{_encodable(type(key).__name__)}"
            str_key, suffix = base, 1
            while str_key in normalized:
                suffix += 1
                str_key = f"{base}{suffix}"
        normalized[str_key] = normalize_detail_value(value)
    return normalized
