# src/logship/core/__init__.py
"""Core infrastructure: Configuration, Canonical rendering, Clock, Logging."""

from logship.core.canonical import canonical_detail, normalize_detail_value
from logship.core.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from logship.core.config import (
    BackoffSettings,
    FlushSettings,
    LoggingSettings,
    LogShipSettings,
    RetrySettings,
    ShippingSettings,
    StoreSettings,
    load_settings,
)
from logship.core.logging import configure_logging, configure_logging_from_settings, cycle_context

__all__ = [
    "DEFAULT_CLOCK",
    "BackoffSettings",
    "Clock",
    "FlushSettings",
    "LogShipSettings",
    "LoggingSettings",
    "MockClock",
    "RetrySettings",
    "ShippingSettings",
    "StoreSettings",
    "SystemClock",
    "canonical_detail",
    "configure_logging",
    "configure_logging_from_settings",
    "cycle_context",
    "load_settings",
    "normalize_detail_value",
]
