# src/logship/shipping/__init__.py
"""Event buffering and log shipping.

Reported events are buffered in memory and shipped to a per-actor remote log
object on a schedule or on demand. Delivery is at-least-once: a failed cycle
leaves its events buffered for the next one.

Usage:
    from logship.shipping import create_event_log_service

    service = create_event_log_service(settings, identity)
    service.start()
    service.log_app_entered()
    ...
    service.close()
"""

from logship.shipping.buffer import BufferSnapshot, EventBuffer
from logship.shipping.factory import create_counter_store, create_event_log_service, create_object_store
from logship.shipping.flush import FlushController
from logship.shipping.formatter import LINE_SEPARATOR, append_to_log, format_batch, format_event
from logship.shipping.retry import RemoteCallRetrier, RetryConfig, is_retryable
from logship.shipping.scheduler import IntervalScheduler, ManualScheduler
from logship.shipping.service import EventLogService
from logship.shipping.shipper import LogShipper
from logship.shipping.summary import SummaryReconciler, increment_summary

__all__ = [
    "LINE_SEPARATOR",
    "BufferSnapshot",
    "EventBuffer",
    "EventLogService",
    "FlushController",
    "IntervalScheduler",
    "LogShipper",
    "ManualScheduler",
    "RemoteCallRetrier",
    "RetryConfig",
    "SummaryReconciler",
    "append_to_log",
    "create_counter_store",
    "create_event_log_service",
    "create_object_store",
    "format_batch",
    "format_event",
    "increment_summary",
    "is_retryable",
]
