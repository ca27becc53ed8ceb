# src/logship/contracts/runtime.py
"""Runtime configuration for the shipper.

Frozen dataclass built from validated settings. Runtime code reads this, not
the Pydantic models, so tests can construct it directly without YAML.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logship.core.config import LogShipSettings


@dataclass(frozen=True, slots=True)
class RuntimeShipperConfig:
    """Runtime configuration for shipping, reconciling and flushing.

    Field Origins:
        - interval_seconds .. summary_collection, ship_on_report: ShippingSettings
        - retry_*: RetrySettings (in-cycle retry of remote calls)
        - backoff_*: BackoffSettings (skip scheduled cycles after failures)
        - flush_*: FlushSettings
    """

    interval_seconds: float = 30.0
    network_timeout_seconds: float = 10.0
    max_object_bytes: int = 10 * 1024 * 1024
    object_key_template: str = "logging/{actor_id}.txt"
    summary_collection: str = "logging_summary"
    ship_on_report: bool = True
    retry_max_attempts: int = 1
    retry_initial_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 5.0
    backoff_enabled: bool = False
    backoff_base_delay_seconds: float = 30.0
    backoff_max_delay_seconds: float = 600.0
    flush_timeout_seconds: float = 10.0
    flush_poll_interval_seconds: float = 0.1

    def __post_init__(self) -> None:
        if "{actor_id}" not in self.object_key_template:
            raise ValueError(f"object_key_template must contain '{{actor_id}}', got {self.object_key_template!r}")
        if self.retry_max_attempts < 1:
            raise ValueError("retry_max_attempts must be >= 1")

    @classmethod
    def default(cls) -> "RuntimeShipperConfig":
        """Factory for the default configuration (30 second schedule, no backoff)."""
        return cls()

    @classmethod
    def from_settings(cls, settings: "LogShipSettings") -> "RuntimeShipperConfig":
        """Factory from validated LogShipSettings."""
        shipping = settings.shipping
        return cls(
            interval_seconds=shipping.interval_seconds,
            network_timeout_seconds=shipping.network_timeout_seconds,
            max_object_bytes=shipping.max_object_bytes,
            object_key_template=shipping.object_key_template,
            summary_collection=shipping.summary_collection,
            ship_on_report=shipping.ship_on_report,
            retry_max_attempts=settings.retry.max_attempts,
            retry_initial_delay_seconds=settings.retry.initial_delay_seconds,
            retry_max_delay_seconds=settings.retry.max_delay_seconds,
            backoff_enabled=settings.backoff.enabled,
            backoff_base_delay_seconds=settings.backoff.base_delay_seconds,
            backoff_max_delay_seconds=settings.backoff.max_delay_seconds,
            flush_timeout_seconds=settings.flush.timeout_seconds,
            flush_poll_interval_seconds=settings.flush.poll_interval_seconds,
        )

    def object_key(self, actor_id: str) -> str:
        """Remote log object key for an actor."""
        return self.object_key_template.format(actor_id=actor_id)

    def summary_key(self, actor_id: str) -> str:
        """Counter-store document key for an actor's summary."""
        return f"{self.summary_collection}/{actor_id}"
