# src/logship/core/config.py
"""
Configuration schema and loading for logship.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


class ShippingSettings(BaseModel):
    """Ship cycle scheduling and remote object layout.

    Example YAML:
        shipping:
          interval_seconds: 30
          network_timeout_seconds: 10
          object_key_template: "logging/{actor_id}.txt"
    """

    model_config = {"frozen": True}

    interval_seconds: float = Field(default=30.0, gt=0, description="Seconds between scheduled ship cycles")
    network_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for each remote call")
    max_object_bytes: int = Field(default=10 * 1024 * 1024, gt=0, description="Largest remote log object accepted on read")
    object_key_template: str = Field(default="logging/{actor_id}.txt", description="Remote log object key, must contain {actor_id}")
    summary_collection: str = Field(default="logging_summary", description="Counter-store collection for summaries")
    ship_on_report: bool = Field(default=True, description="Request a ship cycle whenever an event is reported")

    @field_validator("object_key_template")
    @classmethod
    def validate_key_template(cls, v: str) -> str:
        """Template must be per-actor."""
        if "{actor_id}" not in v:
            raise ValueError("object_key_template must contain '{actor_id}'")
        return v

    @field_validator("summary_collection")
    @classmethod
    def validate_collection_not_empty(cls, v: str) -> str:
        """Collection name must be non-empty."""
        if not v.strip():
            raise ValueError("summary_collection cannot be empty")
        return v


class RetrySettings(BaseModel):
    """In-cycle retry of individual remote calls.

    max_attempts is the TOTAL number of tries. The default of 1 means a failed
    call fails the cycle immediately and the schedule retries it.
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=1, gt=0, description="Total attempts per remote call")
    initial_delay_seconds: float = Field(default=0.5, gt=0, description="Initial backoff delay")
    max_delay_seconds: float = Field(default=5.0, gt=0, description="Maximum backoff delay")


class BackoffSettings(BaseModel):
    """Exponential backoff between scheduled cycles after consecutive failures.

    Explicit flushes ignore backoff.
    """

    model_config = {"frozen": True}

    enabled: bool = Field(default=False, description="Skip scheduled cycles while backing off")
    base_delay_seconds: float = Field(default=30.0, gt=0, description="Delay after the first failure")
    max_delay_seconds: float = Field(default=600.0, gt=0, description="Upper bound on the delay")


class FlushSettings(BaseModel):
    """Blocking flush behavior used at shutdown."""

    model_config = {"frozen": True}

    timeout_seconds: float = Field(default=10.0, gt=0, description="Upper bound on a flush_now() call")
    poll_interval_seconds: float = Field(default=0.1, gt=0, description="Initial poll interval while a cycle is in flight")


class StoreSettings(BaseModel):
    """Store backend selection.

    Example YAML:
        object_store:
          name: filesystem
          options:
            base_path: ./state/logs
    """

    model_config = {"frozen": True}

    name: str = Field(default="memory", description="Registered store backend name")
    options: dict[str, Any] = Field(default_factory=dict, description="Backend-specific options")


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper()
        return v


class LogShipSettings(BaseModel):
    """Top-level logship configuration.

    Every section has defaults, so an empty settings file is valid and ships
    to in-memory stores every 30 seconds.
    """

    model_config = {"frozen": True}

    shipping: ShippingSettings = Field(default_factory=ShippingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    backoff: BackoffSettings = Field(default_factory=BackoffSettings)
    flush: FlushSettings = Field(default_factory=FlushSettings)
    object_store: StoreSettings = Field(default_factory=StoreSettings)
    counter_store: StoreSettings = Field(default_factory=StoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Unset variables without a default are left as-is so validation reports
    them in context.
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lowercase_keys(value: Any) -> Any:
    """Lowercase dict keys recursively (Dynaconf uppercases env-sourced keys)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lowercase_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lowercase_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> LogShipSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (LOGSHIP_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: LOGSHIP_SHIPPING__INTERVAL_SECONDS for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated LogShipSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="LOGSHIP",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lowercase_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    return LogShipSettings(**raw_config)
