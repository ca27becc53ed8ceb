# src/logship/contracts/defaults.py
"""Internal defaults: values hardcoded in runtime code, NOT exposed in settings.

Documented here so the values are visible in one place and stay out of the
user-facing configuration schema.
"""

from typing import Final

INTERNAL_DEFAULTS: Final[dict[str, dict[str, int | float | bool | str]]] = {
    "shipper": {
        # Seconds close() waits for the worker thread to exit
        "worker_join_timeout": 5.0,
        # Log a failure streak on the first failure and every N-th after it
        "failure_log_interval": 10,
    },
    "scheduler": {
        # Seconds stop() waits for the timer thread to exit
        "join_timeout": 5.0,
    },
    "flush": {
        # Ceiling on a single poll sleep while waiting for an in-flight cycle
        "max_poll_interval": 1.0,
    },
}


def get_internal_default(subsystem: str, field: str) -> int | float | bool | str:
    """Get an internal default value.

    Raises:
        KeyError: If subsystem or field not found (a bug, not a user error)
    """
    return INTERNAL_DEFAULTS[subsystem][field]
