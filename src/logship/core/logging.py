# src/logship/core/logging.py
"""Structured logging for logship.

All output goes to one stderr handler. structlog loggers (used by every
logship module) and plain stdlib loggers (used by SQLAlchemy and the Azure
SDK) share a single ProcessorFormatter, so a store client's warning and a
shipper event render in the same JSON or console format.

Ship cycles bind ``actor_id`` and ``batch_size`` into contextvars for their
duration (see cycle_context), so retry and reconcile messages emitted deep
inside a cycle still say which actor and batch they belong to.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

if TYPE_CHECKING:
    from logship.core.config import LoggingSettings

# Store client libraries that log every HTTP exchange or SQL statement at
# DEBUG. Capped at WARNING so --verbose shows logship's own messages.
_NOISY_LOGGERS: tuple[str, ...] = (
    "azure",
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "urllib3.connectionpool",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter always sets both keys
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _pre_chain() -> list[Any]:
    """Processors run for every record, structlog or stdlib."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderers(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    # No colors: output usually lands in files or CI logs
    return [_drop_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Replaces any handlers already on the root logger, so calling it again
    (the CLI does, once settings are loaded) reconfigures cleanly.

    Args:
        json_output: One JSON object per line instead of console text
        level: Root level name, case-insensitive
        stream: Output stream (default: sys.stderr at call time)
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Not cached: module-level loggers must pick up reconfiguration
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=_renderers(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def configure_logging_from_settings(
    settings: "LoggingSettings",
    *,
    verbose: bool = False,
    json_output: bool = False,
) -> None:
    """Apply the ``logging`` settings section.

    Command-line flags win over the file: ``verbose`` forces DEBUG and
    ``json_output`` forces JSON even when the settings say otherwise.
    """
    configure_logging(
        json_output=json_output or settings.json_output,
        level="DEBUG" if verbose else settings.level,
    )


@contextmanager
def cycle_context(*, actor_id: str, batch_size: int) -> Iterator[None]:
    """Bind ship-cycle fields to every log record emitted in this block."""
    with structlog.contextvars.bound_contextvars(actor_id=actor_id, batch_size=batch_size):
        yield
