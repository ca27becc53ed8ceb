# src/logship/cli.py
"""logship Command Line Interface.

Operator tooling around the shipping subsystem: report a one-off event,
inspect an actor's remote log, and read the summary counter.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from logship import __version__
from logship.contracts import (
    EventKind,
    LogShipError,
    ObjectNotFound,
    RuntimeShipperConfig,
    StoreConfigurationError,
)
from logship.core.config import LogShipSettings, load_settings

__all__ = ["app"]

app = typer.Typer(
    name="logship",
    help="logship: buffered event shipping to per-actor remote logs.",
    no_args_is_help=True,
)


# Global flags from the app callback, re-applied once settings are loaded
_log_flags: dict[str, bool] = {"verbose": False, "json_logs": False}


class _FixedActor:
    """IdentityProvider that always returns the actor given on the command line."""

    def __init__(self, actor_id: str) -> None:
        self._actor_id = actor_id

    def current_actor_id(self) -> str | None:
        return self._actor_id


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"logship version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    Raises:
        typer.Exit: If an explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """logship: buffered event shipping to per-actor remote logs."""
    from logship.core.logging import configure_logging

    _log_flags.update(verbose=verbose, json_logs=json_logs)
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _load_settings_or_exit(settings: str) -> LogShipSettings:
    from logship.core.logging import configure_logging_from_settings

    settings_path = Path(settings).expanduser()
    try:
        loaded = load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    configure_logging_from_settings(
        loaded.logging, verbose=_log_flags["verbose"], json_output=_log_flags["json_logs"]
    )
    return loaded


def _parse_detail(pairs: list[str]) -> dict[str, str] | None:
    """Parse repeated ``key=value`` options. Values stay strings."""
    if not pairs:
        return None
    detail: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            typer.echo(f"Error: --detail expects key=value, got {pair!r}", err=True)
            raise typer.Exit(1)
        detail[key] = value
    return detail


_SETTINGS_OPTION = typer.Option(..., "--settings", "-s", help="Path to settings YAML file.")
_ACTOR_OPTION = typer.Option(..., "--actor", "-a", help="Actor (user) id.")


@app.command()
def report(
    kind: str = typer.Argument(..., help="Event kind, e.g. app_entered."),
    actor: str = _ACTOR_OPTION,
    settings: str = _SETTINGS_OPTION,
    detail: list[str] = typer.Option([], "--detail", "-d", help="Detail entry as key=value (repeatable)."),
) -> None:
    """Report one event for an actor and flush it to the remote log."""
    from logship.shipping.factory import create_event_log_service
    from logship.shipping.scheduler import ManualScheduler

    try:
        event_kind = EventKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in EventKind)
        typer.echo(f"Error: Unknown event kind '{kind}'. Valid kinds: {valid}", err=True)
        raise typer.Exit(1) from None

    detail_map = _parse_detail(detail)
    config = _load_settings_or_exit(settings)

    try:
        service = create_event_log_service(config, _FixedActor(actor), scheduler=ManualScheduler())
    except StoreConfigurationError as e:
        typer.echo(f"Error configuring stores: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        service.report(event_kind, detail_map)
        shipped = service.flush_now()
    finally:
        service.close(flush=False)

    if not shipped:
        typer.echo("Error: Event could not be shipped (see log output).", err=True)
        raise typer.Exit(1)
    typer.echo(f"Shipped {event_kind.value} for {actor}")


@app.command()
def show(
    actor: str = _ACTOR_OPTION,
    settings: str = _SETTINGS_OPTION,
) -> None:
    """Print an actor's remote log object."""
    from logship.shipping.factory import create_object_store

    config = _load_settings_or_exit(settings)
    runtime = RuntimeShipperConfig.from_settings(config)

    try:
        store = create_object_store(config.object_store)
    except StoreConfigurationError as e:
        typer.echo(f"Error configuring object store: {e}", err=True)
        raise typer.Exit(1) from None

    key = runtime.object_key(actor)
    try:
        data = store.read(key, max_bytes=runtime.max_object_bytes, timeout=runtime.network_timeout_seconds)
    except ObjectNotFound:
        typer.echo(f"No log found for actor '{actor}' ({key})", err=True)
        raise typer.Exit(1) from None
    except LogShipError as e:
        typer.echo(f"Error reading {key}: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        store.close()

    typer.echo(data.decode("utf-8", errors="replace"))


@app.command()
def summary(
    actor: str = _ACTOR_OPTION,
    settings: str = _SETTINGS_OPTION,
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json'.",
    ),
) -> None:
    """Print an actor's summary counter."""
    from logship.shipping.factory import create_counter_store
    from logship.shipping.summary import SummaryReconciler

    config = _load_settings_or_exit(settings)
    runtime = RuntimeShipperConfig.from_settings(config)

    try:
        store = create_counter_store(config.counter_store)
    except StoreConfigurationError as e:
        typer.echo(f"Error configuring counter store: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        record = SummaryReconciler(store, runtime).fetch(actor)
    finally:
        store.close()

    if record is None:
        typer.echo(f"No summary found for actor '{actor}'", err=True)
        raise typer.Exit(1)

    if output_format == "json":
        typer.echo(json.dumps(record.to_document(), sort_keys=True))
        return
    typer.echo(f"Actor:          {record.actor_id}")
    typer.echo(f"Total entries:  {record.total_entries}")
    typer.echo(f"Latest batch:   {record.latest_batch_size}")
    typer.echo(f"Last updated:   {record.last_updated.isoformat()}")


@app.command()
def kinds() -> None:
    """List the event kinds that can be reported."""
    for kind in EventKind:
        typer.echo(kind.value)


if __name__ == "__main__":
    app()
