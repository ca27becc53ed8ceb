# src/logship/shipping/factory.py
"""Factory functions for creating an EventLogService from configuration.

This module provides the glue between configuration (LogShipSettings) and
the runtime EventLogService instance. It handles:
1. Discovering store classes via pluggy hooks
2. Instantiating and configuring the selected object and counter stores
3. Creating the EventLogService with those stores

Usage:
    from logship.core.config import load_settings
    from logship.shipping.factory import create_event_log_service

    settings = load_settings(Path("settings.yaml"))
    service = create_event_log_service(settings, identity)
    service.start()
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import tzinfo
from typing import Any, Literal

import pluggy
import structlog

from logship.contracts.errors import StoreConfigurationError
from logship.contracts.protocols import CounterStore, IdentityProvider, RemoteObjectStore, Scheduler
from logship.contracts.runtime import RuntimeShipperConfig
from logship.core.clock import Clock
from logship.core.config import LogShipSettings, StoreSettings
from logship.shipping.hookspecs import PROJECT_NAME, LogShipStoreSpec
from logship.shipping.service import EventLogService
from logship.shipping.stores import BuiltinStoresPlugin

logger = structlog.get_logger(__name__)

StoreKind = Literal["object", "counter"]

_HOOK_NAMES: dict[StoreKind, str] = {
    "object": "logship_get_object_stores",
    "counter": "logship_get_counter_stores",
}


def _resolve_store_name(store_class: type[Any]) -> str:
    """Resolve a store's configured name from its class.

    Prefers a class-level ``_name``; falls back to instantiating the class and
    reading ``name``.

    Raises:
        StoreConfigurationError: If the name is missing or not a non-empty string
    """
    class_name = getattr(store_class, "__name__", repr(store_class))

    class_dict = getattr(store_class, "__dict__", {})
    if "_name" in class_dict:
        hint = class_dict["_name"]
        if type(hint) is str and hint != "":
            return hint
        raise StoreConfigurationError(class_name, f"Store class attribute _name must be a non-empty string, got {hint!r}")

    try:
        instance = store_class()
    except Exception as e:
        raise StoreConfigurationError(class_name, f"Failed to instantiate store class during discovery: {e}") from e

    resolved = instance.name
    if type(resolved) is not str or resolved == "":
        raise StoreConfigurationError(class_name, f"Store name must be a non-empty string, got {resolved!r}")
    return resolved


def _build_plugin_manager(store_plugins: Iterable[Any]) -> pluggy.PluginManager:
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(LogShipStoreSpec)

    for plugin in [BuiltinStoresPlugin(), *list(store_plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # ValueError: same plugin object or name registered twice
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise StoreConfigurationError(
                "store_plugins",
                f"Invalid store plugin {type(plugin).__name__}: {e}",
            ) from e
    return plugin_manager


def _discover_store_registry(kind: StoreKind, store_plugins: Iterable[Any] = ()) -> dict[str, type[Any]]:
    """Build the name->class registry for one store kind.

    Registers the built-in stores plus any caller-supplied plugin objects,
    then calls the kind's discovery hook on each.

    Raises:
        StoreConfigurationError: If a plugin is invalid, returns something
            other than an iterable of classes, or two classes share a name
    """
    hook_name = _HOOK_NAMES[kind]
    plugin_manager = _build_plugin_manager(store_plugins)

    registry: dict[str, type[Any]] = {}
    for hook_impl in getattr(plugin_manager.hook, hook_name).get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            classes = hook_impl.function()
        except Exception as e:
            raise StoreConfigurationError("store_plugins", f"Store plugin {plugin_name} failed in {hook_name}: {e}") from e

        if classes is None or type(classes) in (str, bytes):
            raise StoreConfigurationError(
                "store_plugins",
                f"{hook_name} in plugin {plugin_name} returned {type(classes).__name__}; expected iterable of store classes",
            )
        try:
            class_iter = iter(classes)
        except TypeError as e:
            raise StoreConfigurationError(
                "store_plugins",
                f"{hook_name} in plugin {plugin_name} returned {type(classes).__name__}; expected iterable of store classes",
            ) from e

        for store_class in class_iter:
            store_name = _resolve_store_name(store_class)
            if store_name in registry:
                raise StoreConfigurationError(
                    store_name,
                    f"Duplicate {kind} store name '{store_name}' discovered: "
                    f"{registry[store_name].__name__} and {store_class.__name__}",
                )
            registry[store_name] = store_class

    return registry


def _create_store(kind: StoreKind, store_settings: StoreSettings, store_plugins: Iterable[Any]) -> Any:
    registry = _discover_store_registry(kind, store_plugins)
    try:
        store_class = registry[store_settings.name]
    except KeyError:
        available = sorted(registry.keys())
        raise StoreConfigurationError(
            store_settings.name,
            f"Unknown {kind} store. Available {kind} stores: {available}",
        ) from None

    store = store_class()
    store.configure(dict(store_settings.options))
    logger.debug(
        "Store configured",
        kind=kind,
        store=store_settings.name,
        options_keys=list(store_settings.options.keys()),
    )
    return store


def create_object_store(store_settings: StoreSettings, *, store_plugins: Iterable[Any] = ()) -> RemoteObjectStore:
    """Instantiate and configure the object store named in settings.

    Raises:
        StoreConfigurationError: If the name is unknown or options are invalid
    """
    store: RemoteObjectStore = _create_store("object", store_settings, store_plugins)
    return store


def create_counter_store(store_settings: StoreSettings, *, store_plugins: Iterable[Any] = ()) -> CounterStore:
    """Instantiate and configure the counter store named in settings.

    Raises:
        StoreConfigurationError: If the name is unknown or options are invalid
    """
    store: CounterStore = _create_store("counter", store_settings, store_plugins)
    return store


def create_event_log_service(
    settings: LogShipSettings,
    identity: IdentityProvider,
    *,
    scheduler: Scheduler | None = None,
    clock: Clock | None = None,
    store_plugins: Iterable[Any] = (),
    local_tz: tzinfo | None = None,
    sleep: Callable[[float], None] | None = None,
) -> EventLogService:
    """Create an EventLogService from validated settings.

    The service is returned unstarted; call start() to begin scheduled
    shipping.

    Args:
        settings: Validated LogShipSettings
        identity: Identity provider for the current actor
        scheduler: Tick source (default: IntervalScheduler)
        clock: Clock (default: system clock)
        store_plugins: Additional plugin objects implementing the store hooks
        local_tz: Zone for local timestamps in log lines (default: host zone)
        sleep: Sleep function for retries and flush polling (default: time.sleep)

    Raises:
        StoreConfigurationError: If store discovery or configuration fails
    """
    plugins = list(store_plugins)
    object_store = create_object_store(settings.object_store, store_plugins=plugins)
    try:
        counter_store = create_counter_store(settings.counter_store, store_plugins=plugins)
    except Exception:
        object_store.close()
        raise

    config = RuntimeShipperConfig.from_settings(settings)
    extra: dict[str, Any] = {}
    if sleep is not None:
        extra["sleep"] = sleep

    service = EventLogService(
        identity,
        object_store,
        counter_store,
        config,
        scheduler=scheduler,
        clock=clock,
        local_tz=local_tz,
        **extra,
    )
    logger.debug(
        "Event log service created",
        object_store=object_store.name,
        counter_store=counter_store.name,
        interval_seconds=config.interval_seconds,
    )
    return service
