# src/logship/shipping/hookspecs.py
"""pluggy hook specifications for store backends.

Backends implement these hooks to register themselves. The factory calls them
to build name->class registries, one for object stores and one for counter
stores, so both kinds may share a name such as "memory".

Usage (implementing a store plugin):
    from logship.shipping.hookspecs import hookimpl

    class MyStorePlugin:
        @hookimpl
        def logship_get_object_stores(self):
            return [MyObjectStore]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from logship.contracts.protocols import CounterStore, RemoteObjectStore

PROJECT_NAME = "logship"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class LogShipStoreSpec:
    """Hook specifications for store backend plugins."""

    @hookspec
    def logship_get_object_stores(self) -> list[type["RemoteObjectStore"]]:  # type: ignore[empty-body]
        """Return remote object store classes.

        Returns:
            List of classes (not instances) implementing RemoteObjectStore
        """

    @hookspec
    def logship_get_counter_stores(self) -> list[type["CounterStore"]]:  # type: ignore[empty-body]
        """Return counter store classes.

        Returns:
            List of classes (not instances) implementing CounterStore
        """
