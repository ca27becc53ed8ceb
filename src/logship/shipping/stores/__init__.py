# src/logship/shipping/stores/__init__.py
"""Built-in store backends.

Available object stores:
- InMemoryObjectStore ("memory"): process-local, for development and tests
- FilesystemObjectStore ("filesystem"): files under a base directory
- AzureBlobObjectStore ("azure_blob"): Azure Blob Storage container

Available counter stores:
- InMemoryCounterStore ("memory"): process-local
- SQLCounterStore ("sql"): SQLAlchemy Core, SQLite or PostgreSQL

Plugin registration:
    Stores are registered via the logship_get_object_stores and
    logship_get_counter_stores hooks. BuiltinStoresPlugin registers all of
    the above.
"""

from logship.shipping.hookspecs import hookimpl
from logship.shipping.stores.azure_blob import AzureBlobObjectStore, AzureBlobStoreOptions
from logship.shipping.stores.filesystem import FilesystemObjectStore
from logship.shipping.stores.memory import InMemoryCounterStore, InMemoryObjectStore, StoredObject
from logship.shipping.stores.sql import SQLCounterStore


class BuiltinStoresPlugin:
    """Plugin that registers built-in store backends."""

    @hookimpl
    def logship_get_object_stores(self) -> list[type]:
        """Return built-in object store classes."""
        return [InMemoryObjectStore, FilesystemObjectStore, AzureBlobObjectStore]

    @hookimpl
    def logship_get_counter_stores(self) -> list[type]:
        """Return built-in counter store classes."""
        return [InMemoryCounterStore, SQLCounterStore]


__all__ = [
    "AzureBlobObjectStore",
    "AzureBlobStoreOptions",
    "BuiltinStoresPlugin",
    "FilesystemObjectStore",
    "InMemoryCounterStore",
    "InMemoryObjectStore",
    "SQLCounterStore",
    "StoredObject",
]
