# src/logship/shipping/stores/memory.py
"""In-process stores for development and tests.

Contents live only as long as the store instance. Both stores are
thread-safe; the counter store serializes transact() per instance, which is
enough to make concurrent increments lossless.
"""

import copy
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from logship.contracts.errors import ObjectNotFound, ObjectTooLarge, StoreConfigurationError
from logship.contracts.protocols import Document


@dataclass(frozen=True, slots=True)
class StoredObject:
    """An object and the metadata attached by its last write."""

    data: bytes
    metadata: dict[str, str]


class InMemoryObjectStore:
    """Dict-backed RemoteObjectStore.

    Every write is also appended to ``writes`` so tests can inspect the
    sequence of full-object replacements.
    """

    _name = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: dict[str, StoredObject] = {}
        self.writes: list[tuple[str, bytes]] = []

    @property
    def name(self) -> str:
        return self._name

    def configure(self, options: dict[str, Any]) -> None:
        if options:
            raise StoreConfigurationError(self._name, f"Takes no options, got {sorted(options)}")

    def read(self, key: str, *, max_bytes: int, timeout: float) -> bytes:
        with self._lock:
            stored = self._objects.get(key)
        if stored is None:
            raise ObjectNotFound(key)
        if len(stored.data) > max_bytes:
            raise ObjectTooLarge(key, len(stored.data), max_bytes)
        return stored.data

    def write(self, key: str, data: bytes, metadata: Mapping[str, str], *, timeout: float) -> None:
        with self._lock:
            self._objects[key] = StoredObject(data=bytes(data), metadata=dict(metadata))
            self.writes.append((key, bytes(data)))

    def get_object(self, key: str) -> StoredObject | None:
        """Return the stored object and metadata, or None."""
        with self._lock:
            return self._objects.get(key)

    def close(self) -> None:
        pass


class InMemoryCounterStore:
    """Dict-backed CounterStore with a single transaction lock."""

    _name = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}

    @property
    def name(self) -> str:
        return self._name

    def configure(self, options: dict[str, Any]) -> None:
        if options:
            raise StoreConfigurationError(self._name, f"Takes no options, got {sorted(options)}")

    def transact(self, key: str, fn: Callable[[Document | None], Document], *, timeout: float) -> Document:
        with self._lock:
            current = self._documents.get(key)
            updated = fn(copy.deepcopy(current))
            self._documents[key] = copy.deepcopy(updated)
            return updated

    def get(self, key: str, *, timeout: float) -> Document | None:
        with self._lock:
            document = self._documents.get(key)
            return copy.deepcopy(document)

    def close(self) -> None:
        pass
