# src/logship/shipping/stores/filesystem.py
"""Filesystem-backed RemoteObjectStore.

Objects live under a base directory at their key path:

    base_path/logging/<actor_id>.txt
    base_path/logging/<actor_id>.txt.meta.json

Writes go to a temporary file in the target directory and are moved into
place with os.replace(), so readers never observe a partial object.
"""

import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from logship.contracts.errors import (
    ObjectNotFound,
    ObjectTooLarge,
    StoreConfigurationError,
    TransientNetworkFailure,
)

METADATA_SUFFIX = ".meta.json"


class FilesystemObjectStore:
    """Stores each object as a file under ``base_path``.

    Configuration:
        base_path: Root directory (required, created if missing)
    """

    _name = "filesystem"

    def __init__(self) -> None:
        self._base_path: Path | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def base_path(self) -> Path:
        if self._base_path is None:
            raise RuntimeError("FilesystemObjectStore used before configure()")
        return self._base_path

    def configure(self, options: dict[str, Any]) -> None:
        unknown = set(options) - {"base_path"}
        if unknown:
            raise StoreConfigurationError(self._name, f"Unknown options: {sorted(unknown)}")
        raw = options.get("base_path")
        if not isinstance(raw, (str, os.PathLike)) or str(raw) == "":
            raise StoreConfigurationError(self._name, "'base_path' option is required")

        base_path = Path(raw)
        try:
            base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreConfigurationError(self._name, f"Cannot create base_path {base_path}: {e}") from e
        self._base_path = base_path

    def _path_for_key(self, key: str) -> Path:
        """Map a key to a path under base_path.

        Raises:
            ValueError: If the key is empty, absolute, or escapes base_path
        """
        if not key or key.startswith(("/", "\\")):
            raise ValueError(f"Invalid object key: {key!r}")

        path = self.base_path / key
        resolved = path.resolve()
        base_resolved = self.base_path.resolve()
        if not resolved.is_relative_to(base_resolved) or resolved == base_resolved:
            raise ValueError(f"Invalid object key: path traversal detected for {key!r}")
        if resolved.name.endswith(METADATA_SUFFIX):
            raise ValueError(f"Invalid object key: {key!r} collides with metadata files")
        return path

    def read(self, key: str, *, max_bytes: int, timeout: float) -> bytes:
        path = self._path_for_key(key)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            raise ObjectNotFound(key) from None
        except OSError as e:
            raise TransientNetworkFailure("read", key, str(e)) from e

        if size > max_bytes:
            raise ObjectTooLarge(key, size, max_bytes)

        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ObjectNotFound(key) from None
        except OSError as e:
            raise TransientNetworkFailure("read", key, str(e)) from e

    def write(self, key: str, data: bytes, metadata: Mapping[str, str], *, timeout: float) -> None:
        path = self._path_for_key(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(path, data)
            meta_bytes = json.dumps(dict(metadata), sort_keys=True).encode("utf-8")
            _atomic_write(path.with_name(path.name + METADATA_SUFFIX), meta_bytes)
        except OSError as e:
            raise TransientNetworkFailure("write", key, str(e)) from e

    def read_metadata(self, key: str) -> dict[str, str] | None:
        """Return the metadata written with the object, or None if absent."""
        path = self._path_for_key(key)
        meta_path = path.with_name(path.name + METADATA_SUFFIX)
        if not meta_path.exists():
            return None
        result: dict[str, str] = json.loads(meta_path.read_text(encoding="utf-8"))
        return result

    def close(self) -> None:
        pass


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
