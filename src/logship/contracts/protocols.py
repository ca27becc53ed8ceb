# src/logship/contracts/protocols.py
"""Protocol definitions for the shipper's external collaborators.

The shipper never talks to a concrete identity provider, blob store,
document database or timer. It consumes these protocols, which keeps the
collaborators swappable and lets tests drive everything deterministically.

Store lifecycle (mirrors plugin discovery):
    1. Discovery: logship_get_object_stores / logship_get_counter_stores
       hooks return store classes
    2. Instantiation: factory creates instances with no arguments
    3. Configuration: configure() called with backend-specific options
    4. Operation: read/write/transact/get called from the shipper worker
    5. Shutdown: close() called when the service closes

Error handling:
    - configure() MUST raise StoreConfigurationError on invalid options
    - read() MUST raise ObjectNotFound when the object is absent
    - Network, auth and timeout failures SHOULD be raised as
      TransientNetworkFailure (any other exception is also treated as a
      failed cycle by the shipper)
    - close() MUST be idempotent
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

# A counter-store document. Values are JSON-compatible.
Document = dict[str, Any]


@runtime_checkable
class IdentityProvider(Protocol):
    """Supplies the identifier of the currently signed-in actor."""

    def current_actor_id(self) -> str | None:
        """Return the current actor id, or None when nobody is signed in.

        Implementations may raise NoIdentity instead of returning None.
        """
        ...


@runtime_checkable
class RemoteObjectStore(Protocol):
    """Whole-object blob store keyed by string.

    There is no partial-append primitive: appending is a read of the full
    object followed by a write of the full object.
    """

    @property
    def name(self) -> str:
        """Backend name used in configuration (``object_store.name``)."""
        ...

    def configure(self, options: dict[str, Any]) -> None:
        """Configure the store with backend-specific options.

        Raises:
            StoreConfigurationError: If options are invalid or incomplete
        """
        ...

    def read(self, key: str, *, max_bytes: int, timeout: float) -> bytes:
        """Return the full content of the object at ``key``.

        Args:
            key: Object key
            max_bytes: Upper bound on the object size the caller accepts
            timeout: Seconds before the call is abandoned

        Raises:
            ObjectNotFound: If no object exists at ``key``
            ObjectTooLarge: If the object is larger than ``max_bytes``
            TransientNetworkFailure: On network, auth or timeout failure
        """
        ...

    def write(self, key: str, data: bytes, metadata: Mapping[str, str], *, timeout: float) -> None:
        """Replace the object at ``key`` with ``data`` and attach ``metadata``.

        Raises:
            TransientNetworkFailure: On network, auth or timeout failure
        """
        ...

    def close(self) -> None:
        """Release client resources. Must be idempotent."""
        ...


@runtime_checkable
class CounterStore(Protocol):
    """Document store offering an atomic read-modify-write per key."""

    @property
    def name(self) -> str:
        """Backend name used in configuration (``counter_store.name``)."""
        ...

    def configure(self, options: dict[str, Any]) -> None:
        """Configure the store with backend-specific options.

        Raises:
            StoreConfigurationError: If options are invalid or incomplete
        """
        ...

    def transact(self, key: str, fn: Callable[[Document | None], Document], *, timeout: float) -> Document:
        """Atomically replace the document at ``key`` with ``fn(current)``.

        ``fn`` receives None when the document does not exist. The store
        guarantees that concurrent transactions on the same key do not lose
        updates. ``fn`` may be called more than once if the store retries.

        Returns:
            The document that was written
        """
        ...

    def get(self, key: str, *, timeout: float) -> Document | None:
        """Return the document at ``key``, or None if absent."""
        ...

    def close(self) -> None:
        """Release client resources. Must be idempotent."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Periodic tick source driving ship cycles."""

    def every(self, interval_seconds: float, callback: Callable[[], None]) -> None:
        """Invoke ``callback`` every ``interval_seconds`` until stopped."""
        ...

    def stop(self) -> None:
        """Stop ticking. Must be idempotent."""
        ...
