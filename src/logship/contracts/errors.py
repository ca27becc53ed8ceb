# src/logship/contracts/errors.py
"""Exception taxonomy for the log-shipping subsystem.

Shipping errors (everything below LogShipError except StoreConfigurationError)
are contained inside the shipper: they are logged and turned into a FAILED
cycle outcome, never raised to the code that reports events.
"""


class LogShipError(Exception):
    """Base class for all logship errors."""


class NoIdentity(LogShipError):
    """Raised when no actor is signed in.

    Events reported without an actor are dropped at the source.
    """


class TransientNetworkFailure(LogShipError):
    """Raised by stores for network, auth, or timeout failures.

    The cycle fails and the buffer is left untouched for the next attempt.

    Attributes:
        operation: Store operation that failed (e.g. "read", "write", "transact")
        key: Object or document key involved
    """

    def __init__(self, operation: str, key: str, message: str) -> None:
        self.operation = operation
        self.key = key
        super().__init__(f"{operation} failed for '{key}': {message}")


class ObjectNotFound(LogShipError):
    """Raised by RemoteObjectStore.read() when the object does not exist.

    Not an error for the shipper: a missing log object is empty content.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Object not found: {key}")


class ObjectTooLarge(LogShipError):
    """Raised when an existing remote object exceeds the configured size bound."""

    def __init__(self, key: str, size: int, max_bytes: int) -> None:
        self.key = key
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(f"Object '{key}' is {size} bytes, exceeds limit of {max_bytes} bytes")


class SerializationFailure(LogShipError):
    """Raised when a batch cannot be rendered or encoded."""


class RemoteWriteConflict(LogShipError):
    """Raised by stores that detect a concurrent writer.

    Treated like a transient failure: the next cycle re-reads and retries.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Concurrent write detected for '{key}'")


class StoreConfigurationError(LogShipError):
    """Raised when a store backend is configured with invalid options.

    This is a startup error and is NOT contained by the shipper.

    Attributes:
        store_name: Name of the store backend that failed
        message: Human-readable error description
    """

    def __init__(self, store_name: str, message: str) -> None:
        self.store_name = store_name
        self.message = message
        super().__init__(f"Store '{store_name}' misconfigured: {message}")
