# src/logship/contracts/__init__.py
"""Shared contracts: leaf types crossing subsystem boundaries.

Nothing in this package imports from logship.core or logship.shipping.
"""

from logship.contracts.enums import EventKind, ShipOutcome, ShipperState
from logship.contracts.errors import (
    LogShipError,
    NoIdentity,
    ObjectNotFound,
    ObjectTooLarge,
    RemoteWriteConflict,
    SerializationFailure,
    StoreConfigurationError,
    TransientNetworkFailure,
)
from logship.contracts.events import Event
from logship.contracts.protocols import (
    CounterStore,
    Document,
    IdentityProvider,
    RemoteObjectStore,
    Scheduler,
)
from logship.contracts.runtime import RuntimeShipperConfig
from logship.contracts.summary import SummaryRecord

__all__ = [
    "CounterStore",
    "Document",
    "Event",
    "EventKind",
    "IdentityProvider",
    "LogShipError",
    "NoIdentity",
    "ObjectNotFound",
    "ObjectTooLarge",
    "RemoteObjectStore",
    "RemoteWriteConflict",
    "RuntimeShipperConfig",
    "Scheduler",
    "SerializationFailure",
    "ShipOutcome",
    "ShipperState",
    "StoreConfigurationError",
    "SummaryRecord",
    "TransientNetworkFailure",
]
