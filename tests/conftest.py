# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator
from datetime import UTC

import pytest
from hypothesis import Phase, Verbosity, settings

from logship.contracts import RuntimeShipperConfig
from logship.core.clock import MockClock
from logship.shipping.retry import RemoteCallRetrier, RetryConfig
from logship.shipping.shipper import LogShipper
from logship.shipping.summary import SummaryReconciler
from tests.fakes import BASE_TIME, RecordingCounterStore, RecordingObjectStore, StaticIdentity

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Shipping Fixtures
# =============================================================================


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=BASE_TIME)


@pytest.fixture
def identity() -> StaticIdentity:
    return StaticIdentity("user-1")


@pytest.fixture
def object_store() -> RecordingObjectStore:
    return RecordingObjectStore()


@pytest.fixture
def counter_store() -> RecordingCounterStore:
    return RecordingCounterStore()


@pytest.fixture
def config() -> RuntimeShipperConfig:
    """Runtime config without the report-time nudge, so tests drive cycles explicitly."""
    return RuntimeShipperConfig(ship_on_report=False)


@pytest.fixture
def reconciler(counter_store: RecordingCounterStore, config: RuntimeShipperConfig, clock: MockClock) -> SummaryReconciler:
    return SummaryReconciler(counter_store, config, clock=clock)


@pytest.fixture
def shipper(
    identity: StaticIdentity,
    object_store: RecordingObjectStore,
    reconciler: SummaryReconciler,
    config: RuntimeShipperConfig,
    clock: MockClock,
) -> Iterator[LogShipper]:
    instance = LogShipper(
        identity,
        object_store,
        reconciler,
        config,
        clock=clock,
        retrier=RemoteCallRetrier(RetryConfig.no_retry()),
        local_tz=UTC,
    )
    yield instance
    instance.close()
