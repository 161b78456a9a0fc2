"""
Shared fixtures: a seeded in-memory record store, a settable clock and a fully
wired shift engine.
"""

import pytest
import pytest_asyncio

from shiftline.application.engine import ShiftEngine, build_engine
from shiftline.core.config import Settings
from shiftline.domain.production.services.verification_gate import (
    PlaintextCredentialVerifier,
)
from shiftline.infrastructure.events.event_bus import InMemoryEventBus
from shiftline.infrastructure.persistence.memory_store import InMemoryRecordStore
from shiftline.infrastructure.registry.store_registry import StoreBackedRegistry
from shiftline.tests.factories import SHIFT_START, FixedClock, seed_reference_data


@pytest.fixture
def clock():
    """Clock set to 08:30 on the shift day (inside slot-2)."""
    return FixedClock(SHIFT_START)


@pytest_asyncio.fixture
async def store():
    """In-memory record store seeded with reference data."""
    record_store = InMemoryRecordStore()
    await seed_reference_data(record_store)
    return record_store


@pytest.fixture
def registry(store):
    return StoreBackedRegistry(store)


@pytest.fixture
def event_bus():
    """Create a fresh event bus for each test."""
    bus = InMemoryEventBus()
    yield bus
    bus.shutdown()


@pytest.fixture
def test_settings():
    return Settings(
        ENVIRONMENT="local",
        DATABASE_URL=None,
        CREDENTIAL_SCHEME="plaintext",
        METRICS_REFRESH_INTERVAL_SECONDS=0.01,
        SLOT_REFRESH_INTERVAL_SECONDS=0.01,
    )


@pytest.fixture
def engine(test_settings, store, registry, clock, event_bus) -> ShiftEngine:
    return build_engine(
        config=test_settings,
        store=store,
        registry=registry,
        clock=clock,
        verifier=PlaintextCredentialVerifier(),
        bus=event_bus,
    )


@pytest_asyncio.fixture
async def session(engine):
    """Open session on line-1 running style-a at 60 units an hour."""
    return await engine.sessions.start("line-1", "sup-1", "style-a", 60)
