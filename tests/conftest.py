"""
Shared fixtures for Trip Log tests.

Async operations are driven with asyncio.run, the same way the
Streamlit app drives them. No test touches the user's real store file.
"""

import asyncio
from datetime import datetime

import pytest

from triplog.config import get_settings
from triplog.models.trip import RateTable, Trip
from triplog.orchestrator import TripLedger
from triplog.services.storage import InMemoryKeyValueStore, TripStore, VehicleRegistry


FIXED_NOW = datetime(2024, 3, 15, 9, 30, 0)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the default store path at a temp dir and reload settings."""
    monkeypatch.setenv("TRIPLOG_STORAGE_PATH", str(tmp_path / "store.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def trip_store(store):
    return TripStore(store)


@pytest.fixture
def vehicle_registry(store):
    return VehicleRegistry(store)


@pytest.fixture
def rates():
    return RateTable()


@pytest.fixture
def ledger(trip_store, rates):
    return TripLedger(trip_store, base_rates=rates, clock=lambda: FIXED_NOW)


@pytest.fixture
def trip_fields():
    """A complete, valid create request."""
    return {
        "start": "Home",
        "destination": "Client office",
        "purpose": "Quarterly review",
        "vehicle": "Honda Civic",
        "tripType": "business",
        "startOdometer": "12000.0",
        "endOdometer": "12042.5",
    }


def make_trip(**overrides) -> Trip:
    """A persisted-looking trip; override any attribute."""
    values = {
        "id": "abc12345",
        "start": "Home",
        "destination": "Office",
        "purpose": "Meeting",
        "vehicle": "Honda Civic",
        "trip_type": "business",
        "start_odometer": "100.0",
        "end_odometer": "150.0",
        "miles": "50.0",
        "start_date_time": "2024-03-15T09:30:00",
        "end_date_time": "2024-03-15T10:15:00",
    }
    values.update(overrides)
    return Trip(**values)
