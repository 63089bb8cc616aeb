"""
Storage Services Package

Provides the key-value store interface, its backends, and the typed
stores (trips, vehicles, preferences) built on top of it.
"""

from triplog.services.storage.interface import (
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)
from triplog.services.storage.json_file import JSONFileKeyValueStore
from triplog.services.storage.memory import InMemoryKeyValueStore
from triplog.services.storage.migrations import (
    CURRENT_SCHEMA_VERSION,
    migrate_trip,
    migrate_trips,
)
from triplog.services.storage.trips import TripStore, serialize_trips
from triplog.services.storage.vehicles import VehicleRegistry
from triplog.services.storage.preferences import PreferencesStore

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Backends
    "InMemoryKeyValueStore",
    "JSONFileKeyValueStore",
    # Migrations
    "CURRENT_SCHEMA_VERSION",
    "migrate_trip",
    "migrate_trips",
    # Typed stores
    "PreferencesStore",
    "TripStore",
    "VehicleRegistry",
    "serialize_trips",
]
