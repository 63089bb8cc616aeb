"""Services package."""

from triplog.services.storage import (
    DuplicateError,
    InMemoryKeyValueStore,
    JSONFileKeyValueStore,
    KeyValueStoreInterface,
    NotFoundError,
    PreferencesStore,
    StorageError,
    TripStore,
    VehicleRegistry,
)

__all__ = [
    "DuplicateError",
    "InMemoryKeyValueStore",
    "JSONFileKeyValueStore",
    "KeyValueStoreInterface",
    "NotFoundError",
    "PreferencesStore",
    "StorageError",
    "TripStore",
    "VehicleRegistry",
]
