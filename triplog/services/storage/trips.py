"""
Trip Record Store

The whole trip collection lives in one JSON array under one key.
Every operation is whole-collection: load everything, or replace everything.

On load each record is passed through the migration chain. If the
canonical serialization differs from what is on disk, it is written back
immediately, so the next load reads stable data (and stable ids).
"""

import json
from typing import Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from triplog.audit import AuditLogger
from triplog.config import get_settings
from triplog.models.trip import Trip
from triplog.services.storage.interface import (
    DuplicateError,
    KeyValueStoreInterface,
    StorageError,
)
from triplog.services.storage.migrations import CURRENT_SCHEMA_VERSION, migrate_trips


def serialize_trips(trips: Sequence[Trip]) -> str:
    """Compact JSON array using the persisted field names."""
    return json.dumps(
        [trip.to_storage_dict() for trip in trips],
        ensure_ascii=False,
        separators=(",", ":"),
    )


class TripStore:
    """Load/save the trip collection through a key-value store."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        key: Optional[str] = None,
        version_key: Optional[str] = None,
    ):
        storage_settings = get_settings().storage
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._key = key or storage_settings.trips_key
        self._version_key = version_key or storage_settings.trips_schema_version_key

    @property
    def key(self) -> str:
        return self._key

    async def load_all(self) -> list[Trip]:
        """
        Load and normalize every stored trip.

        Nothing stored, an empty blob, or a blob that is not a JSON array
        all load as no trips.

        Raises:
            StorageError: If the backend itself cannot be read
        """
        blob = await self._store.get(self._key)
        if blob is None or not blob.strip():
            return []

        try:
            raw = json.loads(blob)
        except ValueError as e:
            self._audit.log_stored_data_unreadable(self._key, str(e))
            return []

        if not isinstance(raw, list):
            self._audit.log_stored_data_unreadable(
                self._key, f"expected a JSON array, got {type(raw).__name__}"
            )
            return []

        records, changed = migrate_trips(raw)

        trips: list[Trip] = []
        rejected = 0
        for record in records:
            try:
                trips.append(Trip.model_validate(record))
            except PydanticValidationError as e:
                rejected += 1
                self._audit.log_stored_data_unreadable(self._key, str(e))

        canonical = serialize_trips(trips)
        # Never write back a collection that lost records we could not read
        if rejected == 0 and canonical != blob:
            await self._write_back(canonical, changed, len(trips))

        return trips

    async def _write_back(self, canonical: str, changed: int, total: int) -> None:
        try:
            await self._store.set(self._key, canonical)
            await self._store.set(self._version_key, str(CURRENT_SCHEMA_VERSION))
        except StorageError as e:
            # The normalized view is still correct in memory; the next load retries
            self._audit.log_storage_error(self._key, "migrate", str(e))
            return
        self._audit.log_trips_migrated(self._key, changed, total, CURRENT_SCHEMA_VERSION)

    async def save_all(self, trips: Sequence[Trip]) -> bool:
        """
        Replace the stored collection.

        Raises:
            DuplicateError: If two trips share an id
            StorageError: If the write fails (previous blob stays intact)
        """
        seen: set[str] = set()
        for trip in trips:
            if trip.id in seen:
                raise DuplicateError(f"Duplicate trip id: {trip.id}")
            seen.add(trip.id)

        try:
            return await self._store.set(self._key, serialize_trips(trips))
        except StorageError as e:
            self._audit.log_storage_error(self._key, "save", str(e))
            raise
