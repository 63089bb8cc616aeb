"""
Vehicle Registry

An ordered list of distinct vehicle names stored as a JSON array of
strings. Names are compared exactly (case-sensitive) after trimming.

Removing a vehicle never touches trips that mention it.
"""

import json
from typing import Optional, Sequence

from triplog.audit import AuditLogger
from triplog.config import get_settings
from triplog.services.storage.interface import (
    DuplicateError,
    KeyValueStoreInterface,
    StorageError,
)
from triplog.validation import EmptyNameError, TripValidator


class VehicleRegistry:
    """Load/save/add/remove vehicle names."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        key: Optional[str] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._key = key or get_settings().storage.vehicles_key
        self._validator = TripValidator()

    async def load_all(self) -> list[str]:
        """Stored names in order; unreadable data loads as an empty list."""
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

        return [name for name in raw if isinstance(name, str)]

    async def save_all(self, names: Sequence[str]) -> bool:
        try:
            return await self._store.set(
                self._key, json.dumps(list(names), ensure_ascii=False)
            )
        except StorageError as e:
            self._audit.log_storage_error(self._key, "save", str(e))
            raise

    async def add(self, name: str) -> list[str]:
        """
        Append a vehicle and persist.

        Returns:
            The updated list

        Raises:
            EmptyNameError: If the name is blank
            DuplicateError: If the trimmed name is already registered
        """
        try:
            trimmed = self._validator.validate_vehicle_name(name)
        except EmptyNameError:
            self._audit.log_vehicle_rejected(name or "", "empty name")
            raise

        names = await self.load_all()
        if trimmed in names:
            self._audit.log_vehicle_rejected(trimmed, "already registered")
            raise DuplicateError(f"Vehicle already exists: {trimmed}")

        updated = [*names, trimmed]
        await self.save_all(updated)
        self._audit.log_vehicle_added(trimmed)
        return updated

    async def remove(self, name: str) -> list[str]:
        """
        Remove the first exact match and persist. Absent names are a no-op.

        Returns:
            The resulting list
        """
        names = await self.load_all()
        if name not in names:
            self._audit.log_vehicle_removed(name, existed=False)
            return names

        updated = list(names)
        updated.remove(name)
        await self.save_all(updated)
        self._audit.log_vehicle_removed(name, existed=True)
        return updated
