"""
Abstract Storage Interface

DESIGN DECISION: All persistence goes through a string-keyed key-value
store holding serialized blobs. This allows us to:
1. Keep the exact layout earlier app versions wrote (one blob per key)
2. Use in-memory storage for testing
3. Swap the JSON file for another backend without touching the ledger

The interface is intentionally tiny. Collections (trips, vehicles) are
always read and written whole; there is no partial update at this boundary.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for the key-value persistence service.

    Values are opaque strings (usually JSON). Implementations must make
    `set` all-or-nothing: after a failed write the previous value is intact.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the blob stored under a key.

        Returns:
            The stored string, or None if nothing is stored

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """
        Replace the blob stored under a key.

        Returns:
            True if written successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """List all stored keys."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
