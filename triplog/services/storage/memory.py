"""In-memory key-value store, for tests and throwaway sessions."""

from typing import Optional

from triplog.services.storage.interface import KeyValueStoreInterface, StorageError


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """
    Dict-backed store.

    `fail_writes` makes every `set`/`delete` raise StorageError without
    touching the data, which is how tests exercise failure paths.
    `write_count` counts successful writes.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.write_count = 0

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> bool:
        if self.fail_writes:
            raise StorageError(f"Simulated write failure for '{key}'")
        if not isinstance(value, str):
            raise StorageError(f"Value for '{key}' must be a serialized string")
        self._data[key] = value
        self.write_count += 1
        return True

    async def delete(self, key: str) -> bool:
        if self.fail_writes:
            raise StorageError(f"Simulated delete failure for '{key}'")
        existed = self._data.pop(key, None) is not None
        if existed:
            self.write_count += 1
        return existed

    async def keys(self) -> list[str]:
        return sorted(self._data)

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw stored blobs."""
        return dict(self._data)
