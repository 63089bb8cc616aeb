"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON document on local disk is the default
backend because:
1. It keeps the one-blob-per-key layout earlier versions wrote
2. No database setup required
3. Users can open and back up the file themselves

TRADEOFFS:
- The whole document is rewritten on every set (fine for personal use)
- No cross-process locking; a single app instance is assumed
- Two overlapping read-modify-write sequences can lose one update

Writes go to a temporary file that is then renamed over the document,
so a failed write never leaves a half-written store behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from triplog.config import get_settings
from triplog.services.storage.interface import KeyValueStoreInterface, StorageError


class JSONFileKeyValueStore(KeyValueStoreInterface):
    """
    Key-value store persisted as one JSON object of key -> blob string.

    Handles the document file and retries transient OS errors.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path).expanduser() if path else get_settings().storage.path

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _read_document(self) -> dict:
        """Load the whole document. A missing or blank file is an empty store."""
        if not self._path.exists():
            return {}

        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return {}

        document = json.loads(text)
        if not isinstance(document, dict):
            raise StorageError(f"Store file is not a JSON object: {self._path}")
        return document

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_document(self, document: dict) -> None:
        """Atomically replace the document on disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, sort_keys=True, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _load(self) -> dict:
        try:
            return self._read_document()
        except StorageError:
            raise
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read store {self._path}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        """Read one blob."""
        value = self._load().get(key)
        if value is None or isinstance(value, str):
            return value
        # Hand-edited files may hold raw JSON instead of a string blob
        return json.dumps(value)

    async def set(self, key: str, value: str) -> bool:
        """Replace one blob, rewriting the document."""
        if not isinstance(value, str):
            raise StorageError(f"Value for '{key}' must be a serialized string")

        document = self._load()
        document[key] = value
        try:
            self._write_document(document)
        except OSError as e:
            raise StorageError(f"Failed to write '{key}' to {self._path}: {e}") from e
        return True

    async def delete(self, key: str) -> bool:
        document = self._load()
        if key not in document:
            return False

        del document[key]
        try:
            self._write_document(document)
        except OSError as e:
            raise StorageError(f"Failed to delete '{key}' from {self._path}: {e}") from e
        return True

    async def keys(self) -> list[str]:
        return sorted(self._load().keys())
