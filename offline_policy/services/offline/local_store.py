"""Local durable key-value storage for the offline queue.

The queue is written as one JSON string under one key. ``JsonFileStore``
keeps every key in a single JSON object on disk and replaces the file
atomically on each write, so readers never observe a half-written queue.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from offline_policy.core.exceptions import PersistenceError
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LocalStore(Protocol):
    """Key-value persistence used by the offline queue."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """Process-local store; contents are lost on restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """File-backed store holding all keys in one JSON object."""

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: Location of the JSON file (created on first write)
        """
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read local store {self.path}: {e}", original_error=e)
        if not isinstance(data, dict):
            raise PersistenceError(f"Local store {self.path} is not a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        """Get the value stored under ``key``.

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed
        """
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            PersistenceError: If the file cannot be written
        """
        try:
            data = self._read_all()
        except PersistenceError:
            LOGGER.warning(
                "Local store unreadable, rewriting it",
                extra={"path": str(self.path)}
            )
            data = {}
        data[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".offline_store-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write local store {self.path}: {e}", original_error=e)
