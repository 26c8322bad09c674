"""
Settings persistence for the quiz toolkit.

Small JSON key-value store in ``<data dir>/settings.json``. Malformed or
unreadable data falls back to defaults; it never prevents start-up.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .file_store import FileStorage, StorageError, StorageNotFoundError

logger = logging.getLogger(__name__)

LAST_SUBJECT_KEY = "last_subject_id"


class SettingsStore:
    """Lightweight JSON-backed store for persisting user preferences."""

    CURRENT_VERSION = 1

    def __init__(self, path: Path, storage: Optional[FileStorage] = None) -> None:
        self.path = path
        self._storage = storage or FileStorage()
        self.data: Dict[str, Any] = {}
        self.load_error: Optional[str] = None

        try:
            loaded = json.loads(self._storage.read_bytes(self.path).decode("utf-8"))
        except StorageNotFoundError:
            loaded = {}
        except (StorageError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self.load_error = f"Failed to read settings: {e}"
            logger.warning(f"{self.load_error}; using defaults")
            loaded = {}

        if isinstance(loaded, dict):
            self.data = loaded
        else:
            self.load_error = "Settings file does not contain a JSON object"
            logger.warning(f"{self.load_error}; using defaults")

        if "version" not in self.data:
            self.data["version"] = self.CURRENT_VERSION

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set ``key`` and persist. Setting None removes the key."""
        if value is None:
            if key not in self.data:
                return
            del self.data[key]
        elif self.data.get(key) == value:
            return
        else:
            self.data[key] = value
        self._save()

    @property
    def last_subject_id(self) -> Optional[str]:
        value = self.data.get(LAST_SUBJECT_KEY)
        return value if isinstance(value, str) and value else None

    @last_subject_id.setter
    def last_subject_id(self, value: Optional[str]) -> None:
        self.set(LAST_SUBJECT_KEY, value)

    def _save(self) -> None:
        """Persist settings atomically; a failed write is logged, not raised."""
        data = json.dumps(self.data, indent=2, sort_keys=True).encode("utf-8")
        try:
            self._storage.write_bytes_atomic(self.path, data)
        except StorageError as e:
            logger.warning(f"Failed to save settings: {e}")
