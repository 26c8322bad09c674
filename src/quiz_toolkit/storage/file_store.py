"""
Module: storage.file_store

Purpose:
    Byte-level file access used by the library and the statistics store.
    Writes are atomic (temp file in the target directory, fsync, replace)
    and serialised across processes with a portalocker lock on a sidecar
    ``.lock`` file.

Key Classes:
    - FileStorage: read / write / delete / list primitives
    - StorageError and subclasses: I/O failures translated from OSError

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - storage.stats_store
    - storage.settings
    - storage.library
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import portalocker

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class StorageError(Exception):
    """Base class for file storage failures."""

    suggestion = "Check that the data directory exists and is writable."

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class StorageNotFoundError(StorageError):
    suggestion = "The file no longer exists; re-import it."


class BundleNotFoundError(StorageNotFoundError):
    suggestion = "The subject is not in the library; import its content file first."


class AccessDeniedError(StorageError):
    suggestion = "Grant read/write permission on the data directory."


class StorageWriteError(StorageError):
    suggestion = "Free some disk space or check permissions, then try again."


class CorruptedFileError(StorageError):
    """A stored file is valid JSON but no longer decodes into its model."""

    suggestion = "Delete the subject and import the original file again."


# ─────────────────────────────────────────────────────────────────────────────
# Locking
# ─────────────────────────────────────────────────────────────────────────────

@contextmanager
def locked_path(path: Path) -> Generator[None, None, None]:
    """
    Hold an exclusive lock for ``path`` via ``<path>.lock``.

    The target itself is never locked because it is replaced, not edited.
    """
    lock_path = path.with_name(path.name + LOCK_SUFFIX)
    with open(lock_path, "a", encoding="utf-8") as lock_file:
        portalocker.lock(lock_file, portalocker.LOCK_EX)
        try:
            yield
        finally:
            portalocker.unlock(lock_file)


# ─────────────────────────────────────────────────────────────────────────────
# Storage
# ─────────────────────────────────────────────────────────────────────────────

class FileStorage:
    """
    Local filesystem storage.

    Usage:
        storage = FileStorage()
        storage.write_bytes_atomic(path, b"{}")
        data = storage.read_bytes(path)
    """

    def read_bytes(self, path: Path) -> bytes:
        """
        Read a whole file.

        Raises:
            StorageNotFoundError: File does not exist
            AccessDeniedError: Permission denied
            StorageError: Any other OS failure
        """
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise StorageNotFoundError(f"File not found: {path}", path=path)
        except PermissionError as e:
            raise AccessDeniedError(f"Cannot read {path}: {e}", path=path)
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", path=path)

    def write_bytes_atomic(self, path: Path, data: bytes) -> None:
        """
        Replace ``path`` with ``data`` so readers see the old or the new
        content, never a mix.

        Raises:
            AccessDeniedError: Permission denied
            StorageWriteError: Write or rename failed (temp file removed)
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with locked_path(path):
                self._replace(path, data)
        except PermissionError as e:
            raise AccessDeniedError(f"Cannot write {path}: {e}", path=path)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {path}: {e}", path=path)
        logger.debug(f"Wrote {len(data)} bytes to {path.name}")

    @staticmethod
    def _replace(path: Path, data: bytes) -> None:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.stem}_",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            try:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            except OSError:
                tmp.close()
                tmp_path.unlink(missing_ok=True)
                raise
        try:
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def delete(self, path: Path) -> bool:
        """
        Delete a file and its lock sidecar.

        Returns:
            True if the file existed.
        """
        try:
            path.with_name(path.name + LOCK_SUFFIX).unlink(missing_ok=True)
            path.unlink()
        except FileNotFoundError:
            return False
        except PermissionError as e:
            raise AccessDeniedError(f"Cannot delete {path}: {e}", path=path)
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}", path=path)
        return True

    def list_directory(self, path: Path) -> list[Path]:
        """Files directly inside ``path``, sorted by name; [] if it does not exist."""
        if not path.is_dir():
            return []
        try:
            return sorted(p for p in path.iterdir() if p.is_file())
        except PermissionError as e:
            raise AccessDeniedError(f"Cannot list {path}: {e}", path=path)
        except OSError as e:
            raise StorageError(f"Failed to list {path}: {e}", path=path)
