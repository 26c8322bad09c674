"""
Storage Package

File access, statistics persistence, settings and the subject library.
"""

from .file_store import (
    AccessDeniedError,
    BundleNotFoundError,
    CorruptedFileError,
    FileStorage,
    StorageError,
    StorageNotFoundError,
    StorageWriteError,
)
from .library import QuizContext, SubjectLibrary
from .paths import LibraryPaths, get_data_dir
from .scheduler import DebouncedTask
from .settings import SettingsStore
from .stats_store import StatsStore

__all__ = [
    "AccessDeniedError",
    "BundleNotFoundError",
    "CorruptedFileError",
    "DebouncedTask",
    "FileStorage",
    "LibraryPaths",
    "QuizContext",
    "SettingsStore",
    "StatsStore",
    "StorageError",
    "StorageNotFoundError",
    "StorageWriteError",
    "SubjectLibrary",
    "get_data_dir",
]
