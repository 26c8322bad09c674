"""
Path utilities for the data directory and library file layout.

Resolution order for the data directory:
    1. ``QUIZ_TOOLKIT_HOME`` environment variable
    2. Frozen app: platform application-data location
    3. Dev mode: ./workspace
"""
from __future__ import annotations

import os
import platform
import sys
from dataclasses import dataclass
from pathlib import Path

from ..config import LibraryConfig

APP_NAME = "Quiz Toolkit"
HOME_ENV_VAR = "QUIZ_TOOLKIT_HOME"

SUBJECTS_DIR = "subjects"
STATS_DIR = "stats"
SETTINGS_FILE = "settings.json"


def is_frozen() -> bool:
    """Check if running as a frozen (PyInstaller) application."""
    return getattr(sys, "frozen", False) or hasattr(sys, "_MEIPASS")


def get_data_dir() -> Path:
    """Get the directory holding subjects, statistics and settings."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    if is_frozen():
        system = platform.system()
        if system == "Windows":
            base = os.environ.get("LOCALAPPDATA", os.environ.get("APPDATA"))
            return Path(base) / APP_NAME if base else Path.home() / ".quiz_toolkit"
        if system == "Darwin":
            return Path.home() / "Library/Application Support" / APP_NAME
        return Path.home() / ".local/share" / APP_NAME

    return Path.cwd() / "workspace"


@dataclass(frozen=True)
class LibraryPaths:
    """
    File layout under one data directory.

    Example:
        >>> paths = LibraryPaths(Path("/data"))
        >>> paths.stats_path("abc")
        PosixPath('/data/stats/Stats_abc.json')
    """
    root: Path
    subject_prefix: str = "Subject_"
    stats_prefix: str = "Stats_"

    @classmethod
    def from_config(cls, config: LibraryConfig) -> LibraryPaths:
        return cls(
            root=config.root if config.root is not None else get_data_dir(),
            subject_prefix=config.subject_prefix,
            stats_prefix=config.stats_prefix,
        )

    @property
    def subjects_dir(self) -> Path:
        return self.root / SUBJECTS_DIR

    @property
    def stats_dir(self) -> Path:
        return self.root / STATS_DIR

    @property
    def settings_path(self) -> Path:
        return self.root / SETTINGS_FILE

    def subject_path(self, subject_id: str) -> Path:
        return self.subjects_dir / f"{self.subject_prefix}{subject_id}.json"

    def stats_path(self, subject_id: str) -> Path:
        return self.stats_dir / f"{self.stats_prefix}{subject_id}.json"

    def subject_id_from(self, path: Path) -> str | None:
        """Subject id encoded in a bundle filename, or None for other files."""
        name = path.name
        if not (name.startswith(self.subject_prefix) and name.endswith(".json")):
            return None
        return name[len(self.subject_prefix):-len(".json")] or None
