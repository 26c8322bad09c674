"""
Module: config

Purpose:
    Configuration dataclasses for statistics persistence and the subject
    library. Immutable settings with validation on construction.

Key Classes:
    - StoreConfig: Debounce window and stats file format version
    - LibraryConfig: Data directory and file naming for the library

Dependencies:
    - dataclasses (std)
    - pathlib (std)

Used By:
    - storage.stats_store: Uses StoreConfig for the save scheduler
    - storage.library: Uses LibraryConfig to build LibraryPaths
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# Quiescence window between the last mutation and the write, in seconds.
DEFAULT_DEBOUNCE_SECONDS = 0.35

STATS_FORMAT_VERSION = 1


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for a statistics store (immutable).

    Attributes:
        debounce_seconds: Quiet period before a pending save is written.
        stats_version: Format version stamped on new statistics records.
        indent: JSON indentation used when writing statistics files.
    """
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    stats_version: int = STATS_FORMAT_VERSION
    indent: int = 2

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be non-negative: {self.debounce_seconds}")
        if self.stats_version <= 0:
            raise ValueError(f"stats_version must be positive: {self.stats_version}")


@dataclass(frozen=True)
class LibraryConfig:
    """
    Configuration for the subject library (immutable).

    Attributes:
        root: Data directory. None resolves via storage.paths.get_data_dir().
        subject_prefix: Filename prefix for stored bundles.
        stats_prefix: Filename prefix for statistics records.
        store: Settings passed to every StatsStore the library opens.

    Example:
        >>> config = LibraryConfig(root=Path("/tmp/quiz"))
        >>> config.store.debounce_seconds
        0.35
    """
    root: Optional[Path] = None
    subject_prefix: str = "Subject_"
    stats_prefix: str = "Stats_"
    store: StoreConfig = field(default_factory=StoreConfig)

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if not self.subject_prefix or not self.stats_prefix:
            raise ValueError("file prefixes must be non-empty")
        if self.subject_prefix == self.stats_prefix:
            raise ValueError(f"subject and stats prefixes must differ: {self.subject_prefix!r}")
