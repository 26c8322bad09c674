"""
Module: storage.library

Purpose:
    The subject library (imported bundles and their statistics on disk)
    and the application context that tracks the active subject.

Key Classes:
    - SubjectLibrary: import, load, list and delete bundles; import,
      export and flush statistics files
    - QuizContext: active bundle + StatsStore, remembered across runs

Dependencies:
    - core.identity.resolve_bundle: import pipeline
    - storage.file_store.FileStorage: all file access
    - storage.settings.SettingsStore: "last active subject"

Used By:
    - Presentation layer (not part of this package)

File Layout:
    <root>/subjects/Subject_<id>.json
    <root>/stats/Stats_<id>.json
    <root>/settings.json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from ..config import LibraryConfig
from ..core.identity import resolve_bundle
from ..core.models.bundle import ContentBundle
from ..core.models.stats import StatsRecord
from ..core.schemas.validator import (
    StructureMismatchError,
    ValidationError,
    WrongSubjectError,
    validate_schema,
)
from ..core.utils.serialization import decode_bundle, decode_stats, encode_bundle, encode_stats, parse_json
from .file_store import (
    BundleNotFoundError,
    CorruptedFileError,
    FileStorage,
    StorageError,
    StorageNotFoundError,
)
from .paths import LibraryPaths
from .settings import SettingsStore
from .stats_store import StatsStore, read_stats_record

logger = logging.getLogger(__name__)

Source = Union[bytes, Path]


class SubjectLibrary:
    """
    Imported content bundles and their statistics files.

    Usage:
        library = SubjectLibrary(LibraryConfig(root=Path("data")))
        bundle = library.import_bundle(Path("networks.json"))
        store = library.load_stats(bundle.identity)
    """

    def __init__(self, config: Optional[LibraryConfig] = None, storage: Optional[FileStorage] = None):
        self.config = config or LibraryConfig()
        self.storage = storage or FileStorage()
        self.paths = LibraryPaths.from_config(self.config)

    def _read_source(self, source: Source) -> bytes:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source)
        return self.storage.read_bytes(Path(source))

    # ─────────────────────────────────────────────────────────────────────
    # Bundles
    # ─────────────────────────────────────────────────────────────────────

    def import_bundle(self, source: Source, *, strict: bool = False) -> ContentBundle:
        """
        Resolve and store a content bundle.

        Re-importing identical content overwrites the stored copy; its
        statistics are untouched.

        Args:
            source: Raw bytes or a path to read
            strict: Also validate against the JSON Schema

        Raises:
            ValidationError: Content rejected (see resolve_bundle)
            StorageError: Source unreadable or library not writable
        """
        bundle = resolve_bundle(self._read_source(source), strict=strict)
        self.storage.write_bytes_atomic(self.paths.subject_path(bundle.identity), encode_bundle(bundle))
        logger.info(f"Imported {bundle.display_name!r} as {bundle.identity[:12]}")
        return bundle

    def load_bundle(self, subject_id: str) -> ContentBundle:
        """
        Load a stored bundle. The identity is not recomputed.

        Raises:
            BundleNotFoundError: No bundle stored for ``subject_id``
            JsonSyntaxError: Stored file is not JSON
            CorruptedFileError: Stored file is JSON but not a bundle
        """
        path = self.paths.subject_path(subject_id)
        try:
            raw = self.storage.read_bytes(path)
        except StorageNotFoundError:
            raise BundleNotFoundError(f"Subject not found: {subject_id}", path=path)

        tree = parse_json(raw)
        try:
            return decode_bundle(tree)
        except StructureMismatchError as e:
            raise CorruptedFileError(f"Stored subject {path.name} is corrupted: {e}", path=path)

    def list_bundles(self) -> list[tuple[str, str]]:
        """(subject id, display name) of every readable bundle, sorted by name."""
        entries = []
        for path in self.storage.list_directory(self.paths.subjects_dir):
            subject_id = self.paths.subject_id_from(path)
            if subject_id is None:
                continue
            try:
                bundle = self.load_bundle(subject_id)
            except (ValidationError, StorageError) as e:
                logger.warning(f"Skipping unreadable subject {path.name}: {e}")
                continue
            entries.append((bundle.identity, bundle.display_name))
        return sorted(entries, key=lambda entry: (entry[1].casefold(), entry[0]))

    def delete_bundle(self, subject_id: str) -> bool:
        """
        Delete a bundle and its statistics.

        Returns:
            True if the bundle existed.
        """
        existed = self.storage.delete(self.paths.subject_path(subject_id))
        self.storage.delete(self.paths.stats_path(subject_id))
        if existed:
            logger.info(f"Deleted subject {subject_id[:12]}")
        return existed

    def delete_all(self) -> int:
        """Delete every stored bundle and statistics file; returns bundles removed."""
        removed = 0
        for path in self.storage.list_directory(self.paths.subjects_dir):
            subject_id = self.paths.subject_id_from(path)
            if subject_id is not None and self.delete_bundle(subject_id):
                removed += 1
        for path in self.storage.list_directory(self.paths.stats_dir):
            self.storage.delete(path)
        return removed

    def import_directory(self, directory: Path, *, strict: bool = False) -> list[ContentBundle]:
        """
        Import every ``*.json`` bundle in ``directory`` whose display name is
        not already in the library. Rejected files are logged and skipped.
        """
        known = {name for _, name in self.list_bundles()}
        imported = []
        for path in self.storage.list_directory(directory):
            if path.suffix.lower() != ".json":
                continue
            try:
                bundle = resolve_bundle(self.storage.read_bytes(path), strict=strict)
            except (ValidationError, StorageError) as e:
                logger.warning(f"Skipping {path.name}: {e}")
                continue
            if bundle.display_name in known:
                logger.debug(f"Skipping {path.name}: {bundle.display_name!r} already imported")
                continue
            self.storage.write_bytes_atomic(self.paths.subject_path(bundle.identity), encode_bundle(bundle))
            known.add(bundle.display_name)
            imported.append(bundle)
        if imported:
            logger.info(f"Imported {len(imported)} subject(s) from {directory}")
        return imported

    # ─────────────────────────────────────────────────────────────────────
    # Statistics
    # ─────────────────────────────────────────────────────────────────────

    def load_stats(self, subject_id: str) -> StatsStore:
        return StatsStore.load(subject_id, self.storage, self.paths, self.config.store)

    def read_stats_file(self, source: Source, expected_subject_id: str) -> StatsRecord:
        """
        Parse a statistics file and check it belongs to ``expected_subject_id``.

        Raises:
            ValidationError: Not a statistics file
            WrongSubjectError: Statistics of another subject
        """
        tree = parse_json(self._read_source(source))
        validate_schema(tree, "stats")
        record = decode_stats(tree)
        if record.subject_id != expected_subject_id:
            raise WrongSubjectError(expected=expected_subject_id, actual=record.subject_id)
        return record

    def import_stats(self, source: Source, expected_subject_id: str, *, replace: bool = False) -> StatsRecord:
        """
        Import a statistics file for a subject that is not open in a StatsStore.

        Merges into the stored record unless ``replace`` is set.

        Returns:
            The record now on disk.
        """
        record = self.read_stats_file(source, expected_subject_id)
        if not replace:
            path = self.paths.stats_path(expected_subject_id)
            current = read_stats_record(self.storage, path, expected_subject_id)
            if current is not None:
                record = current.merged(record)
        self.storage.write_bytes_atomic(
            self.paths.stats_path(expected_subject_id),
            encode_stats(record, indent=self.config.store.indent),
        )
        return record

    def export_stats_path(self, subject_id: str) -> Optional[Path]:
        """Path of the statistics file to share, or None if nothing was saved yet."""
        path = self.paths.stats_path(subject_id)
        return path if self.storage.exists(path) else None

    def flush_stats(self, subject_id: str) -> bool:
        """Delete the statistics file; returns True if it existed."""
        return self.storage.delete(self.paths.stats_path(subject_id))


class QuizContext:
    """
    Application context: the active subject and its statistics store.

    The active subject id is remembered in settings so the next run can
    reopen it with ``restore_last_subject()``.

    Usage:
        context = QuizContext(SubjectLibrary())
        context.restore_last_subject()
        ...
        context.end_session()
    """

    def __init__(self, library: SubjectLibrary, settings: Optional[SettingsStore] = None):
        self.library = library
        self.settings = settings or SettingsStore(library.paths.settings_path, library.storage)
        self.bundle: Optional[ContentBundle] = None
        self.stats: Optional[StatsStore] = None

    @property
    def active_subject_id(self) -> Optional[str]:
        return self.bundle.identity if self.bundle is not None else None

    def _require_active(self) -> StatsStore:
        if self.stats is None:
            raise RuntimeError("No active subject")
        return self.stats

    def select_subject(self, subject_id: str) -> ContentBundle:
        """
        Make ``subject_id`` active, saving the previous subject's statistics.

        Raises:
            BundleNotFoundError, CorruptedFileError, JsonSyntaxError
        """
        bundle = self.library.load_bundle(subject_id)
        self._close_active()
        self.bundle = bundle
        self.stats = self.library.load_stats(subject_id)
        self.settings.last_subject_id = subject_id
        return bundle

    def restore_last_subject(self) -> Optional[ContentBundle]:
        """Reopen the subject active in the previous run, if it still loads."""
        subject_id = self.settings.last_subject_id
        if subject_id is None:
            return None
        try:
            return self.select_subject(subject_id)
        except (ValidationError, StorageError) as e:
            logger.warning(f"Cannot restore subject {subject_id[:12]}: {e}")
            self.settings.last_subject_id = None
            return None

    def import_bundle(self, source: Source, *, strict: bool = False, activate: bool = True) -> ContentBundle:
        bundle = self.library.import_bundle(source, strict=strict)
        if activate:
            self.select_subject(bundle.identity)
        return bundle

    def import_stats(self, source: Source, *, replace: bool = False) -> StatsRecord:
        """
        Merge (or replace with) a statistics file for the active subject
        and save immediately.

        Raises:
            RuntimeError: No active subject
            WrongSubjectError: File belongs to another subject
        """
        store = self._require_active()
        record = self.library.read_stats_file(source, store.subject_id)
        if replace:
            store.replace(record)
        else:
            store.merge(record)
        store.force_save()
        return store.record

    def flush_stats(self) -> None:
        """Delete the active subject's statistics and start from empty."""
        store = self._require_active()
        store.discard()
        self.library.flush_stats(store.subject_id)
        self.stats = self.library.load_stats(store.subject_id)

    def delete_subject(self, subject_id: str) -> bool:
        if subject_id == self.active_subject_id:
            self.stats.discard()
            self.bundle = None
            self.stats = None
        if self.settings.last_subject_id == subject_id:
            self.settings.last_subject_id = None
        return self.library.delete_bundle(subject_id)

    def end_session(self) -> None:
        """Write the active statistics now."""
        if self.stats is not None:
            self.stats.force_save()

    def close(self) -> None:
        self._close_active()

    def _close_active(self) -> None:
        if self.stats is not None:
            self.stats.close()
        self.bundle = None
        self.stats = None
