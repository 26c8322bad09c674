"""
Module: storage.stats_store

Purpose:
    Owns the in-memory statistics record of the active subject, applies
    evaluation results to it and persists it with debounced atomic writes.

Key Classes:
    - StatsStore: mutation, queries and persistence for one StatsRecord

Dependencies:
    - storage.scheduler.DebouncedTask: coalesces writes
    - storage.file_store.FileStorage: atomic writes

Used By:
    - storage.library.SubjectLibrary.load_stats
    - storage.library.QuizContext

Threading:
    One lock guards the record and every write, so a mutation never
    interleaves with a serialization and two writes never overlap. The
    debounce timer is the only other thread.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from ..config import StoreConfig
from ..core.models.bundle import ContentBundle
from ..core.models.questions import Question
from ..core.models.stats import QuestionStats, StatsRecord
from ..core.schemas.validator import ValidationError
from ..core.utils.serialization import encode_stats, load_stats_bytes
from ..engine.evaluator import MultiSelectEvaluation, Outcome
from .file_store import FileStorage, StorageError, StorageNotFoundError
from .paths import LibraryPaths
from .scheduler import DebouncedTask

logger = logging.getLogger(__name__)


class StatsStore:
    """
    Statistics for one subject with debounced persistence.

    Every mutation refreshes the record timestamp and re-arms the save
    timer; the file is written once the store has been quiet for
    ``config.debounce_seconds``. A failed background write is logged and
    the store stays dirty, so the next save retries.

    Usage:
        store = StatsStore.load(subject_id, storage, paths)
        store.apply_multi_select_result(question, evaluate_multi_select(question, picked))
        ...
        store.force_save()   # end of session
    """

    def __init__(
        self,
        record: StatsRecord,
        storage: FileStorage,
        path: Path,
        config: Optional[StoreConfig] = None,
    ):
        self.config = config or StoreConfig()
        self.path = path
        self._storage = storage
        self._record = record
        self._dirty = False
        self._closed = False
        self._lock = threading.RLock()
        self._task = DebouncedTask(
            self.config.debounce_seconds,
            self._save_in_background,
            name=f"stats-save-{record.subject_id[:8]}",
        )

    @classmethod
    def load(
        cls,
        subject_id: str,
        storage: FileStorage,
        paths: LibraryPaths,
        config: Optional[StoreConfig] = None,
    ) -> StatsStore:
        """
        Open the store for ``subject_id``.

        A missing, unreadable or corrupt file, or one recorded for another
        subject, yields an empty record. Nothing is written until the
        first mutation.
        """
        config = config or StoreConfig()
        path = paths.stats_path(subject_id)
        record = read_stats_record(storage, path, subject_id)
        if record is None:
            record = StatsRecord.empty(subject_id, version=config.stats_version)
        return cls(record, storage, path, config)

    # ─────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────

    @property
    def subject_id(self) -> str:
        return self._record.subject_id

    @property
    def record(self) -> StatsRecord:
        """The live record. Treat as read-only; mutate through the store."""
        return self._record

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    @property
    def save_pending(self) -> bool:
        return self._task.pending

    # ─────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────

    def apply_multi_select_result(self, question: Question, evaluation: MultiSelectEvaluation) -> None:
        """Record a scored multiple-choice answer, including per-option detail."""
        delta = QuestionStats.from_evaluation(
            evaluation.outcome,
            missed_correct=evaluation.missed_correct,
            wrong_picked=evaluation.wrong_picked,
        )
        self._apply(question, delta, evaluation.outcome)

    def apply_matching_result(self, question: Question, outcome: Outcome) -> None:
        """Record a scored matching answer."""
        self._apply(question, QuestionStats.from_evaluation(outcome), outcome)

    def _apply(self, question: Question, delta: QuestionStats, outcome: Outcome) -> None:
        with self._lock:
            record = self._record
            current = record.per_question.get(question.id)
            record.per_question[question.id] = delta if current is None else current + delta
            if outcome is Outcome.WRONG:
                record.per_category_wrong[question.category] = record.wrong_count(question.category) + 1
            record.touch()
            self._mark_dirty()

    def replace(self, record: StatsRecord) -> None:
        """
        Replace the whole record (e.g. after importing a statistics file).

        Raises:
            ValueError: If ``record`` belongs to another subject
        """
        with self._lock:
            if record.subject_id != self._record.subject_id:
                raise ValueError(
                    f"Cannot replace statistics of {self._record.subject_id!r} "
                    f"with a record for {record.subject_id!r}"
                )
            self._record = record
            self._mark_dirty()

    def merge(self, record: StatsRecord) -> None:
        """Add ``record``'s counters to the current ones (see StatsRecord.merged)."""
        with self._lock:
            self._record = self._record.merged(record)
            self._mark_dirty()

    def reset(self) -> None:
        """Drop all counters for this subject."""
        with self._lock:
            self._record = StatsRecord.empty(self._record.subject_id, version=self._record.meta.version)
            self._mark_dirty()

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._task.arm()

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def top_wrong(self, limit: int) -> list[str]:
        with self._lock:
            return self._record.top_wrong_questions(limit)

    def top_wrong_in_category(self, bundle: ContentBundle, category: str, limit: int) -> list[str]:
        with self._lock:
            return self._record.top_wrong_in_category(bundle, category, limit)

    def question_stats(self, question_id: str) -> Optional[QuestionStats]:
        with self._lock:
            return self._record.per_question.get(question_id)

    def wrong_count(self, category: str) -> int:
        with self._lock:
            return self._record.wrong_count(category)

    def has_errors(self) -> bool:
        with self._lock:
            return self._record.has_errors()

    # ─────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────

    def force_save(self) -> None:
        """
        Write now, bypassing the debounce window.

        Raises:
            StorageError: If the write fails (the store stays dirty)
        """
        self._task.cancel()
        self._write()

    def close(self) -> None:
        """Write pending changes and stop the timer."""
        self._task.cancel()
        if self.is_dirty:
            self._write()

    def discard(self) -> None:
        """Stop the timer and forget unsaved changes. A timer already
        waiting on the lock will not write either."""
        self._task.cancel()
        with self._lock:
            self._dirty = False
            self._closed = True

    def _write(self) -> None:
        with self._lock:
            data = encode_stats(self._record, indent=self.config.indent)
            self._storage.write_bytes_atomic(self.path, data)
            self._dirty = False

    def _save_in_background(self) -> None:
        with self._lock:
            if self._closed or not self._dirty:
                logger.debug(f"Skipping save for {self.subject_id[:12]}: nothing to write")
                return
            try:
                self._write()
            except StorageError as e:
                logger.error(f"Failed to save statistics for {self.subject_id[:12]}: {e}")


def read_stats_record(storage: FileStorage, path: Path, subject_id: str) -> Optional[StatsRecord]:
    """Stored record for ``subject_id``, or None if there is no usable one."""
    try:
        raw = storage.read_bytes(path)
    except StorageNotFoundError:
        logger.debug(f"No statistics yet at {path.name}")
        return None
    except StorageError as e:
        logger.warning(f"Cannot read statistics {path.name}, starting empty: {e}")
        return None

    try:
        record = load_stats_bytes(raw)
    except ValidationError as e:
        logger.warning(f"Corrupt statistics {path.name}, starting empty: {e}")
        return None

    if record.subject_id != subject_id:
        logger.warning(
            f"Statistics {path.name} belong to {record.subject_id!r}, starting empty"
        )
        return None
    return record
