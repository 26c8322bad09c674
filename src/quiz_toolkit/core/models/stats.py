"""
Module: stats

Purpose:
    Provides the statistics record paired with a content bundle and its
    additive merge operator. Counters are only ever added, so records can
    be accumulated from independent batches of attempts in any order.

Key Classes:
    - OptionStats: Per-option miss/wrong-pick counters (multiple-choice only)
    - QuestionStats: Per-question outcome counters
    - StatsMeta: Subject id, generation timestamp, format version
    - StatsRecord: Complete record with merge and ranking queries

Dependencies:
    - dataclasses (std)
    - datetime (std)

Used By:
    - core.utils.serialization
    - storage.stats_store
    - storage.library

Merge Contract:
    merged() is commutative and associative but NOT idempotent: merging the
    same record twice counts its attempts twice. A merge models "two
    distinct batches of attempts", never a sync of identical copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, Optional

if TYPE_CHECKING:
    from ...engine.evaluator import Outcome
    from .bundle import ContentBundle


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with second precision, e.g. 2025-09-01T10:00:00Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class OptionStats:
    """
    Counters for one multiple-choice option.

    Attributes:
        missed_correct: Times this correct option was left unselected
        wrong_selected: Times this incorrect option was selected
    """

    missed_correct: int = 0
    wrong_selected: int = 0

    def __post_init__(self) -> None:
        if self.missed_correct < 0 or self.wrong_selected < 0:
            raise ValueError(f"Option counters cannot be negative: {self!r}")

    def __add__(self, other: OptionStats) -> OptionStats:
        if not isinstance(other, OptionStats):
            return NotImplemented
        return OptionStats(
            missed_correct=self.missed_correct + other.missed_correct,
            wrong_selected=self.wrong_selected + other.wrong_selected,
        )

    def to_dict(self) -> dict:
        return {"missedCorrect": self.missed_correct, "wrongSelected": self.wrong_selected}


def _merge_option_maps(
    left: Optional[Dict[int, OptionStats]],
    right: Optional[Dict[int, OptionStats]],
) -> Optional[Dict[int, OptionStats]]:
    if left is None:
        return dict(right) if right is not None else None
    if right is None:
        return dict(left)
    merged = dict(left)
    for option_id, counters in right.items():
        merged[option_id] = merged.get(option_id, OptionStats()) + counters
    return merged


@dataclass(frozen=True)
class QuestionStats:
    """
    Outcome counters for one question.

    Attributes:
        attempts: Answers recorded
        correct: Answers classified Correct
        incomplete: Answers classified Incomplete
        wrong: Answers classified Wrong
        per_option: Option id -> counters; only present for multiple-choice

    Invariants:
        - all counters >= 0
        - attempts == correct + incomplete + wrong for records built from
          evaluations (not re-checked for imported data)
    """

    attempts: int = 0
    correct: int = 0
    incomplete: int = 0
    wrong: int = 0
    per_option: Optional[Dict[int, OptionStats]] = field(default=None, hash=False)

    def __post_init__(self) -> None:
        """Validate counters on construction."""
        for name in ("attempts", "correct", "incomplete", "wrong"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative: {value}")

    @classmethod
    def from_evaluation(
        cls,
        outcome: Outcome,
        missed_correct: Iterable[int] = (),
        wrong_picked: Iterable[int] = (),
    ) -> QuestionStats:
        """
        One-shot delta for a single answered question.

        Args:
            outcome: Classification from engine.evaluator
            missed_correct: Correct option ids the user did not select
            wrong_picked: Incorrect option ids the user selected

        Returns:
            QuestionStats with attempts=1 and one outcome counter set;
            per_option is None when there is no option detail.
        """
        from ...engine.evaluator import Outcome

        per_option: Dict[int, OptionStats] = {}
        for option_id in missed_correct:
            per_option[option_id] = per_option.get(option_id, OptionStats()) + OptionStats(missed_correct=1)
        for option_id in wrong_picked:
            per_option[option_id] = per_option.get(option_id, OptionStats()) + OptionStats(wrong_selected=1)

        return cls(
            attempts=1,
            correct=int(outcome is Outcome.CORRECT),
            incomplete=int(outcome is Outcome.INCOMPLETE),
            wrong=int(outcome is Outcome.WRONG),
            per_option=per_option or None,
        )

    def __add__(self, other: QuestionStats) -> QuestionStats:
        """Component-wise sum, recursing into per_option."""
        if not isinstance(other, QuestionStats):
            return NotImplemented
        return QuestionStats(
            attempts=self.attempts + other.attempts,
            correct=self.correct + other.correct,
            incomplete=self.incomplete + other.incomplete,
            wrong=self.wrong + other.wrong,
            per_option=_merge_option_maps(self.per_option, other.per_option),
        )

    def to_dict(self) -> dict:
        data: dict = {
            "attempts": self.attempts,
            "correct": self.correct,
            "incomplete": self.incomplete,
            "wrong": self.wrong,
        }
        if self.per_option is not None:
            data["per_option"] = {
                str(option_id): counters.to_dict()
                for option_id, counters in sorted(self.per_option.items())
            }
        return data


@dataclass(frozen=True)
class StatsMeta:
    subject_id: str
    generated_at: str
    version: int = 1


@dataclass
class StatsRecord:
    """
    Statistics for one content bundle, keyed by its identity.

    Mutable container: StatsStore updates ``per_question`` and
    ``per_category_wrong`` in place. ``merged()`` always returns a new
    record and leaves both inputs untouched.

    Attributes:
        meta: Subject id (== bundle identity), timestamp, version
        per_question: Question id -> QuestionStats
        per_category_wrong: Category id -> number of Wrong answers

    Example:
        >>> r = StatsRecord.empty("abc")
        >>> r.merged(r).per_question
        {}
    """

    meta: StatsMeta
    per_question: Dict[str, QuestionStats] = field(default_factory=dict)
    per_category_wrong: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls, subject_id: str, version: int = 1) -> StatsRecord:
        """A record with no counters, timestamped now."""
        return cls(meta=StatsMeta(subject_id=subject_id, generated_at=utc_timestamp(), version=version))

    @property
    def subject_id(self) -> str:
        return self.meta.subject_id

    def touch(self) -> None:
        """Refresh the generation timestamp."""
        self.meta = StatsMeta(
            subject_id=self.meta.subject_id,
            generated_at=utc_timestamp(),
            version=self.meta.version,
        )

    def merged(self, other: StatsRecord) -> StatsRecord:
        """
        Additive merge of two records for the same subject.

        Raises:
            ValueError: If subject ids differ (caller paired the wrong files)
        """
        if self.meta.subject_id != other.meta.subject_id:
            raise ValueError(
                f"Cannot merge statistics for different subjects: "
                f"{self.meta.subject_id!r} != {other.meta.subject_id!r}"
            )

        per_question = dict(self.per_question)
        for question_id, counters in other.per_question.items():
            current = per_question.get(question_id)
            per_question[question_id] = counters if current is None else current + counters

        per_category_wrong = dict(self.per_category_wrong)
        for category, count in other.per_category_wrong.items():
            per_category_wrong[category] = per_category_wrong.get(category, 0) + count

        return StatsRecord(
            meta=StatsMeta(
                subject_id=self.meta.subject_id,
                generated_at=utc_timestamp(),
                version=max(self.meta.version, other.meta.version),
            ),
            per_question=per_question,
            per_category_wrong=per_category_wrong,
        )

    def top_wrong_questions(self, limit: int) -> list[str]:
        """
        Up to ``limit`` question ids by descending wrong count.

        Ties are broken by question id ascending so the ranking is stable
        across runs and platforms.
        """
        if limit <= 0:
            return []
        ranked = sorted(self.per_question.items(), key=lambda item: (-item[1].wrong, item[0]))
        return [question_id for question_id, _ in ranked[:limit]]

    def top_wrong_in_category(self, bundle: ContentBundle, category: str, limit: int) -> list[str]:
        """Like top_wrong_questions() restricted to questions of ``category`` in ``bundle``."""
        if limit <= 0:
            return []
        in_category = {q.id for q in bundle.questions if q.category == category}
        ranked = sorted(
            (item for item in self.per_question.items() if item[0] in in_category),
            key=lambda item: (-item[1].wrong, item[0]),
        )
        return [question_id for question_id, _ in ranked[:limit]]

    def wrong_count(self, category: str) -> int:
        return self.per_category_wrong.get(category, 0)

    def has_errors(self) -> bool:
        return any(s.wrong > 0 for s in self.per_question.values())

    def counters_equal(self, other: StatsRecord) -> bool:
        """Field-by-field counter equality, ignoring the timestamp."""
        return (
            self.meta.subject_id == other.meta.subject_id
            and self.per_question == other.per_question
            and self.per_category_wrong == other.per_category_wrong
        )

    def to_dict(self) -> dict:
        return {
            "meta": {
                "subject_id": self.meta.subject_id,
                "generated_at": self.meta.generated_at,
                "version": self.meta.version,
            },
            "per_question": {
                question_id: counters.to_dict()
                for question_id, counters in sorted(self.per_question.items())
            },
            "per_category_wrong": dict(sorted(self.per_category_wrong.items())),
        }
