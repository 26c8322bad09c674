"""
Module: questions

Purpose:
    Provides the Question dataclass and its answer-key parts. A question is
    either multiple-choice (one or more correct options) or matching
    (left items paired with right items).

Key Classes:
    - QuestionKind: "multiple" or "matching"
    - Option: A multiple-choice option with its correctness flag
    - Question: Immutable question with kind-specific answer key

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - core.models.bundle.ContentBundle
    - core.schemas.validator
    - engine.evaluator
    - storage.stats_store

Note:
    Construction does NOT validate content. Structural problems are
    reported by core.schemas.validator with a field path, which needs the
    decoded (possibly invalid) question to exist first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class QuestionKind(str, Enum):
    """Answer format of a question."""

    MULTIPLE = "multiple"
    MATCHING = "matching"


@dataclass(frozen=True)
class Option:
    """
    One selectable option of a multiple-choice question.

    Attributes:
        id: Option identifier, unique within its question
        text: Option label shown to the user
        is_correct: Whether selecting this option is required
    """

    id: int
    text: str
    is_correct: bool

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "isCorrect": self.is_correct}


@dataclass(frozen=True)
class Question:
    """
    A single question (immutable).

    Attributes:
        id: Unique identifier within the bundle
        category: Taxonomy node id this question belongs to
        kind: Answer format
        prompt: Question text
        subcategory: Optional taxonomy sub-node id
        code: Optional code snippet shown with the prompt
        options: Multiple-choice options (kind == MULTIPLE)
        left: Left column items (kind == MATCHING)
        right: Right column items (kind == MATCHING)
        correct_matches: Left index -> right index answer key (kind == MATCHING)

    Example:
        >>> q = Question(
        ...     id="q1",
        ...     category="basics",
        ...     kind=QuestionKind.MULTIPLE,
        ...     prompt="Pick the even numbers",
        ...     options=(Option(1, "2", True), Option(2, "3", False)),
        ... )
        >>> q.correct_option_ids
        frozenset({1})
    """

    id: str
    category: str
    kind: QuestionKind
    prompt: str
    subcategory: Optional[str] = None
    code: Optional[str] = None
    options: Optional[tuple[Option, ...]] = None
    left: Optional[tuple[str, ...]] = None
    right: Optional[tuple[str, ...]] = None
    correct_matches: Optional[Dict[int, int]] = field(default=None, hash=False)

    @property
    def is_multiple(self) -> bool:
        return self.kind is QuestionKind.MULTIPLE

    @property
    def is_matching(self) -> bool:
        return self.kind is QuestionKind.MATCHING

    @property
    def correct_option_ids(self) -> frozenset[int]:
        """Ids of options that must be selected (empty for matching questions)."""
        return frozenset(o.id for o in self.options or () if o.is_correct)

    @property
    def incorrect_option_ids(self) -> frozenset[int]:
        """Ids of options that must not be selected."""
        return frozenset(o.id for o in self.options or () if not o.is_correct)

    def to_dict(self) -> dict:
        """Serialize to the bundle file representation (optional fields omitted)."""
        data: dict = {
            "id": self.id,
            "category": self.category,
            "kind": self.kind.value,
            "prompt": self.prompt,
        }
        if self.subcategory is not None:
            data["subcategory"] = self.subcategory
        if self.code is not None:
            data["code"] = self.code
        if self.options is not None:
            data["options"] = [o.to_dict() for o in self.options]
        if self.left is not None:
            data["left"] = list(self.left)
        if self.right is not None:
            data["right"] = list(self.right)
        if self.correct_matches is not None:
            # JSON object keys are strings; left indices serialize as decimal text
            data["correctMatches"] = {
                str(k): v for k, v in sorted(self.correct_matches.items())
            }
        return data
