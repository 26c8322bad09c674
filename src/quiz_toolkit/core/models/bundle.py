"""
Module: bundle

Purpose:
    Provides the ContentBundle dataclass - the versioned question set,
    taxonomy and session configuration shipped by a content author, plus
    the Scale value type used for "how many questions" choices.

Key Classes:
    - Scale: Fixed question count or "all"
    - TaxonomyNode: Category with optional sub-categories
    - BundleMeta / BundleConfig: Identity and session settings
    - ContentBundle: Immutable bundle with lookup helpers

Dependencies:
    - dataclasses (std)
    - .questions.Question

Used By:
    - core.identity.resolve_bundle
    - core.utils.serialization
    - engine.session
    - storage.library
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union

from .questions import Question


# Identity value asking the importer to compute the content hash.
AUTO_IDENTITY = "auto:sha256"

ALL_LABEL = "all"


@dataclass(frozen=True)
class Scale:
    """
    Session size choice: a fixed count or every available question.

    Attributes:
        count: Number of questions, or None meaning "all"

    Example:
        >>> Scale.of(10).resolve(25)
        10
        >>> Scale.all().resolve(25)
        25
    """

    count: Optional[int] = None

    @classmethod
    def of(cls, count: int) -> Scale:
        return cls(count=count)

    @classmethod
    def all(cls) -> Scale:
        return cls(count=None)

    @property
    def is_all(self) -> bool:
        return self.count is None

    def resolve(self, pool_size: int) -> int:
        """Number of questions to draw from a pool of ``pool_size``."""
        return pool_size if self.count is None else self.count

    def to_json(self) -> Union[int, str]:
        return ALL_LABEL if self.count is None else self.count

    def __str__(self) -> str:
        return ALL_LABEL if self.count is None else str(self.count)


@dataclass(frozen=True)
class TaxonomyNode:
    """A category; ``sub`` holds its sub-categories (one level is used)."""

    id: str
    name: str
    sub: Optional[tuple[TaxonomyNode, ...]] = None

    def to_dict(self) -> dict:
        data: dict = {"id": self.id, "name": self.name}
        if self.sub is not None:
            data["sub"] = [node.to_dict() for node in self.sub]
        return data


@dataclass(frozen=True)
class BundleMeta:
    subject_id: str
    subject_name: str
    version: int


@dataclass(frozen=True)
class BundleConfig:
    """
    Session settings declared by the bundle.

    Attributes:
        scales_questions: Choices for generic sessions
        scales_category: Choices for per-category sessions
        scales_errors: Choices for error-review sessions
        feedback: Feedback mode ("immediate"); opaque to the core
    """

    scales_questions: tuple[Scale, ...]
    scales_category: tuple[Scale, ...]
    scales_errors: tuple[Scale, ...]
    feedback: str


@dataclass(frozen=True)
class ContentBundle:
    """
    A complete content bundle (immutable).

    The identity (``meta.subject_id``) is either the sentinel
    ``AUTO_IDENTITY`` straight after decoding, or the lowercase hex
    SHA-256 of the canonical form once resolved.

    Attributes:
        meta: Identity, display name and format version
        config: Session settings
        taxonomy: Ordered category tree
        questions: Ordered questions
    """

    meta: BundleMeta
    config: BundleConfig
    taxonomy: tuple[TaxonomyNode, ...]
    questions: tuple[Question, ...]

    @property
    def identity(self) -> str:
        return self.meta.subject_id

    @property
    def display_name(self) -> str:
        return self.meta.subject_name

    @property
    def format_version(self) -> int:
        return self.meta.version

    @property
    def category_ids(self) -> list[str]:
        return [node.id for node in self.taxonomy]

    def with_identity(self, identity: str) -> ContentBundle:
        """Return a copy whose subject_id is ``identity``."""
        return replace(self, meta=replace(self.meta, subject_id=identity))

    def question(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    def questions_in(self, category: str, sub: Optional[str] = None) -> list[Question]:
        """Questions of ``category``, narrowed to ``sub`` when given."""
        return [
            q for q in self.questions
            if q.category == category and (sub is None or q.subcategory == sub)
        ]

    def category_display_name(self, category: str, sub: Optional[str] = None) -> str:
        """Readable label for a category (and sub-category); unknown ids are returned as-is."""
        node = next((n for n in self.taxonomy if n.id == category), None)
        if node is None:
            return category
        if sub is not None:
            child = next((s for s in node.sub or () if s.id == sub), None)
            if child is not None:
                return f"{node.name} · {child.name}"
        return node.name

    def to_dict(self) -> dict:
        return {
            "meta": {
                "subject_id": self.meta.subject_id,
                "subject_name": self.meta.subject_name,
                "version": self.meta.version,
            },
            "config": {
                "scales_questions": [s.to_json() for s in self.config.scales_questions],
                "scales_category": [s.to_json() for s in self.config.scales_category],
                "scales_errors": [s.to_json() for s in self.config.scales_errors],
                "feedback": self.config.feedback,
            },
            "taxonomy": [node.to_dict() for node in self.taxonomy],
            "questions": [q.to_dict() for q in self.questions],
        }
