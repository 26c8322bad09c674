"""
Schema Validation Utilities

Validates content bundles and statistics payloads.

Two layers:
- ``validate_bundle()`` runs semantic checks over a decoded ContentBundle
  (non-empty fields, taxonomy references, per-kind answer keys)
- ``validate_schema()`` checks a raw JSON tree against the packaged JSON
  Schema files with jsonschema (strict imports only)

Both fail fast: the first violation is raised with the path of the
offending field, e.g. ``questions[3].options[1].text``. There is no
partial-import mode.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

import jsonschema

from ..models.bundle import ContentBundle, TaxonomyNode
from ..models.questions import Question, QuestionKind


_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ValidationError(Exception):
    """
    Raised when imported data is rejected.

    Attributes:
        path: Dotted/indexed location of the problem ("" for the whole file)
        errors: Individual messages (jsonschema may report several)
        suggestion: Remedy the presentation layer can show to the user
    """

    suggestion = "Re-import the original file."

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


class EmptyDataError(ValidationError):
    suggestion = "Select a non-empty, readable JSON file."

    def __init__(self, message: str = "File is empty"):
        super().__init__(message)


class JsonSyntaxError(ValidationError):
    """Input is not JSON at all."""

    suggestion = "Check the JSON syntax of the file (brackets, commas, quotes)."

    def __init__(self, message: str, line: int = 0, column: int = 0):
        super().__init__(message)
        self.line = line
        self.column = column


class StructureMismatchError(ValidationError):
    """Input is valid JSON but not shaped like the expected document."""

    suggestion = "Make sure the file contains the meta, config, taxonomy and questions sections."


class MissingFieldError(ValidationError):
    suggestion = "Add the missing field; every required field must be present and non-empty."

    def __init__(self, path: str, message: str | None = None):
        super().__init__(message or f"Missing required field: {path}", path=path)


class InvalidTypeError(ValidationError):
    suggestion = "Check that values have the expected type and range."

    def __init__(self, path: str, message: str | None = None):
        super().__init__(message or f"Invalid value for field: {path}", path=path)


class InvalidQuestionStructureError(ValidationError):
    suggestion = "Each question needs id, category, kind, prompt and the fields of its kind."

    def __init__(self, path: str, detail: str):
        super().__init__(f"Invalid structure at {path}: {detail}", path=path)
        self.detail = detail


class HashMismatchError(ValidationError):
    """Stated identity does not match the content hash."""

    suggestion = "The file was modified after its identity was assigned; re-import the original file."

    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Content hash mismatch: file states {actual!r}, content hashes to {expected!r}",
            path="meta.subject_id",
        )
        self.expected = expected
        self.actual = actual


class WrongSubjectError(ValidationError):
    """A statistics file belongs to a different bundle than the active one."""

    suggestion = "Select the statistics file exported for this subject."

    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Statistics belong to subject {actual!r}, expected {expected!r}",
            path="meta.subject_id",
        )
        self.expected = expected
        self.actual = actual


# ─────────────────────────────────────────────────────────────────────────────
# JSON Schema (strict mode)
# ─────────────────────────────────────────────────────────────────────────────

def validate_schema(data: Any, name: str) -> None:
    """
    Validate a raw JSON tree against a packaged schema.

    Args:
        data: Generic JSON value (dicts/lists/scalars)
        name: Schema name, "bundle" or "stats"

    Raises:
        StructureMismatchError: On the first schema violation
    """
    schema = _load_schema(name)
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as e:
        raise StructureMismatchError(
            f"Schema validation failed: {e.message}",
            path=_format_path(e.absolute_path),
            errors=[e.message],
        )


def _format_path(parts: Sequence[Any]) -> str:
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Bundle semantics
# ─────────────────────────────────────────────────────────────────────────────

def validate_bundle(bundle: ContentBundle) -> None:
    """
    Validate a decoded content bundle.

    Args:
        bundle: Bundle decoded from JSON (identity not yet reconciled)

    Raises:
        MissingFieldError: Required field empty
        InvalidTypeError: Value out of range
        InvalidQuestionStructureError: Taxonomy node or question malformed
    """
    if not bundle.meta.subject_name:
        raise MissingFieldError("meta.subject_name")
    if bundle.meta.version <= 0:
        raise InvalidTypeError(
            "meta.version", f"meta.version must be > 0 (got {bundle.meta.version})"
        )

    config = bundle.config
    for name in ("scales_questions", "scales_category", "scales_errors"):
        scales = getattr(config, name)
        if not scales:
            raise MissingFieldError(f"config.{name}")
        for i, scale in enumerate(scales):
            if scale.count is not None and scale.count <= 0:
                raise InvalidTypeError(
                    f"config.{name}[{i}]",
                    f"config.{name}[{i}] must be a positive count or \"all\" (got {scale.count})",
                )
    if not config.feedback:
        raise MissingFieldError("config.feedback")

    category_ids = _validate_taxonomy(bundle.taxonomy)
    _validate_questions(bundle.questions, category_ids)


def _validate_taxonomy(taxonomy: Sequence[TaxonomyNode]) -> set[str]:
    """Check taxonomy nodes; return the set of top-level category ids."""
    if not taxonomy:
        raise MissingFieldError("taxonomy", "taxonomy must contain at least one category")

    seen: set[str] = set()
    for i, node in enumerate(taxonomy):
        path = f"taxonomy[{i}]"
        _validate_node(node, path)
        if node.id in seen:
            raise InvalidQuestionStructureError(f"{path}.id", f"duplicate category id {node.id!r}")
        seen.add(node.id)
        for j, child in enumerate(node.sub or ()):
            _validate_node(child, f"{path}.sub[{j}]")
    return seen


def _validate_node(node: TaxonomyNode, path: str) -> None:
    if not node.id:
        raise InvalidQuestionStructureError(f"{path}.id", "id is empty")
    if not node.name:
        raise InvalidQuestionStructureError(f"{path}.name", "name is empty")


def _validate_questions(questions: Sequence[Question], category_ids: set[str]) -> None:
    if not questions:
        raise MissingFieldError("questions", "questions must contain at least one question")

    seen: set[str] = set()
    for i, question in enumerate(questions):
        path = f"questions[{i}]"
        if not question.id:
            raise InvalidQuestionStructureError(f"{path}.id", "id is empty")
        if question.id in seen:
            raise InvalidQuestionStructureError(f"{path}.id", f"duplicate question id {question.id!r}")
        seen.add(question.id)
        if not question.category:
            raise InvalidQuestionStructureError(f"{path}.category", f"category is empty (id: {question.id})")
        if not question.prompt:
            raise InvalidQuestionStructureError(f"{path}.prompt", f"prompt is empty (id: {question.id})")
        if question.category not in category_ids:
            raise InvalidQuestionStructureError(
                f"{path}.category",
                f"category {question.category!r} not found in taxonomy (id: {question.id})",
            )

        if question.kind is QuestionKind.MULTIPLE:
            _validate_multiple(question, path)
        else:
            _validate_matching(question, path)


def _validate_multiple(question: Question, path: str) -> None:
    options = question.options
    if not options:
        raise InvalidQuestionStructureError(
            f"{path}.options", f"multiple question must have options (id: {question.id})"
        )
    if not any(option.is_correct for option in options):
        raise InvalidQuestionStructureError(
            f"{path}.options", f"multiple question needs at least one correct option (id: {question.id})"
        )
    for j, option in enumerate(options):
        if not option.text:
            raise InvalidQuestionStructureError(f"{path}.options[{j}].text", "option text is empty")


def _validate_matching(question: Question, path: str) -> None:
    left, right, matches = question.left, question.right, question.correct_matches
    if not left:
        raise InvalidQuestionStructureError(
            f"{path}.left", f"matching question must have a non-empty left column (id: {question.id})"
        )
    if not right:
        raise InvalidQuestionStructureError(
            f"{path}.right", f"matching question must have a non-empty right column (id: {question.id})"
        )
    if not matches:
        raise InvalidQuestionStructureError(
            f"{path}.correctMatches", f"matching question must have correctMatches (id: {question.id})"
        )
    for left_idx, right_idx in sorted(matches.items()):
        if not 0 <= left_idx < len(left):
            raise InvalidQuestionStructureError(
                f"{path}.correctMatches.{left_idx}", f"left index {left_idx} out of range"
            )
        if not 0 <= right_idx < len(right):
            raise InvalidQuestionStructureError(
                f"{path}.correctMatches.{left_idx}", f"right index {right_idx} out of range"
            )
