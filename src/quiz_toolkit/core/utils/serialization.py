"""
Serialization Utilities

To/from JSON for content bundles and statistics records.

Parsing is two-stage:
1. ``parse_json()`` turns bytes into a generic tree. Failure here means
   the input is not JSON at all (JsonSyntaxError).
2. ``decode_bundle()`` / ``decode_stats()`` turn the generic tree into
   typed models. Failure here means the input is JSON of the wrong shape
   (StructureMismatchError, with the path of the offending element).

The generic tree from stage 1 is kept by callers that need it (the
identity resolver hashes it), and is never used to recover data after a
stage 2 failure.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Optional, TypeVar

from ..models.bundle import BundleConfig, BundleMeta, ContentBundle, Scale, TaxonomyNode
from ..models.questions import Option, Question, QuestionKind
from ..models.stats import OptionStats, QuestionStats, StatsMeta, StatsRecord
from ..schemas.validator import EmptyDataError, JsonSyntaxError, StructureMismatchError

T = TypeVar("T")

_MISSING = object()

_INT_KEY = re.compile(r"-?[0-9]+")


# ─────────────────────────────────────────────────────────────────────────────
# Stage 1: generic parse
# ─────────────────────────────────────────────────────────────────────────────

def parse_json(raw: bytes) -> Any:
    """
    Parse raw bytes into a generic JSON tree.

    Raises:
        EmptyDataError: If ``raw`` is empty or whitespace
        JsonSyntaxError: If ``raw`` is not valid UTF-8 JSON
    """
    if not raw or not raw.strip():
        raise EmptyDataError()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise JsonSyntaxError(f"File is not valid UTF-8: {e}")
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise JsonSyntaxError(f"Invalid JSON: {e.msg}", line=e.lineno, column=e.colno)


def _reject_constant(name: str) -> Any:
    # json accepts NaN and Infinity, which are not JSON
    raise JsonSyntaxError(f"Invalid JSON: {name} is not a JSON value")


def dump_json(data: Any, *, indent: int = 2) -> bytes:
    """Pretty-printed, key-sorted UTF-8 JSON for files written by the toolkit."""
    return (json.dumps(data, indent=indent, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")


# ─────────────────────────────────────────────────────────────────────────────
# Typed field access
# ─────────────────────────────────────────────────────────────────────────────

def _mismatch(path: str, expected: str, value: Any) -> StructureMismatchError:
    found = "missing" if value is _MISSING else type(value).__name__
    return StructureMismatchError(f"Expected {expected} at {path or '<root>'}, found {found}", path=path)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _field(obj: dict, key: str, path: str, check: Callable[[Any, str], T], *, optional: bool = False) -> Optional[T]:
    value = obj.get(key, _MISSING)
    field_path = _join(path, key)
    if value is _MISSING or value is None:
        if optional:
            return None
        raise _mismatch(field_path, "a value", value)
    return check(value, field_path)


def _str(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise _mismatch(path, "string", value)
    return value


def _int(value: Any, path: str) -> int:
    # bool is an int subclass in Python but not a JSON number
    if isinstance(value, bool) or not isinstance(value, int):
        raise _mismatch(path, "integer", value)
    return value


def _bool(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise _mismatch(path, "boolean", value)
    return value


def _obj(value: Any, path: str) -> dict:
    if not isinstance(value, dict):
        raise _mismatch(path, "object", value)
    return value


def _list(value: Any, path: str) -> list:
    if not isinstance(value, list):
        raise _mismatch(path, "array", value)
    return value


def _str_list(value: Any, path: str) -> tuple[str, ...]:
    return tuple(_str(item, f"{path}[{i}]") for i, item in enumerate(_list(value, path)))


def _int_key(key: str, path: str) -> int:
    if _INT_KEY.fullmatch(key) is None:
        raise StructureMismatchError(f"Expected integer key at {path}, found {key!r}", path=path)
    return int(key)


def _scale(value: Any, path: str) -> Scale:
    # Any string means "all"; the canonical spelling is emitted on write
    if isinstance(value, str):
        return Scale.all()
    return Scale.of(_int(value, path))


def _scales(value: Any, path: str) -> tuple[Scale, ...]:
    return tuple(_scale(item, f"{path}[{i}]") for i, item in enumerate(_list(value, path)))


# ─────────────────────────────────────────────────────────────────────────────
# Content bundle
# ─────────────────────────────────────────────────────────────────────────────

def decode_bundle(tree: Any) -> ContentBundle:
    """
    Decode a generic JSON tree into a ContentBundle.

    Only shape is checked here (types, required keys). Semantic rules
    (non-empty strings, taxonomy references) belong to validate_bundle().

    Raises:
        StructureMismatchError: If the tree does not have the bundle shape
    """
    root = _obj(tree, "")
    meta = _field(root, "meta", "", _obj)
    config = _field(root, "config", "", _obj)

    return ContentBundle(
        meta=BundleMeta(
            subject_id=_field(meta, "subject_id", "meta", _str),
            subject_name=_field(meta, "subject_name", "meta", _str),
            version=_field(meta, "version", "meta", _int),
        ),
        config=BundleConfig(
            scales_questions=_field(config, "scales_questions", "config", _scales),
            scales_category=_field(config, "scales_category", "config", _scales),
            scales_errors=_field(config, "scales_errors", "config", _scales),
            feedback=_field(config, "feedback", "config", _str),
        ),
        taxonomy=tuple(
            _decode_node(node, f"taxonomy[{i}]")
            for i, node in enumerate(_field(root, "taxonomy", "", _list))
        ),
        questions=tuple(
            _decode_question(question, f"questions[{i}]")
            for i, question in enumerate(_field(root, "questions", "", _list))
        ),
    )


def _decode_node(value: Any, path: str) -> TaxonomyNode:
    node = _obj(value, path)
    sub = _field(node, "sub", path, _list, optional=True)
    return TaxonomyNode(
        id=_field(node, "id", path, _str),
        name=_field(node, "name", path, _str),
        sub=None if sub is None else tuple(
            _decode_node(child, f"{path}.sub[{j}]") for j, child in enumerate(sub)
        ),
    )


def _decode_question(value: Any, path: str) -> Question:
    data = _obj(value, path)
    kind_raw = _field(data, "kind", path, _str)
    try:
        kind = QuestionKind(kind_raw)
    except ValueError:
        raise StructureMismatchError(
            f"Unknown question kind {kind_raw!r} at {path}.kind", path=f"{path}.kind"
        )

    options = _field(data, "options", path, _list, optional=True)
    matches = _field(data, "correctMatches", path, _obj, optional=True)

    return Question(
        id=_field(data, "id", path, _str),
        category=_field(data, "category", path, _str),
        kind=kind,
        prompt=_field(data, "prompt", path, _str),
        subcategory=_field(data, "subcategory", path, _str, optional=True),
        code=_field(data, "code", path, _str, optional=True),
        options=None if options is None else tuple(
            _decode_option(option, f"{path}.options[{j}]") for j, option in enumerate(options)
        ),
        left=_field(data, "left", path, _str_list, optional=True),
        right=_field(data, "right", path, _str_list, optional=True),
        correct_matches=None if matches is None else {
            _int_key(k, f"{path}.correctMatches"): _int(v, f"{path}.correctMatches.{k}")
            for k, v in matches.items()
        },
    )


def _decode_option(value: Any, path: str) -> Option:
    data = _obj(value, path)
    return Option(
        id=_field(data, "id", path, _int),
        text=_field(data, "text", path, _str),
        is_correct=_field(data, "isCorrect", path, _bool),
    )


def encode_bundle(bundle: ContentBundle) -> bytes:
    """Bytes written to the library for an imported bundle."""
    return dump_json(bundle.to_dict())


# ─────────────────────────────────────────────────────────────────────────────
# Statistics record
# ─────────────────────────────────────────────────────────────────────────────

def decode_stats(tree: Any) -> StatsRecord:
    """
    Decode a generic JSON tree into a StatsRecord.

    Raises:
        StructureMismatchError: If the tree does not have the stats shape
            or a counter is negative
    """
    root = _obj(tree, "")
    meta = _field(root, "meta", "", _obj)
    per_question = _field(root, "per_question", "", _obj)
    per_category = _field(root, "per_category_wrong", "", _obj)

    return StatsRecord(
        meta=StatsMeta(
            subject_id=_field(meta, "subject_id", "meta", _str),
            generated_at=_field(meta, "generated_at", "meta", _str),
            version=_field(meta, "version", "meta", _int),
        ),
        per_question={
            question_id: _decode_question_stats(value, f"per_question.{question_id}")
            for question_id, value in per_question.items()
        },
        per_category_wrong={
            category: _counter(value, f"per_category_wrong.{category}")
            for category, value in per_category.items()
        },
    )


def _counter(value: Any, path: str) -> int:
    count = _int(value, path)
    if count < 0:
        raise StructureMismatchError(f"Counter at {path} cannot be negative: {count}", path=path)
    return count


def _decode_question_stats(value: Any, path: str) -> QuestionStats:
    data = _obj(value, path)
    per_option = _field(data, "per_option", path, _obj, optional=True)
    return QuestionStats(
        attempts=_field(data, "attempts", path, _counter),
        correct=_field(data, "correct", path, _counter),
        incomplete=_field(data, "incomplete", path, _counter),
        wrong=_field(data, "wrong", path, _counter),
        per_option=None if per_option is None else {
            _int_key(k, f"{path}.per_option"): _decode_option_stats(v, f"{path}.per_option.{k}")
            for k, v in per_option.items()
        },
    )


def _decode_option_stats(value: Any, path: str) -> OptionStats:
    data = _obj(value, path)
    return OptionStats(
        missed_correct=_field(data, "missedCorrect", path, _counter),
        wrong_selected=_field(data, "wrongSelected", path, _counter),
    )


def load_stats_bytes(raw: bytes) -> StatsRecord:
    """Parse and decode a statistics file."""
    return decode_stats(parse_json(raw))


def encode_stats(record: StatsRecord, *, indent: int = 2) -> bytes:
    """Bytes written for a statistics record."""
    return dump_json(record.to_dict(), indent=indent)
