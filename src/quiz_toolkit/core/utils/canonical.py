"""
Canonical Form Utilities

Builds the byte-stable serialization of a content bundle used only for
hashing, and the SHA-256 digest over it.

Canonical form of a generic JSON tree:
- ``meta.subject_id`` replaced by ``""`` (the hash never depends on a
  previously stored identity)
- object keys sorted, no insignificant whitespace
- UTF-8 without ASCII escaping; the solidus is written as ``\\/``

The typed models never pass through here: the identity is blanked on a
copy of the generic tree, so ContentBundle never has a "blank" state.
"""

from __future__ import annotations

import copy
import hashlib
import json
from typing import Any


IDENTITY_SECTION = "meta"
IDENTITY_FIELD = "subject_id"


def blank_identity(tree: Any) -> Any:
    """
    Return a deep copy of ``tree`` with the identity leaf set to ``""``.

    Trees without a ``meta`` object are copied unchanged.
    """
    blanked = copy.deepcopy(tree)
    if isinstance(blanked, dict) and isinstance(blanked.get(IDENTITY_SECTION), dict):
        blanked[IDENTITY_SECTION][IDENTITY_FIELD] = ""
    return blanked


def canonical_bytes(tree: Any) -> bytes:
    """
    Serialize a generic JSON tree to its canonical byte form.

    Args:
        tree: Decoded JSON (dicts, lists, scalars)

    Returns:
        UTF-8 bytes with sorted keys and blanked identity

    Example:
        >>> canonical_bytes({"b": 1, "a": "x/y", "meta": {"subject_id": "h"}})
        b'{"a":"x\\\\/y","b":1,"meta":{"subject_id":""}}'
    """
    text = json.dumps(
        blank_identity(tree),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    # "/" only occurs inside string literals, so a plain replace is exact
    return text.replace("/", "\\/").encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Lowercase hex SHA-256 of ``data``."""
    return hashlib.sha256(data).hexdigest()


def content_hash(tree: Any) -> str:
    """Identity hash of a generic bundle tree."""
    return sha256_hex(canonical_bytes(tree))
