"""
Module: identity

Purpose:
    Turns raw bundle bytes into a ContentBundle whose identity is the
    content hash. This is the only entry point for importing content.

Key Functions:
    - resolve_bundle: parse, validate, hash and reconcile the identity

Dependencies:
    - core.utils.serialization: two-stage parse
    - core.utils.canonical: content hash
    - core.schemas.validator: structural checks

Used By:
    - storage.library.SubjectLibrary.import_bundle
"""

from __future__ import annotations

import logging

from .models.bundle import AUTO_IDENTITY, ContentBundle
from .schemas.validator import HashMismatchError, validate_bundle, validate_schema
from .utils.canonical import content_hash
from .utils.serialization import decode_bundle, parse_json

logger = logging.getLogger(__name__)


def resolve_bundle(raw: bytes, *, strict: bool = False) -> ContentBundle:
    """
    Resolve raw bytes into a validated bundle with its final identity.

    Steps:
        1. Parse bytes into a generic JSON tree
        2. (strict) check the tree against bundle.schema.json
        3. Decode into typed models
        4. Validate semantics (fail-fast, first error wins)
        5. Hash the original tree with the identity blanked
        6. Assign the hash (sentinel) or verify it (stated id)

    Args:
        raw: File contents
        strict: Also run JSON Schema validation before decoding

    Returns:
        ContentBundle whose ``identity`` equals the content hash

    Raises:
        EmptyDataError: Empty input
        JsonSyntaxError: Not JSON
        StructureMismatchError: JSON of the wrong shape
        MissingFieldError, InvalidTypeError, InvalidQuestionStructureError:
            Semantic validation failures
        HashMismatchError: Stated identity differs from the content hash
    """
    tree = parse_json(raw)
    if strict:
        validate_schema(tree, "bundle")

    bundle = decode_bundle(tree)
    validate_bundle(bundle)

    digest = content_hash(tree)
    stated = bundle.identity
    if stated == AUTO_IDENTITY:
        logger.debug(f"Assigned identity {digest[:12]} to {bundle.display_name!r}")
        return bundle.with_identity(digest)
    if stated != digest:
        raise HashMismatchError(expected=digest, actual=stated)
    return bundle
