"""
Unit Tests for Canonical Identity

Tests for the canonicalizer and resolve_bundle() identity reconciliation.
"""

import hashlib
import json

import pytest

from conftest import to_bytes
from quiz_toolkit.core.identity import resolve_bundle
from quiz_toolkit.core.models.bundle import AUTO_IDENTITY
from quiz_toolkit.core.schemas.validator import HashMismatchError
from quiz_toolkit.core.utils.canonical import blank_identity, canonical_bytes, content_hash, sha256_hex


class TestCanonicalBytes:

    def test_canonical_when_keys_unordered_then_sorted_and_compact(self):
        data = {"b": 1, "a": [1, 2], "c": {"z": True, "y": None}}
        assert canonical_bytes(data) == b'{"a":[1,2],"b":1,"c":{"y":null,"z":true}}'

    def test_canonical_when_solidus_then_escaped(self):
        assert canonical_bytes({"url": "https://x/y"}) == b'{"url":"https:\\/\\/x\\/y"}'

    def test_canonical_when_non_ascii_then_raw_utf8(self):
        assert canonical_bytes({"name": "Reti è"}) == '{"name":"Reti è"}'.encode("utf-8")

    def test_canonical_when_identity_present_then_blanked(self):
        data = {"meta": {"subject_id": "abc", "subject_name": "S"}}
        assert canonical_bytes(data) == b'{"meta":{"subject_id":"","subject_name":"S"}}'

    def test_blank_identity_when_called_then_input_untouched(self):
        data = {"meta": {"subject_id": "abc"}}
        blanked = blank_identity(data)
        assert blanked["meta"]["subject_id"] == ""
        assert data["meta"]["subject_id"] == "abc"

    def test_blank_identity_when_no_meta_then_copy_unchanged(self):
        assert blank_identity([1, {"a": 2}]) == [1, {"a": 2}]

    def test_sha256_hex_when_empty_then_known_digest(self):
        assert sha256_hex(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestResolveIdentity:

    def test_resolve_when_sentinel_then_identity_is_content_hash(self, bundle_data, bundle_bytes):
        bundle = resolve_bundle(bundle_bytes)
        assert bundle.identity == content_hash(bundle_data)
        assert len(bundle.identity) == 64
        assert bundle.identity == bundle.identity.lower()

    def test_resolve_when_same_bytes_twice_then_same_identity(self, bundle_bytes):
        assert resolve_bundle(bundle_bytes).identity == resolve_bundle(bundle_bytes).identity

    def test_resolve_when_whitespace_and_key_order_differ_then_same_identity(self, bundle_data):
        compact = json.dumps(bundle_data, separators=(",", ":")).encode("utf-8")
        reordered = json.dumps(dict(reversed(list(bundle_data.items()))), indent=4).encode("utf-8")
        assert resolve_bundle(compact).identity == resolve_bundle(reordered).identity

    def test_resolve_when_content_changes_then_identity_changes(self, bundle_data, bundle_bytes):
        bundle_data["questions"][0]["prompt"] += "?"
        assert resolve_bundle(to_bytes(bundle_data)).identity != resolve_bundle(bundle_bytes).identity

    def test_resolve_when_stated_id_matches_then_accepted(self, bundle_data, bundle_bytes):
        expected = resolve_bundle(bundle_bytes).identity
        bundle_data["meta"]["subject_id"] = expected
        assert resolve_bundle(to_bytes(bundle_data)).identity == expected

    def test_resolve_when_renamed_to_own_hash_then_idempotent(self, bundle_data, bundle_bytes):
        """A stored bundle re-imported with its hash as id keeps that hash."""
        first = resolve_bundle(bundle_bytes)
        bundle_data["meta"]["subject_id"] = first.identity
        second = resolve_bundle(to_bytes(bundle_data))
        assert second == first

    def test_resolve_when_stated_id_differs_then_hash_mismatch(self, bundle_data, bundle_bytes):
        expected = resolve_bundle(bundle_bytes).identity
        bundle_data["meta"]["subject_id"] = "0" * 64
        with pytest.raises(HashMismatchError) as exc_info:
            resolve_bundle(to_bytes(bundle_data))
        assert exc_info.value.expected == expected
        assert exc_info.value.actual == "0" * 64
        assert exc_info.value.path == "meta.subject_id"

    def test_resolve_when_unknown_keys_present_then_they_affect_hash(self, bundle_data, bundle_bytes):
        bundle_data["meta"]["author"] = "someone"
        assert resolve_bundle(to_bytes(bundle_data)).identity != resolve_bundle(bundle_bytes).identity

    def test_hash_when_computed_independently_then_matches(self, bundle_data, bundle_bytes):
        blank = dict(bundle_data, meta=dict(bundle_data["meta"], subject_id=""))
        text = json.dumps(blank, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        digest = hashlib.sha256(text.replace("/", "\\/").encode("utf-8")).hexdigest()
        assert resolve_bundle(bundle_bytes).identity == digest

    def test_resolve_when_sentinel_then_sentinel_never_leaks(self, bundle_bytes):
        assert resolve_bundle(bundle_bytes).identity != AUTO_IDENTITY
