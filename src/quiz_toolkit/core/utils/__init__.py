"""
Utils Package

Canonical hashing and JSON (de)serialization.
"""

from .canonical import blank_identity, canonical_bytes, content_hash, sha256_hex
from .serialization import (
    decode_bundle,
    decode_stats,
    dump_json,
    encode_bundle,
    encode_stats,
    load_stats_bytes,
    parse_json,
)

__all__ = [
    "blank_identity",
    "canonical_bytes",
    "content_hash",
    "sha256_hex",
    "decode_bundle",
    "decode_stats",
    "dump_json",
    "encode_bundle",
    "encode_stats",
    "load_stats_bytes",
    "parse_json",
]
