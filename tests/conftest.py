import copy
import json
import sys
from pathlib import Path

import pytest

# Add src to sys.path so we can import quiz_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from quiz_toolkit.config import LibraryConfig, StoreConfig  # noqa: E402
from quiz_toolkit.core.identity import resolve_bundle  # noqa: E402
from quiz_toolkit.storage.library import SubjectLibrary  # noqa: E402


BUNDLE_DATA = {
    "meta": {
        "subject_id": "auto:sha256",
        "subject_name": "Networking Basics",
        "version": 1,
    },
    "config": {
        "scales_questions": [2, 3, "all"],
        "scales_category": [1, "all"],
        "scales_errors": [2, "all"],
        "feedback": "immediate",
    },
    "taxonomy": [
        {"id": "net", "name": "Networks", "sub": [{"id": "tcp", "name": "TCP/IP"}]},
        {"id": "sec", "name": "Security"},
    ],
    "questions": [
        {
            "id": "q1",
            "category": "net",
            "subcategory": "tcp",
            "kind": "multiple",
            "prompt": "Which protocols are connection-oriented?",
            "options": [
                {"id": 1, "text": "TCP", "isCorrect": True},
                {"id": 2, "text": "SCTP", "isCorrect": True},
                {"id": 3, "text": "UDP", "isCorrect": False},
                {"id": 4, "text": "ICMP", "isCorrect": False},
            ],
        },
        {
            "id": "q2",
            "category": "net",
            "kind": "matching",
            "prompt": "Match each layer to its unit",
            "left": ["Transport", "Network", "Link"],
            "right": ["Packet", "Segment", "Frame"],
            "correctMatches": {"0": 1, "1": 0, "2": 2},
        },
        {
            "id": "q3",
            "category": "sec",
            "kind": "multiple",
            "prompt": "Which port does https:// use by default?",
            "code": "curl https://example.org/",
            "options": [
                {"id": 1, "text": "443", "isCorrect": True},
                {"id": 2, "text": "80", "isCorrect": False},
            ],
        },
        {
            "id": "q4",
            "category": "sec",
            "kind": "multiple",
            "prompt": "Which of these are hash functions?",
            "options": [
                {"id": 1, "text": "SHA-256", "isCorrect": True},
                {"id": 2, "text": "AES", "isCorrect": False},
            ],
        },
    ],
}


def to_bytes(data) -> bytes:
    return json.dumps(data, indent=2).encode("utf-8")


@pytest.fixture
def bundle_data():
    """Fresh, mutable copy of the sample bundle tree."""
    return copy.deepcopy(BUNDLE_DATA)


@pytest.fixture
def bundle_bytes(bundle_data) -> bytes:
    return to_bytes(bundle_data)


@pytest.fixture
def bundle(bundle_bytes):
    return resolve_bundle(bundle_bytes)


@pytest.fixture
def library_config(tmp_path: Path) -> LibraryConfig:
    """Library rooted in tmp_path with a short debounce window."""
    return LibraryConfig(root=tmp_path / "data", store=StoreConfig(debounce_seconds=0.05))


@pytest.fixture
def library(library_config) -> SubjectLibrary:
    return SubjectLibrary(library_config)
