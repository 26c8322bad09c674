"""
Quiz Toolkit Core Package

Shared data models, validation and canonical identity.

**DESIGN NOTES:**

1. **Immutable Content**
   - A ContentBundle never changes once its identity is assigned
   - ``with_identity()`` returns a new instance

2. **Content-Derived Identity**
   - ``meta.subject_id`` is the SHA-256 of the canonical JSON form
   - Statistics are keyed by it, so editing a bundle detaches old stats

3. **Two-Stage Parse**
   - "Not JSON" and "JSON of the wrong shape" are distinct errors
"""

from .identity import resolve_bundle
from .models import ContentBundle, Question, QuestionKind, Scale, StatsRecord

__all__ = [
    "ContentBundle",
    "Question",
    "QuestionKind",
    "Scale",
    "StatsRecord",
    "resolve_bundle",
]
