"""
Core Models Package

Data models shared by validation, evaluation and persistence.

**DESIGN RATIONALE:**

Bundle and question models are frozen dataclasses:
1. A bundle never changes after its identity is assigned
2. Safe to share between the session thread and the save timer
3. Questions can be used in sets and as dict keys

StatsRecord is the one mutable container; its counters (QuestionStats,
OptionStats) are frozen and combined with ``+``.
"""

from .questions import Option, Question, QuestionKind
from .bundle import (
    AUTO_IDENTITY,
    BundleConfig,
    BundleMeta,
    ContentBundle,
    Scale,
    TaxonomyNode,
)
from .stats import OptionStats, QuestionStats, StatsMeta, StatsRecord, utc_timestamp

__all__ = [
    "AUTO_IDENTITY",
    "BundleConfig",
    "BundleMeta",
    "ContentBundle",
    "Option",
    "OptionStats",
    "Question",
    "QuestionKind",
    "QuestionStats",
    "Scale",
    "StatsMeta",
    "StatsRecord",
    "TaxonomyNode",
    "utc_timestamp",
]
