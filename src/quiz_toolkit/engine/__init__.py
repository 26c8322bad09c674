"""
Engine Package

Answer evaluation and session building. Everything here is pure apart
from the seeded random source used for sampling.
"""

from .evaluator import MultiSelectEvaluation, Outcome, evaluate_matching, evaluate_multi_select
from .session import SessionMode, build_session

__all__ = [
    "MultiSelectEvaluation",
    "Outcome",
    "SessionMode",
    "build_session",
    "evaluate_matching",
    "evaluate_multi_select",
]
