"""
Module: engine.evaluator

Purpose:
    Pure scoring of a user's answer against a question's answer key.
    Every possible input maps to exactly one Outcome.

Key Functions:
    - evaluate_multi_select: Outcome plus per-option diff for statistics
    - evaluate_matching: Outcome for a set of left->right pairings

Dependencies:
    - core.models.questions

Used By:
    - storage.stats_store.StatsStore
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

from ..core.models.questions import Question


class Outcome(str, Enum):
    """Classification of one answer."""

    CORRECT = "correct"
    INCOMPLETE = "incomplete"
    WRONG = "wrong"


@dataclass(frozen=True)
class MultiSelectEvaluation:
    """
    Result of scoring a multiple-choice answer.

    Attributes:
        outcome: Correct / Incomplete / Wrong
        missed_correct: Correct option ids the user did not select (ascending)
        wrong_picked: Incorrect option ids the user selected (ascending)
    """

    outcome: Outcome
    missed_correct: tuple[int, ...] = ()
    wrong_picked: tuple[int, ...] = ()


def evaluate_multi_select(question: Question, selected: Iterable[int]) -> MultiSelectEvaluation:
    """
    Score a multiple-choice answer.

    Rules, in order:
        1. any incorrect option selected -> Wrong
        2. selection equals the correct set -> Correct
        3. nothing selected -> Wrong
        4. otherwise (strict subset of the correct set) -> Incomplete

    Option ids that belong to no option are ignored by the diff.

    Example:
        >>> evaluate_multi_select(q, {1}).outcome   # correct = {1, 2}
        <Outcome.INCOMPLETE: 'incomplete'>
    """
    chosen = frozenset(selected)
    correct = question.correct_option_ids
    incorrect = question.incorrect_option_ids

    missed = tuple(sorted(correct - chosen))
    wrong = tuple(sorted(chosen & incorrect))

    if wrong:
        outcome = Outcome.WRONG
    elif chosen == correct:
        outcome = Outcome.CORRECT
    elif not chosen:
        outcome = Outcome.WRONG
    else:
        outcome = Outcome.INCOMPLETE

    return MultiSelectEvaluation(outcome=outcome, missed_correct=missed, wrong_picked=wrong)


def evaluate_matching(question: Question, user_pairs: Mapping[int, int]) -> Outcome:
    """
    Score a matching answer given as left index -> right index.

    An empty answer key scores Correct; validated bundles never have one.
    """
    key = question.correct_matches
    if not key:
        return Outcome.CORRECT
    if not user_pairs:
        return Outcome.WRONG
    for left, right in user_pairs.items():
        if key.get(left) != right:
            return Outcome.WRONG
    return Outcome.CORRECT if len(user_pairs) == len(key) else Outcome.INCOMPLETE
