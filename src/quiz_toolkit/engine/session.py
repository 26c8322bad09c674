"""
Module: engine.session

Purpose:
    Picks the questions for a practice session from a bundle, optionally
    steered by the statistics record (error review modes).

Key Functions:
    - build_session: Ordered list of questions for one session

Dependencies:
    - random (std): seeded sampling

Used By:
    - Presentation layer (not part of this package)
"""

from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Optional

from ..core.models.bundle import ContentBundle, Scale
from ..core.models.questions import Question
from ..core.models.stats import StatsRecord

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
    GENERIC = "generic"
    BY_CATEGORY = "by_category"
    ERRORS = "errors"
    ERRORS_BY_CATEGORY = "errors_by_category"

    @property
    def needs_category(self) -> bool:
        return self in (SessionMode.BY_CATEGORY, SessionMode.ERRORS_BY_CATEGORY)


def build_session(
    bundle: ContentBundle,
    stats: StatsRecord,
    mode: SessionMode,
    scale: Scale,
    category: Optional[str] = None,
    seed: Optional[int] = None,
) -> list[Question]:
    """
    Build the question list for a session.

    The requested size comes from ``scale``; "all" means every question of
    the mode's base set (whole bundle, or the chosen category). The pool is
    then shuffled and cut to that size.

    Pools per mode:
        GENERIC: every question
        BY_CATEGORY: questions of ``category``
        ERRORS: ids from ``stats.top_wrong_questions``, in bundle order
        ERRORS_BY_CATEGORY: top wrong ids of ``category``, filled up with
            random unseen questions of the same category

    Args:
        bundle: Active content bundle
        stats: Its statistics record
        mode: Session mode
        scale: Session size
        category: Category id, required by the by-category modes
        seed: Seed for repeatable sessions; None draws from system entropy

    Returns:
        Questions in session order. Empty when a by-category mode has no
        category or the pool is empty.
    """
    if mode.needs_category and category is None:
        logger.debug(f"No category given for {mode.value} session")
        return []

    rng = random.Random(seed)
    base = bundle.questions_in(category) if mode.needs_category else list(bundle.questions)
    count = scale.resolve(len(base))

    if mode in (SessionMode.GENERIC, SessionMode.BY_CATEGORY):
        pool = base
    elif mode is SessionMode.ERRORS:
        pool = _questions_for(bundle, stats.top_wrong_questions(count))
    else:
        pool = _top_errors_in_category(bundle, stats, category, count, rng)

    pool = list(pool)
    rng.shuffle(pool)
    return pool[:count]


def _questions_for(bundle: ContentBundle, ids: list[str]) -> list[Question]:
    """Resolve ids to questions, dropping ids the bundle does not contain."""
    by_id = {q.id: q for q in bundle.questions}
    return [by_id[qid] for qid in ids if qid in by_id]


def _top_errors_in_category(
    bundle: ContentBundle,
    stats: StatsRecord,
    category: str,
    limit: int,
    rng: random.Random,
) -> list[Question]:
    ranked_ids = stats.top_wrong_in_category(bundle, category, limit)
    picked = _questions_for(bundle, ranked_ids)
    if len(picked) >= limit:
        return picked

    taken = set(ranked_ids)
    remaining = [q for q in bundle.questions_in(category) if q.id not in taken]
    rng.shuffle(remaining)
    return picked + remaining[: limit - len(picked)]
