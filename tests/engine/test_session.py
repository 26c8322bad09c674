"""
Unit Tests for the Session Builder
"""

import pytest

from quiz_toolkit.core.models.bundle import Scale
from quiz_toolkit.core.models.stats import QuestionStats, StatsRecord
from quiz_toolkit.engine.session import SessionMode, build_session


@pytest.fixture
def stats(bundle) -> StatsRecord:
    record = StatsRecord.empty(bundle.identity)
    record.per_question.update({
        "q1": QuestionStats(4, 1, 0, 3),
        "q2": QuestionStats(2, 1, 0, 1),
        "q4": QuestionStats(3, 0, 0, 3),
    })
    return record


def _ids(questions):
    return [q.id for q in questions]


class TestBuildSession:

    def test_build_when_generic_all_then_every_question_once(self, bundle, stats):
        session = build_session(bundle, stats, SessionMode.GENERIC, Scale.all(), seed=1)
        assert sorted(_ids(session)) == ["q1", "q2", "q3", "q4"]

    def test_build_when_fixed_scale_then_truncated(self, bundle, stats):
        session = build_session(bundle, stats, SessionMode.GENERIC, Scale.of(2), seed=1)
        assert len(session) == 2
        assert len(set(_ids(session))) == 2

    def test_build_when_same_seed_then_same_order(self, bundle, stats):
        first = build_session(bundle, stats, SessionMode.GENERIC, Scale.all(), seed=42)
        second = build_session(bundle, stats, SessionMode.GENERIC, Scale.all(), seed=42)
        assert _ids(first) == _ids(second)

    def test_build_when_by_category_then_only_that_category(self, bundle, stats):
        session = build_session(bundle, stats, SessionMode.BY_CATEGORY, Scale.all(), category="sec", seed=3)
        assert sorted(_ids(session)) == ["q3", "q4"]

    def test_build_when_category_mode_without_category_then_empty(self, bundle, stats):
        assert build_session(bundle, stats, SessionMode.BY_CATEGORY, Scale.all()) == []
        assert build_session(bundle, stats, SessionMode.ERRORS_BY_CATEGORY, Scale.of(2)) == []

    def test_build_when_errors_then_top_wrong_questions(self, bundle, stats):
        session = build_session(bundle, stats, SessionMode.ERRORS, Scale.of(2), seed=5)
        assert sorted(_ids(session)) == ["q1", "q4"]

    def test_build_when_errors_and_no_stats_then_empty(self, bundle):
        empty = StatsRecord.empty(bundle.identity)
        assert build_session(bundle, empty, SessionMode.ERRORS, Scale.of(3)) == []

    def test_build_when_errors_by_category_short_then_filled_from_category(self, bundle, stats):
        session = build_session(bundle, stats, SessionMode.ERRORS_BY_CATEGORY, Scale.of(2), category="sec", seed=9)
        assert sorted(_ids(session)) == ["q3", "q4"]

    def test_build_when_errors_by_category_then_ranked_first_choice(self, bundle, stats):
        session = build_session(bundle, stats, SessionMode.ERRORS_BY_CATEGORY, Scale.of(1), category="net", seed=9)
        assert _ids(session) == ["q1"]
