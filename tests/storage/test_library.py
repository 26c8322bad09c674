"""
Integration Tests for SubjectLibrary and QuizContext
"""

import json
import time
from pathlib import Path

import pytest

from conftest import to_bytes
from quiz_toolkit.core.models.stats import QuestionStats, StatsRecord
from quiz_toolkit.core.schemas.validator import (
    HashMismatchError,
    JsonSyntaxError,
    MissingFieldError,
    WrongSubjectError,
)
from quiz_toolkit.core.utils.serialization import encode_stats
from quiz_toolkit.engine.evaluator import Outcome, evaluate_matching, evaluate_multi_select
from quiz_toolkit.storage.file_store import BundleNotFoundError, CorruptedFileError
from quiz_toolkit.storage.library import QuizContext, SubjectLibrary


def _stats_bytes(subject_id: str, wrong: int = 2) -> bytes:
    record = StatsRecord.empty(subject_id)
    record.per_question["q3"] = QuestionStats(wrong, 0, 0, wrong)
    record.per_category_wrong["sec"] = wrong
    return encode_stats(record)


class TestSubjectLibrary:

    def test_import_when_valid_then_stored_under_identity(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        stored = library.paths.subject_path(bundle.identity)
        assert stored.exists()
        assert json.loads(stored.read_text())["meta"]["subject_id"] == bundle.identity

    def test_import_when_path_given_then_read_from_disk(self, library, bundle_bytes, tmp_path: Path):
        source = tmp_path / "bundle.json"
        source.write_bytes(bundle_bytes)
        assert library.import_bundle(source).display_name == "Networking Basics"

    def test_import_when_rejected_then_nothing_stored(self, library, bundle_data):
        bundle_data["config"]["feedback"] = ""
        with pytest.raises(MissingFieldError):
            library.import_bundle(to_bytes(bundle_data))
        assert library.list_bundles() == []

    def test_load_when_stored_copy_reimported_then_identity_holds(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        stored = library.paths.subject_path(bundle.identity).read_bytes()
        assert library.import_bundle(stored).identity == bundle.identity

    def test_load_when_imported_then_equal_bundle(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        assert library.load_bundle(bundle.identity) == bundle

    def test_load_when_missing_then_bundle_not_found(self, library):
        with pytest.raises(BundleNotFoundError):
            library.load_bundle("nope")

    def test_load_when_stored_file_wrong_shape_then_corrupted(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        library.paths.subject_path(bundle.identity).write_text('{"meta": 1}')
        with pytest.raises(CorruptedFileError):
            library.load_bundle(bundle.identity)

    def test_load_when_stored_file_not_json_then_syntax_error(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        library.paths.subject_path(bundle.identity).write_text("garbage")
        with pytest.raises(JsonSyntaxError):
            library.load_bundle(bundle.identity)

    def test_list_when_unreadable_file_then_skipped(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        library.paths.subject_path("broken").write_text("{")
        assert library.list_bundles() == [(bundle.identity, "Networking Basics")]

    def test_delete_when_bundle_has_stats_then_both_removed(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        store = library.load_stats(bundle.identity)
        store.apply_matching_result(bundle.question("q2"), Outcome.WRONG)
        store.force_save()
        assert library.delete_bundle(bundle.identity) is True
        assert not library.paths.subject_path(bundle.identity).exists()
        assert library.export_stats_path(bundle.identity) is None

    def test_delete_all_when_several_then_library_empty(self, library, bundle_data):
        library.import_bundle(to_bytes(bundle_data))
        bundle_data["meta"]["subject_name"] = "Second"
        library.import_bundle(to_bytes(bundle_data))
        assert library.delete_all() == 2
        assert library.list_bundles() == []

    def test_import_directory_when_name_known_then_skipped(self, library, bundle_data, tmp_path: Path):
        inbox = tmp_path / "inbox"
        inbox.mkdir()
        (inbox / "a.json").write_bytes(to_bytes(bundle_data))
        bundle_data["questions"][0]["prompt"] = "Same name, new content"
        (inbox / "b.json").write_bytes(to_bytes(bundle_data))
        bundle_data["meta"]["subject_name"] = "Other"
        (inbox / "c.json").write_bytes(to_bytes(bundle_data))
        (inbox / "broken.json").write_text("{")
        (inbox / "notes.txt").write_text("ignore me")

        imported = library.import_directory(inbox)

        assert [b.display_name for b in imported] == ["Networking Basics", "Other"]
        assert library.import_directory(inbox) == []

    def test_import_directory_when_file_has_non_json_constant_then_skipped(self, library, bundle_data, tmp_path: Path):
        inbox = tmp_path / "inbox"
        inbox.mkdir()
        (inbox / "a_bad.json").write_bytes(to_bytes(bundle_data).replace(b'"version": 1', b'"version": Infinity'))
        bundle_data["meta"]["subject_name"] = "Other"
        (inbox / "b_good.json").write_bytes(to_bytes(bundle_data))

        imported = library.import_directory(inbox)

        assert [b.display_name for b in imported] == ["Other"]

    def test_import_stats_when_other_subject_then_wrong_subject(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        with pytest.raises(WrongSubjectError) as exc_info:
            library.import_stats(_stats_bytes("someone-else"), bundle.identity)
        assert exc_info.value.expected == bundle.identity
        assert library.export_stats_path(bundle.identity) is None

    def test_import_stats_when_merge_then_counters_added(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        library.import_stats(_stats_bytes(bundle.identity, 2), bundle.identity)
        record = library.import_stats(_stats_bytes(bundle.identity, 3), bundle.identity)
        assert record.per_question["q3"].wrong == 5
        assert library.load_stats(bundle.identity).wrong_count("sec") == 5

    def test_import_stats_when_replace_then_overwritten(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        library.import_stats(_stats_bytes(bundle.identity, 2), bundle.identity)
        library.import_stats(_stats_bytes(bundle.identity, 3), bundle.identity, replace=True)
        assert library.load_stats(bundle.identity).wrong_count("sec") == 3

    def test_flush_stats_when_saved_then_file_removed(self, library, bundle_bytes):
        bundle = library.import_bundle(bundle_bytes)
        library.import_stats(_stats_bytes(bundle.identity), bundle.identity)
        assert library.export_stats_path(bundle.identity) is not None
        assert library.flush_stats(bundle.identity) is True
        assert library.load_stats(bundle.identity).record.per_question == {}


class TestQuizContext:

    @pytest.fixture
    def context(self, library) -> QuizContext:
        ctx = QuizContext(library)
        yield ctx
        ctx.close()

    def test_select_when_called_then_remembered_across_contexts(self, library, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        assert context.active_subject_id == bundle.identity
        restored = QuizContext(library).restore_last_subject()
        assert restored == bundle

    def test_restore_when_subject_deleted_then_none_and_forgotten(self, library, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        library.delete_bundle(bundle.identity)
        fresh = QuizContext(library)
        assert fresh.restore_last_subject() is None
        assert fresh.settings.last_subject_id is None

    def test_restore_when_nothing_remembered_then_none(self, context):
        assert context.restore_last_subject() is None

    def test_import_stats_when_no_active_subject_then_runtime_error(self, context, bundle_bytes):
        with pytest.raises(RuntimeError):
            context.import_stats(bundle_bytes)

    def test_import_stats_when_active_then_merged_and_saved(self, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        context.stats.apply_matching_result(bundle.question("q3"), Outcome.WRONG)
        record = context.import_stats(_stats_bytes(bundle.identity, 2))
        assert record.per_question["q3"].wrong == 3
        on_disk = json.loads(context.library.export_stats_path(bundle.identity).read_text())
        assert on_disk["per_question"]["q3"]["wrong"] == 3

    def test_flush_when_active_then_empty_store_and_no_file(self, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        context.stats.apply_matching_result(bundle.question("q2"), Outcome.WRONG)
        context.end_session()
        context.flush_stats()
        assert context.stats.record.per_question == {}
        assert context.library.export_stats_path(bundle.identity) is None

    def test_delete_subject_when_active_then_context_cleared(self, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        assert context.delete_subject(bundle.identity) is True
        assert context.bundle is None and context.stats is None
        assert context.settings.last_subject_id is None

    def test_flush_when_timer_already_fired_then_no_file_written(self, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        old = context.stats
        # The timer thread fires and waits on the store lock until the flush is done
        with old._lock:
            old.apply_matching_result(bundle.question("q2"), Outcome.WRONG)
            time.sleep(0.2)
            context.flush_stats()
        time.sleep(0.2)
        assert context.library.export_stats_path(bundle.identity) is None
        assert context.stats.record.per_question == {}

    def test_delete_subject_when_timer_already_fired_then_no_file_written(self, context, bundle_bytes):
        bundle = context.import_bundle(bundle_bytes)
        old = context.stats
        with old._lock:
            old.apply_matching_result(bundle.question("q2"), Outcome.WRONG)
            time.sleep(0.2)
            assert context.delete_subject(bundle.identity) is True
        time.sleep(0.2)
        assert context.library.export_stats_path(bundle.identity) is None


class TestEndToEnd:

    def test_session_when_answers_recorded_then_stats_survive_reimport(self, library, bundle_data):
        context = QuizContext(library)
        bundle = context.import_bundle(to_bytes(bundle_data))

        q1, q2 = bundle.question("q1"), bundle.question("q2")
        first = evaluate_multi_select(q1, {1, 3})
        second = evaluate_matching(q2, {0: 1, 1: 0, 2: 2})
        assert (first.outcome, first.missed_correct, first.wrong_picked) == (Outcome.WRONG, (2,), (3,))
        assert second is Outcome.CORRECT
        context.stats.apply_multi_select_result(q1, first)
        context.stats.apply_matching_result(q2, second)
        context.end_session()

        saved = json.loads(library.paths.stats_path(bundle.identity).read_text())
        assert saved["per_question"]["q1"] == {
            "attempts": 1, "correct": 0, "incomplete": 0, "wrong": 1,
            "per_option": {
                "2": {"missedCorrect": 1, "wrongSelected": 0},
                "3": {"missedCorrect": 0, "wrongSelected": 1},
            },
        }
        assert saved["per_question"]["q2"] == {"attempts": 1, "correct": 1, "incomplete": 0, "wrong": 0}
        assert saved["per_category_wrong"] == {"net": 1}

        # same content, identity stated explicitly: same subject, same stats
        bundle_data["meta"]["subject_id"] = bundle.identity
        again = context.import_bundle(to_bytes(bundle_data))
        assert again.identity == bundle.identity
        assert context.stats.question_stats("q1").wrong == 1

        # edited content under the old identity is refused
        bundle_data["questions"][0]["prompt"] = "Edited"
        with pytest.raises(HashMismatchError):
            context.import_bundle(to_bytes(bundle_data))
        context.close()
