"""
Unit tests for ProgressStore: load, persistence, mutations, import/export.

All tests run against MemoryStorage with a fake clock.
"""

import json

import pytest

from rhythm_progress.progress.models import CURRENT_SCHEMA_VERSION, ProgressRecord
from rhythm_progress.progress.storage import JsonFileStorage, MemoryStorage
from rhythm_progress.progress.store import PROGRESS_STORAGE_KEY, ProgressStore

L1 = "lesson-1-kick-snare-skeleton"
L2 = "lesson-2-the-ands"

SIX_OF_TEN = [True] * 6 + [False] * 4


def stored_doc(storage: MemoryStorage) -> dict:
    return json.loads(storage.data[PROGRESS_STORAGE_KEY])


class TestLoad:
    """Tests for loading, creating and migrating the record."""

    def test_new_learner(self, store, storage):
        """No stored data creates and persists a fresh record."""
        record = store.load()
        assert record.completed_lessons == []
        assert record.overall_stats.accuracy == 0
        assert record.schema_version == CURRENT_SCHEMA_VERSION
        assert stored_doc(storage)["schemaVersion"] == 2
        assert store.error is None

    def test_legacy_document_is_migrated_and_persisted(self, curriculum, clock):
        legacy = {
            "version": 1,
            "lessonProgress": {L1: {"completed": True, "accuracy": 0.9, "attempts": 2}},
        }
        storage = MemoryStorage({PROGRESS_STORAGE_KEY: json.dumps(legacy)})
        store = ProgressStore(storage, curriculum, clock=clock)

        record = store.load()
        assert record.completed_lessons == [L1]
        assert record.quality_history == {}
        assert stored_doc(storage)["schemaVersion"] == 2

    def test_corrupt_payload_falls_back(self, curriculum, clock):
        """Unparsable data yields a fresh record and an error; storage untouched."""
        storage = MemoryStorage({PROGRESS_STORAGE_KEY: "{not json"})
        store = ProgressStore(storage, curriculum, clock=clock)

        record = store.load()
        assert record.lesson_progress == {}
        assert store.error == "Failed to load progress data"
        assert storage.data[PROGRESS_STORAGE_KEY] == "{not json"

    def test_non_object_payload_falls_back(self, curriculum, clock):
        storage = MemoryStorage({PROGRESS_STORAGE_KEY: "[1, 2]"})
        store = ProgressStore(storage, curriculum, clock=clock)
        store.load()
        assert store.error == "Failed to load progress data"

    def test_round_trip_through_file_storage(self, tmp_path, curriculum, clock):
        store = ProgressStore(JsonFileStorage(tmp_path), curriculum, clock=clock)
        store.record_lesson_completion(L1, 0.8, SIX_OF_TEN, time_taken=42)

        reloaded = ProgressStore(JsonFileStorage(tmp_path), curriculum, clock=clock).load()
        assert reloaded.to_dict() == store.record.to_dict()
        assert (tmp_path / f"{PROGRESS_STORAGE_KEY}.json").exists()

    def test_invalid_utf8_file_falls_back(self, tmp_path, curriculum, clock):
        """A stored file that is not UTF-8 yields a fresh record and an error."""
        path = tmp_path / f"{PROGRESS_STORAGE_KEY}.json"
        raw = b'{"schemaVersion": 2, "x": "\xff\xfe"}'
        path.write_bytes(raw)
        store = ProgressStore(JsonFileStorage(tmp_path), curriculum, clock=clock)

        record = store.load()
        assert record.lesson_progress == {}
        assert store.error == "Failed to load progress data"
        assert path.read_bytes() == raw

    def test_completed_lessons_rebuilt_from_flags(self, curriculum, clock):
        """A v2 document whose completedLessons disagrees with the flags is repaired."""
        doc = ProgressRecord(created_at=clock(), updated_at=clock()).to_dict()
        doc["lessonProgress"] = {
            L1: {"completed": True, "accuracy": 0.9},
            L2: {"completed": False, "accuracy": 0.4},
        }
        doc["completedLessons"] = [L2]
        storage = MemoryStorage({PROGRESS_STORAGE_KEY: json.dumps(doc)})

        record = ProgressStore(storage, curriculum, clock=clock).load()
        assert record.completed_lessons == [L1]

    def test_unknown_fields_survive(self, curriculum, clock):
        doc = ProgressRecord(created_at=clock(), updated_at=clock()).to_dict()
        doc["lessonProgress"][L1] = {"completed": True, "accuracy": 0.9, "note": "kept"}
        doc["theme"] = "dark"
        storage = MemoryStorage({PROGRESS_STORAGE_KEY: json.dumps(doc)})
        store = ProgressStore(storage, curriculum, clock=clock)

        store.mark_quality_mastered("ghost-notes")
        saved = stored_doc(storage)
        assert saved["theme"] == "dark"
        assert saved["lessonProgress"][L1]["note"] == "kept"


class TestRecordLessonCompletion:
    """Tests for recording a finished lesson."""

    def test_completion_with_pattern_results(self, store):
        """Completing L1 at 0.8 with 6/10 correct patterns."""
        assert store.record_lesson_completion(L1, 0.8, SIX_OF_TEN) is True

        lesson = store.get_lesson_progress(L1)
        assert lesson.completed is True
        assert lesson.attempts == 1
        stats = store.record.overall_stats
        assert (stats.total_patterns, stats.correct_patterns) == (10, 6)
        assert stats.accuracy == pytest.approx(0.6)

        snapshots = store.record.quality_history["downbeat-identification"]
        assert len(snapshots) == 1
        assert snapshots[0].accuracy == pytest.approx(0.8)
        assert snapshots[0].lesson_id == L1

    def test_completed_flag_matches_completed_lessons(self, store):
        store.record_lesson_completion(L1, 0.9)
        assert store.is_lesson_completed(L1)

        store.record_lesson_completion(L1, 0.5)
        assert store.get_lesson_progress(L1).completed is False
        assert L1 not in store.record.completed_lessons

    def test_threshold_is_inclusive(self, store):
        store.record_lesson_completion(L1, 0.7)
        assert store.is_lesson_completed(L1)

    def test_attempts_and_best_accuracy(self, store):
        store.record_lesson_completion(L1, 0.9)
        store.record_lesson_completion(L1, 0.6)
        lesson = store.get_lesson_progress(L1)
        assert lesson.attempts == 2
        assert lesson.best_accuracy == pytest.approx(0.9)
        assert lesson.accuracy == pytest.approx(0.6)

    def test_sparse_pattern_results(self, store):
        """Undefined outcomes count toward totals but never as correct."""
        store.record_lesson_completion(L1, 0.8, [True, None, False, True])
        stats = store.record.overall_stats
        assert stats.total_patterns == 4
        assert stats.correct_patterns == 2
        assert store.get_lesson_progress(L1).pattern_results == {0: True, 2: False, 3: True}

    def test_overall_accuracy_matches_counters(self, store):
        store.record_lesson_completion(L1, 0.8, SIX_OF_TEN)
        store.record_lesson_completion(L2, 0.9, [True, True])
        stats = store.record.overall_stats
        assert stats.accuracy == pytest.approx(stats.correct_patterns / stats.total_patterns)
        assert stats.correct_patterns <= stats.total_patterns

    def test_missing_pattern_results_keep_stats(self, store):
        store.record_lesson_completion(L1, 0.8, SIX_OF_TEN)
        store.record_lesson_completion(L1, 0.9)
        assert store.record.overall_stats.total_patterns == 10
        assert store.get_lesson_progress(L1).defined_count == 10

    def test_snapshot_uses_quality_aggregate(self, store, clock):
        """The snapshot holds the quality's mean over its attempted lessons."""
        store.record_lesson_completion("lesson-6-combining-qualities", 0.6)
        clock.advance(days=1)
        store.record_lesson_completion("lesson-8-polyrhythms", 1.0)
        snapshots = store.record.quality_history["syncopation"]
        assert [s.accuracy for s in snapshots] == pytest.approx([0.6, 0.8])

    def test_history_only_grows(self, store, clock):
        lengths = []
        for accuracy in (0.5, 0.9, 0.3):
            store.record_lesson_completion(L1, accuracy)
            lengths.append(len(store.record.quality_history["downbeat-identification"]))
            clock.advance(hours=1)
        assert lengths == [1, 2, 3]

    def test_snapshot_timestamps_non_decreasing(self, store, clock):
        store.record_lesson_completion(L1, 0.8)
        clock.advance(minutes=-5)
        store.record_lesson_completion(L1, 0.9)
        first, second = store.record.quality_history["downbeat-identification"]
        assert second.timestamp >= first.timestamp

    def test_unknown_lesson_records_without_snapshot(self, store):
        store.record_lesson_completion("custom-lesson", 0.8)
        assert store.get_lesson_progress("custom-lesson").completed
        assert store.record.quality_history == {}

    def test_time_and_last_practiced(self, store, clock):
        store.record_lesson_completion(L1, 0.8, time_taken=30)
        store.record_lesson_completion(L2, 0.8, time_taken=12.5)
        stats = store.record.overall_stats
        assert stats.total_time == pytest.approx(42.5)
        assert stats.last_practiced == clock()

    def test_zero_time_replaces_average(self, store):
        store.record_lesson_completion(L1, 0.8, time_taken=30)
        store.record_lesson_completion(L1, 0.8, time_taken=0.0)
        assert store.get_lesson_progress(L1).average_time == 0.0

    def test_rejects_accuracy_out_of_range(self, store):
        with pytest.raises(ValueError):
            store.record_lesson_completion(L1, 1.2)

    def test_failed_save_keeps_previous_state(self, curriculum, clock):
        storage = MemoryStorage()
        store = ProgressStore(storage, curriculum, clock=clock)
        store.load()
        storage.fail_writes = True

        assert store.record_lesson_completion(L1, 0.9, [True]) is False
        assert store.error == "Failed to save progress data"
        assert store.get_lesson_progress(L1) is None
        assert store.record.overall_stats.total_patterns == 0

    def test_updated_at_refreshed_on_save(self, store, clock):
        store.load()
        later = clock.advance(hours=3)
        store.record_lesson_completion(L1, 0.8)
        assert store.record.updated_at == later
        assert store.record.created_at < later


class TestRecordPatternResult:
    """Tests for mid-lesson pattern outcomes."""

    def test_creates_record_without_attempt(self, store):
        store.record_pattern_result(L1, 0, True)
        lesson = store.get_lesson_progress(L1)
        assert lesson.attempted is True
        assert lesson.attempts == 0
        assert lesson.completed is False
        assert lesson.accuracy == 1.0

    def test_out_of_order_indices(self, store):
        store.record_pattern_result(L1, 3, True)
        store.record_pattern_result(L1, 0, False)
        lesson = store.get_lesson_progress(L1)
        assert lesson.pattern_results == {0: False, 3: True}
        assert lesson.accuracy == pytest.approx(0.5)

    def test_overwrites_index(self, store):
        store.record_pattern_result(L1, 1, False)
        store.record_pattern_result(L1, 1, True)
        assert store.get_lesson_accuracy(L1) == 1.0

    def test_running_average_time(self, store):
        store.record_pattern_result(L1, 0, True, time_taken=4)
        store.record_pattern_result(L1, 1, True, time_taken=8)
        assert store.get_lesson_progress(L1).average_time == pytest.approx(6)

    def test_persists_dense_list(self, store, storage):
        store.record_pattern_result(L1, 2, True)
        saved = stored_doc(storage)["lessonProgress"][L1]["patternResults"]
        assert saved == [None, None, True]

    def test_negative_index_rejected(self, store):
        with pytest.raises(ValueError):
            store.record_pattern_result(L1, -1, True)


class TestSimpleMutations:
    """Tests for mastered qualities, current phase and reset."""

    def test_mark_quality_mastered_is_set_like(self, store):
        store.mark_quality_mastered("ghost-notes")
        store.mark_quality_mastered("ghost-notes")
        assert store.record.mastered_qualities == ["ghost-notes"]

    def test_update_current_phase(self, store):
        store.update_current_phase(3)
        assert store.record.current_phase == 3

    def test_reset(self, store):
        store.record_lesson_completion(L1, 0.9, [True])
        assert store.reset_progress() is True
        assert store.record.lesson_progress == {}
        assert store.get_overall_accuracy() == 0.0


class TestImportExport:
    """Tests for exporting and re-importing the document."""

    def test_export_adds_timestamp(self, store):
        exported = store.export_progress()
        assert "exportedAt" in exported
        assert exported["schemaVersion"] == 2

    def test_round_trip(self, store, storage, curriculum, clock):
        store.record_lesson_completion(L1, 0.8, SIX_OF_TEN, time_taken=20, tempo=90)
        store.mark_quality_mastered("ghost-notes")
        exported = store.export_progress()

        other = ProgressStore(MemoryStorage(), curriculum, clock=clock)
        result = other.import_progress(exported)
        assert result.success is True
        assert "exportedAt" not in other.record.to_dict()
        assert other.record.lesson_progress == store.record.lesson_progress
        assert other.record.quality_history == store.record.quality_history
        assert other.record.overall_stats == store.record.overall_stats

    def test_rejected_import_leaves_state(self, store):
        store.record_lesson_completion(L1, 0.9)
        before = store.record.to_dict()

        result = store.import_progress({"lessonProgress": "nope"})
        assert result.success is False
        assert result.failed >= 1
        assert store.record.to_dict() == before
        assert store.error == "Failed to import progress data"

    def test_non_object_import(self, store):
        result = store.import_progress(["not", "a", "document"])
        assert result.success is False
        assert result.errors == ["Progress import must be a JSON object"]

    def test_import_keeps_completed_lessons_consistent(self, store):
        result = store.import_progress({
            "schemaVersion": 2,
            "lessonProgress": {L1: {"completed": True, "accuracy": 0.9}},
            "completedLessons": [L2],
        })
        assert result.success is True
        assert store.record.completed_lessons == [L1]
        for lesson_id, lesson in store.record.lesson_progress.items():
            assert (lesson_id in store.record.completed_lessons) == lesson.completed

    def test_legacy_import_is_migrated(self, store):
        result = store.import_progress({
            "version": 1,
            "lessonProgress": {L1: {"completed": True, "accuracy": 0.75}},
        })
        assert result.success is True
        assert store.record.completed_lessons == [L1]
        assert store.record.schema_version == CURRENT_SCHEMA_VERSION
