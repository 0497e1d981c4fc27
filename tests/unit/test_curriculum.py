"""
Unit tests for the curriculum catalog and its loaders.
"""

import json

import pytest

from rhythm_progress.curriculum.catalog import default_curriculum, load_curriculum
from rhythm_progress.curriculum.models import (
    Curriculum,
    CurriculumError,
    Lesson,
    validate_lesson,
)


class TestDefaultCurriculum:
    """Tests for the bundled catalog."""

    def test_shape(self):
        curriculum = default_curriculum()
        assert len(curriculum) == 17
        assert curriculum.phase_numbers == [1, 2, 3]
        assert len(curriculum.lesson_ids_in_phase(1)) == 9
        assert len(curriculum.lesson_ids_in_phase(2)) == 3

    def test_review_lessons_have_no_prerequisites(self):
        reviews = [lesson for lesson in default_curriculum() if lesson.is_review_lesson]
        assert len(reviews) == 3
        assert all(lesson.prerequisites == () for lesson in reviews)
        assert all(lesson.phase == 2 for lesson in reviews)

    def test_core_lessons_are_chained(self):
        lesson = default_curriculum().get("lesson-2-the-ands")
        assert lesson.prerequisites == ("lesson-1-kick-snare-skeleton",)

    def test_quality_lookup(self):
        curriculum = default_curriculum()
        assert curriculum.quality_of("lesson-1-kick-snare-skeleton") == "downbeat-identification"
        assert curriculum.quality_of("no-such-lesson") is None


class TestCurriculumModel:
    """Tests for lookups and ordering."""

    def test_sorted_lessons_by_phase_then_number(self):
        curriculum = Curriculum([
            Lesson("p2", 2, 1),
            Lesson("p1-b", 1, 2),
            Lesson("p1-a", 1, 1),
        ])
        assert [lesson.id for lesson in curriculum.sorted_lessons()] == ["p1-a", "p1-b", "p2"]
        assert [lesson.id for lesson in curriculum.sorted_lessons(descending_phase=True)] == [
            "p2", "p1-a", "p1-b",
        ]

    def test_duplicate_ids_keep_first(self):
        curriculum = Curriculum([Lesson("x", 1, 1, quality="a"), Lesson("x", 1, 2, quality="b")])
        assert len(curriculum) == 1
        assert curriculum.quality_of("x") == "a"

    def test_phase_synthesized_without_metadata(self):
        curriculum = Curriculum([Lesson("x", 4, 1)])
        phase = curriculum.phase(4)
        assert phase.title == "Phase 4"
        assert phase.lesson_ids == ("x",)

    def test_qualities_in_catalog_order(self):
        curriculum = Curriculum([
            Lesson("a", 1, 1, quality="q2"),
            Lesson("b", 1, 2, quality="q1"),
            Lesson("c", 1, 3, quality="q2"),
        ])
        assert curriculum.qualities == ["q2", "q1"]

    def test_from_dict_reads_metadata_quality_and_review_prefix(self):
        lesson = Lesson.from_dict({
            "id": "review-9-x",
            "phase": 2,
            "lessonNumber": 1,
            "metadata": {"quality": "ghost-notes"},
        })
        assert lesson.quality == "ghost-notes"
        assert lesson.is_review_lesson is True


class TestRegistration:
    """Tests for validating raw lesson entries."""

    def test_validate_lesson_reports_missing_fields(self):
        errors = validate_lesson({"phase": "one"})
        assert "Missing lesson id" in errors
        assert "Missing or invalid phase" in errors
        assert "Missing or invalid lessonNumber" in errors

    def test_from_dicts_skips_invalid(self):
        curriculum, result = Curriculum.from_dicts([
            {"id": "ok", "phase": 1, "lessonNumber": 1},
            {"id": "bad", "phase": 1},
        ])
        assert result.successful == 1
        assert result.failed == 1
        assert result.errors[0]["lessonId"] == "bad"
        assert "ok" in curriculum and "bad" not in curriculum


class TestLoadCurriculum:
    """Tests for reading a JSON catalog."""

    def test_loads_object_with_phases(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({
            "phases": [{"phaseNumber": 1, "title": "Only"}],
            "lessons": [{"id": "a", "phase": 1, "lessonNumber": 1, "quality": "q"}],
        }))
        curriculum = load_curriculum(path)
        assert curriculum.phase(1).title == "Only"
        assert curriculum.phase(1).lesson_ids == ("a",)

    def test_loads_plain_list(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{"id": "a", "phase": 1, "lessonNumber": 1}]))
        assert len(load_curriculum(path)) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(CurriculumError):
            load_curriculum(tmp_path / "missing.json")

    def test_no_lesson_list(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"phases": []}))
        with pytest.raises(CurriculumError):
            load_curriculum(path)
