"""
Curriculum catalog models.

The catalog is static content owned elsewhere; this package only reads it.
A Curriculum is immutable once built and is passed explicitly to every
aggregator, policy and recommender call.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger


class CurriculumError(Exception):
    """Raised when a curriculum catalog cannot be read."""


@dataclass(frozen=True)
class Lesson:
    """A lesson descriptor from the curriculum catalog."""

    id: str
    phase: int
    lesson_number: int
    quality: str | None = None
    prerequisites: tuple[str, ...] = ()
    is_review_lesson: bool = False
    title: str = ""
    concept: str = ""

    @property
    def sort_key(self) -> tuple[int, int]:
        """(phase, lesson_number) ordering used for sequential progression."""
        return (self.phase, self.lesson_number)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Lesson:
        """Create from a camelCase catalog entry."""
        quality = data.get("quality")
        if not quality and isinstance(data.get("metadata"), Mapping):
            quality = data["metadata"].get("quality")
        lesson_id = str(data["id"])
        return cls(
            id=lesson_id,
            phase=int(data["phase"]),
            lesson_number=int(data["lessonNumber"]),
            quality=quality or None,
            prerequisites=tuple(data.get("prerequisites") or ()),
            is_review_lesson=bool(data.get("isReviewLesson", lesson_id.startswith("review-"))),
            title=data.get("title", ""),
            concept=data.get("concept", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a camelCase catalog entry."""
        return {
            "id": self.id,
            "phase": self.phase,
            "lessonNumber": self.lesson_number,
            "quality": self.quality,
            "prerequisites": list(self.prerequisites),
            "isReviewLesson": self.is_review_lesson,
            "title": self.title,
            "concept": self.concept,
        }


@dataclass(frozen=True)
class Phase:
    """Phase metadata: an ordered curriculum stage."""

    number: int
    title: str = ""
    description: str = ""
    unlock_condition: str = ""
    lesson_ids: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Phase:
        """Create from a camelCase catalog entry."""
        return cls(
            number=int(data["phaseNumber"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            unlock_condition=data.get("unlockCondition", ""),
            lesson_ids=tuple(data.get("lessonIds") or ()),
        )


@dataclass
class RegistrationResult:
    """Outcome of building a curriculum from raw lesson entries."""

    successful: int = 0
    failed: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


def validate_lesson(data: Any) -> list[str]:
    """
    Existence checks on a raw lesson entry.

    Only the fields the progress core depends on are checked; the semantics
    of the content itself are not.

    Returns:
        List of error messages (empty when valid)
    """
    if not isinstance(data, Mapping):
        return ["Lesson entry is not an object"]

    errors = []
    if not data.get("id"):
        errors.append("Missing lesson id")
    if not isinstance(data.get("phase"), int) or isinstance(data.get("phase"), bool):
        errors.append("Missing or invalid phase")
    if not isinstance(data.get("lessonNumber"), int) or isinstance(data.get("lessonNumber"), bool):
        errors.append("Missing or invalid lessonNumber")
    if not isinstance(data.get("prerequisites", []), list):
        errors.append("Invalid prerequisites (must be a list)")
    return errors


class Curriculum:
    """
    Immutable, read-only lesson catalog.

    Lessons keep catalog order; phases come either from explicit phase
    metadata or are derived from the lessons' phase numbers.
    """

    def __init__(self, lessons: Iterable[Lesson], phases: Iterable[Phase] = ()):
        self._lessons: tuple[Lesson, ...] = tuple(lessons)
        self._by_id: dict[str, Lesson] = {}
        for lesson in self._lessons:
            if lesson.id in self._by_id:
                logger.warning(f"Duplicate lesson id {lesson.id} in curriculum; keeping first")
                continue
            self._by_id[lesson.id] = lesson

        phase_meta = {phase.number: phase for phase in phases}
        for lesson in self._lessons:
            meta = phase_meta.get(lesson.phase)
            if meta and meta.lesson_ids and lesson.id not in meta.lesson_ids:
                logger.warning(
                    f"Phase mismatch for {lesson.id}: not listed in phase {lesson.phase} metadata"
                )
        self._phases: dict[int, Phase] = phase_meta

    @classmethod
    def from_dicts(
        cls,
        lessons: Iterable[Any],
        phases: Iterable[Mapping[str, Any]] = (),
    ) -> tuple[Curriculum, RegistrationResult]:
        """Build a curriculum from raw entries, skipping invalid lessons."""
        result = RegistrationResult()
        valid: list[Lesson] = []
        for entry in lessons:
            errors = validate_lesson(entry)
            if errors:
                lesson_id = entry.get("id") if isinstance(entry, Mapping) else None
                logger.warning(f"Failed to register lesson {lesson_id}: {errors}")
                result.failed += 1
                result.errors.append({"lessonId": lesson_id, "errors": errors})
                continue
            valid.append(Lesson.from_dict(entry))
            result.successful += 1

        return cls(valid, [Phase.from_dict(p) for p in phases]), result

    # ----- lookups ------------------------------------------------------
    @property
    def lessons(self) -> tuple[Lesson, ...]:
        return self._lessons

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._lessons)

    def __contains__(self, lesson_id: object) -> bool:
        return lesson_id in self._by_id

    def get(self, lesson_id: str) -> Lesson | None:
        return self._by_id.get(lesson_id)

    def quality_of(self, lesson_id: str) -> str | None:
        """Quality tag of a lesson, None when unknown or untagged."""
        lesson = self._by_id.get(lesson_id)
        return lesson.quality if lesson else None

    @property
    def phase_numbers(self) -> list[int]:
        numbers = {lesson.phase for lesson in self._lessons} | set(self._phases)
        return sorted(numbers)

    def phase(self, number: int) -> Phase:
        """Phase metadata, synthesized from the lessons when none was supplied."""
        meta = self._phases.get(number)
        lesson_ids = tuple(lesson.id for lesson in self.lessons_in_phase(number))
        if meta is None:
            return Phase(number=number, title=f"Phase {number}", lesson_ids=lesson_ids)
        if not meta.lesson_ids:
            return Phase(
                number=meta.number,
                title=meta.title,
                description=meta.description,
                unlock_condition=meta.unlock_condition,
                lesson_ids=lesson_ids,
            )
        return meta

    def lessons_in_phase(self, number: int) -> list[Lesson]:
        return [lesson for lesson in self._lessons if lesson.phase == number]

    def lesson_ids_in_phase(self, number: int) -> list[str]:
        return list(self.phase(number).lesson_ids)

    def lessons_for_quality(self, quality: str) -> list[Lesson]:
        return [lesson for lesson in self._lessons if lesson.quality == quality]

    @property
    def qualities(self) -> list[str]:
        """Distinct quality tags in catalog order."""
        seen: dict[str, None] = {}
        for lesson in self._lessons:
            if lesson.quality:
                seen.setdefault(lesson.quality, None)
        return list(seen)

    def sorted_lessons(self, descending_phase: bool = False) -> list[Lesson]:
        """Lessons ordered by phase (asc or desc), then lesson number ascending."""
        if descending_phase:
            return sorted(self._lessons, key=lambda lesson: (-lesson.phase, lesson.lesson_number))
        return sorted(self._lessons, key=lambda lesson: lesson.sort_key)

    def stats(self) -> dict[str, Any]:
        """Lesson totals by phase and by quality."""
        by_phase: dict[int, int] = {}
        by_quality: dict[str, int] = {}
        for lesson in self._lessons:
            by_phase[lesson.phase] = by_phase.get(lesson.phase, 0) + 1
            if lesson.quality:
                by_quality[lesson.quality] = by_quality.get(lesson.quality, 0) + 1
        return {"total": len(self._lessons), "by_phase": by_phase, "by_quality": by_quality}
