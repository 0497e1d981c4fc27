"""
Progress Store: sole owner of the persisted progress record.

Every mutation is a read-modify-persist step on a copy of the current
record; the in-memory record is only replaced once the copy has been
written. Persistence failures never propagate: they are logged, reported
through ``ProgressStore.error`` and leave the previous state in place.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from loguru import logger

from rhythm_progress.analytics.quality import accuracy_for_quality
from rhythm_progress.core.clock import Clock, format_timestamp, utc_now
from rhythm_progress.curriculum.models import Curriculum
from rhythm_progress.progress.migrations import migrate_progress
from rhythm_progress.progress.models import (
    COMPLETION_THRESHOLD,
    LessonRecord,
    ProgressRecord,
    QualitySnapshot,
    create_initial_progress,
)
from rhythm_progress.progress.schemas import payload_errors
from rhythm_progress.progress.storage import (
    CorruptProgressError,
    StorageBackend,
    StorageError,
)

# Storage key for progress data
PROGRESS_STORAGE_KEY = "rhythmCurriculum_progress"

PatternResults = Union[Sequence[Optional[bool]], Mapping[int, Optional[bool]]]


@dataclass
class ImportResult:
    """Outcome of importing a progress document."""

    success: bool
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def _normalize_results(results: PatternResults) -> tuple[dict[int, bool], int]:
    """Sparse outcome map plus the number of entries reported."""
    if isinstance(results, Mapping):
        items = [(int(k), v) for k, v in results.items()]
    else:
        items = list(enumerate(results))
    outcomes = {index: bool(outcome) for index, outcome in items if outcome is not None}
    return outcomes, len(items)


class ProgressStore:
    """
    Loads, migrates, persists and mutates the progress record.

    The curriculum is only used to find the quality of a completed lesson
    when recording quality snapshots.
    """

    def __init__(
        self,
        storage: StorageBackend,
        curriculum: Curriculum,
        storage_key: str = PROGRESS_STORAGE_KEY,
        clock: Clock = utc_now,
    ):
        self.storage = storage
        self.curriculum = curriculum
        self.storage_key = storage_key
        self._clock = clock
        self._record: ProgressRecord | None = None
        self.error: str | None = None

    @property
    def record(self) -> ProgressRecord:
        """Current record, loading it on first access."""
        if self._record is None:
            return self.load()
        return self._record

    # ----- load / save ---------------------------------------------------
    def load(self) -> ProgressRecord:
        """
        Read the persisted record.

        - Nothing stored: a fresh record is created and persisted.
        - Stale schema: migrated forward and persisted before returning.
        - Unreadable or corrupt payload: a fresh in-memory record is used
          and ``error`` is set; the stored payload is left untouched.
        """
        now = self._clock()
        try:
            payload = self.storage.read(self.storage_key)
        except (StorageError, CorruptProgressError) as e:
            logger.error(f"Failed to load progress: {e}")
            self._record = create_initial_progress(now)
            self.error = "Failed to load progress data"
            return self._record

        if payload is None:
            logger.info("No stored progress; creating a new record")
            initial = create_initial_progress(now)
            self._record = initial
            self.error = None
            self.save(initial)
            return self._record

        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                raise CorruptProgressError("Stored progress is not a JSON object")
            migrated = migrate_progress(data)
            record = ProgressRecord.from_dict(migrated, now)
        except (CorruptProgressError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load progress: {e}")
            self._record = create_initial_progress(now)
            self.error = "Failed to load progress data"
            return self._record

        self._record = record
        self.error = None
        if migrated is not data:
            logger.info(f"Persisting progress migrated to schema v{record.schema_version}")
            self.save(record)
        return self._record

    def save(self, record: ProgressRecord) -> bool:
        """
        Stamp updatedAt, serialize and write.

        Returns:
            True if persisted; on failure the previous in-memory record stays
        """
        stamped = replace(record, updated_at=self._clock())
        try:
            payload = json.dumps(stamped.to_dict(), indent=2)
            self.storage.write(self.storage_key, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Failed to save progress: {e}")
            self.error = "Failed to save progress data"
            return False

        self._record = stamped
        self.error = None
        return True

    def _draft(self) -> ProgressRecord:
        return copy.deepcopy(self.record)

    # ----- mutations -----------------------------------------------------
    def record_lesson_completion(
        self,
        lesson_id: str,
        accuracy: float,
        pattern_results: PatternResults | None = None,
        time_taken: float | None = None,
        tempo: float | None = None,
    ) -> bool:
        """
        Record a finished lesson.

        Merges into the lesson's record, keeps completedLessons in step with
        the completed flag, folds the pattern outcomes into the overall stats
        and, when the curriculum tags the lesson with a quality, appends one
        snapshot holding that quality's accuracy after the merge.
        """
        if not 0.0 <= accuracy <= 1.0:
            raise ValueError(f"accuracy must be within [0, 1], got {accuracy}")

        now = self._clock()
        draft = self._draft()
        existing = draft.lesson_progress.get(lesson_id)
        completed = accuracy >= COMPLETION_THRESHOLD

        if pattern_results is None:
            outcomes = dict(existing.pattern_results) if existing else {}
            reported = 0
        else:
            outcomes, reported = _normalize_results(pattern_results)

        lesson = LessonRecord(
            attempted=True,
            completed=completed,
            accuracy=accuracy,
            attempts=(existing.attempts if existing else 0) + 1,
            best_accuracy=max(accuracy, existing.best_accuracy if existing else 0.0),
            last_attempted=now,
            pattern_results=outcomes,
            average_time=(
                time_taken
                if time_taken is not None
                else (existing.average_time if existing else 0.0)
            ),
            tempo=tempo if tempo is not None else (existing.tempo if existing else None),
            extra=dict(existing.extra) if existing else {},
        )
        draft.lesson_progress[lesson_id] = lesson
        self._sync_completed(draft, lesson_id, completed)

        stats = draft.overall_stats
        if pattern_results is not None:
            stats.total_patterns += reported
            stats.correct_patterns += sum(1 for v in outcomes.values() if v is True)
        stats.recompute_accuracy()
        stats.total_time += time_taken or 0
        stats.last_practiced = now

        quality = self.curriculum.quality_of(lesson_id)
        if quality:
            history = draft.quality_history.setdefault(quality, [])
            timestamp = max(now, history[-1].timestamp) if history else now
            history.append(
                QualitySnapshot(
                    timestamp=timestamp,
                    accuracy=accuracy_for_quality(quality, draft, self.curriculum),
                    lesson_id=lesson_id,
                    attempts=lesson.attempts,
                )
            )
        else:
            logger.debug(f"Lesson {lesson_id} has no known quality; no snapshot recorded")

        logger.info(
            f"Lesson {lesson_id} recorded: accuracy={accuracy:.2f} "
            f"completed={completed} attempts={lesson.attempts}"
        )
        return self.save(draft)

    def record_pattern_result(
        self,
        lesson_id: str,
        index: int,
        is_correct: bool,
        time_taken: float | None = None,
    ) -> bool:
        """
        Record one pattern outcome mid-lesson.

        Indices may arrive in any order. Accuracy becomes correct / defined
        outcomes; completion and attempts are left to record_lesson_completion.
        """
        if index < 0:
            raise ValueError(f"pattern index must be >= 0, got {index}")

        draft = self._draft()
        lesson = draft.lesson_progress.get(lesson_id)
        if lesson is None:
            lesson = LessonRecord(attempted=True)
            draft.lesson_progress[lesson_id] = lesson

        lesson.pattern_results[index] = bool(is_correct)
        lesson.accuracy = lesson.correct_count / lesson.defined_count
        lesson.attempted = True
        lesson.last_attempted = self._clock()
        if time_taken is not None:
            # running mean of reported pattern times
            n = lesson.defined_count
            lesson.average_time = time_taken if n <= 1 else (
                lesson.average_time * (n - 1) + time_taken
            ) / n

        return self.save(draft)

    def mark_quality_mastered(self, quality: str) -> bool:
        draft = self._draft()
        if quality not in draft.mastered_qualities:
            draft.mastered_qualities.append(quality)
        return self.save(draft)

    def update_current_phase(self, phase_number: int) -> bool:
        draft = self._draft()
        draft.current_phase = phase_number
        return self.save(draft)

    def reset_progress(self) -> bool:
        """Replace the record with a fresh one."""
        logger.warning("Resetting all progress")
        return self.save(create_initial_progress(self._clock()))

    # ----- import / export -----------------------------------------------
    def export_progress(self) -> dict[str, Any]:
        """Current document plus an export timestamp; no side effects."""
        return {**self.record.to_dict(), "exportedAt": format_timestamp(self._clock())}

    def import_progress(self, data: Any) -> ImportResult:
        """
        Replace the record with an imported document.

        The document goes through the full migration path first; a malformed
        top-level shape is rejected and the current record is left untouched.
        """
        errors = payload_errors(data)
        if errors:
            logger.warning(f"Rejected progress import: {errors}")
            self.error = "Failed to import progress data"
            return ImportResult(success=False, failed=len(errors), errors=errors)

        document = {k: v for k, v in data.items() if k != "exportedAt"}
        try:
            record = ProgressRecord.from_dict(migrate_progress(document), self._clock())
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Rejected progress import: {e}")
            self.error = "Failed to import progress data"
            return ImportResult(success=False, failed=1, errors=[str(e)])

        if not self.save(record):
            return ImportResult(success=False, failed=1, errors=[self.error or "save failed"])
        logger.info(f"Imported progress with {len(record.lesson_progress)} lesson records")
        return ImportResult(success=True)

    # ----- queries ---------------------------------------------------------
    def get_lesson_progress(self, lesson_id: str) -> LessonRecord | None:
        return self.record.lesson_progress.get(lesson_id)

    def is_lesson_completed(self, lesson_id: str) -> bool:
        return self.record.is_completed(lesson_id)

    def get_lesson_accuracy(self, lesson_id: str) -> float:
        lesson = self.record.lesson_progress.get(lesson_id)
        return lesson.accuracy if lesson else 0.0

    def get_overall_accuracy(self) -> float:
        return self.record.overall_stats.accuracy

    @staticmethod
    def _sync_completed(record: ProgressRecord, lesson_id: str, completed: bool) -> None:
        """Keep completedLessons membership equal to the lesson's completed flag."""
        if completed and lesson_id not in record.completed_lessons:
            record.completed_lessons.append(lesson_id)
        elif not completed and lesson_id in record.completed_lessons:
            record.completed_lessons.remove(lesson_id)
