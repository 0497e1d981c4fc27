"""Summary statistics over a progress record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rhythm_progress.progress.models import ProgressRecord

REVIEW_THRESHOLD = 0.7


@dataclass
class ProgressSummary:
    lessons_completed: int
    lessons_attempted: int
    overall_accuracy: float
    current_phase: int
    qualities_mastered: int
    total_time: float
    last_practiced: datetime | None


def progress_summary(record: ProgressRecord | None) -> ProgressSummary:
    if record is None:
        return ProgressSummary(0, 0, 0.0, 1, 0, 0.0, None)
    return ProgressSummary(
        lessons_completed=len(record.completed_lessons),
        lessons_attempted=len(record.lesson_progress),
        overall_accuracy=record.overall_stats.accuracy,
        current_phase=record.current_phase,
        qualities_mastered=len(record.mastered_qualities),
        total_time=record.overall_stats.total_time,
        last_practiced=record.overall_stats.last_practiced,
    )


def completion_percentage(record: ProgressRecord | None, total_lessons: int) -> float:
    """Share of the curriculum completed, 0-100."""
    if record is None or total_lessons <= 0:
        return 0.0
    return len(record.completed_lessons) / total_lessons * 100


def needs_review(record: ProgressRecord | None, threshold: float = REVIEW_THRESHOLD) -> bool:
    if record is None:
        return False
    return record.overall_stats.accuracy < threshold
