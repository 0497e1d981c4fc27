"""
Quality Aggregator.

Stateless functions deriving per-quality accuracy, mastery, review
scheduling and trends from a ProgressRecord and the curriculum's lesson
list. Nothing here mutates the record.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from rhythm_progress.analytics.trend import (
    DEFAULT_RATE_PERIOD_DAYS,
    DEFAULT_WINDOW_DAYS,
    QualityTrend,
    get_quality_trend,
)
from rhythm_progress.core.clock import days_since, humanize_days_ago, utc_now
from rhythm_progress.core.mastery import (
    DEVELOPING_THRESHOLD,
    MasteryLevel,
    mastery_level,
    review_interval_days,
)
from rhythm_progress.curriculum.models import Lesson
from rhythm_progress.progress.models import LessonRecord, ProgressRecord

# Below 70% a quality counts as weak
WEAK_QUALITY_THRESHOLD = DEVELOPING_THRESHOLD


@dataclass
class QualityProgress:
    """Aggregated progress on one quality."""

    quality: str
    accuracy: float  # 0-1
    percent: int  # accuracy rounded to a whole percentage
    mastery_level: MasteryLevel
    lesson_count: int
    last_practiced: datetime | None
    last_practiced_label: str
    is_overdue: bool
    review_interval_days: int
    needs_review: bool
    marked_mastered: bool
    trend: QualityTrend


def _attempted_by_quality(
    record: ProgressRecord,
    lessons: Iterable[Lesson],
) -> dict[str, list[LessonRecord]]:
    """Attempted lesson records grouped by quality, in catalog order."""
    grouped: dict[str, list[LessonRecord]] = {}
    seen: set[str] = set()
    for lesson in lessons:
        if not lesson.quality or lesson.id in seen:
            continue
        seen.add(lesson.id)
        progress = record.lesson_progress.get(lesson.id)
        if progress is None or not progress.attempted:
            continue
        grouped.setdefault(lesson.quality, []).append(progress)
    return grouped


def accuracy_for_quality(
    quality: str,
    record: ProgressRecord,
    lessons: Iterable[Lesson],
) -> float:
    """Mean accuracy over the attempted lessons tagged with quality; 0 if none."""
    attempted = _attempted_by_quality(record, lessons).get(quality, [])
    if not attempted:
        return 0.0
    return sum(p.accuracy for p in attempted) / len(attempted)


def is_overdue(
    last_practiced: datetime | None,
    level: MasteryLevel | str | None,
    now: datetime | None = None,
) -> bool:
    """True once the days since last practice reach the level's review interval."""
    return days_since(last_practiced, now or utc_now()) >= review_interval_days(level)


def quality_progress(
    record: ProgressRecord,
    lessons: Iterable[Lesson],
    now: datetime | None = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
    rate_period_days: int = DEFAULT_RATE_PERIOD_DAYS,
) -> list[QualityProgress]:
    """
    Progress for every quality with at least one attempted lesson.

    Returns:
        QualityProgress entries, highest accuracy first
    """
    now = now or utc_now()
    results = []
    for quality, attempted in _attempted_by_quality(record, lessons).items():
        accuracy = sum(p.accuracy for p in attempted) / len(attempted)
        level = mastery_level(accuracy)
        timestamps = [p.last_attempted for p in attempted if p.last_attempted is not None]
        last_practiced = max(timestamps) if timestamps else None

        results.append(
            QualityProgress(
                quality=quality,
                accuracy=accuracy,
                percent=round(accuracy * 100),
                mastery_level=level,
                lesson_count=len(attempted),
                last_practiced=last_practiced,
                last_practiced_label=humanize_days_ago(last_practiced, now),
                is_overdue=is_overdue(last_practiced, level, now),
                review_interval_days=review_interval_days(level),
                needs_review=accuracy < WEAK_QUALITY_THRESHOLD,
                marked_mastered=quality in record.mastered_qualities,
                trend=get_quality_trend(
                    record.quality_history.get(quality, []),
                    window_days=window_days,
                    now=now,
                    rate_period_days=rate_period_days,
                ),
            )
        )

    results.sort(key=lambda q: q.accuracy, reverse=True)
    return results


def weak_qualities(
    record: ProgressRecord,
    lessons: Iterable[Lesson],
    threshold: float = WEAK_QUALITY_THRESHOLD,
    now: datetime | None = None,
) -> list[QualityProgress]:
    """Qualities below threshold, weakest first."""
    weak = [q for q in quality_progress(record, lessons, now=now) if q.accuracy < threshold]
    weak.sort(key=lambda q: q.accuracy)
    return weak


def format_quality_name(quality: str) -> str:
    """'downbeat-identification' -> 'Downbeat Identification'."""
    return " ".join(word[:1].upper() + word[1:] for word in quality.split("-"))
