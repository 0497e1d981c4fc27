"""
Recommendation Engine - Adaptive lesson recommendations.

Determines the next best lesson for a learner from their progress record
and the curriculum. A review check always runs first:

1. Overall accuracy in (0, 70%): first incomplete review lesson in an
   unlocked phase.
2. A weak quality exists: first incomplete review lesson for the weakest
   quality in an unlocked phase.

Otherwise the selected strategy decides:
- sequential: first eligible lesson by (phase, lesson number)
- mastery-skip: at >= 90% overall accuracy, first eligible lesson from the
  highest phase down; else sequential
- quality-targeted: first eligible lesson for the weakest quality; else
  sequential

A lesson is eligible when it is not completed, all of its prerequisites
are completed and its phase is unlocked.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger

from rhythm_progress.analytics.quality import QualityProgress, weak_qualities
from rhythm_progress.core.clock import utc_now
from rhythm_progress.curriculum.models import Curriculum, Lesson
from rhythm_progress.curriculum.phases import is_phase_unlocked
from rhythm_progress.progress.models import ProgressRecord


class Strategy(str, Enum):
    """Recommendation strategy types."""

    SEQUENTIAL = "sequential"  # Progress through lessons in order
    REVIEW = "review"  # Recommend review when struggling
    MASTERY_SKIP = "mastery-skip"  # Skip ahead if mastering content
    QUALITY_TARGETED = "quality-targeted"  # Focus on weak qualities

    @classmethod
    def parse(cls, value: Strategy | str | None) -> Strategy:
        """Strategy from a tag; unknown tags fall back to sequential."""
        if isinstance(value, Strategy):
            return value
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown strategy {value!r}; using sequential")
            return cls.SEQUENTIAL


@dataclass(frozen=True)
class Recommendation:
    """A recommended lesson (lesson_id is None when nothing fits)."""

    lesson_id: Optional[str]
    reason: str
    strategy: Strategy
    priority: int = 1

    def to_dict(self) -> dict:
        data = asdict(self)
        data["strategy"] = self.strategy.value
        return data


@dataclass(frozen=True)
class BreakAdvice:
    should_break: bool
    reason: str = ""


class RecommendationEngine:
    """
    Rule-based lesson recommender.

    The curriculum is injected once; every query takes the progress record
    it should reason about.
    """

    # Accuracy thresholds
    REVIEW_TRIGGER = 0.7  # Below 70% triggers review
    MASTERY = 0.9  # 90% indicates mastery
    WEAK_QUALITY = 0.7  # Below 70% indicates weak quality

    # Break advice
    BREAK_WINDOW_HOURS = 2
    BREAK_ACCURACY_DROP = 0.1
    RECENT_LESSON_COUNT = 3

    def __init__(self, curriculum: Curriculum):
        self.curriculum = curriculum

    # ----- eligibility -----------------------------------------------------
    @staticmethod
    def prerequisites_satisfied(lesson: Lesson, completed: set[str]) -> bool:
        """True if every prerequisite of the lesson is completed."""
        return all(prereq in completed for prereq in lesson.prerequisites)

    def _unlocked_phases(self, record: ProgressRecord) -> set[int]:
        return {
            number
            for number in self.curriculum.phase_numbers
            if is_phase_unlocked(number, record, self.curriculum)
        }

    def is_eligible(self, lesson: Lesson, record: ProgressRecord) -> bool:
        completed = set(record.completed_lessons)
        return (
            lesson.id not in completed
            and self.prerequisites_satisfied(lesson, completed)
            and is_phase_unlocked(lesson.phase, record, self.curriculum)
        )

    def eligible_lessons(
        self,
        record: ProgressRecord,
        descending_phase: bool = False,
    ) -> list[Lesson]:
        """Eligible lessons ordered by phase, then lesson number."""
        completed = set(record.completed_lessons)
        unlocked = self._unlocked_phases(record)
        return [
            lesson
            for lesson in self.curriculum.sorted_lessons(descending_phase=descending_phase)
            if lesson.id not in completed
            and self.prerequisites_satisfied(lesson, completed)
            and lesson.phase in unlocked
        ]

    def _weakest_quality(self, record: ProgressRecord) -> Optional[QualityProgress]:
        weak = weak_qualities(record, self.curriculum, threshold=self.WEAK_QUALITY)
        return weak[0] if weak else None

    # ----- public API ------------------------------------------------------
    def get_recommended_lesson(
        self,
        record: ProgressRecord,
        strategy: Strategy | str = Strategy.SEQUENTIAL,
    ) -> Recommendation:
        """
        Recommend the next lesson.

        Args:
            record: Learner progress
            strategy: Strategy tag (unknown tags behave as sequential)

        Returns:
            Recommendation; lesson_id is None when nothing is available
        """
        strategy = Strategy.parse(strategy)

        if len(self.curriculum) == 0:
            return Recommendation(None, "No lessons available", strategy)

        review = self.check_for_review_need(record)
        if review.lesson_id:
            logger.debug(f"Review takes precedence: {review.lesson_id} ({review.reason})")
            return review

        if strategy is Strategy.MASTERY_SKIP:
            return self.mastery_skip(record)
        if strategy is Strategy.QUALITY_TARGETED:
            return self.quality_targeted(record)
        return self.sequential(record)

    def check_for_review_need(self, record: ProgressRecord) -> Recommendation:
        """Review lesson when overall accuracy is low or a quality is weak."""
        overall = record.overall_stats.accuracy
        unlocked = self._unlocked_phases(record)
        completed = set(record.completed_lessons)
        review_lessons = [
            lesson
            for lesson in self.curriculum
            if lesson.is_review_lesson and lesson.id not in completed and lesson.phase in unlocked
        ]

        if 0 < overall < self.REVIEW_TRIGGER and review_lessons:
            return Recommendation(
                review_lessons[0].id,
                f"Accuracy below {round(self.REVIEW_TRIGGER * 100)}% - review recommended",
                Strategy.REVIEW,
            )

        weakest = self._weakest_quality(record)
        if weakest:
            for lesson in review_lessons:
                if lesson.quality == weakest.quality:
                    return Recommendation(
                        lesson.id,
                        f"Weak quality detected: {weakest.quality}",
                        Strategy.REVIEW,
                    )

        return Recommendation(None, "No review needed", Strategy.REVIEW)

    def sequential(self, record: ProgressRecord) -> Recommendation:
        """First eligible lesson by (phase, lesson number)."""
        eligible = self.eligible_lessons(record)
        if eligible:
            return Recommendation(eligible[0].id, "Next lesson in sequence", Strategy.SEQUENTIAL)
        return Recommendation(None, "All lessons completed", Strategy.SEQUENTIAL)

    def mastery_skip(self, record: ProgressRecord) -> Recommendation:
        """Advance to the highest available phase when accuracy shows mastery."""
        overall = record.overall_stats.accuracy
        if overall >= self.MASTERY:
            eligible = self.eligible_lessons(record, descending_phase=True)
            if eligible:
                return Recommendation(
                    eligible[0].id,
                    f"High mastery ({round(overall * 100)}%) - advancing to challenging content",
                    Strategy.MASTERY_SKIP,
                )
        return self.sequential(record)

    def quality_targeted(self, record: ProgressRecord) -> Recommendation:
        """Eligible lesson for the weakest quality, else sequential."""
        weakest = self._weakest_quality(record)
        if weakest:
            for lesson in self.eligible_lessons(record):
                if lesson.quality == weakest.quality:
                    return Recommendation(
                        lesson.id,
                        f"Targeting weak quality: {weakest.quality}",
                        Strategy.QUALITY_TARGETED,
                    )
        return self.sequential(record)

    def get_multiple_recommendations(
        self,
        record: ProgressRecord,
        count: int = 3,
    ) -> list[Recommendation]:
        """
        Several distinct recommendations for learner choice.

        Order: primary (sequential) pick, review pick, quality-targeted pick,
        then further eligible lessons by (phase, lesson number).
        """
        if count <= 0:
            return []

        picks = [
            self.get_recommended_lesson(record, Strategy.SEQUENTIAL),
            self.check_for_review_need(record),
            self.quality_targeted(record),
        ]
        recommendations: list[Recommendation] = []
        seen: set[str] = set()
        for priority, pick in enumerate(picks, start=1):
            if pick.lesson_id and pick.lesson_id not in seen:
                seen.add(pick.lesson_id)
                recommendations.append(
                    Recommendation(pick.lesson_id, pick.reason, pick.strategy, priority)
                )

        if len(recommendations) < count:
            extra = [lesson for lesson in self.eligible_lessons(record) if lesson.id not in seen]
            for index, lesson in enumerate(extra[: count - len(recommendations)]):
                recommendations.append(
                    Recommendation(lesson.id, "Available lesson", Strategy.SEQUENTIAL, 4 + index)
                )

        return recommendations[:count]

    # ----- supplementary advice -------------------------------------------
    def recent_accuracy(self, record: ProgressRecord) -> float:
        """Mean accuracy of the most recently attempted lessons."""
        attempted = sorted(
            (p for p in record.lesson_progress.values() if p.last_attempted is not None),
            key=lambda p: p.last_attempted,
            reverse=True,
        )[: self.RECENT_LESSON_COUNT]
        if not attempted:
            return 0.0
        return sum(p.accuracy for p in attempted) / len(attempted)

    def check_for_break(self, record: ProgressRecord, now: datetime | None = None) -> BreakAdvice:
        """Suggest a break when accuracy drops during a practice streak."""
        last_practiced = record.overall_stats.last_practiced
        if last_practiced is None:
            return BreakAdvice(False)

        hours_since = ((now or utc_now()) - last_practiced).total_seconds() / 3600
        if hours_since < self.BREAK_WINDOW_HOURS:
            overall = record.overall_stats.accuracy
            if self.recent_accuracy(record) < overall - self.BREAK_ACCURACY_DROP:
                return BreakAdvice(True, "Recent accuracy declining - consider taking a break")
        return BreakAdvice(False)

    def learning_insights(self, record: ProgressRecord) -> dict:
        overall = record.overall_stats.accuracy
        recent = self.recent_accuracy(record)
        weak = weak_qualities(record, self.curriculum, threshold=self.WEAK_QUALITY)
        return {
            "overall_accuracy": overall,
            "recent_accuracy": recent,
            "trend": "improving" if recent > overall else "declining",
            "weak_qualities": [(q.quality, q.accuracy) for q in weak[:3]],
            "lessons_completed": len(record.completed_lessons),
            "total_time": record.overall_stats.total_time,
            "needs_review": overall < self.REVIEW_TRIGGER,
        }
