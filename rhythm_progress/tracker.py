"""
ProgressTracker: the API surface consumed by the UI and playback layers.

Binds one ProgressStore, one curriculum and one recommender together so
callers do not have to pass the curriculum around. All state changes go
through the store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from rhythm_progress.analytics.quality import QualityProgress, quality_progress, weak_qualities
from rhythm_progress.analytics.trend import QualityTrend, get_quality_trend
from rhythm_progress.config import Settings, get_settings
from rhythm_progress.core.clock import Clock, utc_now
from rhythm_progress.curriculum.catalog import default_curriculum, load_curriculum
from rhythm_progress.curriculum.models import Curriculum
from rhythm_progress.curriculum.phases import get_next_phase, is_phase_unlocked, phase_stats
from rhythm_progress.progress.models import LessonRecord, ProgressRecord
from rhythm_progress.progress.storage import JsonFileStorage, StorageBackend
from rhythm_progress.progress.store import ImportResult, PatternResults, ProgressStore
from rhythm_progress.progress.summary import ProgressSummary, progress_summary
from rhythm_progress.recommend.engine import (
    BreakAdvice,
    Recommendation,
    RecommendationEngine,
    Strategy,
)


class ProgressTracker:
    """Facade over the progress store, analytics, phase policy and recommender."""

    def __init__(
        self,
        storage: StorageBackend,
        curriculum: Curriculum,
        storage_key: Optional[str] = None,
        clock: Clock = utc_now,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.curriculum = curriculum
        self._clock = clock
        self.store = ProgressStore(
            storage,
            curriculum,
            storage_key=storage_key or self.settings.storage_key,
            clock=clock,
        )
        self.engine = RecommendationEngine(curriculum)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> ProgressTracker:
        """Tracker backed by the configured progress directory and curriculum."""
        settings = settings or get_settings()
        curriculum = (
            load_curriculum(settings.curriculum_path)
            if settings.curriculum_path
            else default_curriculum()
        )
        return cls(
            JsonFileStorage(settings.progress_dir),
            curriculum,
            storage_key=settings.storage_key,
            settings=settings,
        )

    @property
    def progress(self) -> ProgressRecord:
        return self.store.record

    @property
    def error(self) -> Optional[str]:
        return self.store.error

    def load(self) -> ProgressRecord:
        return self.store.load()

    # ----- actions ---------------------------------------------------------
    def record_lesson_completion(
        self,
        lesson_id: str,
        accuracy: float,
        pattern_results: PatternResults | None = None,
        time_taken: float | None = None,
        tempo: float | None = None,
    ) -> bool:
        return self.store.record_lesson_completion(
            lesson_id, accuracy, pattern_results, time_taken=time_taken, tempo=tempo
        )

    def record_pattern_result(
        self, lesson_id: str, index: int, is_correct: bool, time_taken: float | None = None
    ) -> bool:
        return self.store.record_pattern_result(lesson_id, index, is_correct, time_taken)

    def mark_quality_mastered(self, quality: str) -> bool:
        return self.store.mark_quality_mastered(quality)

    def update_current_phase(self, phase_number: int) -> bool:
        return self.store.update_current_phase(phase_number)

    def reset_progress(self) -> bool:
        return self.store.reset_progress()

    def export_progress(self) -> dict[str, Any]:
        return self.store.export_progress()

    def import_progress(self, data: Any) -> ImportResult:
        return self.store.import_progress(data)

    # ----- queries ---------------------------------------------------------
    def get_lesson_progress(self, lesson_id: str) -> Optional[LessonRecord]:
        return self.store.get_lesson_progress(lesson_id)

    def is_lesson_completed(self, lesson_id: str) -> bool:
        return self.store.is_lesson_completed(lesson_id)

    def get_lesson_accuracy(self, lesson_id: str) -> float:
        return self.store.get_lesson_accuracy(lesson_id)

    def get_overall_accuracy(self) -> float:
        return self.store.get_overall_accuracy()

    def summary(self) -> ProgressSummary:
        return progress_summary(self.progress)

    def quality_progress(self, now: Optional[datetime] = None) -> list[QualityProgress]:
        return quality_progress(
            self.progress,
            self.curriculum,
            now=now or self._clock(),
            window_days=self.settings.trend_window_days,
            rate_period_days=self.settings.trend_rate_period_days,
        )

    def weak_qualities(
        self, threshold: float = 0.7, now: Optional[datetime] = None
    ) -> list[QualityProgress]:
        return weak_qualities(self.progress, self.curriculum, threshold, now=now or self._clock())

    def quality_trend(
        self,
        quality: str,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> QualityTrend:
        return get_quality_trend(
            self.progress.quality_history.get(quality, []),
            window_days=window_days or self.settings.trend_window_days,
            now=now or self._clock(),
            rate_period_days=self.settings.trend_rate_period_days,
        )

    def is_phase_unlocked(self, phase_number: int) -> bool:
        return is_phase_unlocked(phase_number, self.progress, self.curriculum)

    def get_next_phase(self) -> Optional[int]:
        return get_next_phase(self.progress, self.curriculum)

    def phase_stats(self, phase_number: int) -> dict:
        return phase_stats(phase_number, self.progress, self.curriculum)

    def get_recommended_lesson(self, strategy: Strategy | str | None = None) -> Recommendation:
        return self.engine.get_recommended_lesson(
            self.progress, strategy or self.settings.default_strategy
        )

    def get_multiple_recommendations(self, count: Optional[int] = None) -> list[Recommendation]:
        return self.engine.get_multiple_recommendations(
            self.progress, count if count is not None else self.settings.recommendation_count
        )

    def check_for_break(self) -> BreakAdvice:
        return self.engine.check_for_break(self.progress, now=self._clock())

    def learning_insights(self) -> dict:
        return self.engine.learning_insights(self.progress)
