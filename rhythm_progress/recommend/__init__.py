"""Lesson recommendation strategies."""

from rhythm_progress.recommend.engine import (
    BreakAdvice,
    Recommendation,
    RecommendationEngine,
    Strategy,
)

__all__ = ["BreakAdvice", "Recommendation", "RecommendationEngine", "Strategy"]
