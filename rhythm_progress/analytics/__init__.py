"""Quality aggregation and trend detection over a progress record."""

from rhythm_progress.analytics.quality import (
    QualityProgress,
    accuracy_for_quality,
    format_quality_name,
    is_overdue,
    quality_progress,
    weak_qualities,
)
from rhythm_progress.analytics.trend import (
    QualityTrend,
    TrendDirection,
    get_quality_trend,
    quality_history_series,
)

__all__ = [
    "QualityProgress",
    "QualityTrend",
    "TrendDirection",
    "accuracy_for_quality",
    "format_quality_name",
    "get_quality_trend",
    "is_overdue",
    "quality_history_series",
    "quality_progress",
    "weak_qualities",
]
