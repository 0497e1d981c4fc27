"""
Trend Detector for quality accuracy over time.

Fits an ordinary least-squares line through a quality's snapshots inside a
look-back window:

    x = days since the earliest in-window snapshot
    y = snapshot accuracy (0-1)
    m = sum((x - x_mean) * (y - y_mean)) / sum((x - x_mean) ** 2)

The daily slope is scaled to a rate over ``rate_period_days`` (a week by
default) and classified:

    rate >  0.05 -> improving
    rate < -0.05 -> declining
    otherwise    -> stable

Fewer than two snapshots (overall or in the window) never produce a trend.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from rhythm_progress.core.clock import days_between, utc_now
from rhythm_progress.progress.models import QualitySnapshot

DEFAULT_WINDOW_DAYS = 30
DEFAULT_RATE_PERIOD_DAYS = 7
TREND_THRESHOLD = 0.05


class TrendDirection(str, Enum):
    """Trajectory of a quality's accuracy."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient-data"

    @property
    def arrow(self) -> str:
        """Indicator for CLI display."""
        return {
            TrendDirection.IMPROVING: "[green]^[/green]",
            TrendDirection.DECLINING: "[red]v[/red]",
            TrendDirection.STABLE: "[yellow]=[/yellow]",
            TrendDirection.INSUFFICIENT_DATA: "[dim]-[/dim]",
        }[self]


@dataclass(frozen=True)
class QualityTrend:
    """
    Result of trend detection for one quality.

    ``slope`` is per day; ``direction`` is classified on ``rate`` (slope times
    the rate period), not on the raw slope.
    """

    direction: TrendDirection
    slope: float  # accuracy change per day
    rate: float  # slope scaled to the rate period
    change_percentage: float  # (newest - oldest) * 100 within the window
    latest_accuracy: float | None
    oldest_accuracy: float | None
    snapshot_count: int


def linear_regression_slope(points: Sequence[tuple[float, float]]) -> float:
    """Least-squares slope of (x, y) points; 0 when every x is identical."""
    n = len(points)
    if n < 2:
        return 0.0
    x_mean = sum(x for x, _ in points) / n
    y_mean = sum(y for _, y in points) / n
    numerator = sum((x - x_mean) * (y - y_mean) for x, y in points)
    denominator = sum((x - x_mean) ** 2 for x, _ in points)
    if denominator == 0:
        return 0.0
    return numerator / denominator


def classify_rate(rate: float) -> TrendDirection:
    if rate > TREND_THRESHOLD:
        return TrendDirection.IMPROVING
    if rate < -TREND_THRESHOLD:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def get_quality_trend(
    snapshots: Sequence[QualitySnapshot],
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
    rate_period_days: int = DEFAULT_RATE_PERIOD_DAYS,
) -> QualityTrend:
    """
    Classify the trajectory of a quality.

    Args:
        snapshots: The quality's history, oldest first
        window_days: Only snapshots within [now - window, now] are fitted
        now: Reference time (defaults to the current time)
        rate_period_days: Period the daily slope is scaled to before classification

    Returns:
        QualityTrend; direction is insufficient-data with slope 0 when fewer
        than two snapshots are available in the window
    """
    now = now or utc_now()
    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    window_start = now - timedelta(days=window_days)
    in_window = [s for s in ordered if window_start <= s.timestamp <= now]

    if len(ordered) < 2 or len(in_window) < 2:
        available = in_window or ordered
        return QualityTrend(
            direction=TrendDirection.INSUFFICIENT_DATA,
            slope=0.0,
            rate=0.0,
            change_percentage=0.0,
            latest_accuracy=available[-1].accuracy if available else None,
            oldest_accuracy=available[0].accuracy if available else None,
            snapshot_count=len(in_window),
        )

    origin = in_window[0].timestamp
    points = [(days_between(origin, s.timestamp), s.accuracy) for s in in_window]
    slope = linear_regression_slope(points)
    rate = slope * rate_period_days
    newest, oldest = in_window[-1].accuracy, in_window[0].accuracy

    return QualityTrend(
        direction=classify_rate(rate),
        slope=slope,
        rate=rate,
        change_percentage=(newest - oldest) * 100,
        latest_accuracy=newest,
        oldest_accuracy=oldest,
        snapshot_count=len(in_window),
    )


def quality_history_series(
    history: Mapping[str, Sequence[QualitySnapshot]],
) -> list[dict[str, object]]:
    """
    Merge every quality's history into per-day rows for charting.

    Each row holds the date (YYYY-MM-DD) and, per quality, the percentage of
    its latest snapshot on or before that date.
    """
    dates = sorted({s.timestamp.date().isoformat() for snaps in history.values() for s in snaps})
    rows = []
    for date in dates:
        row: dict[str, object] = {"date": date}
        for quality, snapshots in history.items():
            relevant = [s for s in snapshots if s.timestamp.date().isoformat() <= date]
            if relevant:
                row[quality] = round(relevant[-1].accuracy * 100)
        rows.append(row)
    return rows
