"""
Core Module - Shared domain helpers.

Components:
- mastery: Mastery levels and review intervals
- clock: Timestamp parsing, day differences and "ago" rendering
"""

from rhythm_progress.core.clock import (
    days_since,
    format_timestamp,
    humanize_days_ago,
    parse_timestamp,
    utc_now,
)
from rhythm_progress.core.mastery import (
    MasteryLevel,
    mastery_level,
    review_interval_days,
)

__all__ = [
    # Mastery
    "MasteryLevel",
    "mastery_level",
    "review_interval_days",
    # Clock
    "days_since",
    "format_timestamp",
    "humanize_days_ago",
    "parse_timestamp",
    "utc_now",
]
