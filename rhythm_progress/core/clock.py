"""
Time helpers shared by the store and the analytics.

Every function that depends on the current time takes an explicit ``now`` so
callers (and tests) control the clock. Timestamps are timezone-aware UTC
datetimes in memory and ISO-8601 strings on disk.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Callable

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 86400.0


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a stored timestamp.

    Accepts ISO-8601 strings (a trailing ``Z`` included), datetimes and
    epoch milliseconds. Naive values are read as UTC. Anything unparsable
    yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    """Serialize a datetime for the progress document."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def days_since(timestamp: datetime | None, now: datetime) -> float:
    """Fractional days elapsed since timestamp; infinite when it is absent."""
    if timestamp is None:
        return math.inf
    return days_between(timestamp, now)


def humanize_days_ago(timestamp: datetime | None, now: datetime) -> str:
    """
    Render an elapsed time as "N days/weeks/months ago".

    Examples:
        same day -> "today"
        3 days   -> "3 days ago"
        15 days  -> "2 weeks ago"
        70 days  -> "2 months ago"
    """
    if timestamp is None:
        return "never"

    days = int(max(days_since(timestamp, now), 0.0))
    if days == 0:
        return "today"
    if days < 7:
        return _plural(days, "day")
    if days < 30:
        return _plural(days // 7, "week")
    return _plural(days // 30, "month")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"
