"""
Core Mastery Module.

Mastery classification and spaced-repetition review intervals for qualities
(the skill tags attached to lessons).

Thresholds:
- mastered: accuracy >= 0.9
- developing: accuracy >= 0.7
- needs-practice: below 0.7

Ties at exactly 0.9 / 0.7 resolve to the higher tier.
"""

from __future__ import annotations

from enum import Enum

MASTERED_THRESHOLD = 0.9
DEVELOPING_THRESHOLD = 0.7

# Days between reviews, keyed by mastery level
REVIEW_INTERVALS = {
    "mastered": 21,
    "developing": 10,
    "needs-practice": 5,
}
DEFAULT_REVIEW_INTERVAL = 7


class MasteryLevel(str, Enum):
    """Mastery level of a quality."""

    MASTERED = "mastered"
    DEVELOPING = "developing"
    NEEDS_PRACTICE = "needs-practice"

    @classmethod
    def from_accuracy(cls, accuracy: float) -> MasteryLevel:
        """
        Convert a 0-1 accuracy to a level.

        Args:
            accuracy: Accuracy between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if accuracy >= MASTERED_THRESHOLD:
            return cls.MASTERED
        elif accuracy >= DEVELOPING_THRESHOLD:
            return cls.DEVELOPING
        else:
            return cls.NEEDS_PRACTICE

    @property
    def review_interval_days(self) -> int:
        """Days until the quality is due for review."""
        return REVIEW_INTERVALS[self.value]

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("-", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.MASTERED: "green",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.NEEDS_PRACTICE: "red",
        }[self]


def mastery_level(accuracy: float) -> MasteryLevel:
    """Step function from accuracy to mastery level."""
    return MasteryLevel.from_accuracy(accuracy)


def review_interval_days(level: MasteryLevel | str | None) -> int:
    """Review interval for a level; unknown levels get the 7-day default."""
    if isinstance(level, MasteryLevel):
        return level.review_interval_days
    return REVIEW_INTERVALS.get(level, DEFAULT_REVIEW_INTERVAL)
