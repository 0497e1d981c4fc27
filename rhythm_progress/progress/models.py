"""
Progress record models.

The ProgressRecord is the single persisted aggregate (one per learner).
On disk it is a camelCase JSON document; in memory it is a tree of
dataclasses. Keys the models do not know are kept in ``extra`` and written
back unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from rhythm_progress.core.clock import format_timestamp, parse_timestamp

CURRENT_SCHEMA_VERSION = 2

# 70% accuracy marks a lesson as completed
COMPLETION_THRESHOLD = 0.7

_LESSON_KEYS = {
    "attempted", "completed", "accuracy", "attempts", "bestAccuracy",
    "lastAttempted", "patternResults", "averageTime", "tempo",
}
_RECORD_KEYS = {
    "schemaVersion", "lessonProgress", "completedLessons", "currentPhase",
    "masteredQualities", "qualityHistory", "overallStats", "createdAt", "updatedAt",
}


def _pattern_results_from(value: Any) -> dict[int, bool]:
    """Read sparse pattern outcomes from an array (null holes) or an index map."""
    if isinstance(value, Mapping):
        items = ((int(k), v) for k, v in value.items())
    elif isinstance(value, (list, tuple)):
        items = enumerate(value)
    else:
        return {}
    return {index: bool(outcome) for index, outcome in items if outcome is not None}


def _pattern_results_to(results: Mapping[int, bool]) -> list[bool | None]:
    if not results:
        return []
    dense: list[bool | None] = [None] * (max(results) + 1)
    for index, outcome in results.items():
        dense[index] = outcome
    return dense


def _completed_from_flags(
    listed: list[str],
    lesson_progress: Mapping[str, LessonRecord],
) -> list[str]:
    """
    completedLessons rebuilt from the per-lesson completed flags.

    Listed ids keep their order; flagged lessons missing from the list are
    appended in lessonProgress order.
    """
    flagged = [lesson_id for lesson_id, lesson in lesson_progress.items() if lesson.completed]
    kept = [lesson_id for lesson_id in dict.fromkeys(str(i) for i in listed) if lesson_id in flagged]
    return kept + [lesson_id for lesson_id in flagged if lesson_id not in kept]


@dataclass
class LessonRecord:
    """Progress on one attempted lesson."""

    attempted: bool = False
    completed: bool = False
    accuracy: float = 0.0
    attempts: int = 0
    best_accuracy: float = 0.0
    last_attempted: datetime | None = None
    # index -> outcome; undefined outcomes are absent
    pattern_results: dict[int, bool] = field(default_factory=dict)
    average_time: float = 0.0
    tempo: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def defined_count(self) -> int:
        return len(self.pattern_results)

    @property
    def correct_count(self) -> int:
        return sum(1 for outcome in self.pattern_results.values() if outcome is True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.extra,
            "attempted": self.attempted,
            "completed": self.completed,
            "accuracy": self.accuracy,
            "attempts": self.attempts,
            "bestAccuracy": self.best_accuracy,
            "lastAttempted": format_timestamp(self.last_attempted),
            "patternResults": _pattern_results_to(self.pattern_results),
            "averageTime": self.average_time,
            "tempo": self.tempo,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LessonRecord:
        """Create from dictionary, defaulting missing fields."""
        accuracy = float(data.get("accuracy") or 0.0)
        return cls(
            attempted=bool(data.get("attempted", True)),
            completed=bool(data.get("completed", False)),
            accuracy=accuracy,
            attempts=int(data.get("attempts") or 0),
            best_accuracy=float(data.get("bestAccuracy") or accuracy),
            last_attempted=parse_timestamp(data.get("lastAttempted")),
            pattern_results=_pattern_results_from(data.get("patternResults")),
            average_time=float(data.get("averageTime") or 0.0),
            tempo=data.get("tempo"),
            extra={k: v for k, v in data.items() if k not in _LESSON_KEYS},
        )


@dataclass(frozen=True)
class QualitySnapshot:
    """Accuracy of a quality at the moment one of its lessons was completed."""

    timestamp: datetime
    accuracy: float
    lesson_id: str
    attempts: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "accuracy": self.accuracy,
            "lessonId": self.lesson_id,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QualitySnapshot:
        timestamp = parse_timestamp(data.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"Snapshot without a valid timestamp: {data!r}")
        return cls(
            timestamp=timestamp,
            accuracy=float(data.get("accuracy") or 0.0),
            lesson_id=str(data.get("lessonId", "")),
            attempts=int(data.get("attempts") or 0),
        )


@dataclass
class OverallStats:
    """Aggregate counters across every lesson."""

    total_patterns: int = 0
    correct_patterns: int = 0
    accuracy: float = 0.0
    total_time: float = 0.0  # seconds spent practicing
    last_practiced: datetime | None = None

    def recompute_accuracy(self) -> None:
        self.accuracy = (
            self.correct_patterns / self.total_patterns if self.total_patterns > 0 else 0.0
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPatterns": self.total_patterns,
            "correctPatterns": self.correct_patterns,
            "accuracy": self.accuracy,
            "totalTime": self.total_time,
            "lastPracticed": format_timestamp(self.last_practiced),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OverallStats:
        stats = cls(
            total_patterns=int(data.get("totalPatterns") or 0),
            correct_patterns=int(data.get("correctPatterns") or 0),
            total_time=float(data.get("totalTime") or 0.0),
            last_practiced=parse_timestamp(data.get("lastPracticed")),
        )
        stats.recompute_accuracy()
        return stats


@dataclass
class ProgressRecord:
    """Canonical, versioned progress record of the learner."""

    created_at: datetime
    updated_at: datetime
    schema_version: int = CURRENT_SCHEMA_VERSION
    lesson_progress: dict[str, LessonRecord] = field(default_factory=dict)
    completed_lessons: list[str] = field(default_factory=list)
    current_phase: int = 1
    mastered_qualities: list[str] = field(default_factory=list)
    quality_history: dict[str, list[QualitySnapshot]] = field(default_factory=dict)
    overall_stats: OverallStats = field(default_factory=OverallStats)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON document."""
        return {
            **self.extra,
            "schemaVersion": self.schema_version,
            "lessonProgress": {k: v.to_dict() for k, v in self.lesson_progress.items()},
            "completedLessons": list(self.completed_lessons),
            "currentPhase": self.current_phase,
            "masteredQualities": list(self.mastered_qualities),
            "qualityHistory": {
                quality: [s.to_dict() for s in snapshots]
                for quality, snapshots in self.quality_history.items()
            },
            "overallStats": self.overall_stats.to_dict(),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], now: datetime) -> ProgressRecord:
        """
        Create from a migrated document.

        Args:
            data: Document at the current schema version
            now: Fallback for missing createdAt/updatedAt

        Raises:
            ValueError, TypeError: If the document is structurally invalid
        """
        if not isinstance(data, Mapping):
            raise TypeError("Progress document must be an object")

        lesson_progress = {
            str(lesson_id): LessonRecord.from_dict(entry)
            for lesson_id, entry in (data.get("lessonProgress") or {}).items()
        }
        history = {
            str(quality): [QualitySnapshot.from_dict(s) for s in snapshots]
            for quality, snapshots in (data.get("qualityHistory") or {}).items()
        }
        return cls(
            schema_version=int(data.get("schemaVersion", CURRENT_SCHEMA_VERSION)),
            lesson_progress=lesson_progress,
            completed_lessons=_completed_from_flags(
                data.get("completedLessons") or [], lesson_progress
            ),
            current_phase=int(data.get("currentPhase") or 1),
            mastered_qualities=list(dict.fromkeys(data.get("masteredQualities") or [])),
            quality_history=history,
            overall_stats=OverallStats.from_dict(data.get("overallStats") or {}),
            created_at=parse_timestamp(data.get("createdAt")) or now,
            updated_at=parse_timestamp(data.get("updatedAt")) or now,
            extra={k: v for k, v in data.items() if k not in _RECORD_KEYS},
        )

    # ----- queries ------------------------------------------------------
    def lesson(self, lesson_id: str) -> LessonRecord | None:
        return self.lesson_progress.get(lesson_id)

    def is_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_lessons

    @property
    def overall_accuracy(self) -> float:
        return self.overall_stats.accuracy


def create_initial_progress(now: datetime) -> ProgressRecord:
    """Fresh record: zeroed counters at the current schema version."""
    return ProgressRecord(created_at=now, updated_at=now)
