"""
Schema migrations for the progress document.

MIGRATIONS maps a source version to a pure function producing the next
version's document. Migrations are total: missing fields are defaulted,
never rejected. New versions are added by appending a step.
"""

from __future__ import annotations

import copy
from typing import Any, Callable

from loguru import logger

from rhythm_progress.progress.models import CURRENT_SCHEMA_VERSION

Migration = Callable[[dict[str, Any]], dict[str, Any]]


def _zeroed_stats() -> dict[str, Any]:
    return {
        "totalPatterns": 0,
        "correctPatterns": 0,
        "accuracy": 0,
        "totalTime": 0,
        "lastPracticed": None,
    }


def migrate_v1_to_v2(data: dict[str, Any]) -> dict[str, Any]:
    """
    v1 -> v2: adds qualityHistory.

    Also moves the legacy ``version`` key to ``schemaVersion``, fills every
    missing top-level field and rebuilds completedLessons from the per-lesson
    completed flags.
    """
    doc = copy.deepcopy(data)
    doc.pop("version", None)

    lesson_progress = doc.get("lessonProgress")
    if not isinstance(lesson_progress, dict):
        lesson_progress = {}
    doc["lessonProgress"] = lesson_progress

    doc["completedLessons"] = [
        lesson_id
        for lesson_id, entry in lesson_progress.items()
        if isinstance(entry, dict) and entry.get("completed") is True
    ]
    doc.setdefault("masteredQualities", [])
    doc.setdefault("currentPhase", 1)
    doc.setdefault("qualityHistory", {})

    stats = doc.get("overallStats")
    doc["overallStats"] = {**_zeroed_stats(), **(stats if isinstance(stats, dict) else {})}

    doc.setdefault("createdAt", None)
    doc.setdefault("updatedAt", doc["createdAt"])
    doc["schemaVersion"] = 2
    return doc


MIGRATIONS: dict[int, Migration] = {
    1: migrate_v1_to_v2,
}


def detect_version(data: dict[str, Any]) -> int:
    """Schema version of a document; unrecognizable versions count as 1."""
    for key in ("schemaVersion", "version"):
        value = data.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
            return value
    return 1


def migrate_progress(data: dict[str, Any]) -> dict[str, Any]:
    """
    Bring a document up to CURRENT_SCHEMA_VERSION.

    Steps are applied in strictly ascending source-version order. A document
    already at the current version is returned as-is; the input is never
    mutated.
    """
    version = detect_version(data)
    if version == CURRENT_SCHEMA_VERSION and "schemaVersion" in data:
        return data
    if version > CURRENT_SCHEMA_VERSION:
        logger.warning(
            f"Progress schema v{version} is newer than supported v{CURRENT_SCHEMA_VERSION}; "
            "loading without migration"
        )
        return data

    doc = data
    for source in range(version, CURRENT_SCHEMA_VERSION):
        logger.info(f"Migrating progress schema v{source} -> v{source + 1}")
        doc = MIGRATIONS[source](doc)
    return doc
