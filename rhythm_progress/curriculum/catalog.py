"""
Curriculum catalog sources.

- load_curriculum: read a JSON catalog ({"phases": [...], "lessons": [...]})
- default_curriculum: the bundled rhythm transcription curriculum

The bundled curriculum is organized into phases:
- Phase 1: Core lessons (1-9) - Foundation rhythmic concepts
- Phase 2: Review lessons (R1-R3) - Quality distinction practice
- Phase 3: Expansion lessons (10-14) - Advanced qualities
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from loguru import logger

from rhythm_progress.curriculum.models import Curriculum, CurriculumError

PHASES = [
    {
        "phaseNumber": 1,
        "title": "Foundation Rhythms",
        "description": "Master the core building blocks of drum patterns",
        "unlockCondition": "Available from start",
    },
    {
        "phaseNumber": 2,
        "title": "Quality Distinction",
        "description": "Practice identifying rhythmic qualities by ear",
        "unlockCondition": "Complete Phase 1 with 70% accuracy or higher",
    },
    {
        "phaseNumber": 3,
        "title": "Advanced Concepts",
        "description": "Explore swing, ride cymbal, syncopation, and more",
        "unlockCondition": "Complete Phase 2 or achieve 80% accuracy in Phase 1",
    },
]

# (id, phase, lessonNumber, quality, title)
_CORE = [
    ("lesson-1-kick-snare-skeleton", 1, 1, "downbeat-identification", "The Kick/Snare Skeleton"),
    ("lesson-2-the-ands", 1, 2, "upbeat-identification", 'The "Ands"'),
    ("lesson-3-backbeat-vs-displaced", 1, 3, "backbeat-placement", "Backbeat vs Displaced"),
    ("lesson-4-ghost-notes", 1, 4, "ghost-notes", "Ghost Notes"),
    ("lesson-5-offbeat-hi-hat", 1, 5, "offbeat-hi-hat", "Offbeat Hi-Hat"),
    ("lesson-6-combining-qualities", 1, 6, "syncopation", "Combining Qualities"),
    ("lesson-7-cross-rhythms", 1, 7, "displaced-backbeat", "Cross Rhythms"),
    ("lesson-8-polyrhythms", 1, 8, "syncopation", "Polyrhythms"),
    ("lesson-9-tom-fills", 1, 9, "tom-fills", "Tom Fills"),
]
_REVIEW = [
    ("review-1-downbeat-vs-upbeat", 2, 10, "downbeat-identification", "Downbeat vs Upbeat"),
    ("review-2-backbeat-variations", 2, 11, "backbeat-placement", "Backbeat Variations"),
    ("review-3-ghost-note-detection", 2, 12, "ghost-notes", "Ghost Note Detection"),
]
_EXPANSION = [
    ("lesson-10-swing-feel", 3, 13, "swing-feel", "Swing Feel"),
    ("lesson-11-ride-cymbal", 3, 14, "ride-cymbal", "Ride Cymbal"),
    ("lesson-12-syncopation-emphasis", 3, 15, "syncopation", "Syncopation Emphasis"),
    ("lesson-13-half-time-feel", 3, 16, "half-time-feel", "Half-Time Feel"),
    ("lesson-14-crash-accents", 3, 17, "crash-accents", "Crash Accents"),
]


def _chain(rows: list[tuple], review: bool = False) -> list[dict]:
    """Lesson entries where each lesson requires the one before it."""
    entries = []
    previous = None
    for lesson_id, phase, number, quality, title in rows:
        entries.append({
            "id": lesson_id,
            "phase": phase,
            "lessonNumber": number,
            "quality": quality,
            "title": title,
            "prerequisites": [] if review or previous is None else [previous],
            "isReviewLesson": review,
        })
        previous = lesson_id
    return entries


def default_lesson_entries() -> list[dict]:
    """Raw catalog entries of the bundled curriculum."""
    return _chain(_CORE) + _chain(_REVIEW, review=True) + _chain(_EXPANSION)


@lru_cache(maxsize=1)
def default_curriculum() -> Curriculum:
    """The bundled rhythm curriculum (17 lessons, 3 phases)."""
    entries = default_lesson_entries()
    phases = [
        {**phase, "lessonIds": [e["id"] for e in entries if e["phase"] == phase["phaseNumber"]]}
        for phase in PHASES
    ]
    curriculum, _ = Curriculum.from_dicts(entries, phases)
    return curriculum


def load_curriculum(path: Path) -> Curriculum:
    """
    Load a curriculum catalog from a JSON file.

    The file holds either a list of lessons or an object with "lessons"
    and optional "phases". Invalid lessons are skipped with a warning.

    Raises:
        CurriculumError: If the file cannot be read or has no lesson list
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CurriculumError(f"Cannot read curriculum {path}: {e}") from e

    if isinstance(data, list):
        lessons, phases = data, []
    elif isinstance(data, dict) and isinstance(data.get("lessons"), list):
        lessons, phases = data["lessons"], data.get("phases") or []
    else:
        raise CurriculumError(f"Curriculum {path} has no lesson list")

    try:
        curriculum, result = Curriculum.from_dicts(lessons, phases)
    except (KeyError, TypeError, ValueError) as e:
        raise CurriculumError(f"Curriculum {path} has invalid phase metadata: {e}") from e
    logger.info(
        f"Loaded curriculum {path}: {result.successful} lessons, {result.failed} rejected"
    )
    return curriculum
