"""
Pydantic schema for imported progress documents.

Only the top-level shape is checked here; field defaults are the job of the
migrations. Unknown keys are allowed and preserved.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ProgressPayload(BaseModel):
    """Top-level shape an import must have before it may replace the record."""

    model_config = ConfigDict(extra="allow")

    lesson_progress: dict[str, dict[str, Any]] = Field(alias="lessonProgress")
    completed_lessons: Optional[list[str]] = Field(default=None, alias="completedLessons")
    mastered_qualities: Optional[list[str]] = Field(default=None, alias="masteredQualities")
    quality_history: Optional[dict[str, list[dict[str, Any]]]] = Field(
        default=None, alias="qualityHistory"
    )
    overall_stats: Optional[dict[str, Any]] = Field(default=None, alias="overallStats")
    current_phase: Optional[int] = Field(default=None, alias="currentPhase")


def payload_errors(data: Any) -> list[str]:
    """
    Validate an import document.

    Returns:
        One message per structural problem (empty when acceptable)
    """
    if not isinstance(data, dict):
        return ["Progress import must be a JSON object"]
    try:
        ProgressPayload.model_validate(data)
    except ValidationError as e:
        return [
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
    return []
