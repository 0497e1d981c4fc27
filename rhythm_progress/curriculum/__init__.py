"""Read-only curriculum catalog and the phase-unlock policy."""

from .catalog import default_curriculum, load_curriculum
from .models import Curriculum, CurriculumError, Lesson, Phase, validate_lesson
from .phases import get_next_phase, is_phase_unlocked, phase_accuracy, phase_stats

__all__ = [
    "Curriculum",
    "CurriculumError",
    "Lesson",
    "Phase",
    "default_curriculum",
    "get_next_phase",
    "is_phase_unlocked",
    "load_curriculum",
    "phase_accuracy",
    "phase_stats",
    "validate_lesson",
]
