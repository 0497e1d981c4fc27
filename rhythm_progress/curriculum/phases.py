"""
Phase-Unlock Policy.

Pure gating over the progress record and the curriculum's phase -> lesson
mapping:

- Phase 1: always unlocked
- Phase 2: every Phase 1 lesson completed AND Phase 1 mean accuracy >= 70%
- Phase 3: every Phase 2 lesson completed OR Phase 1 mean accuracy >= 80%
  (fast track)
- Any other phase number: locked
"""

from __future__ import annotations

from typing import Callable, Optional

from rhythm_progress.curriculum.models import Curriculum
from rhythm_progress.progress.models import ProgressRecord

PHASE_2_MIN_ACCURACY = 0.7
PHASE_3_FAST_TRACK_ACCURACY = 0.8


def phase_accuracy(phase_number: int, record: ProgressRecord, curriculum: Curriculum) -> float:
    """Mean accuracy over the phase's lessons that have a record; 0 if none."""
    accuracies = [
        record.lesson_progress[lesson_id].accuracy
        for lesson_id in curriculum.lesson_ids_in_phase(phase_number)
        if lesson_id in record.lesson_progress
    ]
    if not accuracies:
        return 0.0
    return sum(accuracies) / len(accuracies)


def phase_completed(phase_number: int, record: ProgressRecord, curriculum: Curriculum) -> bool:
    """Every lesson of the phase is completed."""
    return all(
        lesson_id in record.lesson_progress and record.lesson_progress[lesson_id].completed
        for lesson_id in curriculum.lesson_ids_in_phase(phase_number)
    )


def _phase_1_gate(record: ProgressRecord, curriculum: Curriculum) -> bool:
    return True


def _phase_2_gate(record: ProgressRecord, curriculum: Curriculum) -> bool:
    return (
        phase_completed(1, record, curriculum)
        and phase_accuracy(1, record, curriculum) >= PHASE_2_MIN_ACCURACY
    )


def _phase_3_gate(record: ProgressRecord, curriculum: Curriculum) -> bool:
    return (
        phase_completed(2, record, curriculum)
        or phase_accuracy(1, record, curriculum) >= PHASE_3_FAST_TRACK_ACCURACY
    )


PHASE_GATES: dict[int, Callable[[ProgressRecord, Curriculum], bool]] = {
    1: _phase_1_gate,
    2: _phase_2_gate,
    3: _phase_3_gate,
}


def is_phase_unlocked(phase_number: int, record: ProgressRecord, curriculum: Curriculum) -> bool:
    """Whether the phase is available to the learner; unknown phases are locked."""
    gate = PHASE_GATES.get(phase_number)
    return gate(record, curriculum) if gate else False


def get_next_phase(record: ProgressRecord, curriculum: Curriculum) -> Optional[int]:
    """
    Phase the learner should be working in.

    Walks the phases in order: if a gate blocks progress, the phase before
    it is returned; otherwise the first phase with an incomplete lesson.
    None when every phase is complete.
    """
    for phase_number in curriculum.phase_numbers:
        if not is_phase_unlocked(phase_number, record, curriculum):
            return phase_number - 1

        if not phase_completed(phase_number, record, curriculum):
            return phase_number

    return None


def phase_stats(phase_number: int, record: ProgressRecord, curriculum: Curriculum) -> dict:
    """Completed / total lesson counts and mean accuracy of a phase."""
    lesson_ids = curriculum.lesson_ids_in_phase(phase_number)
    completed = sum(
        1
        for lesson_id in lesson_ids
        if lesson_id in record.lesson_progress and record.lesson_progress[lesson_id].completed
    )
    return {
        "completed": completed,
        "total": len(lesson_ids),
        "accuracy": phase_accuracy(phase_number, record, curriculum),
    }
