"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from rhythm_progress.config import Settings  # noqa: E402
from rhythm_progress.curriculum.catalog import default_curriculum  # noqa: E402
from rhythm_progress.curriculum.models import Curriculum, Lesson  # noqa: E402
from rhythm_progress.progress.storage import MemoryStorage  # noqa: E402
from rhythm_progress.progress.store import ProgressStore  # noqa: E402
from rhythm_progress.tracker import ProgressTracker  # noqa: E402

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

PHASE_1_IDS = [
    "lesson-1-kick-snare-skeleton",
    "lesson-2-the-ands",
    "lesson-3-backbeat-vs-displaced",
    "lesson-4-ghost-notes",
    "lesson-5-offbeat-hi-hat",
    "lesson-6-combining-qualities",
    "lesson-7-cross-rhythms",
    "lesson-8-polyrhythms",
    "lesson-9-tom-fills",
]


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Deterministic clock; advance() moves time forward."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def curriculum() -> Curriculum:
    """The bundled 17-lesson curriculum."""
    return default_curriculum()


@pytest.fixture
def small_curriculum() -> Curriculum:
    """Two phase-1 lessons sharing a quality plus an untagged one."""
    return Curriculum([
        Lesson("a", 1, 1, quality="downbeat-identification"),
        Lesson("b", 1, 2, quality="downbeat-identification", prerequisites=("a",)),
        Lesson("c", 1, 3),
    ])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and the home directory."""
    return Settings(_env_file=None, progress_dir=tmp_path)


@pytest.fixture
def store(storage, curriculum, clock) -> ProgressStore:
    return ProgressStore(storage, curriculum, clock=clock)


@pytest.fixture
def tracker(storage, curriculum, clock, settings) -> ProgressTracker:
    return ProgressTracker(storage, curriculum, clock=clock, settings=settings)


@pytest.fixture
def phase_1_ids() -> list[str]:
    return list(PHASE_1_IDS)


@pytest.fixture
def complete_phase_1():
    """Record every phase-1 lesson at the given accuracy."""

    def _complete(store: ProgressStore, accuracy: float) -> None:
        for lesson_id in PHASE_1_IDS:
            store.record_lesson_completion(lesson_id, accuracy)

    return _complete
