"""
Progress persistence.

- models: ProgressRecord and its parts (camelCase JSON on disk)
- migrations: ordered schema migrations
- storage: file and in-memory storage backends
- store: ProgressStore (import from rhythm_progress.progress.store)
"""

from rhythm_progress.progress.migrations import MIGRATIONS, migrate_progress
from rhythm_progress.progress.models import (
    COMPLETION_THRESHOLD,
    CURRENT_SCHEMA_VERSION,
    LessonRecord,
    OverallStats,
    ProgressRecord,
    QualitySnapshot,
    create_initial_progress,
)
from rhythm_progress.progress.storage import (
    CorruptProgressError,
    JsonFileStorage,
    MemoryStorage,
    ProgressError,
    StorageBackend,
    StorageError,
)

__all__ = [
    "COMPLETION_THRESHOLD",
    "CURRENT_SCHEMA_VERSION",
    "MIGRATIONS",
    "CorruptProgressError",
    "JsonFileStorage",
    "LessonRecord",
    "MemoryStorage",
    "OverallStats",
    "ProgressError",
    "ProgressRecord",
    "QualitySnapshot",
    "StorageBackend",
    "StorageError",
    "create_initial_progress",
    "migrate_progress",
]
