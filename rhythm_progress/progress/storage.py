"""
Storage backends for the progress document.

Documents are stored under a single fixed key. The file backend writes
~/.rhythm_progress/<key>.json; the memory backend keeps payloads in a dict.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol


class ProgressError(Exception):
    """Base class for progress persistence failures."""


class StorageError(ProgressError):
    """A read or write against the storage layer failed."""


class CorruptProgressError(ProgressError):
    """The stored payload cannot be parsed into a progress record."""


class StorageBackend(Protocol):
    """Key/value persistence for serialized documents."""

    def read(self, key: str) -> Optional[str]:
        """Return the payload stored under key, or None when absent."""
        ...

    def write(self, key: str, payload: str) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...


class JsonFileStorage:
    """
    One JSON file per key inside a directory.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a failed write never truncates the previous document.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        filepath = self.path_for(key)
        if not filepath.exists():
            return None
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return f.read()
        except UnicodeDecodeError as e:
            raise CorruptProgressError(f"{filepath} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read {filepath}: {e}") from e

    def write(self, key: str, payload: str) -> None:
        filepath = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, filepath)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {filepath}: {e}") from e

    def delete(self, key: str) -> bool:
        filepath = self.path_for(key)
        if filepath.exists():
            filepath.unlink()
            return True
        return False


class MemoryStorage:
    """Dict-backed storage; ``fail_writes`` simulates a broken storage layer."""

    def __init__(self, initial: Optional[dict[str, str]] = None, fail_writes: bool = False):
        self.data: dict[str, str] = dict(initial or {})
        self.fail_writes = fail_writes

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, payload: str) -> None:
        if self.fail_writes:
            raise StorageError(f"Write to {key} rejected (storage unavailable)")
        self.data[key] = payload

    def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None
