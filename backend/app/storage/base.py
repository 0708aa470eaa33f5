"""Storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass
class StoredFile:
    """Location of a saved upload."""
    filename: str  # Generated name, unique within the storage
    category: str  # "images" or "documents"
    path: Path
    size: int


def is_safe_filename(filename: str) -> bool:
    """Reject names that could escape a storage directory."""
    return bool(filename) and not any(part in filename for part in ("..", "/", "\\"))


class AbstractStorage(ABC):
    """Interface for storage backends."""

    @abstractmethod
    def save(self, data: bytes, filename: str, category: str) -> StoredFile:
        """Persist file content under a category and return where it was stored."""

    @abstractmethod
    def find(self, filename: str) -> StoredFile | None:
        """Return the stored file with this name, searching every category."""

    @abstractmethod
    def delete(self, filename: str) -> bool:
        """Remove a stored file; return whether anything was deleted."""
