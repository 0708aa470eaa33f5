"""Local filesystem storage implementation."""

from __future__ import annotations

import os
from pathlib import Path

from .base import AbstractStorage, StoredFile, is_safe_filename

CATEGORIES = ("images", "documents")


class LocalStorage(AbstractStorage):
    """Persist files to the local filesystem, one sub-directory per category."""

    def __init__(self, upload_dir: str):
        self.base_directory = Path(upload_dir)

    def save(self, data: bytes, filename: str, category: str) -> StoredFile:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown storage category: {category}")
        if not is_safe_filename(filename):
            raise ValueError("Filename must not contain path separators.")

        os.makedirs(self.base_directory / category, exist_ok=True)
        destination = self.base_directory / category / filename
        with open(destination, "wb") as output:
            output.write(data)
        return StoredFile(filename=filename, category=category, path=destination, size=len(data))

    def find(self, filename: str) -> StoredFile | None:
        if not is_safe_filename(filename):
            return None
        for category in CATEGORIES:
            candidate = self.base_directory / category / filename
            if candidate.is_file():
                return StoredFile(filename=filename, category=category, path=candidate, size=candidate.stat().st_size)
        return None

    def delete(self, filename: str) -> bool:
        stored = self.find(filename)
        if stored is None:
            return False
        stored.path.unlink()
        return True
