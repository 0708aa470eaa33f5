"""File storage backends used by the upload endpoints."""
from .base import AbstractStorage, StoredFile, is_safe_filename
from .local import LocalStorage

__all__ = ["AbstractStorage", "StoredFile", "LocalStorage", "is_safe_filename"]
