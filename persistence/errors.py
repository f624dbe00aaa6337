"""
Error taxonomy for the document store.

Every error carries a machine-readable ``kind`` that the HTTP layer passes
through to clients unchanged.
"""

from __future__ import annotations

from pathlib import Path


class StoreError(Exception):
    """Base exception for all document store errors."""

    kind = "StoreError"

    def __init__(self, message: str, *, path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class ParseError(StoreError):
    """
    Input is not valid JSON, or not shaped like a document.

    Raised when:
    - a request payload cannot be decoded
    - a document cannot be serialized (e.g. NaN values)
    """

    kind = "ParseError"


class StorageIOError(StoreError):
    """A disk write, copy or delete failed."""

    kind = "IOError"


class NotFoundError(StoreError):
    """The referenced snapshot or document does not exist."""

    kind = "NotFound"


class CorruptSnapshotError(StoreError):
    """A snapshot selected for restore does not contain a valid document."""

    kind = "CorruptSnapshot"
