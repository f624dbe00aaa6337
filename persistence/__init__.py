from __future__ import annotations

from .backups import BackupManager
from .disk_store import DiskDocumentStore
from .errors import CorruptSnapshotError, NotFoundError, ParseError, StorageIOError, StoreError
from .merge import merge_document, parse_patch
from .models import Document, PartialDocument, Snapshot
from .repositories import AsyncBookRepository, AsyncDiskBookRepository

__all__ = [
    "BackupManager",
    "DiskDocumentStore",
    "Document",
    "PartialDocument",
    "Snapshot",
    "merge_document",
    "parse_patch",
    "AsyncBookRepository",
    "AsyncDiskBookRepository",
    "StoreError",
    "ParseError",
    "StorageIOError",
    "NotFoundError",
    "CorruptSnapshotError",
]
