from __future__ import annotations

import asyncio
import platform
from typing import Any, Protocol

from .backups import BackupManager
from .disk_store import DiskDocumentStore
from .merge import merge_document
from .models import Document, PartialDocument, Snapshot
from .paths import is_writable_dir


class AsyncBookRepository(Protocol):
    """
    Domain-level persistence interface used by the HTTP handlers.
    Every call may raise a persistence.errors.StoreError.
    """

    async def load(self) -> Document: ...
    async def save(self, doc: Document) -> int: ...
    async def apply_patch(self, patch: PartialDocument) -> tuple[Document, int]: ...

    async def create_backup(self) -> Snapshot: ...
    async def list_backups(self) -> list[Snapshot]: ...
    async def restore(self, filename: str) -> Document: ...

    async def health(self) -> dict[str, Any]: ...


class AsyncDiskBookRepository(AsyncBookRepository):
    """
    Async wrapper around the disk-backed store and backup manager.
    Uses asyncio.to_thread to avoid blocking the event loop on file I/O.
    """

    def __init__(self, store: DiskDocumentStore, backups: BackupManager) -> None:
        self._store = store
        self._backups = backups

    @property
    def store(self) -> DiskDocumentStore:
        return self._store

    @property
    def backups(self) -> BackupManager:
        return self._backups

    async def load(self) -> Document:
        return await asyncio.to_thread(self._store.load)

    async def save(self, doc: Document) -> int:
        return await asyncio.to_thread(self._store.save, doc)

    def _apply_patch(self, patch: PartialDocument) -> tuple[Document, int]:
        # Load, merge and save under one lock so concurrent patches don't lose updates.
        with self._store.lock:
            merged = merge_document(self._store.load(), patch)
            written = self._store.save(merged)
            return merged, written

    async def apply_patch(self, patch: PartialDocument) -> tuple[Document, int]:
        return await asyncio.to_thread(self._apply_patch, patch)

    async def create_backup(self) -> Snapshot:
        return await asyncio.to_thread(self._backups.create_backup)

    async def list_backups(self) -> list[Snapshot]:
        return await asyncio.to_thread(self._backups.list_backups)

    async def restore(self, filename: str) -> Document:
        return await asyncio.to_thread(self._backups.restore, filename)

    def _health(self) -> dict[str, Any]:
        return {
            "python_version": platform.python_version(),
            "data_dir_writable": is_writable_dir(self._store.path.parent),
            "backup_dir_writable": is_writable_dir(self._backups.backup_dir),
        }

    async def health(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._health)
