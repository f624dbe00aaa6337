from __future__ import annotations

import threading
from pathlib import Path


class DocumentLockRegistry:
    """
    One writer lock per data file, shared by every store and backup manager
    in the process that points at it.

    Stores built from different spellings of the same path (relative,
    absolute, through a symlink) get the same lock. The lock is re-entrant:
    restore reloads the document it just published without letting go of it.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._by_document: dict[Path, threading.RLock] = {}

    def for_document(self, data_file: Path) -> threading.RLock:
        canonical = data_file.resolve()
        with self._registry_lock:
            return self._by_document.setdefault(canonical, threading.RLock())


DOCUMENT_LOCKS = DocumentLockRegistry()
