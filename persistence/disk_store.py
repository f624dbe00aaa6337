from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from json_store import atomic_copy, atomic_write_text, dump_json, read_json, unique_timestamped_path

from .errors import ParseError, StorageIOError
from .locks import DOCUMENT_LOCKS
from .models import Clock, Document, iso_timestamp, local_now

logger = logging.getLogger(__name__)


class DiskDocumentStore:
    """
    Stores the single book-tracking document on disk at a fixed path.

    - load() always returns a Document (defaults on missing/invalid JSON) and
      never overwrites a file it could not parse.
    - save() copies the previous file to `<name>.backup_<timestamp>` first
      (best effort), then publishes the new content atomically.
    """

    def __init__(self, path: Path, *, max_save_backups: int = 10, clock: Clock = local_now):
        self._path = path
        self._max_save_backups = max_save_backups
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock(self) -> threading.RLock:
        return DOCUMENT_LOCKS.for_document(self._path)

    @property
    def save_backup_prefix(self) -> str:
        return f"{self._path.name}.backup_"

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> Document:
        with self.lock:
            if not self._path.exists():
                return self._initialize_default()
            try:
                raw = read_json(self._path)
            except ValueError as e:
                logger.error("Failed to parse %s, serving defaults: %s", self._path, e)
                return Document.default(self._clock())
            except OSError as e:
                logger.error("Failed to read %s, serving defaults: %r", self._path, e)
                return Document.default(self._clock())

            if not isinstance(raw, dict):
                logger.error("Unexpected content in %s (not a JSON object), serving defaults", self._path)
                return Document.default(self._clock())
            try:
                return Document.from_disk_doc(raw)
            except ValidationError as e:
                logger.error("Document in %s has an invalid shape, serving defaults: %s", self._path, e)
                return Document.default(self._clock())

    def _initialize_default(self) -> Document:
        doc = Document.default(self._clock())
        try:
            self.save(doc)
        except (ParseError, StorageIOError):
            # Already logged by save(); load() degrades to the in-memory default.
            pass
        return doc

    def save(self, doc: Document) -> int:
        """
        Persist the document and return the number of bytes written.

        Sets doc.lastModified in place. Raises ParseError if the document cannot
        be serialized and StorageIOError if the write fails.
        """
        with self.lock:
            now = self._clock()
            doc.lastModified = iso_timestamp(now)
            try:
                content = dump_json(doc.to_disk_doc())
            except (TypeError, ValueError) as e:
                logger.error("Failed to serialize document for %s: %s", self._path, e)
                raise ParseError(f"Could not serialize document: {e}", path=self._path) from e

            if self._path.exists():
                self._backup_previous(now)

            try:
                written = atomic_write_text(self._path, content)
            except OSError as e:
                logger.error("Failed to save %s: %r", self._path, e)
                raise StorageIOError(f"Could not write {self._path.name}: {e}", path=self._path) from e

            logger.info("Document saved to %s (%d bytes)", self._path, written)
            return written

    def _backup_previous(self, now: datetime) -> None:
        # Best effort: a failed copy is logged and the save goes ahead.
        try:
            target = unique_timestamped_path(self._path.parent, self.save_backup_prefix, "", now)
            atomic_copy(self._path, target)
        except OSError as e:
            logger.warning("Could not back up %s before saving: %r", self._path, e)
            return
        self._prune_save_backups()

    def save_backups(self) -> list[Path]:
        """Pre-save copies of the document, oldest first."""
        paths = [p for p in self._path.parent.glob(self.save_backup_prefix + "*") if p.is_file()]
        return sorted(paths, key=lambda p: (p.stat().st_mtime_ns, p.name))

    def _prune_save_backups(self) -> None:
        if self._max_save_backups <= 0:
            return
        try:
            existing = self.save_backups()
        except OSError as e:
            logger.warning("Could not list save backups for %s: %r", self._path, e)
            return
        for old in existing[: max(0, len(existing) - self._max_save_backups)]:
            try:
                old.unlink()
            except OSError as e:
                logger.warning("Could not prune save backup %s: %r", old, e)
