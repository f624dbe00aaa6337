from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from pydantic import ValidationError

from json_store import atomic_copy, read_json, unique_timestamped_path

from .disk_store import DiskDocumentStore
from .errors import CorruptSnapshotError, NotFoundError, StorageIOError
from .models import Clock, Document, Snapshot, SnapshotKind, local_now

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup_"
PRE_RESTORE_PREFIX = "before_restore_"
SNAPSHOT_SUFFIX = ".json"


def _snapshot_kind(name: str) -> SnapshotKind | None:
    if not name.endswith(SNAPSHOT_SUFFIX):
        return None
    if name.startswith(BACKUP_PREFIX):
        return "backup"
    if name.startswith(PRE_RESTORE_PREFIX):
        return "pre_restore"
    return None


def _age_key(entry: tuple[Path, os.stat_result]) -> tuple[int, str]:
    # Same-tick modification times fall back to the timestamped name.
    path, st = entry
    return (st.st_mtime_ns, path.name)


class BackupManager:
    """
    Point-in-time snapshots of the live document in a dedicated directory.

    - backup_<timestamp>.json: explicit backups, capped by rotate()
    - before_restore_<timestamp>.json: safety copies taken by restore(), never rotated
    """

    def __init__(
        self,
        store: DiskDocumentStore,
        backup_dir: Path,
        *,
        max_backups: int = 10,
        clock: Clock = local_now,
    ):
        self._store = store
        self._dir = backup_dir
        self._max_backups = max_backups
        self._clock = clock

    @property
    def backup_dir(self) -> Path:
        return self._dir

    @property
    def max_backups(self) -> int:
        return self._max_backups

    def _snapshot_entries(self, kind: SnapshotKind | None = None) -> list[tuple[Path, os.stat_result]]:
        """Snapshot files with their stat results, oldest first."""
        if not self._dir.is_dir():
            return []
        try:
            children = list(self._dir.iterdir())
        except OSError as e:
            logger.error("Could not list backups in %s: %r", self._dir, e)
            raise StorageIOError(f"Could not list backups: {e}", path=self._dir) from e

        entries = []
        for p in children:
            found = _snapshot_kind(p.name)
            if found is None or (kind is not None and found != kind):
                continue
            try:
                st = p.stat()
            except FileNotFoundError:
                # removed between listing and stat
                continue
            except OSError as e:
                logger.error("Could not stat backup %s: %r", p, e)
                raise StorageIOError(f"Could not read backup {p.name}: {e}", path=p) from e
            if stat.S_ISREG(st.st_mode):
                entries.append((p, st))
        return sorted(entries, key=_age_key)

    def create_backup(self) -> Snapshot:
        with self._store.lock:
            if not self._store.exists():
                raise NotFoundError("No document to back up", path=self._store.path)

            target = unique_timestamped_path(self._dir, BACKUP_PREFIX, SNAPSHOT_SUFFIX, self._clock())
            try:
                atomic_copy(self._store.path, target)
            except OSError as e:
                logger.error("Backup of %s failed: %r", self._store.path, e)
                raise StorageIOError(f"Backup could not be created: {e}", path=target) from e

            try:
                snapshot = Snapshot.from_stat(target, target.stat(), "backup")
            except OSError as e:
                raise StorageIOError(f"Could not read backup {target.name}: {e}", path=target) from e
            logger.info("Backup created: %s (%d bytes)", snapshot.filename, snapshot.size)

            self.rotate(self._max_backups)
            return snapshot

    def rotate(self, max_retained: int) -> list[str]:
        """Delete the oldest rotation snapshots beyond max_retained. Returns deleted names."""
        with self._store.lock:
            return self._rotate(max_retained)

    def _rotate(self, max_retained: int) -> list[str]:
        existing = [path for path, _ in self._snapshot_entries("backup")]
        excess = len(existing) - max(0, max_retained)
        if excess <= 0:
            return []

        deleted: list[str] = []
        for old in existing[:excess]:
            try:
                old.unlink()
            except OSError as e:
                logger.error("Could not delete old backup %s: %r", old, e)
                raise StorageIOError(f"Could not delete old backup {old.name}: {e}", path=old) from e
            deleted.append(old.name)

        logger.info("Rotated %d old backup(s), keeping %d", len(deleted), max_retained)
        return deleted

    def list_backups(self) -> list[Snapshot]:
        """All snapshots, newest first."""
        with self._store.lock:
            entries = self._snapshot_entries()
        return [
            Snapshot.from_stat(path, st, _snapshot_kind(path.name) or "backup")
            for path, st in reversed(entries)
        ]

    def _resolve(self, filename: str) -> Path:
        # Only plain snapshot names from our own directory can be restored.
        name = (filename or "").strip()
        if not name or Path(name).name != name or _snapshot_kind(name) is None:
            raise NotFoundError(f"Backup not found: {filename!r}")
        path = self._dir / name
        if not path.is_file():
            raise NotFoundError(f"Backup not found: {name}", path=path)
        return path

    def restore(self, filename: str) -> Document:
        """
        Make the named snapshot the live document.

        The snapshot is validated before anything is touched, so a corrupt
        snapshot leaves the live document as it was. The live document is
        copied to a before_restore_ snapshot first.
        """
        with self._store.lock:
            source = self._resolve(filename)
            self._validate(source)

            if self._store.exists():
                safety = unique_timestamped_path(self._dir, PRE_RESTORE_PREFIX, SNAPSHOT_SUFFIX, self._clock())
                try:
                    atomic_copy(self._store.path, safety)
                except OSError as e:
                    logger.error("Could not preserve %s before restore: %r", self._store.path, e)
                    raise StorageIOError(f"Could not create pre-restore snapshot: {e}", path=safety) from e
                logger.info("Pre-restore snapshot created: %s", safety.name)

            try:
                atomic_copy(source, self._store.path)
            except OSError as e:
                logger.error("Restore of %s failed: %r", source.name, e)
                raise StorageIOError(f"Restore failed: {e}", path=self._store.path) from e

            restored = self._store.load()
            logger.info("Backup restored: %s (%d books)", source.name, len(restored.books))
            return restored

    def _validate(self, source: Path) -> Document:
        try:
            raw = read_json(source)
        except ValueError as e:
            raise CorruptSnapshotError(f"Backup {source.name} is not valid JSON: {e}", path=source) from e
        except OSError as e:
            raise StorageIOError(f"Could not read backup {source.name}: {e}", path=source) from e

        if not isinstance(raw, dict):
            raise CorruptSnapshotError(f"Backup {source.name} does not contain a document", path=source)
        try:
            return Document.from_disk_doc(raw)
        except ValidationError as e:
            raise CorruptSnapshotError(f"Backup {source.name} has an invalid document shape", path=source) from e
