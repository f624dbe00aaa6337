from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class StepClock:
    """Deterministic clock: every call returns a time one second after the previous one."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + self.step
        return now


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def sandbox_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """
    Settings pointing at a temp project directory so tests never touch real ./data.
    """
    monkeypatch.setenv("BOOKS_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BOOKS_BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.setenv("BOOKS_LOG_FILE", "")

    from settings import get_settings

    return get_settings()


@pytest.fixture
def store(sandbox_settings, clock):
    from persistence.disk_store import DiskDocumentStore

    return DiskDocumentStore(
        sandbox_settings.data_file,
        max_save_backups=sandbox_settings.max_save_backups,
        clock=clock,
    )


@pytest.fixture
def backups(store, sandbox_settings, clock):
    from persistence.backups import BackupManager

    return BackupManager(store, sandbox_settings.backup_dir, max_backups=10, clock=clock)


@pytest.fixture
def client(sandbox_settings):
    from fastapi.testclient import TestClient

    import app as app_module

    return TestClient(app_module.create_app(sandbox_settings))
