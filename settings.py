from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from persistence.paths import project_root

DEFAULT_MAX_BACKUPS = 10
DEFAULT_MAX_SAVE_BACKUPS = 10


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    return Path(raw).expanduser() if raw else default


@dataclass(frozen=True)
class Settings:
    # Storage
    data_dir: Path
    backup_dir: Path
    data_filename: str

    # Retention
    max_backups: int
    max_save_backups: int

    # Logging (None disables the access log file)
    log_file: Path | None
    debug_log_requests: bool

    # HTTP
    cors_allow_origins: tuple[str, ...]

    @property
    def data_file(self) -> Path:
        return self.data_dir / self.data_filename


def get_settings() -> Settings:
    root = project_root()
    data_dir = _env_path("BOOKS_DATA_DIR", root / "data")
    backup_dir = _env_path("BOOKS_BACKUP_DIR", root / "backups")
    data_filename = os.getenv("BOOKS_DATA_FILE", "books_data.json").strip() or "books_data.json"

    # Empty string switches the access log off.
    raw_log = os.getenv("BOOKS_LOG_FILE")
    if raw_log is None:
        log_file: Path | None = data_dir / "access.log"
    elif raw_log.strip():
        log_file = Path(raw_log.strip()).expanduser()
    else:
        log_file = None

    origins = tuple(
        o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
    ) or ("*",)

    return Settings(
        data_dir=data_dir,
        backup_dir=backup_dir,
        data_filename=data_filename,
        max_backups=_env_int("BOOKS_MAX_BACKUPS", DEFAULT_MAX_BACKUPS),
        max_save_backups=_env_int("BOOKS_MAX_SAVE_BACKUPS", DEFAULT_MAX_SAVE_BACKUPS),
        log_file=log_file,
        debug_log_requests=_env_bool("DEBUG_LOG_REQUESTS", False),
        cors_allow_origins=origins,
    )
