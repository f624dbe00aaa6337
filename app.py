from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv

if TYPE_CHECKING:
    from settings import Settings

logger = logging.getLogger(__name__)

ACCESS_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
ACCESS_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_file: Path | None) -> None:
    """Attach one access-log file handler to the root logger (idempotent)."""
    root = logging.getLogger()
    if root.level == logging.NOTSET or root.level > logging.INFO:
        root.setLevel(logging.INFO)
    if log_file is None:
        return

    target = str(log_file.resolve())
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(ACCESS_LOG_FORMAT, datefmt=ACCESS_LOG_DATEFMT))
    root.addHandler(handler)


def create_app(settings: Settings | None = None) -> FastAPI:
    load_dotenv("local.env")

    from endpoints.books_endpoints import router as books_router, store_error_handler
    from persistence import AsyncDiskBookRepository, BackupManager, DiskDocumentStore, StoreError
    from persistence.paths import ensure_dir
    from settings import get_settings

    settings = settings or get_settings()
    configure_logging(settings.log_file)

    ensure_dir(settings.data_dir)
    ensure_dir(settings.backup_dir)

    store = DiskDocumentStore(settings.data_file, max_save_backups=settings.max_save_backups)
    backups = BackupManager(store, settings.backup_dir, max_backups=settings.max_backups)

    app = FastAPI(title="Book tracker store")
    app.state.settings = settings
    app.state.book_repo = AsyncDiskBookRepository(store, backups)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(StoreError, store_error_handler)
    app.include_router(books_router)

    logger.info("Serving %s (backups in %s)", settings.data_file, settings.backup_dir)
    return app


app = create_app()
