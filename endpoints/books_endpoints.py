# books_endpoints.py
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from exporting import export_document
from persistence.errors import ParseError
from persistence.merge import parse_patch
from persistence.models import Snapshot, iso_timestamp, local_now
from persistence.repositories import AsyncBookRepository

router = APIRouter(prefix="/api", tags=["books"])
logger = logging.getLogger(__name__)

CREATED_FORMATTED = "%d.%m.%Y %H:%M:%S"


def get_repository(request: Request) -> AsyncBookRepository:
    return request.app.state.book_repo


def _debug_requests(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.debug_log_requests)


def _reply(status: str = "success", *, status_code: int = 200, **fields: Any) -> JSONResponse:
    payload: dict[str, Any] = {"status": status, **fields, "timestamp": iso_timestamp(local_now())}
    return JSONResponse(payload, status_code=status_code)


def _snapshot_json(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "filename": snapshot.filename,
        "size": snapshot.size,
        "kind": snapshot.kind,
        "created": iso_timestamp(snapshot.created),
        "created_formatted": snapshot.created.strftime(CREATED_FORMATTED),
    }


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Every core failure becomes a 500 carrying the machine-readable error kind.
    """
    kind = getattr(exc, "kind", "StoreError")
    message = getattr(exc, "message", str(exc))
    logger.warning("%s %s failed: %s: %s", request.method, request.url.path, kind, message)
    return _reply("error", status_code=500, error=kind, message=message)


@router.get("/test")
async def connection_test(repo: AsyncBookRepository = Depends(get_repository)):
    info = await repo.health()
    logger.info("Connection test ok")
    return _reply(message="Server is reachable", **info)


@router.get("/load")
async def load_data(request: Request, repo: AsyncBookRepository = Depends(get_repository)):
    doc = await repo.load()
    if _debug_requests(request):
        logger.info("Data loaded (%d books)", len(doc.books))
    return _reply(data=doc.to_disk_doc())


@router.post("/save")
async def save_data(request: Request, repo: AsyncBookRepository = Depends(get_repository)):
    patch = parse_patch(await request.body())
    doc, written = await repo.apply_patch(patch)
    if _debug_requests(request):
        logger.info("Data saved via API (%d books, %d bytes)", len(doc.books), written)
    return _reply(message="Data saved", books_count=len(doc.books), bytes=written)


@router.post("/backup")
async def create_backup(repo: AsyncBookRepository = Depends(get_repository)):
    snapshot = await repo.create_backup()
    return _reply(
        message="Backup created",
        filename=snapshot.filename,
        filesize=snapshot.size,
    )


@router.get("/backups")
async def list_backups(repo: AsyncBookRepository = Depends(get_repository)):
    backups = [_snapshot_json(s) for s in await repo.list_backups()]
    return _reply(backups=backups, count=len(backups))


@router.post("/restore")
async def restore_backup(request: Request, repo: AsyncBookRepository = Depends(get_repository)):
    try:
        body = json.loads(await request.body())
    except ValueError as e:
        raise ParseError(f"Invalid JSON payload: {e}") from e

    filename = body.get("filename") if isinstance(body, dict) else None
    if not isinstance(filename, str) or not filename.strip():
        raise ParseError("Backup filename not given")

    doc = await repo.restore(filename)
    return _reply(message="Backup restored", filename=filename, books_count=len(doc.books))


@router.get("/export")
async def export_data(
    fmt: str = Query("json", alias="format"),
    repo: AsyncBookRepository = Depends(get_repository),
):
    doc = await repo.load()
    body, media_type, download_name = export_document(doc, fmt)
    logger.info("Data exported as %s", fmt)
    return Response(
        content=body.encode("utf-8"),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{download_name}"'},
    )
