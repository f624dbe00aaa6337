from __future__ import annotations

import json
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

SNAPSHOT_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
COLLISION_COUNTER_WIDTH = 6


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant {name!r}")


def read_json(path: Path) -> Any | None:
    """
    Read JSON from disk.

    Returns None for missing or empty files. Invalid JSON raises ValueError
    (json.JSONDecodeError) and unreadable files raise OSError, so callers can
    tell "absent" apart from "corrupt". The non-standard NaN and Infinity
    tokens count as invalid.
    """
    if not path.exists():
        return None
    raw = path.read_text(encoding="utf-8")
    if not raw.strip():
        return None
    return json.loads(raw, parse_constant=_reject_constant)


def dump_json(payload: Any, *, indent: int = 4) -> str:
    """Pretty JSON with non-ASCII text kept verbatim. NaN/Infinity are rejected."""
    return json.dumps(payload, indent=indent, ensure_ascii=False, allow_nan=False) + "\n"


def _tmp_path_for(path: Path) -> Path:
    return path.with_name(f".{path.name}.{os.getpid()}.tmp")


def _publish(tmp_path: Path, path: Path) -> None:
    try:
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def atomic_write_text(path: Path, content: str) -> int:
    """
    Atomically write text to disk by writing to a temp file then replacing.

    Returns the number of UTF-8 bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8")
    tmp_path = _tmp_path_for(path)
    try:
        with tmp_path.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    _publish(tmp_path, path)
    return len(data)


def atomic_write_json(path: Path, payload: Any, *, indent: int = 4) -> int:
    return atomic_write_text(path, dump_json(payload, indent=indent))


def atomic_copy(src: Path, dst: Path) -> int:
    """
    Copy src to dst so that dst only ever appears complete.

    Content only: the copy gets a fresh modification time. Returns its size.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _tmp_path_for(dst)
    try:
        shutil.copyfile(src, tmp_path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    _publish(tmp_path, dst)
    return dst.stat().st_size


def unique_timestamped_path(directory: Path, prefix: str, suffix: str, when: datetime) -> Path:
    """
    `<directory>/<prefix><timestamp><suffix>`, with `_000001`, `_000002`, ... appended to the
    timestamp when a file of that name already exists (second resolution collides easily).

    The numbered names sort after the plain one, so lexical order stays creation order
    for up to 999999 collisions within one second.
    """
    stamp = when.strftime(SNAPSHOT_TIMESTAMP_FORMAT)
    candidate = directory / f"{prefix}{stamp}{suffix}"
    n = 0
    while candidate.exists():
        n += 1
        candidate = directory / f"{prefix}{stamp}_{n:0{COLLISION_COUNTER_WIDTH}d}{suffix}"
    return candidate
