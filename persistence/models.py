from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

DOCUMENT_VERSION = "1.0"
DEFAULT_SETTINGS: dict[str, Any] = {"theme": "default", "autoBackup": True}

Clock = Callable[[], datetime]
SnapshotKind = Literal["backup", "pre_restore"]


def local_now() -> datetime:
    return datetime.now().astimezone()


def iso_timestamp(when: datetime) -> str:
    return when.astimezone().isoformat(timespec="seconds")


def _default_settings() -> dict[str, Any]:
    return dict(DEFAULT_SETTINGS)


class Document(BaseModel):
    """
    Mirrors the on-disk books_data.json schema:
      {
        "books": [ {...}, ... ],
        "groups": [ ... ],
        "customGenres": [ "<genre>", ... ],
        "settings": { "theme": "default", "autoBackup": true },
        "lastModified": "2025-01-01T12:00:00+01:00",
        "version": "1.0"
      }

    Books and groups are passed through untouched. Unknown top-level keys found
    on disk are kept so a round trip never drops data.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    books: list[Any] = Field(default_factory=list)
    groups: list[Any] = Field(default_factory=list)
    customGenres: list[Any] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=_default_settings)
    lastModified: str | None = None
    version: str = DOCUMENT_VERSION

    @field_validator("settings")
    @classmethod
    def _fill_default_settings(cls, value: dict[str, Any]) -> dict[str, Any]:
        return {**DEFAULT_SETTINGS, **value}

    @classmethod
    def default(cls, now: datetime | None = None) -> "Document":
        return cls(lastModified=iso_timestamp(now or local_now()))

    @classmethod
    def from_disk_doc(cls, doc: Mapping[str, Any]) -> "Document":
        return cls.model_validate(doc)

    def to_disk_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class PartialDocument(BaseModel):
    """A merge payload. Absent and null fields are left alone; unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")

    books: list[Any] | None = None
    groups: list[Any] | None = None
    customGenres: list[Any] | None = None
    settings: dict[str, Any] | None = None


class Snapshot(BaseModel):
    filename: str
    size: int
    created: datetime
    kind: SnapshotKind = "backup"

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result, kind: SnapshotKind) -> "Snapshot":
        return cls(
            filename=path.name,
            size=st.st_size,
            created=datetime.fromtimestamp(st.st_mtime).astimezone(),
            kind=kind,
        )
