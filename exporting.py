from __future__ import annotations

import csv
import io
from datetime import date
from typing import Any

from json_store import dump_json
from persistence.errors import ParseError
from persistence.models import Document

CSV_HEADER = ["Title", "Author", "Genre", "Progress", "Rating", "Date finished", "Comments"]
UTF8_BOM = "\ufeff"

MEDIA_TYPES: dict[str, str] = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _book_row(book: Any) -> list[str]:
    if not isinstance(book, dict):
        book = {}
    progress = book.get("progress")
    return [
        _text(book.get("title")),
        _text(book.get("author")),
        _text(book.get("genre")),
        f"{_text(0 if progress is None else progress)}%",
        _text(book.get("rating")),
        _text(book.get("dateFinished")),
        _text(book.get("comments")),
    ]


def render_csv(doc: Document) -> str:
    """One row per book, every field quoted, prefixed with a BOM so spreadsheets pick UTF-8."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for book in doc.books:
        writer.writerow(_book_row(book))
    return UTF8_BOM + buf.getvalue()


def render_json(doc: Document) -> str:
    return dump_json(doc.to_disk_doc())


def export_document(doc: Document, fmt: str, *, today: date | None = None) -> tuple[str, str, str]:
    """Returns (body, media type, download filename). Unknown formats raise ParseError."""
    fmt = (fmt or "json").strip().lower()
    if fmt == "json":
        body = render_json(doc)
    elif fmt == "csv":
        body = render_csv(doc)
    else:
        raise ParseError(f"Unknown export format: {fmt!r}")

    stamp = (today or date.today()).isoformat()
    return body, MEDIA_TYPES[fmt], f"books_{stamp}.{fmt}"
