from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from .errors import ParseError
from .models import Document, PartialDocument

# Collections are replaced wholesale: dropping a book from the patch's list removes it.
REPLACED_FIELDS = ("books", "groups", "customGenres")


def merge_document(current: Document, patch: PartialDocument) -> Document:
    """
    Apply a partial update onto the current document and return a new one.

    - books / groups / customGenres: replaced as a whole when present
    - settings: shallow key merge, patch keys win, other keys are kept
    - anything else in the patch has already been dropped by PartialDocument
    """
    merged = current.model_copy(deep=True)

    for name in REPLACED_FIELDS:
        value = getattr(patch, name)
        if value is not None:
            setattr(merged, name, list(value))

    if patch.settings is not None:
        merged.settings = {**merged.settings, **patch.settings}

    return merged


def parse_patch(raw: bytes | str) -> PartialDocument:
    """Decode a request body into a PartialDocument, raising ParseError on bad input."""
    try:
        data: Any = json.loads(raw)
    except ValueError as e:
        raise ParseError(f"Invalid JSON payload: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Invalid JSON payload: expected an object")

    try:
        return PartialDocument.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Invalid update payload: {e.error_count()} field error(s)") from e
