"""JSON document ingest.

Accepts a file holding either one document object or an array of them.
"""

import json
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError

from ....core.logging import log
from ....core.models import Document


class InputError(Exception):
    """Raised when the input payload cannot yield any document."""

    pass


def parse_documents(data: Any) -> List[Document]:
    """Validate decoded JSON into documents."""
    items = data if isinstance(data, list) else [data]
    if not items:
        raise InputError("Input contains no documents")

    documents: List[Document] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise InputError(
                f"Document {position} is a {type(item).__name__}, expected an object"
            )
        try:
            documents.append(Document.model_validate(item))
        except ValidationError as e:
            raise InputError(f"Document {position} is invalid: {e}") from e

    return documents


def load_documents(path: Path) -> List[Document]:
    """
    Read documents from a JSON file.

    Raises:
        InputError: unreadable file, invalid JSON, or an empty document set
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"Cannot read {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON in {path}: {e}") from e

    documents = parse_documents(data)
    log.info("ingest.documents.loaded", path=str(path), documents=len(documents))
    return documents
