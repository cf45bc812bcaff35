"""Display titles that stay distinguishable across documents sharing section names."""

import re
from typing import Optional

from ....core.models import UNTITLED_SECTION

ABBREVIATION_FALLBACK = "DOC"
MAX_ABBREVIATION = 6

_NON_WORD = re.compile(r"[^a-zA-Z0-9\s]")


def document_abbreviation(title: Optional[str]) -> str:
    """Short uppercase tag for a document title, e.g. "Tax Setup" -> "TS"."""
    if not title:
        return ABBREVIATION_FALLBACK

    words = _NON_WORD.sub("", title).split()
    if not words:
        return ABBREVIATION_FALLBACK
    if len(words) == 1:
        return words[0][:MAX_ABBREVIATION].upper()
    return "".join(word[0] for word in words[:MAX_ABBREVIATION]).upper()


def unique_chunk_title(
    document_title: Optional[str],
    section_title: Optional[str],
    index: int,
    total: int,
) -> str:
    """
    Build the display title of the chunk at position index out of total.

    Sections without a title of their own (missing, the document title, or
    the untitled sentinel) are numbered; the others keep their name.
    """
    abbreviation = document_abbreviation(document_title)
    if not section_title or section_title in (document_title, UNTITLED_SECTION):
        return f"[{abbreviation}] Part {index + 1}/{total}"
    return f"[{abbreviation}] {section_title}"
