"""
Token estimation, boundary heuristics and splitting strategies for chunking.
"""

import math
import re
from typing import List, Optional

# Coarse to fine; "" means split into single characters
SEPARATORS = ["\n\n", "\n", ". ", "? ", "! ", " ", ""]

PARAGRAPH_BREAK = "\n\n"

# Words that open a new logical section in the source documentation
SECTION_STARTERS = [
    "Overview",
    "Background",
    "Outcome",
    "Before you start",
    "Parameters to set",
    "Follow these steps",
    "Example",
    "Simulation",
    "Settings description",
]

BOILERPLATE_PATTERNS = [
    re.compile(
        r"^(Related topics|More information|See also|About this guide|"
        r"Intended audience|Document structure|Copyright|Legal info)",
        re.IGNORECASE,
    ),
    re.compile(
        r"^(Skip to (main )?content|Back to top|Previous topic|Next topic|Breadcrumbs)",
        re.IGNORECASE,
    ),
    re.compile(r"^Page not found", re.IGNORECASE),
    re.compile(r"^(Error \d+|HTTP (Error )?\d{3})", re.IGNORECASE),
    re.compile(r"^javascript:void", re.IGNORECASE),
]

HEADER_SNIPPET_CHARS = 100

_WHITESPACE_RUN = re.compile(r"\s+")


def count_tokens(text: Optional[str]) -> int:
    """Estimate tokens as ceil(chars / 4); every budget in the pipeline uses this."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def header_snippet(text: str) -> str:
    """Normalized leading window used for boilerplate detection."""
    return collapse_whitespace(text)[:HEADER_SNIPPET_CHARS]


def is_boilerplate_header(text: str) -> bool:
    """Check if text opens with navigation, legal or error-page boilerplate."""
    snippet = header_snippet(text)
    return any(pattern.search(snippet) for pattern in BOILERPLATE_PATTERNS)


def starts_with_section_heading(text: str) -> bool:
    """Check if text opens with a recognized section heading word."""
    stripped = text.strip()
    return any(stripped.startswith(heading) for heading in SECTION_STARTERS)


def _split_keep_separator(text: str, separator: str) -> List[str]:
    """Split text, re-attaching the separator so the parts concatenate back exactly."""
    if separator == "":
        return list(text)

    parts = text.split(separator)
    pieces = [part + separator for part in parts[:-1]]
    if parts[-1]:
        pieces.append(parts[-1])
    return pieces


def split_text_recursive(text: str, token_budget: int) -> List[str]:
    """
    Split text into spans of at most token_budget estimated tokens.

    Parts are greedily packed at the coarsest separator level; a part that is
    too large on its own is split again with the next finer separator. The
    concatenation of the returned spans is exactly the input text.

    Args:
        text: Text to split
        token_budget: Maximum estimated tokens per span (>= 1)

    Returns:
        Ordered list of text spans
    """
    if token_budget < 1:
        raise ValueError(f"token_budget must be >= 1, got {token_budget}")
    if not text:
        return []

    def _split(current_text: str, sep_index: int) -> List[str]:
        separator = SEPARATORS[sep_index]
        spans: List[str] = []
        buffer = ""

        for piece in _split_keep_separator(current_text, separator):
            candidate = buffer + piece
            if count_tokens(candidate) <= token_budget:
                buffer = candidate
                continue

            if buffer:
                spans.append(buffer)
                buffer = ""

            if count_tokens(piece) > token_budget and sep_index < len(SEPARATORS) - 1:
                spans.extend(_split(piece, sep_index + 1))
            else:
                # Over budget only when no finer separator is left
                buffer = piece

        if buffer:
            spans.append(buffer)
        return spans

    return _split(text, 0)


def split_sections(text: str) -> List[str]:
    """
    Group paragraphs into sections, opening a new section at every paragraph
    that starts with a section heading word or a boilerplate header.

    A boilerplate section holds only its own paragraph (plus trailing blank
    ones), so the noise filter never takes real text down with it.
    """
    sections: List[str] = []
    current = ""
    in_boilerplate = False

    for paragraph in _split_keep_separator(text, PARAGRAPH_BREAK):
        if not paragraph.strip():
            current += paragraph
            continue

        boilerplate = is_boilerplate_header(paragraph)
        opens_section = boilerplate or in_boilerplate or starts_with_section_heading(paragraph)
        if opens_section and current.strip():
            sections.append(current)
            current = paragraph
        else:
            current += paragraph
        in_boilerplate = boilerplate

    if current:
        sections.append(current)
    return sections


def split_document(text: str, token_budget: int) -> List[str]:
    """Local segmentation strategy: section boundaries first, then the recursive splitter."""
    spans: List[str] = []
    for section in split_sections(text):
        spans.extend(split_text_recursive(section, token_budget))
    return spans
