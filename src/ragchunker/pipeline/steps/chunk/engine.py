"""
Chunk engine: fragment repair, chunk assembly and the per-document pipeline.
"""

from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Sequence

from ....core.config import SETTINGS, Settings
from ....core.logging import log
from ....core.models import (
    UNTITLED_DOCUMENT,
    Chunk,
    ChunkContent,
    ChunkProfile,
    ChunkSource,
    ChunkTags,
    Document,
    NormalizedSegment,
    SegmentLike,
)
from .boundaries import count_tokens, starts_with_section_heading
from .filters import filter_segments
from .normalize import normalize_segments
from .titles import unique_chunk_title

MERGE_SEPARATOR = "\n\n"

# Bottom-end controls for the glue pass
BUFFER_MIN_TOKENS = 120
HEADING_MAX_LINES = 2
HEADING_MAX_TOKENS = 50
NEXT_MIN_TOKENS = 50


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def _is_bare_heading(text: str) -> bool:
    return len(text.split("\n")) <= HEADING_MAX_LINES and count_tokens(text) < HEADING_MAX_TOKENS


def _is_table_fragment(text: str) -> bool:
    return "|" in text and "\n\n" not in text


def should_merge(buffer: NormalizedSegment, next_segment: NormalizedSegment) -> bool:
    """Decide whether next_segment belongs to the chunk being built in buffer."""
    if starts_with_section_heading(next_segment.text):
        return False

    return (
        count_tokens(buffer.text) < BUFFER_MIN_TOKENS
        or _is_bare_heading(buffer.text)
        or _is_table_fragment(next_segment.text)
        or count_tokens(next_segment.text) < NEXT_MIN_TOKENS
    )


def _merge_segments(first: NormalizedSegment, second: NormalizedSegment) -> NormalizedSegment:
    """Append second to first; title and chunk_type of first win, tags are unioned."""
    return first.model_copy(
        update={
            "text": first.text + MERGE_SEPARATOR + second.text,
            "programs": _unique([*first.programs, *second.programs]),
            "topics": _unique([*first.topics, *second.topics]),
        }
    )


def merge_fragments(segments: Sequence[NormalizedSegment]) -> List[NormalizedSegment]:
    """
    Glue orphaned headings, table rows and tiny fragments onto their neighbours.

    Single left-to-right pass. A segment opening with a recognized section
    heading always starts a new chunk.

    Args:
        segments: Filtered segments in document order

    Returns:
        Merged segments; joining their texts with MERGE_SEPARATOR gives the
        input texts joined the same way
    """
    if not segments:
        return []

    merged: List[NormalizedSegment] = []
    buffer = segments[0]

    for next_segment in segments[1:]:
        if should_merge(buffer, next_segment):
            buffer = _merge_segments(buffer, next_segment)
        else:
            merged.append(buffer)
            buffer = next_segment

    merged.append(buffer)
    return merged


def assemble_chunks(
    segments: Sequence[NormalizedSegment],
    document: Document,
    profile: ChunkProfile,
    settings: Optional[Settings] = None,
) -> List[Chunk]:
    """Build the final chunk records for one document, 1:1 with segments."""
    settings = settings or SETTINGS
    doc_title = document.title or UNTITLED_DOCUMENT
    total = len(segments)

    chunks: List[Chunk] = []
    for index, segment in enumerate(segments):
        chunks.append(
            Chunk(
                id=str(uuid.uuid4()),
                bucket=profile.bucket,
                chunk_type=segment.chunk_type,
                title=unique_chunk_title(doc_title, segment.title, index, total),
                original_doc_title=doc_title,
                source=ChunkSource(
                    document_id=document.file or "unknown",
                    section=segment.title,
                    version=settings.CHUNK_VERSION_LABEL,
                    url=document.url,
                ),
                content=ChunkContent(text=segment.text),
                tags=ChunkTags(
                    module=list(settings.CHUNK_MODULES),
                    programs=list(segment.programs),
                    topics=list(segment.topics),
                    client_scope="global",
                    confidence=profile.confidence,
                ),
                chunk_index=index,
                chunk_tokens=count_tokens(segment.text),
                chunk_count=total if profile.include_chunk_count else None,
            )
        )
    return chunks


def chunk_document(
    document: Document,
    raw_segments: Sequence[SegmentLike],
    profile: ChunkProfile,
    settings: Optional[Settings] = None,
) -> List[Chunk]:
    """
    Turn one document's raw segments into final chunks.

    Runs normalize -> noise/fidelity filter -> merge -> assemble. The same
    stages apply whichever strategy produced raw_segments.

    Args:
        document: Source document
        raw_segments: Output of the local splitter or the segmentation oracle
        profile: Provenance labels and validation toggles
        settings: Settings for fixed chunk labels (defaults to SETTINGS)

    Returns:
        Chunks in document order with dense chunk_index
    """
    if not raw_segments:
        return []

    normalized = normalize_segments(raw_segments, document)
    original_text = document.text if profile.fidelity_check else None
    cleaned = filter_segments(normalized, original_text)
    merged = merge_fragments(cleaned)
    chunks = assemble_chunks(merged, document, profile, settings)

    log.debug(
        "chunk.document.assembled",
        document_id=document.file or "unknown",
        raw=len(raw_segments),
        kept=len(cleaned),
        chunks=len(chunks),
    )
    return chunks
