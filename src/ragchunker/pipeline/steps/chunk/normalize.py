"""Shape raw segments from either segmentation strategy into NormalizedSegment records."""

from typing import Iterable, List

from ....core.models import (
    DEFAULT_CHUNK_TYPE,
    UNTITLED_SECTION,
    Document,
    NormalizedSegment,
    RawSegment,
    SegmentLike,
)


def _as_raw_segment(segment: SegmentLike) -> RawSegment:
    if isinstance(segment, RawSegment):
        return segment
    if isinstance(segment, NormalizedSegment):
        return RawSegment(**segment.model_dump())
    if isinstance(segment, dict):
        return RawSegment.model_validate(segment)
    return RawSegment(text=segment)


def normalize_segment(segment: SegmentLike, document: Document) -> NormalizedSegment:
    """Apply defaults to one segment, preferring the segment's own values."""
    if isinstance(segment, str):
        return NormalizedSegment(
            text=segment,
            title=document.title or UNTITLED_SECTION,
            chunk_type=DEFAULT_CHUNK_TYPE,
            programs=[],
            topics=[],
        )

    raw = _as_raw_segment(segment)
    return NormalizedSegment(
        text=raw.text,
        title=raw.title or document.title or UNTITLED_SECTION,
        chunk_type=raw.chunk_type or DEFAULT_CHUNK_TYPE,
        programs=list(raw.programs),
        topics=list(raw.topics),
    )


def normalize_segments(
    raw_segments: Iterable[SegmentLike], document: Document
) -> List[NormalizedSegment]:
    """Normalize segments 1:1 and in order; nothing is dropped here."""
    return [normalize_segment(segment, document) for segment in raw_segments]
