"""
Noise and fidelity filtering for normalized segments.

Boilerplate headers and tiny fragments are always dropped. When the source
text is supplied, every segment must also appear in it verbatim (modulo
whitespace); this is what keeps oracle-produced segments honest.
"""

from typing import Iterable, List, Optional

from ....core.logging import log
from ....core.models import NormalizedSegment
from .boundaries import collapse_whitespace, header_snippet, is_boilerplate_header

MIN_SEGMENT_CHARS = 10
PREVIEW_CHARS = 30


def _preview(text: str) -> str:
    return collapse_whitespace(text)[:PREVIEW_CHARS] + "..."


def is_noise(segment: NormalizedSegment) -> bool:
    """Check if a segment is boilerplate, blank, or too short to be worth indexing."""
    if is_boilerplate_header(segment.text):
        return True
    return not segment.text.strip() or len(segment.text) < MIN_SEGMENT_CHARS


def is_faithful(segment: NormalizedSegment, normalized_original: str) -> bool:
    """Check that the segment text occurs in the (whitespace-normalized) source."""
    return collapse_whitespace(segment.text) in normalized_original


def filter_segments(
    segments: Iterable[NormalizedSegment],
    original_text: Optional[str] = None,
) -> List[NormalizedSegment]:
    """
    Drop noise and, when original_text is given, hallucinated segments.

    Args:
        segments: Normalized segments in document order
        original_text: Source document text; enables the fidelity check

    Returns:
        The surviving segments, order preserved
    """
    normalized_original = (
        collapse_whitespace(original_text) if original_text is not None else None
    )
    kept: List[NormalizedSegment] = []

    for position, segment in enumerate(segments):
        if is_boilerplate_header(segment.text):
            log.debug(
                "chunk.segment.boilerplate",
                position=position,
                header=header_snippet(segment.text)[:40],
            )
            continue

        if is_noise(segment):
            log.debug("chunk.segment.too_short", position=position)
            continue

        if normalized_original is not None and not is_faithful(segment, normalized_original):
            log.warning(
                "chunk.segment.hallucinated",
                position=position,
                title=segment.title,
                preview=_preview(segment.text),
            )
            continue

        kept.append(segment)

    return kept
