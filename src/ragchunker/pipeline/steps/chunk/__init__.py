"""
Chunking step for the ragchunker pipeline.

This package provides document chunking functionality with:
- Length-based token estimation shared by every budget decision
- Recursive, budget-aware splitting with exact text coverage
- Segment normalization for plain spans and oracle records
- Boilerplate and hallucination filtering
- Glue pass for orphaned headings, table rows and tiny fragments
- Unique per-document chunk titles and final chunk assembly
- Verification of written chunk files
"""

from .boundaries import (
    count_tokens,
    collapse_whitespace,
    split_document,
    split_sections,
    split_text_recursive,
)
from .engine import assemble_chunks, chunk_document, merge_fragments
from .filters import filter_segments, is_noise
from .normalize import normalize_segments
from .titles import document_abbreviation, unique_chunk_title
from .verify import verify_chunks, verify_chunks_file

__all__ = [
    "assemble_chunks",
    "chunk_document",
    "collapse_whitespace",
    "count_tokens",
    "document_abbreviation",
    "filter_segments",
    "is_noise",
    "merge_fragments",
    "normalize_segments",
    "split_document",
    "split_sections",
    "split_text_recursive",
    "unique_chunk_title",
    "verify_chunks",
    "verify_chunks_file",
]
