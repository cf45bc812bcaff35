"""Sequential batch driver: documents in, chunks out.

Documents are processed one at a time. The oracle call is the only await
point; cancellation is checked once per document boundary, so an in-flight
document always completes.
"""

from typing import (
    AsyncIterator,
    Callable,
    List,
    NamedTuple,
    Optional,
    Protocol,
    Sequence,
    TYPE_CHECKING,
)

import anyio

from ..core.artifacts import new_run_id
from ..core.logging import log
from ..core.models import Chunk, ChunkProfile, ChunkStats, Document, SegmentLike
from .steps.chunk.boundaries import count_tokens, split_document
from .steps.chunk.engine import chunk_document

if TYPE_CHECKING:
    from ..core.config import Settings

MODES = ("recursive", "ai")


class Segmenter(Protocol):
    async def segment(self, text: str, title: str = "") -> Sequence[SegmentLike]: ...


class DocumentResult(NamedTuple):
    """Chunks produced for one document."""

    position: int
    document: Document
    chunks: List[Chunk]
    original_tokens: int
    used_oracle: bool = False


class ChunkRunResult(NamedTuple):
    chunks: List[Chunk]
    stats: ChunkStats
    cancelled: bool = False


async def segment_document(
    document: Document,
    mode: str,
    chunk_size: int,
    segmenter: Optional[Segmenter] = None,
) -> Sequence[SegmentLike]:
    """Run exactly one segmentation strategy for the document."""
    if mode != "ai":
        return split_document(document.text, chunk_size)

    assert segmenter is not None
    try:
        return await segmenter.segment(document.text, document.title)
    except Exception as e:
        # A broken segmenter costs this document its semantic split, not the batch
        log.error(
            "pipeline.document.segment_failed",
            document_id=document.file or "unknown",
            error=str(e),
        )
        return [document.text]


async def iter_document_chunks(
    documents: Sequence[Document],
    profile: ChunkProfile,
    mode: str = "recursive",
    chunk_size: int = 512,
    segmenter: Optional[Segmenter] = None,
    cancel: Optional[anyio.Event] = None,
    settings: Optional["Settings"] = None,
) -> AsyncIterator[DocumentResult]:
    """
    Yield one DocumentResult per document, in input order.

    Args:
        documents: Documents to chunk
        profile: Provenance labels and validation toggles
        mode: "recursive" (local splitter) or "ai" (segmentation oracle)
        chunk_size: Token budget for the local splitter
        segmenter: Oracle client, required when mode is "ai"
        cancel: Event checked before each document starts
        settings: Settings for fixed chunk labels
    """
    if mode not in MODES:
        raise ValueError(f"Unknown chunking mode: {mode} (expected one of {', '.join(MODES)})")
    if mode == "ai" and segmenter is None:
        raise ValueError("mode 'ai' requires a segmenter")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    run_id = new_run_id()
    log.info(
        "pipeline.run.start",
        run_id=run_id,
        documents=len(documents),
        mode=mode,
        profile=profile.name,
    )

    for position, document in enumerate(documents):
        if cancel is not None and cancel.is_set():
            log.info("pipeline.run.cancelled", run_id=run_id, processed=position)
            return

        raw_segments = await segment_document(document, mode, chunk_size, segmenter)
        chunks = chunk_document(document, raw_segments, profile, settings)

        log.info(
            "pipeline.document.done",
            run_id=run_id,
            position=position,
            document_id=document.file or "unknown",
            segments=len(raw_segments),
            chunks=len(chunks),
        )
        yield DocumentResult(
            position=position,
            document=document,
            chunks=chunks,
            original_tokens=count_tokens(document.text),
            used_oracle=mode == "ai",
        )

    log.info("pipeline.run.end", run_id=run_id)


async def run_chunking(
    documents: Sequence[Document],
    profile: ChunkProfile,
    mode: str = "recursive",
    chunk_size: int = 512,
    segmenter: Optional[Segmenter] = None,
    cancel: Optional[anyio.Event] = None,
    settings: Optional["Settings"] = None,
    on_document: Optional[Callable[[DocumentResult, ChunkStats], None]] = None,
) -> ChunkRunResult:
    """Drain iter_document_chunks, collecting chunks and run statistics."""
    chunks: List[Chunk] = []
    stats = ChunkStats(total_files=len(documents))
    processed = 0

    async for result in iter_document_chunks(
        documents,
        profile,
        mode=mode,
        chunk_size=chunk_size,
        segmenter=segmenter,
        cancel=cancel,
        settings=settings,
    ):
        processed += 1
        chunks.extend(result.chunks)
        stats.total_original_tokens += result.original_tokens
        stats.total_chunks += len(result.chunks)
        stats.total_chunk_tokens += sum(c.chunk_tokens for c in result.chunks)
        if on_document is not None:
            on_document(result, stats)

    return ChunkRunResult(
        chunks=chunks,
        stats=stats,
        cancelled=processed < len(documents),
    )
