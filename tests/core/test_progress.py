"""Tests for the progress renderer."""

from io import StringIO
from pathlib import Path

from ragchunker.core.models import ChunkStats
from ragchunker.core.progress import ProgressRenderer


class TestProgressRenderer:
    def test_disabled_renderer_is_silent(self):
        buffer = StringIO()
        renderer = ProgressRenderer(enabled=False, file=buffer)
        renderer.start(2, "recursive", "official", 512)
        renderer.advance("Tax Setup", ChunkStats(total_files=2, total_chunks=1))
        renderer.finish(ChunkStats(total_files=2), Path("out.json"))
        assert buffer.getvalue() == ""

    def test_enabled_renderer_prints_banner_and_stats(self):
        buffer = StringIO()
        renderer = ProgressRenderer(enabled=True, file=buffer, no_color=True)
        stats = ChunkStats(
            total_files=1, total_original_tokens=30, total_chunks=2, total_chunk_tokens=24
        )

        renderer.start(1, "recursive", "official", 512)
        renderer.advance("Tax Setup", stats)
        renderer.finish(stats, Path("rag_chunks_recursive.json"))

        output = buffer.getvalue()
        assert "Chunking" in output
        assert "official" in output
        assert "Chunking Complete" in output
        assert "rag_chunks_recursive.json" in output
        assert "Avg chunks / doc" in output
        assert "2.0" in output

    def test_cancelled_title(self):
        buffer = StringIO()
        renderer = ProgressRenderer(enabled=True, file=buffer, no_color=True)
        renderer.start(3, "ai", "manual_ai", 512)
        renderer.finish(ChunkStats(total_files=3), None, cancelled=True)
        assert "Cancelled" in buffer.getvalue()
