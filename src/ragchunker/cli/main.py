import json
import signal
import threading
from pathlib import Path

import anyio
import typer

from ..core.config import SETTINGS, Settings
from ..core.logging import log, setup_logging

app = typer.Typer(add_completion=False, help="RAG document chunker CLI")

SECRET_FIELDS = {"OPENROUTER_API_KEY"}


@app.callback()
def _init() -> None:
    setup_logging(SETTINGS.LOG_FORMAT, SETTINGS.LOG_LEVEL)  # type: ignore[arg-type]


@app.command()
def version() -> None:
    from .. import __version__

    typer.echo(__version__)


@app.command()
def config(
    config_file: str | None = typer.Option(
        None, "--config", help="Config file (.ragchunker.yaml auto-discovered)"
    ),
    mask_secrets: bool = typer.Option(True, help="Mask secrets in output"),
) -> None:
    """Print effective settings as JSON."""
    settings = Settings.load_config(config_file)
    data = settings.model_dump()
    if mask_secrets:
        for key in SECRET_FIELDS:
            if data.get(key):
                data[key] = "****"
    typer.echo(json.dumps(data, indent=2))


async def _watch_interrupt(cancel: anyio.Event) -> None:
    """Turn the first Ctrl-C into a cooperative cancel at the next document boundary."""
    with anyio.open_signal_receiver(signal.SIGINT) as signals:
        async for _ in signals:
            log.warning("pipeline.run.interrupt", message="finishing current document")
            cancel.set()
            return


async def _chunk_async(documents, profile, mode, chunk_size, settings, api_key, model, renderer):
    from ..adapters.openrouter import OpenRouterSegmenter
    from ..pipeline.runner import run_chunking

    cancel = anyio.Event()

    def on_document(result, stats) -> None:
        renderer.advance(result.document.title or result.document.file, stats)

    async with anyio.create_task_group() as tg:
        if threading.current_thread() is threading.main_thread():
            tg.start_soon(_watch_interrupt, cancel)

        if mode == "ai":
            async with OpenRouterSegmenter(
                api_key=api_key,
                model=model or settings.OPENROUTER_MODEL,
                url=settings.OPENROUTER_URL,
                timeout=settings.OPENROUTER_TIMEOUT,
                throttle_seconds=settings.OPENROUTER_THROTTLE_SECONDS,
                referer=settings.OPENROUTER_REFERER,
                app_title=settings.OPENROUTER_TITLE,
            ) as segmenter:
                result = await run_chunking(
                    documents,
                    profile,
                    mode=mode,
                    chunk_size=chunk_size,
                    segmenter=segmenter,
                    cancel=cancel,
                    settings=settings,
                    on_document=on_document,
                )
        else:
            result = await run_chunking(
                documents,
                profile,
                mode=mode,
                chunk_size=chunk_size,
                cancel=cancel,
                settings=settings,
                on_document=on_document,
            )

        tg.cancel_scope.cancel()

    return result


@app.command()
def chunk(
    input_file: Path = typer.Argument(..., help="JSON file with one document or an array of documents"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output JSON path (default: rag_chunks_<mode>.json)"
    ),
    mode: str | None = typer.Option(None, "--mode", help="Segmentation strategy: recursive|ai"),
    chunk_size: int | None = typer.Option(
        None, "--chunk-size", min=1, help="Max tokens per span for the recursive strategy"
    ),
    profile_name: str | None = typer.Option(
        None, "--profile", help="Chunk profile: official|manual_ai"
    ),
    fidelity_check: bool | None = typer.Option(
        None,
        "--fidelity-check/--no-fidelity-check",
        help="Reject segments not found verbatim in the source (profile default)",
    ),
    chunk_count: bool | None = typer.Option(
        None,
        "--chunk-count/--no-chunk-count",
        help="Include chunk_count on every chunk (profile default)",
    ),
    api_key: str | None = typer.Option(None, "--api-key", help="OpenRouter API key for --mode ai"),
    model: str | None = typer.Option(None, "--model", help="OpenRouter model identifier"),
    config_file: str | None = typer.Option(
        None, "--config", help="Config file (.ragchunker.yaml auto-discovered)"
    ),
    progress: bool | None = typer.Option(
        None, "--progress/--no-progress", help="Show progress output (auto-detected by default)"
    ),
    log_format: str | None = typer.Option(None, "--log-format", help="Logging format: json|plain|auto"),
    log_level: str | None = typer.Option(None, "--log-level", help="Minimum log level (default: info)"),
) -> None:
    """
    Chunk documents into validated, uniquely titled retrieval chunks.

    Each document goes through one segmentation strategy, then noise and
    fidelity filtering, fragment merging and chunk assembly:
    • recursive: deterministic local splitter with a token budget
    • ai: semantic segmentation oracle (OpenRouter), falling back to the
      whole document on any oracle failure

    Example:
        ragchunker chunk docs.json                           # Local splitter, 512 tokens
        ragchunker chunk docs.json --mode ai --profile manual_ai
    """
    from ..core.artifacts import default_output_path, write_chunks
    from ..core.models import get_profile
    from ..core.progress import ProgressRenderer
    from ..pipeline.runner import MODES
    from ..pipeline.steps.ingest import InputError, load_documents

    settings = Settings.load_config(config_file)
    setup_logging(
        log_format or settings.LOG_FORMAT,  # type: ignore[arg-type]
        log_level or settings.LOG_LEVEL,
    )

    mode = mode or settings.CHUNK_MODE
    if mode not in MODES:
        typer.echo(f"❌ Unknown mode: {mode} (expected one of {', '.join(MODES)})", err=True)
        raise typer.Exit(1)

    try:
        profile = get_profile(
            profile_name or settings.CHUNK_PROFILE,
            fidelity_check=fidelity_check,
            include_chunk_count=chunk_count,
        )
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e

    api_key = api_key or settings.OPENROUTER_API_KEY
    if mode == "ai" and not api_key:
        typer.echo("❌ --mode ai needs an OpenRouter API key (--api-key or OPENROUTER_API_KEY)", err=True)
        raise typer.Exit(1)

    try:
        documents = load_documents(input_file)
    except InputError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e

    size = chunk_size or settings.CHUNK_SIZE
    if progress is None and not settings.PROGRESS:
        progress = False
    renderer = ProgressRenderer(enabled=progress, no_color=settings.NO_COLOR)
    renderer.start(len(documents), mode, profile.name, size)

    result = anyio.run(
        _chunk_async, documents, profile, mode, size, settings, api_key, model, renderer
    )

    out_path = write_chunks(output or default_output_path(mode), result.chunks)
    renderer.finish(result.stats, out_path, cancelled=result.cancelled)

    status = "⏹️  Cancelled" if result.cancelled else "✅ Chunking complete"
    typer.echo(f"{status}: {result.stats.total_chunks} chunks from {result.stats.total_files} documents", err=True)
    typer.echo(f"📁 Chunks written to: {out_path}", err=True)


@app.command()
def verify(
    chunks_file: Path = typer.Argument(..., help="Chunk JSON file written by 'ragchunker chunk'"),
) -> None:
    """Check a chunk file for duplicate ids/titles, index gaps and token mismatches."""
    from ..pipeline.steps.chunk.verify import verify_chunks_file

    try:
        report = verify_chunks_file(chunks_file)
    except (OSError, ValueError) as e:
        typer.echo(f"❌ Cannot verify {chunks_file}: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(json.dumps(report, indent=2))
    if report["status"] != "PASS":
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
