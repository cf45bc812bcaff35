"""Progress rendering for chunking runs, kept on stderr apart from CLI output."""

import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from .models import ChunkStats


def is_tty() -> bool:
    """Check if stderr is a TTY (interactive terminal)."""
    return sys.stderr.isatty()


def is_ci() -> bool:
    """Check if running in CI environment."""
    ci_vars = ["CI", "CONTINUOUS_INTEGRATION", "GITHUB_ACTIONS", "JENKINS_URL"]
    return any(os.environ.get(var) for var in ci_vars)


def should_use_pretty() -> bool:
    """Determine if pretty output should be used based on TTY and CI detection."""
    return is_tty() and not is_ci()


class ProgressRenderer:
    """Per-document progress bar plus start and finish banners."""

    def __init__(
        self,
        enabled: bool | None = None,
        file: TextIO | None = None,
        no_color: bool = False,
    ):
        """
        Initialize progress renderer.

        Args:
            enabled: Whether to show progress. Auto-detected if None.
            file: Output file, defaults to stderr.
            no_color: Disable color output for Rich console.
        """
        self.enabled = enabled if enabled is not None else should_use_pretty()
        self.file = file or sys.stderr
        self.console = Console(
            file=self.file,
            color_system=None if no_color else "auto",
            force_terminal=self.enabled,
        )
        self.start_time: float | None = None
        self.progress: Progress | None = None
        self.task: TaskID | None = None

    def start(self, documents: int, mode: str, profile: str, chunk_size: int) -> None:
        """Print the run banner and open the progress bar."""
        self.start_time = time.time()
        if not self.enabled:
            return

        lines = [
            f"[bold]Documents:[/bold] {documents}",
            f"[bold]Mode:[/bold] {mode}",
            f"[bold]Profile:[/bold] {profile}",
        ]
        if mode == "recursive":
            lines.append(f"[bold]Max tokens:[/bold] {chunk_size}")
        lines.append(f"[bold]Started:[/bold] {datetime.now().strftime('%H:%M:%S')}")

        self.console.print(
            Panel("\n".join(lines), title="[bold green]Chunking[/bold green]", border_style="blue")
        )

        self.progress = Progress(
            TextColumn("[bold blue]Documents"),
            BarColumn(bar_width=40),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.progress.start()
        self.task = self.progress.add_task("", total=documents)

    def advance(self, title: str, stats: ChunkStats) -> None:
        if self.progress is None or self.task is None:
            return
        self.progress.update(
            self.task,
            advance=1,
            description=f"{stats.total_chunks} chunks • {title[:40]}",
        )

    def finish(self, stats: ChunkStats, output: Path | None, cancelled: bool = False) -> None:
        """Close the progress bar and print the stats table."""
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
        if not self.enabled:
            return

        elapsed = time.time() - self.start_time if self.start_time else 0.0
        table = Table(
            title="Cancelled" if cancelled else "Chunking Complete",
            show_header=True,
            header_style="bold blue",
        )
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="green")
        table.add_row("Documents", str(stats.total_files))
        table.add_row("Original tokens", str(stats.total_original_tokens))
        table.add_row("Chunks", str(stats.total_chunks))
        avg = stats.total_chunks / stats.total_files if stats.total_files else 0.0
        table.add_row("Avg chunks / doc", f"{avg:.1f}")
        table.add_row("Chunk tokens", str(stats.total_chunk_tokens))
        table.add_row("Elapsed", f"{elapsed:.1f}s")
        if output is not None:
            table.add_row("Output", str(output))

        self.console.print()
        self.console.print(table)
