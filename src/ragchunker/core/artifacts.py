import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from .models import Chunk


def new_run_id() -> str:
    return f"{datetime.now(timezone.utc).strftime('%Y-%m-%d_%H%M%S')}_{uuid.uuid4().hex[:4]}"


def default_output_path(mode: str) -> Path:
    return Path(f"rag_chunks_{mode}.json")


def write_chunks(path: Path, chunks: Iterable[Chunk]) -> Path:
    """Write chunks as one JSON array (not streamed)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [chunk.to_record() for chunk in chunks]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path
