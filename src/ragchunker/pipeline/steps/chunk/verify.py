"""
Verification of written chunk files against the chunk record invariants.
"""

import json
import statistics
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List

from .boundaries import count_tokens

MAX_EXAMPLES = 10

# Size flags reported alongside the token distribution
OVERSIZED_TOKENS = 900
TINY_TOKENS = 50


def _token_stats(token_counts: List[int]) -> Dict[str, int]:
    if not token_counts:
        return {
            "min": 0,
            "median": 0,
            "p95": 0,
            "max": 0,
            "total": 0,
            "oversized": 0,
            "tiny": 0,
        }

    ordered = sorted(token_counts)
    p95_index = min(len(ordered) - 1, int(len(ordered) * 0.95))
    return {
        "min": ordered[0],
        "median": int(statistics.median(ordered)),
        "p95": ordered[p95_index],
        "max": ordered[-1],
        "total": sum(ordered),
        "oversized": sum(1 for t in ordered if t > OVERSIZED_TOKENS),
        "tiny": sum(1 for t in ordered if t < TINY_TOKENS),
    }


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def verify_chunks(chunks: List[Any]) -> Dict[str, Any]:
    """
    Check chunk records for identity, ordering and accounting problems.

    Chunks are grouped per document by (source.document_id, original_doc_title)
    in file order. Array items that are not objects are reported as
    invalid_records and skipped.

    Args:
        chunks: Chunk records as written to the output file

    Returns:
        Report dictionary with "status" of PASS or FAIL
    """
    issues: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    seen_ids: Dict[str, int] = {}
    by_doc: Dict[tuple, List[Dict[str, Any]]] = defaultdict(list)
    token_counts: List[int] = []

    for position, chunk in enumerate(chunks):
        if not isinstance(chunk, dict):
            issues["invalid_records"].append(
                {"position": position, "type": type(chunk).__name__}
            )
            continue

        chunk_id = _as_str(chunk.get("id"))
        if chunk_id in seen_ids:
            issues["duplicate_ids"].append(
                {"id": chunk_id, "positions": [seen_ids[chunk_id], position]}
            )
        else:
            seen_ids[chunk_id] = position

        text = _as_str(_as_dict(chunk.get("content")).get("text"))
        if not text.strip():
            issues["empty_text"].append({"id": chunk_id, "position": position})

        actual_tokens = count_tokens(text)
        token_counts.append(actual_tokens)
        if chunk.get("chunk_tokens") != actual_tokens:
            issues["token_mismatch"].append(
                {
                    "id": chunk_id,
                    "reported": chunk.get("chunk_tokens"),
                    "actual": actual_tokens,
                }
            )

        source = _as_dict(chunk.get("source"))
        doc_key = (_as_str(source.get("document_id")), _as_str(chunk.get("original_doc_title")))
        by_doc[doc_key].append(chunk)

    for (document_id, doc_title), doc_chunks in by_doc.items():
        indexes = [c.get("chunk_index") for c in doc_chunks]
        if indexes != list(range(len(doc_chunks))):
            issues["index_gaps"].append(
                {"document_id": document_id, "title": doc_title, "indexes": indexes[:20]}
            )

        titles = [_as_str(c.get("title")) for c in doc_chunks]
        duplicates = sorted({t for t in titles if titles.count(t) > 1})
        if duplicates:
            issues["duplicate_titles"].append(
                {"document_id": document_id, "titles": duplicates[:MAX_EXAMPLES]}
            )

        wrong_counts = [
            c["chunk_count"]
            for c in doc_chunks
            if "chunk_count" in c and c["chunk_count"] != len(doc_chunks)
        ]
        if wrong_counts:
            issues["count_mismatch"].append(
                {
                    "document_id": document_id,
                    "reported": wrong_counts[:MAX_EXAMPLES],
                    "actual": len(doc_chunks),
                }
            )

    return {
        "chunkCount": len(chunks),
        "docCount": len(by_doc),
        "tokenStats": _token_stats(token_counts),
        "issues": {
            name: {"count": len(found), "examples": found[:MAX_EXAMPLES]}
            for name, found in issues.items()
        },
        "status": "FAIL" if issues else "PASS",
    }


def verify_chunks_file(path: Path) -> Dict[str, Any]:
    """Load a chunk JSON array from disk and verify it."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array of chunks")
    return verify_chunks(data)
