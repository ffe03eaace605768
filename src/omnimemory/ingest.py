"""Loading interactions and persisting built chunks as JSON / JSONL."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from omnimemory.types import Interaction, MemoryChunk
from omnimemory.utils import json_dumps, json_loads


def _load_rows(path: Path) -> list[dict[str, Any]]:
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        data = json_loads(text)
        return [row for row in data if isinstance(row, dict)]
    rows: list[dict[str, Any]] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        obj = json_loads(line)
        if isinstance(obj, dict):
            rows.append(obj)
    return rows


def load_interactions(path: Path) -> list[Interaction]:
    """Read interactions from a JSON array or a JSONL file.

    Keys follow the serialized form: ``id``, ``source_kind``, ``thread_id``,
    ``from``, ``to``, ``subject_or_title``, ``body``, ``timestamp`` (ISO 8601).
    """
    return [Interaction.model_validate(row) for row in _load_rows(path)]


def load_chunks(path: Path) -> list[MemoryChunk]:
    return [MemoryChunk.model_validate(row) for row in _load_rows(path)]


def chunks_to_json(chunks: Sequence[MemoryChunk]) -> str:
    return json_dumps([c.model_dump(mode="json") for c in chunks], indent=True)


def save_chunks(chunks: Sequence[MemoryChunk], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(chunks_to_json(chunks), encoding="utf-8")
