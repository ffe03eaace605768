"""Content-addressed cache of built memory chunks."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from omnimemory.types import MemoryChunk
from omnimemory.utils import json_dumps, json_loads

logger = logging.getLogger(__name__)


@runtime_checkable
class ChunkCache(Protocol):
    """Best-effort key/value store; implementations never raise."""

    def get(self, key: str) -> MemoryChunk | None: ...
    def put(self, key: str, chunk: MemoryChunk) -> None: ...


class InMemoryChunkCache:
    """Process-local cache, handy for tests and one-shot builds."""

    def __init__(self) -> None:
        self._chunks: dict[str, MemoryChunk] = {}

    def get(self, key: str) -> MemoryChunk | None:
        return self._chunks.get(key)

    def put(self, key: str, chunk: MemoryChunk) -> None:
        self._chunks[key] = chunk

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, key: object) -> bool:
        return key in self._chunks


class FileChunkCache:
    """One JSON file per chunk under ``directory``, named by cache key.

    Writes go through a temporary file and ``os.replace`` so concurrent
    writers of the same key never leave a torn file behind.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Chunk cache directory %s unavailable: %s", self.directory, exc)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> MemoryChunk | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return MemoryChunk.model_validate(json_loads(path.read_bytes()))
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("Ignoring unreadable cache entry %s: %s", path.name, exc)
            return None

    def put(self, key: str, chunk: MemoryChunk) -> None:
        try:
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(json_dumps(chunk.model_dump(mode="json")))
                os.replace(tmp, self._path(key))
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.debug("Chunk cache write for %s failed: %s", key, exc)

    def __len__(self) -> int:
        return sum(1 for _ in self.directory.glob("*.json"))
