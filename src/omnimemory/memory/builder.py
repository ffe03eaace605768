"""Hierarchical memory builder: interactions -> leveled, embedded summary chunks."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Sequence, TypeVar

from omnimemory.config import BuilderConfig
from omnimemory.llm.base import MemoryLLM, guarded
from omnimemory.memory.rendering import render_interactions, sort_interactions
from omnimemory.storage.chunk_cache import ChunkCache
from omnimemory.types import Interaction, MemoryChunk, SourceKind, new_id
from omnimemory.utils import content_hash

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERACTIONS_INSTRUCTION = (
    "Summarize the following interactions for semantic memory, "
    "keeping decisions, concerns, and unresolved items."
)
AGGREGATE_INSTRUCTION = (
    "Summarize combined semantic memories, keeping decisions, concerns, and unresolved items."
)


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Contiguous groups of at most ``size`` items."""
    if size <= 0:
        return [list(items)] if items else []
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def level_zero_cache_key(interactions: Sequence[Interaction]) -> str:
    """Position-sensitive key over (id, timestamp) pairs."""
    descriptor = "|".join(f"{i.id}:{i.timestamp.timestamp()}" for i in interactions)
    return f"L0-{content_hash(descriptor)}"


def aggregate_cache_key(children: Sequence[MemoryChunk], level: int) -> str:
    """Order-independent key over the union of covered interaction ids."""
    descriptor = "|".join(sorted(sid for c in children for sid in c.source_interaction_ids))
    return f"L{level}-{content_hash(descriptor)}"


def _unique(values: list[T]) -> list[T]:
    return list(dict.fromkeys(values))


def _latest(stamps: list[datetime | None]) -> datetime | None:
    present = [t for t in stamps if t is not None]
    return max(present) if present else None


class HierarchicalMemoryBuilder:
    """Folds interactions into a tree of summarized, embedded chunks.

    Level 0 summarizes contiguous runs of interactions; level n summarizes
    groups of level n-1 chunks. Every level is returned, so retrieval can
    search coarse and fine summaries at once.

    At most ``max_concurrent_requests`` groups talk to the LLM at a time.
    Each group is looked up in ``chunk_cache`` by a hash of its provenance
    before any LLM call, so rebuilding the same interactions is free.
    """

    def __init__(
        self,
        llm: MemoryLLM,
        max_concurrent_requests: int | None = None,
        chunk_cache: ChunkCache | None = None,
        config: BuilderConfig | None = None,
    ) -> None:
        self.llm = llm
        self.config = config or BuilderConfig()
        limit = max_concurrent_requests if max_concurrent_requests is not None else self.config.max_concurrent_requests
        self.max_concurrent_requests = max(1, limit)
        self.chunk_cache = chunk_cache

    async def build_memory(
        self,
        interactions: Sequence[Interaction],
        chunk_size: int | None = None,
        group_size: int | None = None,
    ) -> list[MemoryChunk]:
        if not interactions:
            return []
        chunk_size = max(1, chunk_size if chunk_size is not None else self.config.chunk_size)
        group_size = max(2, group_size if group_size is not None else self.config.group_size)
        # One semaphore per build keeps it bound to the running event loop.
        limiter = asyncio.Semaphore(self.max_concurrent_requests)

        ordered = sort_interactions(interactions)
        current = await self._build_level_zero(partition(ordered, chunk_size), limiter)
        all_chunks = list(current)
        logger.info("Level 0: %d chunks from %d interactions", len(current), len(ordered))

        level = 1
        while len(current) > 1:
            next_level = await self._build_aggregates(partition(current, group_size), level, limiter)
            all_chunks.extend(next_level)
            logger.info("Level %d: %d chunks from %d children", level, len(next_level), len(current))
            if not next_level or len(next_level) >= len(current):
                break
            current = next_level
            level += 1

        return all_chunks

    # --- Levels ---

    async def _build_level_zero(
        self,
        groups: list[list[Interaction]],
        limiter: asyncio.Semaphore,
    ) -> list[MemoryChunk]:
        # gather() preserves submission order regardless of completion order.
        return list(await asyncio.gather(*(self._summarize_interactions(g, limiter) for g in groups)))

    async def _build_aggregates(
        self,
        groups: list[list[MemoryChunk]],
        level: int,
        limiter: asyncio.Semaphore,
    ) -> list[MemoryChunk]:
        return list(await asyncio.gather(*(self._summarize_children(g, level, limiter) for g in groups if g)))

    # --- Groups ---

    async def _summarize_interactions(
        self,
        interactions: list[Interaction],
        limiter: asyncio.Semaphore,
    ) -> MemoryChunk:
        key = level_zero_cache_key(interactions)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        async with limiter:
            summary = await guarded(
                self.llm.summarize(render_interactions(interactions), INTERACTIONS_INSTRUCTION),
                "summarize",
            )
            embedding = await guarded(self.llm.embed(summary), "embed")

        chunk = MemoryChunk(
            id=new_id(),
            level=0,
            summary_text=summary,
            embedding=embedding,
            source_interaction_ids=[i.id for i in interactions],
            participants=sorted(_unique([a.lower() for i in interactions for a in i.addresses])),
            source_kinds=_unique([i.source_kind for i in interactions]),
            latest_timestamp=_latest([i.timestamp for i in interactions]),
        )
        self._cache_put(key, chunk)
        return chunk

    async def _summarize_children(
        self,
        children: list[MemoryChunk],
        level: int,
        limiter: asyncio.Semaphore,
    ) -> MemoryChunk:
        key = aggregate_cache_key(children, level)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        combined = "\n\n---\n\n".join(
            f"Chunk {c.id} (level {c.level}):\n{c.summary_text}" for c in children
        )
        async with limiter:
            summary = await guarded(self.llm.summarize(combined, AGGREGATE_INSTRUCTION), "summarize")
            embedding = await guarded(self.llm.embed(summary), "embed")

        kinds: list[SourceKind] = _unique([k for c in children for k in c.source_kinds])
        chunk = MemoryChunk(
            id=new_id(),
            level=level,
            summary_text=summary,
            embedding=embedding,
            source_interaction_ids=_unique([sid for c in children for sid in c.source_interaction_ids]),
            participants=sorted(_unique([p for c in children for p in c.participants])),
            source_kinds=kinds,
            latest_timestamp=_latest([c.latest_timestamp for c in children]),
        )
        self._cache_put(key, chunk)
        return chunk

    # --- Cache (best effort) ---

    def _cache_get(self, key: str) -> MemoryChunk | None:
        if self.chunk_cache is None:
            return None
        try:
            chunk = self.chunk_cache.get(key)
        except Exception as exc:
            logger.debug("Chunk cache lookup for %s failed: %s", key, exc)
            return None
        if chunk is not None:
            logger.debug("Chunk cache hit %s", key)
        return chunk

    def _cache_put(self, key: str, chunk: MemoryChunk) -> None:
        if self.chunk_cache is None:
            return
        try:
            self.chunk_cache.put(key, chunk)
        except Exception as exc:
            logger.debug("Chunk cache write for %s failed: %s", key, exc)
