from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from omnimemory.exceptions import CollaboratorFailure
from omnimemory.memory.builder import (
    HierarchicalMemoryBuilder,
    aggregate_cache_key,
    level_zero_cache_key,
    partition,
)
from omnimemory.storage.chunk_cache import FileChunkCache, InMemoryChunkCache
from omnimemory.types import Interaction, MemoryChunk, SourceKind

_BASE = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class _CountingLLM:
    def __init__(self, delay: float = 0.0, fail_on: str | None = None) -> None:
        self.delay = delay
        self.fail_on = fail_on
        self.summarize_calls = 0
        self.embed_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def summarize(self, text: str, instruction: str) -> str:
        self.summarize_calls += 1
        if self.fail_on and self.fail_on in text:
            raise CollaboratorFailure("quota exceeded", status_code=429)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return f"summary[{len(text)}] " + text[:60]
        finally:
            self.in_flight -= 1

    async def embed(self, text: str) -> list[float]:
        self.embed_calls += 1
        return [float(len(text) % 7 + 1), 1.0, 0.5]

    async def judge_relevance(self, query, chunks):  # noqa: ANN001
        return {}

    async def complete_chat(self, system_prompt, user_prompt, temperature=0.2):  # noqa: ANN001
        return ""

    async def close(self) -> None:
        return None


def _interactions(n: int, kinds: tuple[SourceKind, ...] = (SourceKind.EMAIL,)) -> list[Interaction]:
    rows = []
    for i in range(n):
        sender, recipient = ("Ben@VectorPulse.ai", "matthew@atlas.vc") if i % 2 == 0 else (
            "matthew@atlas.vc", "ben@vectorpulse.ai")
        rows.append(Interaction(
            id=f"msg-{i:03d}",
            source_kind=kinds[i % len(kinds)],
            thread_id="pilot",
            sender=sender,
            to=[recipient],
            subject_or_title="Pilot pricing",
            body=f"message number {i} about the pilot",
            timestamp=_BASE + timedelta(minutes=i),
        ))
    return rows


def test_partition_keeps_order_and_bounds_size():
    assert partition([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert partition([], 3) == []


def test_empty_input_makes_no_calls():
    llm = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(llm).build_memory([]))
    assert chunks == []
    assert llm.summarize_calls == 0
    assert llm.embed_calls == 0


def test_twelve_interactions_fold_into_single_chunk():
    llm = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(llm).build_memory(_interactions(12), chunk_size=12, group_size=5))
    assert len(chunks) == 1
    assert chunks[0].level == 0
    assert llm.summarize_calls == 1
    assert chunks[0].participants == ["ben@vectorpulse.ai", "matthew@atlas.vc"]


def test_sixty_interactions_build_two_levels():
    rows = _interactions(60)
    llm = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(llm).build_memory(rows, chunk_size=12, group_size=5))

    level0 = [c for c in chunks if c.level == 0]
    level1 = [c for c in chunks if c.level == 1]
    assert len(chunks) == 6
    assert len(level0) == 5
    assert len(level1) == 1

    # Level 0 partitions the input: full cover, no duplicates, time order kept.
    covered = [sid for c in level0 for sid in c.source_interaction_ids]
    assert covered == [r.id for r in rows]
    assert len(set(covered)) == 60

    # Level 1 is the union of its children.
    assert set(level1[0].source_interaction_ids) == set(covered)
    assert level1[0].latest_timestamp == max(r.timestamp for r in rows)
    assert level1[0].source_kinds == [SourceKind.EMAIL]


def test_interactions_are_sorted_by_timestamp_stably():
    rows = _interactions(4)
    same_time = rows[0].model_copy(update={"id": "msg-tie", "timestamp": rows[0].timestamp})
    shuffled = [rows[3], rows[1], rows[0], same_time, rows[2]]
    llm = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(llm).build_memory(shuffled, chunk_size=12))
    assert chunks[0].source_interaction_ids == ["msg-000", "msg-tie", "msg-001", "msg-002", "msg-003"]


def test_single_interaction_group_still_summarized():
    llm = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(llm).build_memory(_interactions(1)))
    assert len(chunks) == 1
    assert llm.summarize_calls == 1
    assert llm.embed_calls == 1


def test_metadata_unions_across_channels():
    rows = _interactions(6, kinds=(SourceKind.EMAIL, SourceKind.SLACK, SourceKind.IMESSAGE))
    llm = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(llm).build_memory(rows, chunk_size=2, group_size=5))
    top = max(chunks, key=lambda c: c.level)
    assert top.level == 1
    assert set(top.source_kinds) == {SourceKind.EMAIL, SourceKind.SLACK, SourceKind.IMESSAGE}
    assert top.participants == ["ben@vectorpulse.ai", "matthew@atlas.vc"]


def test_rebuild_hits_cache_and_skips_summarization():
    rows = _interactions(60)
    cache = InMemoryChunkCache()
    first_llm = _CountingLLM()
    first = asyncio.run(HierarchicalMemoryBuilder(first_llm, chunk_cache=cache).build_memory(rows))
    assert first_llm.summarize_calls == 6

    second_llm = _CountingLLM()
    second = asyncio.run(HierarchicalMemoryBuilder(second_llm, chunk_cache=cache).build_memory(list(reversed(rows))))
    assert second_llm.summarize_calls == 0
    assert second_llm.embed_calls == 0

    def _shape(c: MemoryChunk):
        return (c.level, c.source_interaction_ids, c.participants, c.source_kinds)

    assert [_shape(c) for c in second] == [_shape(c) for c in first]


def test_file_cache_survives_restart(tmp_path):
    rows = _interactions(30)
    asyncio.run(HierarchicalMemoryBuilder(_CountingLLM(), chunk_cache=FileChunkCache(tmp_path)).build_memory(rows))

    llm = _CountingLLM()
    rebuilt = asyncio.run(HierarchicalMemoryBuilder(llm, chunk_cache=FileChunkCache(tmp_path)).build_memory(rows))
    assert llm.summarize_calls == 0
    assert len(rebuilt) == 4  # 3 level-0 + 1 level-1


def test_concurrency_is_bounded():
    llm = _CountingLLM(delay=0.01)
    builder = HierarchicalMemoryBuilder(llm, max_concurrent_requests=2)
    chunks = asyncio.run(builder.build_memory(_interactions(14), chunk_size=2, group_size=5))
    assert llm.max_in_flight <= 2
    assert llm.max_in_flight == 2
    # Completion order does not leak into level ordering.
    level0 = [c for c in chunks if c.level == 0]
    assert [c.source_interaction_ids[0] for c in level0] == [f"msg-{i:03d}" for i in range(0, 14, 2)]


def test_collaborator_failure_aborts_build_and_keeps_finished_groups_cached():
    rows = _interactions(60)
    cache = InMemoryChunkCache()
    failing = _CountingLLM(fail_on="message number 24 ")
    with pytest.raises(CollaboratorFailure):
        asyncio.run(HierarchicalMemoryBuilder(failing, chunk_cache=cache, max_concurrent_requests=8).build_memory(rows))
    assert len(cache) == 4

    retry = _CountingLLM()
    chunks = asyncio.run(HierarchicalMemoryBuilder(retry, chunk_cache=cache).build_memory(rows))
    assert len(chunks) == 6
    # Only the failed level-0 group and the new level-1 aggregate are computed.
    assert retry.summarize_calls == 2


def test_unexpected_collaborator_errors_are_wrapped():
    class _Broken(_CountingLLM):
        async def summarize(self, text: str, instruction: str) -> str:
            raise ConnectionError("socket closed")

    with pytest.raises(CollaboratorFailure) as info:
        asyncio.run(HierarchicalMemoryBuilder(_Broken()).build_memory(_interactions(3)))
    assert isinstance(info.value.__cause__, ConnectionError)


def test_cache_write_failure_never_fails_build():
    class _ReadOnlyCache:
        def get(self, key: str):
            return None

        def put(self, key: str, chunk: MemoryChunk) -> None:
            raise PermissionError("read-only")

    chunks = asyncio.run(HierarchicalMemoryBuilder(_CountingLLM(), chunk_cache=_ReadOnlyCache()).build_memory(_interactions(5)))
    assert len(chunks) == 1


def test_cache_keys_level_zero_positional_aggregate_set_like():
    rows = _interactions(3)
    assert level_zero_cache_key(rows) != level_zero_cache_key(list(reversed(rows)))
    assert level_zero_cache_key(rows).startswith("L0-")

    a = MemoryChunk(summary_text="a", source_interaction_ids=["x", "y"])
    b = MemoryChunk(summary_text="b", source_interaction_ids=["z"])
    assert aggregate_cache_key([a, b], 1) == aggregate_cache_key([b, a], 1)
    assert aggregate_cache_key([a, b], 1) != aggregate_cache_key([a, b], 2)
