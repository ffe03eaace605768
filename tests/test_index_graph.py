from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from omnimemory.index.filter import SearchFilter
from omnimemory.index.graph import GraphMemoryIndex
from omnimemory.types import MemoryChunk, SourceKind

_NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _chunks(n: int, dims: int = 16, seed: int = 7) -> list[MemoryChunk]:
    rng = np.random.default_rng(seed)
    out = []
    for i in range(n):
        out.append(MemoryChunk(
            id=f"c{i:02d}",
            summary_text=f"chunk {i}",
            embedding=[float(x) for x in rng.normal(size=dims)],
            participants=["a@x.com"] if i % 2 == 0 else ["b@y.com"],
            source_kinds=[SourceKind.EMAIL] if i % 3 else [SourceKind.SLACK],
        ))
    return out


def test_empty_index_returns_nothing():
    index = GraphMemoryIndex([], now=_NOW)
    assert index.is_empty()
    assert index.count == 0
    assert index.search([1.0, 0.0], k=3) == []


def test_single_node_index_answers_any_query():
    chunk = MemoryChunk(id="only", summary_text="x", embedding=[0.2, 0.4, 0.1])
    index = GraphMemoryIndex([chunk], now=_NOW)
    assert index.neighbors("only") == []
    assert [c.id for c in index.search([0.2, 0.4, 0.1], k=5)] == ["only"]
    assert [c.id for c in index.search([-0.2, -0.4, -0.1], k=1)] == ["only"]
    assert [c.id for c in index.search([0.0, 0.0, 0.0], k=1)] == ["only"]


def test_bad_queries_yield_empty_results():
    index = GraphMemoryIndex(_chunks(5, dims=4), now=_NOW)
    assert index.search([], k=2) == []
    assert index.search([1.0, 2.0], k=2) == []


def test_mixed_embedding_dimensions_rejected():
    chunks = [
        MemoryChunk(id="a", summary_text="a", embedding=[1.0, 0.0]),
        MemoryChunk(id="b", summary_text="b", embedding=[1.0, 0.0, 0.0]),
    ]
    with pytest.raises(ValueError):
        GraphMemoryIndex(chunks, now=_NOW)


def test_neighbor_lists_are_symmetric_and_bounded_below():
    chunks = _chunks(20)
    index = GraphMemoryIndex(chunks, neighbor_count=4, now=_NOW)
    for chunk in chunks:
        mine = index.neighbors(chunk.id)
        assert chunk.id not in mine
        assert len(mine) >= 4
        for other in mine:
            assert chunk.id in index.neighbors(other)


def test_exact_match_comes_first():
    chunks = _chunks(30)
    index = GraphMemoryIndex(chunks, now=_NOW)
    target = chunks[17]
    results = index.search(target.embedding, k=1)
    assert [c.id for c in results] == [target.id]


def test_results_are_distinct_and_bounded():
    chunks = _chunks(6)
    index = GraphMemoryIndex(chunks, now=_NOW)
    results = index.search(chunks[0].embedding, k=50)
    ids = [c.id for c in results]
    assert len(ids) <= 6
    assert len(ids) == len(set(ids))

    # Non-positive k is clamped to one result.
    assert len(index.search(chunks[0].embedding, k=0)) == 1


def test_filter_applies_during_traversal():
    chunks = _chunks(20)
    index = GraphMemoryIndex(chunks, now=_NOW)
    only_a = SearchFilter.build(participants=["A@X.com"])
    results = index.search(chunks[1].embedding, k=4, filter=only_a)
    assert results
    assert all("a@x.com" in c.participants for c in results)

    nobody = SearchFilter.build(participants=["nobody@nowhere.org"])
    assert index.search(chunks[1].embedding, k=4, filter=nobody) == []


def test_recency_breaks_similarity_ties():
    old = MemoryChunk(id="old", summary_text="old", embedding=[1.0, 0.0],
                      latest_timestamp=_NOW - timedelta(days=90))
    recent = MemoryChunk(id="recent", summary_text="recent", embedding=[1.0, 0.0],
                         latest_timestamp=_NOW - timedelta(days=1))
    index = GraphMemoryIndex([old, recent], now=_NOW)

    assert [c.id for c in index.search([1.0, 0.0], k=1)] == ["recent"]
    assert [c.id for c in index.search([1.0, 0.0], k=1, include_recency=False)] == ["old"]
