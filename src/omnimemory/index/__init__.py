"""Approximate similarity search over memory chunks."""

from omnimemory.index.filter import SearchFilter
from omnimemory.index.graph import GraphMemoryIndex
from omnimemory.index.priority_queue import PriorityQueue
from omnimemory.index.similarity import cosine_similarity, mmr_select, recency_decay

__all__ = [
    "GraphMemoryIndex",
    "PriorityQueue",
    "SearchFilter",
    "cosine_similarity",
    "mmr_select",
    "recency_decay",
]
