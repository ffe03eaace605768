"""Graph-based approximate nearest-neighbor index over memory chunk embeddings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

import numpy as np

from omnimemory.config import IndexConfig
from omnimemory.exceptions import InvalidIndexQuery
from omnimemory.index.filter import SearchFilter
from omnimemory.index.priority_queue import PriorityQueue
from omnimemory.index.similarity import as_vector, blend, mmr_select, normalize_rows, recency_decay
from omnimemory.types import MemoryChunk
from omnimemory.utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    chunk: MemoryChunk
    decay: float | None
    neighbors: list[int] = field(default_factory=list)


class GraphMemoryIndex:
    """Immutable k-NN graph snapshot with greedy best-first search.

    Nodes live in an arena and link to each other by position. Rebuild the
    index whenever the chunk set changes; there is no incremental update.
    """

    def __init__(
        self,
        chunks: Sequence[MemoryChunk],
        neighbor_count: int | None = None,
        recency_half_life_days: float | None = None,
        config: IndexConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        self.config = config or IndexConfig()
        self.neighbor_count = max(1, neighbor_count if neighbor_count is not None else self.config.neighbor_count)
        self.recency_half_life_days = (
            recency_half_life_days if recency_half_life_days is not None
            else self.config.recency_half_life_days
        )
        reference = now or utcnow()
        self._nodes = [
            _Node(chunk=c, decay=recency_decay(c.latest_timestamp, self.recency_half_life_days, now=reference))
            for c in chunks
        ]
        self._id_to_pos = {node.chunk.id: pos for pos, node in enumerate(self._nodes)}
        self._vectors = self._stack_embeddings(chunks)
        self._build_graph()

    # --- Construction ---

    @staticmethod
    def _stack_embeddings(chunks: Sequence[MemoryChunk]) -> np.ndarray:
        if not chunks:
            return np.zeros((0, 0), dtype=np.float64)
        dims = {len(c.embedding) for c in chunks}
        if len(dims) != 1:
            raise ValueError(f"chunk embeddings have mixed dimensions: {sorted(dims)}")
        return normalize_rows(np.array([c.embedding for c in chunks], dtype=np.float64))

    def _build_graph(self) -> None:
        n = len(self._nodes)
        if n <= 1:
            return
        sims = self._vectors @ self._vectors.T
        np.fill_diagonal(sims, -np.inf)
        keep = min(self.neighbor_count, n - 1)
        for i in range(n):
            order = np.argsort(-sims[i], kind="stable")
            self._nodes[i].neighbors = [int(j) for j in order[:keep]]

        # Symmetrize: every edge gets a reciprocal one.
        for i in range(n):
            for j in list(self._nodes[i].neighbors):
                if i not in self._nodes[j].neighbors:
                    self._nodes[j].neighbors.append(i)
        logger.debug("Built memory graph with %d nodes, k=%d", n, keep)

    # --- Introspection ---

    @property
    def count(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def is_empty(self) -> bool:
        return not self._nodes

    @property
    def dims(self) -> int:
        return int(self._vectors.shape[1]) if self._nodes else 0

    def neighbors(self, chunk_id: str) -> list[str]:
        pos = self._id_to_pos.get(chunk_id)
        if pos is None:
            return []
        return [self._nodes[j].chunk.id for j in self._nodes[pos].neighbors]

    # --- Search ---

    def search(
        self,
        query_embedding: Sequence[float] | np.ndarray,
        k: int,
        filter: SearchFilter | None = None,
        include_recency: bool = True,
    ) -> list[MemoryChunk]:
        """Approximate top-k search with metadata filtering and MMR diversity.

        Never raises: empty index, empty or mismatched query, or a filter
        that admits nothing all yield an empty list.
        """
        if not self._nodes:
            return []
        try:
            query = self._validate_query(query_embedding)
        except InvalidIndexQuery as exc:
            logger.warning("Ignoring index query: %s", exc)
            return []

        k = max(1, k)
        n = len(self._nodes)
        target = min(n, max(k * 4, k + 2))
        max_visits = min(n, target * 5)

        similarities = self._vectors @ query
        scores = np.array([
            blend(float(similarities[i]), node.decay if include_recency else None, self.config.similarity_weight)
            for i, node in enumerate(self._nodes)
        ])

        frontier: PriorityQueue[int] = PriorityQueue()
        for idx in self._entry_points(similarities):
            frontier.push(idx, float(scores[idx]))

        visited: set[int] = set()
        candidates: list[int] = []
        while frontier and len(visited) < max_visits:
            current, _ = frontier.pop()
            if current in visited:
                continue
            visited.add(current)

            node = self._nodes[current]
            if filter is None or filter.is_chunk_eligible(node.chunk):
                candidates.append(current)
                if len(candidates) >= target:
                    break

            for neighbor in node.neighbors:
                if neighbor not in visited:
                    frontier.push(neighbor, float(scores[neighbor]))

        logger.debug("Graph search visited %d nodes, admitted %d candidates", len(visited), len(candidates))
        if not candidates:
            return []

        picks = mmr_select(self._vectors[candidates], query, k, lambda_=self.config.mmr_lambda)
        return [self._nodes[candidates[p]].chunk for p in picks]

    def _validate_query(self, query_embedding: Sequence[float] | np.ndarray) -> np.ndarray:
        query = as_vector(query_embedding)
        if query.size == 0:
            raise InvalidIndexQuery("empty query embedding")
        if query.size != self.dims:
            raise InvalidIndexQuery(f"query has {query.size} dims, index has {self.dims}")
        norm = float(np.linalg.norm(query))
        return query / norm if norm > 0.0 else query

    def _entry_points(self, similarities: np.ndarray) -> list[int]:
        limit = min(self.config.max_entry_points, len(self._nodes))
        order = np.argsort(-similarities, kind="stable")
        return [int(i) for i in order[:limit]]
