"""Multi-stage retrieval: soft filters -> graph search -> LLM judgment -> final scoring."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, NamedTuple, Sequence

import numpy as np

from omnimemory.config import IndexConfig, RetrievalConfig
from omnimemory.index.filter import SearchFilter
from omnimemory.index.graph import GraphMemoryIndex
from omnimemory.index.similarity import cosine_similarity, recency_decay
from omnimemory.llm.base import MemoryLLM, guarded
from omnimemory.retrieval.context import build_context, make_question_prompt, render_context, render_context_tree
from omnimemory.types import EntityCard, MemoryChunk, PersonaCard, SituationCard, SourceKind
from omnimemory.utils import utcnow

logger = logging.getLogger(__name__)

_CHANNEL_KEYWORDS: list[tuple[tuple[str, ...], tuple[SourceKind, ...]]] = [
    (("email", "inbox"), (SourceKind.EMAIL,)),
    (("slack", "channel"), (SourceKind.SLACK,)),
    (("text", "imessage", "sms"), (SourceKind.IMESSAGE, SourceKind.WHATSAPP)),
]


class RetrievalResult(NamedTuple):
    selected_chunks: list[MemoryChunk]
    context_text: str


def preferred_source_kinds(query: str) -> set[SourceKind]:
    """Channels hinted at by substrings of the query."""
    lower = query.lower()
    kinds: set[SourceKind] = set()
    for keywords, channel_kinds in _CHANNEL_KEYWORDS:
        if any(word in lower for word in keywords):
            kinds.update(channel_kinds)
    return kinds


def _soft_filter(chunks: list[MemoryChunk], keep: Callable[[MemoryChunk], bool]) -> list[MemoryChunk]:
    """Apply ``keep`` unless it would eliminate every chunk."""
    filtered = [c for c in chunks if keep(c)]
    return filtered if filtered else chunks


class MultiStageRetriever:
    """Retrieves the chunks most relevant to a query and assembles prompt context.

    Metadata filters here are soft: a filter that would leave nothing is
    ignored rather than producing an empty answer.
    """

    def __init__(
        self,
        llm: MemoryLLM,
        config: RetrievalConfig | None = None,
        index_config: IndexConfig | None = None,
    ) -> None:
        self.llm = llm
        self.config = config or RetrievalConfig()
        self.index_config = index_config or IndexConfig()

    async def retrieve(
        self,
        query: str,
        persona: PersonaCard | None,
        entity_cards: Sequence[EntityCard],
        situation: SituationCard | None,
        chunks: Sequence[MemoryChunk],
        k: int | None = None,
        now: datetime | None = None,
    ) -> RetrievalResult:
        k = max(1, k if k is not None else self.config.default_k)
        if not chunks:
            return RetrievalResult([], build_context(persona, entity_cards, situation, []))

        query_embedding = await guarded(self.llm.embed(query), "embed")
        candidates = list(chunks)

        entity_ids = {card.entity_id.lower() for card in entity_cards}
        participants: set[str] | None = None
        if entity_ids:
            narrowed = _soft_filter(
                candidates,
                lambda c: not entity_ids.isdisjoint(p.lower() for p in c.participants),
            )
            if len(narrowed) < len(candidates):
                participants = entity_ids
            candidates = narrowed

        preferred = preferred_source_kinds(query)
        source_kinds: set[SourceKind] | None = None
        if preferred:
            narrowed = _soft_filter(candidates, lambda c: not preferred.isdisjoint(c.source_kinds))
            if len(narrowed) < len(candidates):
                source_kinds = preferred
            candidates = narrowed
        logger.debug("Pre-filter kept %d of %d chunks", len(candidates), len(chunks))

        # Only clauses that actually narrowed the candidates reach the index.
        search_filter = SearchFilter.build(participants=participants, source_kinds=source_kinds)
        # Rebuilt every call: node decay is relative to now.
        index = GraphMemoryIndex(candidates, config=self.index_config, now=now)
        found = index.search(
            query_embedding,
            k=max(self.config.min_search_results, k * 3),
            filter=search_filter,
        )
        logger.debug("Graph search returned %d chunks", len(found))

        if len(found) > k:
            verdicts = await guarded(self.llm.judge_relevance(query, found), "judge_relevance")
            relevant = [c for c in found if verdicts.get(c.id, True)]
            if relevant:
                found = relevant
            logger.debug("Relevance judgment kept %d chunks", len(found))

        selected = self.rank(found, query_embedding, now=now)[:k]
        logger.info("Selected %d chunks for query", len(selected))
        return RetrievalResult(selected, build_context(persona, entity_cards, situation, selected))

    def rank(
        self,
        chunks: Sequence[MemoryChunk],
        query_embedding: Sequence[float] | np.ndarray,
        now: datetime | None = None,
    ) -> list[MemoryChunk]:
        """Final weighted similarity/recency ordering; ties prefer lower levels."""
        reference = now or utcnow()
        weight = self.config.similarity_weight

        def score(chunk: MemoryChunk) -> float:
            similarity = cosine_similarity(chunk.embedding, query_embedding)
            decay = recency_decay(chunk.latest_timestamp, self.config.recency_half_life_days, now=reference)
            return weight * similarity + (1.0 - weight) * (decay or 0.0)

        scored = [(score(c), c) for c in chunks]
        scored.sort(key=lambda pair: (-pair[0], pair[1].level))
        return [c for _, c in scored]


class ContextRetriever:
    """Convenience facade: retrieval plus the linear and tree renderings."""

    def __init__(self, llm: MemoryLLM, config: RetrievalConfig | None = None,
                 index_config: IndexConfig | None = None) -> None:
        self.llm = llm
        self.multi_stage = MultiStageRetriever(llm, config=config, index_config=index_config)

    async def retrieve_context_bundle(
        self,
        query: str,
        persona: PersonaCard | None,
        entity_cards: Sequence[EntityCard],
        situation: SituationCard | None,
        chunks: Sequence[MemoryChunk],
        k: int | None = None,
    ) -> RetrievalResult:
        return await self.multi_stage.retrieve(query, persona, entity_cards, situation, chunks, k=k)

    def render_context(self, chunks: Sequence[MemoryChunk]) -> str:
        return render_context(chunks)

    def render_context_tree(self, chunks: Sequence[MemoryChunk]) -> str:
        return render_context_tree(chunks)

    def make_question_prompt(self, question: str, chunks: Sequence[MemoryChunk]) -> str:
        return make_question_prompt(question, chunks)
