"""Persona, entity and situation card builders (thin summarize + embed wrappers)."""

from __future__ import annotations

from typing import Sequence

from omnimemory.llm.base import MemoryLLM, guarded
from omnimemory.memory.rendering import render_interactions, sort_interactions
from omnimemory.types import EntityCard, Interaction, PersonaCard, SituationCard

PERSONA_INSTRUCTION = (
    "Summarize how this person writes emails/messages: highlight tone, diction, "
    "pacing, and default sign-offs."
)
ENTITY_INSTRUCTION = (
    "Summarize this participant's preferences, history with us, decisions made, "
    "and unresolved concerns."
)
SITUATION_INSTRUCTION = (
    "Provide a rolling state of this thread: goals, decisions, blockers, deadlines, "
    "and next steps."
)


async def _summarize_and_embed(llm: MemoryLLM, text: str, instruction: str) -> tuple[str, list[float]]:
    summary = await guarded(llm.summarize(text, instruction), "summarize")
    embedding = await guarded(llm.embed(summary), "embed")
    return summary, embedding


class PersonaCardBuilder:
    def __init__(self, llm: MemoryLLM) -> None:
        self.llm = llm

    async def build(self, id: str, title: str, samples: Sequence[str]) -> PersonaCard:
        """Summarize a persona's tone and style from writing samples."""
        text = "\n---\n".join(samples) if samples else "No samples provided."
        summary, embedding = await _summarize_and_embed(self.llm, text, PERSONA_INSTRUCTION)
        return PersonaCard(id=id, title=title, summary_text=summary, embedding=embedding)


class EntityCardBuilder:
    def __init__(self, llm: MemoryLLM) -> None:
        self.llm = llm

    async def build(self, entity_id: str, interactions: Sequence[Interaction]) -> EntityCard:
        """Summarize history and preferences for one participant address."""
        normalized = entity_id.strip().lower()
        kind = "person" if "@" in normalized else "organization"
        relevant = [
            i for i in interactions
            if normalized in {a.lower() for a in i.addresses}
        ]
        text = render_interactions(relevant) if relevant else "No direct interactions recorded."
        summary, embedding = await _summarize_and_embed(self.llm, text, ENTITY_INSTRUCTION)
        return EntityCard(
            id=f"entity:{normalized}",
            entity_id=normalized,
            kind=kind,
            summary_text=summary,
            embedding=embedding,
        )


class SituationCardBuilder:
    def __init__(self, llm: MemoryLLM) -> None:
        self.llm = llm

    async def build(self, title: str, interactions: Sequence[Interaction]) -> SituationCard:
        """Summarize the live state and next steps of a thread or project."""
        ordered = sort_interactions(interactions)
        text = "\n".join(
            f"[{i.source_kind.value} @ {i.timestamp.isoformat()}] {i.sender} → {','.join(i.to)}: {i.body}"
            for i in ordered
        )
        summary, embedding = await _summarize_and_embed(self.llm, text, SITUATION_INSTRUCTION)
        return SituationCard(
            id=f"situation:{title.lower()}",
            title=title,
            summary_text=summary,
            embedding=embedding,
            related_interaction_ids=[i.id for i in ordered],
        )
