from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from omnimemory.llm import HashLLM
from omnimemory.memory.cards import EntityCardBuilder, PersonaCardBuilder, SituationCardBuilder
from omnimemory.memory.rendering import render_interaction, render_interactions, sort_interactions
from omnimemory.types import Interaction, SourceKind

_BASE = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _rows() -> list[Interaction]:
    return [
        Interaction.model_validate({
            "id": "m2", "source_kind": "slack", "thread_id": "pilot", "from": "dana@bank.com",
            "to": ["ben@vectorpulse.ai"], "body": "Security review passed.",
            "timestamp": (_BASE + timedelta(hours=2)).isoformat(),
        }),
        Interaction(
            id="m1", source_kind=SourceKind.EMAIL, thread_id="pilot", sender="Ben@VectorPulse.ai",
            to=["matthew@atlas.vc"], subject_or_title="Pilot pricing", body="Proposing $40k.",
            timestamp=_BASE,
        ),
    ]


def test_render_interaction_format():
    rows = sort_interactions(_rows())
    assert [r.id for r in rows] == ["m1", "m2"]
    assert render_interaction(rows[0]) == (
        "[email] 2024-05-01T09:00:00+00:00 Ben@VectorPulse.ai -> matthew@atlas.vc | Pilot pricing | Proposing $40k."
    )
    assert render_interactions(rows).count("\n\n") == 1


def test_entity_card_collects_matching_interactions():
    llm = HashLLM(dims=64)
    card = asyncio.run(EntityCardBuilder(llm).build("BEN@vectorpulse.ai", _rows()))
    assert card.id == "entity:ben@vectorpulse.ai"
    assert card.entity_id == "ben@vectorpulse.ai"
    assert card.kind == "person"
    assert "Security review passed." in card.summary_text
    assert len(card.embedding) == 64


def test_entity_card_without_interactions():
    card = asyncio.run(EntityCardBuilder(HashLLM()).build("Atlas Ventures", _rows()))
    assert card.kind == "organization"
    assert card.summary_text == "No direct interactions recorded."


def test_persona_and_situation_cards():
    llm = HashLLM(dims=64)
    persona = asyncio.run(PersonaCardBuilder(llm).build("me", "Ben", ["Thanks! -B", "Sounds good."]))
    assert persona.title == "Ben"
    assert persona.summary_text.startswith("Thanks! -B")

    situation = asyncio.run(SituationCardBuilder(llm).build("Pilot", _rows()))
    assert situation.id == "situation:pilot"
    assert situation.related_interaction_ids == ["m1", "m2"]
    assert len(situation.embedding) == 64
