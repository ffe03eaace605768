"""Plain-text rendering of interactions for summarization prompts."""

from __future__ import annotations

from typing import Sequence

from omnimemory.types import Interaction


def sort_interactions(interactions: Sequence[Interaction]) -> list[Interaction]:
    """Timestamp ascending; equal timestamps keep input order."""
    return sorted(interactions, key=lambda i: i.timestamp)


def render_interaction(interaction: Interaction) -> str:
    subject = interaction.subject_or_title or "(no subject)"
    to_list = ",".join(interaction.to)
    return (
        f"[{interaction.source_kind.value}] {interaction.timestamp.isoformat()} "
        f"{interaction.sender} -> {to_list} | {subject} | {interaction.body}"
    )


def render_interactions(interactions: Sequence[Interaction]) -> str:
    return "\n\n".join(render_interaction(i) for i in sort_interactions(interactions))
