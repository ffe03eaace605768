"""Context assembly and diagnostic rendering for selected memory chunks."""

from __future__ import annotations

from typing import Sequence

from omnimemory.types import EntityCard, MemoryChunk, PersonaCard, SituationCard
from omnimemory.utils import preview_words


def build_context(
    persona: PersonaCard | None,
    entities: Sequence[EntityCard],
    situation: SituationCard | None,
    chunks: Sequence[MemoryChunk],
) -> str:
    """Labeled persona / parties / situation / chunk sections for an LLM prompt."""
    sections = [f"MY_PERSONA:\n{persona.summary_text if persona else 'Not provided.'}"]
    if entities:
        details = "\n".join(f"- {card.entity_id}: {card.summary_text}" for card in entities)
        sections.append(f"ABOUT_THE_OTHER_PARTIES:\n{details}")
    else:
        sections.append("ABOUT_THE_OTHER_PARTIES:\nNo entity cards provided.")
    sections.append(f"SITUATION:\n{situation.summary_text if situation else 'No situation card available.'}")
    if chunks:
        chunk_text = "\n\n".join(
            f"=== Chunk (level {c.level}, id {c.id}) ===\n{c.summary_text}" for c in chunks
        )
        sections.append(f"RELEVANT_CONTEXT:\n{chunk_text}")
    else:
        sections.append("RELEVANT_CONTEXT:\nNo memory chunks selected.")
    return "\n\n".join(sections)


def render_context(chunks: Sequence[MemoryChunk]) -> str:
    """Coarse-to-fine linear rendering; same-level chunks keep their order."""
    if not chunks:
        return "No context available."
    ordered = sorted(chunks, key=lambda c: -c.level)
    return "\n\n".join(
        f"=== Memory Chunk (level {c.level}, id {c.id}) ===\n{c.summary_text}" for c in ordered
    )


def infer_parents(chunks: Sequence[MemoryChunk]) -> dict[str, str | None]:
    """Map each chunk id to its best parent id within the set.

    The parent is the lowest-level chunk whose covered interactions are a
    strict superset of the child's; ties go to the smaller id. A higher-level
    chunk covering exactly the same interactions (a single-child aggregate)
    also counts as a parent.
    """
    covered = {c.id: frozenset(c.source_interaction_ids) for c in chunks}
    parents: dict[str, str | None] = {}
    for chunk in chunks:
        own = covered[chunk.id]
        best: MemoryChunk | None = None
        for candidate in chunks:
            theirs = covered[candidate.id]
            if candidate.id == chunk.id:
                continue
            if not (own < theirs or (own == theirs and candidate.level > chunk.level)):
                continue
            if best is None or (candidate.level, candidate.id) < (best.level, best.id):
                best = candidate
        parents[chunk.id] = best.id if best else None
    return parents


def render_context_tree(chunks: Sequence[MemoryChunk]) -> str:
    """ASCII tree of the chunk hierarchy inferred from source-id containment."""
    if not chunks:
        return "No context tree available."
    parents = infer_parents(chunks)
    children: dict[str, list[MemoryChunk]] = {}
    for chunk in chunks:
        parent_id = parents[chunk.id]
        if parent_id is not None:
            children.setdefault(parent_id, []).append(chunk)

    roots = sorted(
        (c for c in chunks if parents[c.id] is None),
        key=lambda c: (-c.level, c.id),
    )
    lines: list[str] = []

    def visit(chunk: MemoryChunk, prefix: str, is_last: bool) -> None:
        connector = "" if not prefix else ("└─ " if is_last else "├─ ")
        preview = preview_words(chunk.summary_text) or "(no summary)"
        lines.append(
            f"{prefix}{connector}[L{chunk.level}] {chunk.id} · "
            f"{len(set(chunk.source_interaction_ids))} interactions · {preview}"
        )
        child_prefix = prefix + ("   " if is_last else "│  ")
        kids = sorted(children.get(chunk.id, []), key=lambda c: (c.level, c.id))
        for idx, kid in enumerate(kids):
            visit(kid, child_prefix, idx == len(kids) - 1)

    for idx, root in enumerate(roots):
        visit(root, "", idx == len(roots) - 1)
    return "\n".join(lines)


def make_question_prompt(question: str, chunks: Sequence[MemoryChunk]) -> str:
    q = question.strip() or "(no question provided)"
    return (
        "System: You answer questions about ongoing conversations using only the provided "
        "context. Be concise and cite decisions or open items.\n\n"
        f"Linear context:\n{render_context(chunks)}\n\n"
        f"Thinking view (ASCII tree):\n{render_context_tree(chunks)}\n\n"
        f"User question: {q}"
    )
