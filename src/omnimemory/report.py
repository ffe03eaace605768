"""Human-readable semantic compression report."""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from omnimemory.types import Interaction, MemoryChunk


def _percent(part: int, whole: int) -> str:
    ratio = part / whole if whole else 0.0
    return f"{ratio * 100:.1f}%"


class SemanticCompressionReporter:
    """Compares raw interaction size with the size of the stored summaries."""

    def make_report(self, raw_interactions: Sequence[Interaction], chunks: Sequence[MemoryChunk]) -> str:
        if not raw_interactions or not chunks:
            return "Semantic compression report unavailable: missing interactions or chunks."

        raw_chars = sum(len(i.body) for i in raw_interactions)
        by_level: dict[int, list[MemoryChunk]] = defaultdict(list)
        for chunk in chunks:
            by_level[chunk.level].append(chunk)

        lines = [
            "Semantic compression overview:",
            f"- Raw interaction characters: {raw_chars}",
            f"- Stored memory chunks: {len(chunks)}",
        ]
        for level in sorted(by_level):
            entries = by_level[level]
            chars = sum(len(c.summary_text) for c in entries)
            lines.append(
                f"  • Level {level}: {len(entries)} chunks, {chars} chars "
                f"(~{_percent(chars, raw_chars)} of raw)"
            )
        top = by_level[max(by_level)][0]
        lines.append(
            f"- Highest level chunk compresses entire thread to "
            f"~{_percent(len(top.summary_text), raw_chars)} of original text."
        )
        return "\n".join(lines)
