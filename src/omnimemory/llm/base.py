"""LLM collaborator interface."""

from __future__ import annotations

from typing import Awaitable, Protocol, Sequence, TypeVar, runtime_checkable

from omnimemory.exceptions import CollaboratorFailure
from omnimemory.types import MemoryChunk

T = TypeVar("T")

SUMMARY_SYSTEM_PROMPT = "You are a semantic compression assistant. Be concise, factual, and structured."
JUDGE_SYSTEM_PROMPT = (
    "You judge whether semantic memories are relevant to the query. "
    "Reply with YES or NO per chunk only."
)


@runtime_checkable
class MemoryLLM(Protocol):
    async def summarize(self, text: str, instruction: str) -> str: ...
    async def embed(self, text: str) -> list[float]: ...
    async def judge_relevance(self, query: str, chunks: Sequence[MemoryChunk]) -> dict[str, bool]: ...
    async def complete_chat(self, system_prompt: str, user_prompt: str, temperature: float = 0.2) -> str: ...
    async def close(self) -> None: ...


def summary_prompt(text: str, instruction: str) -> str:
    return f"Instruction: {instruction}\n\nContent:\n{text}"


def judge_prompt(query: str, chunks: Sequence[MemoryChunk]) -> str:
    descriptions = "\n\n".join(
        f"ID: {c.id}\nLevel: {c.level}\nSummary: {c.summary_text}" for c in chunks
    )
    return (
        f"Query: {query}\n\nChunks:\n{descriptions}\n\n"
        "Respond with `ID: YES` or `ID: NO` for each chunk based on relevance."
    )


def parse_relevance_judgments(response: str) -> dict[str, bool]:
    """Parse ``ID: YES`` / ``ID: NO`` lines; unparseable lines are ignored."""
    verdicts: dict[str, bool] = {}
    for line in response.splitlines():
        parts = line.split(":")
        if len(parts) < 2:
            continue
        chunk_id = parts[0].strip().strip("`*- ")
        decision = parts[1].strip().upper()
        if not chunk_id:
            continue
        if "YES" in decision:
            verdicts[chunk_id] = True
        elif "NO" in decision:
            verdicts[chunk_id] = False
    return verdicts


async def guarded(call: Awaitable[T], what: str) -> T:
    """Await a collaborator call, surfacing any failure as CollaboratorFailure."""
    try:
        return await call
    except CollaboratorFailure:
        raise
    except Exception as exc:
        raise CollaboratorFailure(f"{what} failed: {exc}") from exc
