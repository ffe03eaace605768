"""Deterministic offline collaborator (no network, no API keys)."""

from __future__ import annotations

import hashlib
from typing import Sequence

import numpy as np

from omnimemory.types import MemoryChunk
from omnimemory.utils import tokenize


def _features(tokens: list[str]) -> list[str]:
    """Unigrams followed by adjacent-pair bigrams."""
    return tokens + [f"{a}_{b}" for a, b in zip(tokens, tokens[1:])]


class HashLLM:
    """Token-hashing embedder with an extractive summarizer.

    Summaries keep the leading words of the content, so they stay
    deterministic for the same input. Relevance is token overlap.
    """

    def __init__(self, dims: int = 384, summary_words: int = 80) -> None:
        self.dims = max(32, int(dims))
        self.summary_words = max(8, int(summary_words))

    def _bucket(self, feature: str) -> tuple[int, float]:
        digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
        slot = int.from_bytes(digest[:4], "little") % self.dims
        return slot, (-1.0 if digest[4] & 1 else 1.0)

    def vectorize(self, text: str) -> np.ndarray:
        """Signed feature-hashing vector, L2-normalised (zeros for empty text)."""
        vec = np.zeros(self.dims, dtype=np.float32)
        for feature in _features(tokenize(text)):
            slot, sign = self._bucket(feature)
            vec[slot] += sign
        norm = float(np.linalg.norm(vec))
        return vec / norm if norm > 0.0 else vec

    async def embed(self, text: str) -> list[float]:
        return self.vectorize(text).tolist()

    async def summarize(self, text: str, instruction: str) -> str:
        words = text.split()
        summary = " ".join(words[: self.summary_words])
        if len(words) > self.summary_words:
            summary += " ..."
        return summary or "(empty)"

    async def judge_relevance(self, query: str, chunks: Sequence[MemoryChunk]) -> dict[str, bool]:
        wanted = {t for t in tokenize(query) if len(t) > 2}
        return {c.id: bool(wanted & set(tokenize(c.summary_text))) for c in chunks}

    async def complete_chat(self, system_prompt: str, user_prompt: str, temperature: float = 0.2) -> str:
        return await self.summarize(user_prompt, system_prompt)

    async def close(self) -> None:
        return None
