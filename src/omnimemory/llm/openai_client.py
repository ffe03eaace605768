"""OpenAI-compatible chat + embeddings collaborator."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from omnimemory.config import LLMConfig
from omnimemory.exceptions import CollaboratorFailure
from omnimemory.llm.base import (
    JUDGE_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    judge_prompt,
    parse_relevance_judgments,
    summary_prompt,
)
from omnimemory.types import MemoryChunk

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Summarization, embeddings and relevance judgments over the OpenAI HTTP API.

    Works against any server exposing ``/chat/completions`` and ``/embeddings``.
    Nothing is retried; every transport, status or payload problem surfaces
    as :class:`CollaboratorFailure`.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or LLMConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._stats = {"chat_calls": 0, "embed_calls": 0, "input_tokens": 0, "output_tokens": 0}

    async def _get_client(self) -> httpx.AsyncClient:
        if not self.config.api_key:
            raise CollaboratorFailure("OPENAI_API_KEY is required")
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        try:
            resp = await client.post(path, json=body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorFailure(
                f"{path} failed with status {exc.response.status_code}: {exc.response.text[:500]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise CollaboratorFailure(f"{path} transport error: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorFailure(f"{path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise CollaboratorFailure(f"{path} returned an invalid payload")
        return data

    async def complete_chat(self, system_prompt: str, user_prompt: str, temperature: float = 0.2) -> str:
        data = await self._post(
            "/chat/completions",
            {
                "model": self.config.chat_model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": temperature,
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CollaboratorFailure("chat completion returned no choices") from exc
        text = str(content or "").strip()
        if not text:
            raise CollaboratorFailure("chat completion returned empty content")
        usage = data.get("usage", {}) or {}
        self._stats["chat_calls"] += 1
        self._stats["input_tokens"] += int(usage.get("prompt_tokens", 0))
        self._stats["output_tokens"] += int(usage.get("completion_tokens", 0))
        return text

    async def summarize(self, text: str, instruction: str) -> str:
        return await self.complete_chat(
            SUMMARY_SYSTEM_PROMPT,
            summary_prompt(text, instruction),
            temperature=self.config.summary_temperature,
        )

    async def embed(self, text: str) -> list[float]:
        data = await self._post("/embeddings", {"model": self.config.embedding_model, "input": text})
        items = data.get("data") or []
        if not items or not items[0].get("embedding"):
            raise CollaboratorFailure("embeddings response contained no vectors")
        self._stats["embed_calls"] += 1
        return [float(x) for x in items[0]["embedding"]]

    async def judge_relevance(self, query: str, chunks: Sequence[MemoryChunk]) -> dict[str, bool]:
        if not chunks:
            return {}
        response = await self.complete_chat(
            JUDGE_SYSTEM_PROMPT,
            judge_prompt(query, chunks),
            temperature=self.config.judge_temperature,
        )
        verdicts = parse_relevance_judgments(response)
        logger.debug("Relevance judgments: %d of %d chunks parsed", len(verdicts), len(chunks))
        return verdicts

    @property
    def stats(self) -> dict[str, int]:
        return {
            **self._stats,
            "total_tokens": self._stats["input_tokens"] + self._stats["output_tokens"],
        }

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
