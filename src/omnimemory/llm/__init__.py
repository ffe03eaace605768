"""LLM collaborator interfaces and provider implementations."""

from omnimemory.config import LLMConfig
from omnimemory.exceptions import ConfigError
from omnimemory.llm.base import MemoryLLM, parse_relevance_judgments
from omnimemory.llm.hash_client import HashLLM
from omnimemory.llm.openai_client import OpenAIClient


def create_llm(config: LLMConfig | None = None) -> MemoryLLM:
    cfg = config or LLMConfig()
    provider = (cfg.provider or "openai").strip().lower()
    if provider in {"openai", "default"}:
        return OpenAIClient(cfg)
    if provider in {"hash", "local", "offline"}:
        return HashLLM(dims=cfg.embedding_dims)
    raise ConfigError(f"Unsupported LLM provider: {cfg.provider}")


__all__ = [
    "HashLLM",
    "MemoryLLM",
    "OpenAIClient",
    "create_llm",
    "parse_relevance_judgments",
]
