"""omnimemory configuration."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field


def _default_data_dir() -> Path:
    return Path(os.environ.get("OMNIMEMORY_DATA_DIR", Path.cwd() / ".omnimemory"))


class LLMConfig(BaseModel):
    provider: str = Field(default_factory=lambda: os.environ.get("OMNIMEMORY_LLM_PROVIDER", "openai"))
    api_key: str = Field(default_factory=lambda: os.environ.get("OPENAI_API_KEY", ""))
    base_url: str = "https://api.openai.com/v1"
    chat_model: str = "gpt-4.1-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dims: int = 1536
    timeout: float = 120.0
    summary_temperature: float = 0.2
    judge_temperature: float = 0.0


class BuilderConfig(BaseModel):
    chunk_size: int = 12
    group_size: int = 5
    max_concurrent_requests: int = 4


class IndexConfig(BaseModel):
    neighbor_count: int = 8
    recency_half_life_days: float = 30.0
    max_entry_points: int = 8
    similarity_weight: float = 0.8
    mmr_lambda: float = 0.7


class RetrievalConfig(BaseModel):
    default_k: int = 8
    min_search_results: int = 12
    similarity_weight: float = 0.7
    recency_half_life_days: float = 30.0


class CacheConfig(BaseModel):
    enabled: bool = True


class Config(BaseModel):
    data_dir: Path = Field(default_factory=_default_data_dir)
    log_level: str = Field(default_factory=lambda: os.environ.get("OMNIMEMORY_LOG_LEVEL", "INFO"))
    llm: LLMConfig = Field(default_factory=LLMConfig)
    builder: BuilderConfig = Field(default_factory=BuilderConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "chunk_cache"

    def ensure_dirs(self) -> None:
        for d in [self.data_dir, self.cache_dir]:
            d.mkdir(parents=True, exist_ok=True)
