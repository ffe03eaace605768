"""omnimemory: hierarchical, queryable memory over email, chat and messaging."""

__version__ = "0.1.0"

from omnimemory.index import GraphMemoryIndex, SearchFilter
from omnimemory.memory import HierarchicalMemoryBuilder
from omnimemory.retrieval import ContextRetriever, MultiStageRetriever, RetrievalResult
from omnimemory.types import (
    EntityCard,
    Interaction,
    MemoryChunk,
    PersonaCard,
    SituationCard,
    SourceKind,
)

__all__ = [
    "__version__",
    "ContextRetriever",
    "EntityCard",
    "GraphMemoryIndex",
    "HierarchicalMemoryBuilder",
    "Interaction",
    "MemoryChunk",
    "MultiStageRetriever",
    "PersonaCard",
    "RetrievalResult",
    "SearchFilter",
    "SituationCard",
    "SourceKind",
]
