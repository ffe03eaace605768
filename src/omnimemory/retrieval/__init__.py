"""Multi-stage retrieval and context assembly."""

from omnimemory.retrieval.context import (
    build_context,
    infer_parents,
    make_question_prompt,
    render_context,
    render_context_tree,
)
from omnimemory.retrieval.multi_stage import (
    ContextRetriever,
    MultiStageRetriever,
    RetrievalResult,
    preferred_source_kinds,
)

__all__ = [
    "ContextRetriever",
    "MultiStageRetriever",
    "RetrievalResult",
    "build_context",
    "infer_parents",
    "make_question_prompt",
    "preferred_source_kinds",
    "render_context",
    "render_context_tree",
]
