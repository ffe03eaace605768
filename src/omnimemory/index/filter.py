"""Query-time metadata filter over memory chunks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from omnimemory.types import MemoryChunk, SourceKind
from omnimemory.utils import as_utc


@dataclass(frozen=True)
class SearchFilter:
    """ANDed metadata clauses; absent or empty clauses admit everything."""

    required_participants: frozenset[str] | None = None
    allowed_source_kinds: frozenset[SourceKind] | None = None
    time_window: tuple[datetime, datetime] | None = None

    @classmethod
    def build(
        cls,
        participants: set[str] | list[str] | None = None,
        source_kinds: set[SourceKind] | list[SourceKind] | None = None,
        time_window: tuple[datetime, datetime] | None = None,
    ) -> "SearchFilter":
        return cls(
            required_participants=frozenset(p.lower() for p in participants) if participants else None,
            allowed_source_kinds=frozenset(SourceKind(k) for k in source_kinds) if source_kinds else None,
            time_window=time_window,
        )

    def is_chunk_eligible(self, chunk: MemoryChunk) -> bool:
        if self.required_participants:
            wanted = {p.lower() for p in self.required_participants}
            present = {p.lower() for p in chunk.participants}
            if present.isdisjoint(wanted):
                return False

        if self.allowed_source_kinds:
            if set(chunk.source_kinds).isdisjoint(self.allowed_source_kinds):
                return False

        if self.time_window is not None and chunk.latest_timestamp is not None:
            start, end = (as_utc(t) for t in self.time_window)
            if not start <= chunk.latest_timestamp <= end:
                return False

        return True
