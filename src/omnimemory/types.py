"""Core record types shared across the builder, index and retriever."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from omnimemory.utils import as_utc


class SourceKind(str, Enum):
    EMAIL = "email"
    IMESSAGE = "imessage"
    SLACK = "slack"
    WHATSAPP = "whatsapp"
    NOTE = "note"
    DOC = "doc"
    CALENDAR = "calendar"


def new_id() -> str:
    return uuid4().hex


class Interaction(BaseModel):
    """A single message, note or event from any supported channel."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    source_kind: SourceKind
    thread_id: str | None = None
    sender: str = Field(alias="from")
    to: list[str] = Field(default_factory=list)
    subject_or_title: str | None = None
    body: str = ""
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def addresses(self) -> list[str]:
        return [self.sender, *self.to]


class MemoryChunk(BaseModel):
    """A summarized, embedded unit of memory at one compression level."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    level: int = Field(default=0, ge=0)
    summary_text: str
    embedding: list[float] = Field(default_factory=list)
    source_interaction_ids: list[str] = Field(default_factory=list)
    participants: list[str] = Field(default_factory=list)
    source_kinds: list[SourceKind] = Field(default_factory=list)
    latest_timestamp: datetime | None = None

    @field_validator("latest_timestamp")
    @classmethod
    def _utc_latest(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class PersonaCard(BaseModel):
    """Tone and style of the user whose memory this is."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    summary_text: str
    embedding: list[float] = Field(default_factory=list)


class EntityCard(BaseModel):
    """Summary of a person or organization the user talks to."""

    model_config = ConfigDict(frozen=True)

    id: str
    entity_id: str
    kind: str
    summary_text: str
    embedding: list[float] = Field(default_factory=list)


class SituationCard(BaseModel):
    """Rolling state of one thread or project."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    summary_text: str
    embedding: list[float] = Field(default_factory=list)
    related_interaction_ids: list[str] = Field(default_factory=list)
