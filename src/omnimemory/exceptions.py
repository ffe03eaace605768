"""omnimemory exception hierarchy."""

from __future__ import annotations


class OmniMemoryError(Exception):
    """Base class for all omnimemory errors."""


class CollaboratorFailure(OmniMemoryError):
    """An LLM collaborator call (summarize, embed, judge, chat) failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidIndexQuery(OmniMemoryError):
    """Query vector is empty or does not match the index dimensionality."""


class ConfigError(OmniMemoryError):
    """Unsupported or inconsistent configuration."""
