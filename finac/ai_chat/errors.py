"""Exceptions raised by the AI chat query pipeline."""
from __future__ import annotations


class ChatQueryError(Exception):
    """Base class for chat pipeline failures that end a turn."""


class UnknownEntityError(ChatQueryError, ValueError):
    """The directive named an entity outside the six supported kinds."""

    def __init__(self, entity: object) -> None:
        self.entity = entity
        super().__init__(f"Unknown entity: {entity}")


class QueryExecutionError(ChatQueryError):
    """A storage or shaping failure, annotated with the entity being queried."""

    def __init__(self, entity: str, cause: BaseException) -> None:
        self.entity = entity
        super().__init__(f"Failed to query {entity}: {cause}")


class LLMProviderError(ChatQueryError):
    """The language-model provider could not produce a stream."""


class ChatNotFoundError(ChatQueryError, LookupError):
    """No chat with that id exists for the requesting user."""
