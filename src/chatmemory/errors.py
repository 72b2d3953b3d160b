"""Error taxonomy shared by the stores, the injection pipeline and the tools."""

from __future__ import annotations


class ChatMemoryError(Exception):
    """Base class for errors reported back to the caller."""


class InvalidRequestError(ChatMemoryError):
    """Request arguments failed validation (e.g. neither or both of session_id/query)."""


class NotFoundError(ChatMemoryError):
    """A session id does not resolve."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class NoResultsError(ChatMemoryError):
    """A query-mode injection found no search hits."""

    def __init__(self, query: str):
        super().__init__(f"No results found for query: {query}")
        self.query = query


class NoMessagesError(ChatMemoryError):
    """A session has no messages to summarize."""

    def __init__(self, session_id: str):
        super().__init__(f"Session has no messages to summarize: {session_id}")
        self.session_id = session_id


class GenerationError(ChatMemoryError):
    """The text-generation backend failed or is not configured."""
