"""Owner-scoped access to durable chat sessions."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from docchat.domain.chat import ChatMessage, ChatSession
from docchat.domain.documents import DocumentContext
from docchat.errors import PersistenceFailed, SessionNotFound

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for chat session rows."""

    def create_session(self, user_id: UUID) -> ChatSession:
        """Create an empty session and return it."""

    def get_session(self, session_id: UUID) -> ChatSession | None:
        """Return a session by id, if present."""

    def list_sessions(self, user_id: UUID) -> list[ChatSession]:
        """Return a user's sessions, most recently updated first."""

    def update_session(
        self,
        session_id: UUID,
        messages: list[ChatMessage],
        documents: list[DocumentContext],
    ) -> ChatSession:
        """Replace a session's messages and documents and return it."""


@dataclass
class SessionStore:
    """Resolves, creates and appends to sessions on behalf of their owner.

    Every read checks the owner explicitly; a session owned by someone else is
    reported exactly like a missing one. There is no in-process cache, so each
    call goes to the repository.
    """

    repository: SessionRepository

    def resolve(
        self, session_id: str | UUID | None, owner_id: UUID
    ) -> ChatSession | None:
        """Return the owner's session, or None when it cannot be resolved."""
        parsed_id = _parse_session_id(session_id)
        if parsed_id is None:
            return None
        try:
            session = self.repository.get_session(parsed_id)
        except Exception as exc:
            raise PersistenceFailed("Failed to load chat session") from exc
        if session is None or session.owner_id != owner_id:
            return None
        return session

    def create_empty(self, owner_id: UUID) -> ChatSession:
        """Create a placeholder session so a durable id exists."""
        try:
            session = self.repository.create_session(owner_id)
        except Exception as exc:
            raise PersistenceFailed("Failed to create chat session") from exc
        logger.info(
            "Created chat session",
            extra={"session_id": str(session.id), "user_id": str(owner_id)},
        )
        return session

    def append_exchange(
        self,
        session_id: UUID,
        owner_id: UUID,
        new_messages: Sequence[ChatMessage],
        new_documents: Sequence[DocumentContext],
    ) -> ChatSession:
        """Append messages and documents with a read-append-write cycle.

        Safe for one writer per session; concurrent appends to the same
        session may overwrite each other.
        """
        current = self.resolve(session_id, owner_id)
        if current is None:
            raise SessionNotFound(f"Chat session {session_id} not found")
        try:
            return self.repository.update_session(
                session_id,
                messages=[*current.messages, *new_messages],
                documents=[*current.documents, *new_documents],
            )
        except Exception as exc:
            raise PersistenceFailed("Failed to update chat session") from exc

    def list_for_owner(self, owner_id: UUID) -> list[ChatSession]:
        """Return all sessions owned by owner_id."""
        try:
            sessions = self.repository.list_sessions(owner_id)
        except Exception as exc:
            raise PersistenceFailed("Failed to list chat sessions") from exc
        return [session for session in sessions if session.owner_id == owner_id]


def _parse_session_id(session_id: str | UUID | None) -> UUID | None:
    if session_id is None or isinstance(session_id, UUID):
        return session_id
    try:
        return UUID(session_id.strip())
    except ValueError:
        return None
