"""Supabase-backed chat session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from docchat.domain.chat import DOCUMENT_LIST, MESSAGE_LIST, ChatMessage, ChatSession
from docchat.domain.documents import DocumentContext
from docchat.services.sessions import SessionRepository

_COLUMNS = "id, user_id, messages, documents, created_at, updated_at"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for chat sessions."""

    client: Client

    def create_session(self, user_id: UUID) -> ChatSession:
        """Create an empty session row and return it."""
        response = (
            self.client.table("chat_sessions")
            .insert({"user_id": str(user_id), "messages": [], "documents": []})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create chat session")
        return _to_session(response.data[0])

    def get_session(self, session_id: UUID) -> ChatSession | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("chat_sessions")
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_session(response.data[0])

    def list_sessions(self, user_id: UUID) -> list[ChatSession]:
        """Return a user's sessions, most recently updated first."""
        response = (
            self.client.table("chat_sessions")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .order("updated_at", desc=True)
            .execute()
        )
        return [_to_session(row) for row in response.data or []]

    def update_session(
        self,
        session_id: UUID,
        messages: list[ChatMessage],
        documents: list[DocumentContext],
    ) -> ChatSession:
        """Replace messages and documents of a session."""
        response = (
            self.client.table("chat_sessions")
            .update(
                {
                    "messages": MESSAGE_LIST.dump_python(messages, mode="json"),
                    "documents": DOCUMENT_LIST.dump_python(documents, mode="json"),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", str(session_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update chat session")
        return _to_session(response.data[0])


def _to_session(row: dict[str, object]) -> ChatSession:
    return ChatSession(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["user_id"])),
        messages=MESSAGE_LIST.validate_python(row.get("messages") or []),
        documents=DOCUMENT_LIST.validate_python(row.get("documents") or []),
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
