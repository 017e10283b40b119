"""Pydantic models for HTTP request and response bodies."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docchat.domain.chat import ChatMessage, ChatSession


class _CamelModel(BaseModel):
    """Accepts both camelCase and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(_CamelModel):
    """Chat turn payload."""

    prompt: str = Field(min_length=1)
    chat_id: str | None = None
    file_paths: list[str] = Field(default_factory=list)


class OcrRequest(_CamelModel):
    """Single document recognition payload."""

    file_path: str = Field(min_length=1)
    include_image_base64: bool = False


class AnalyzeRequest(_CamelModel):
    """Optional extra instructions for a document analysis."""

    prompt: str | None = None


class SessionSummary(BaseModel):
    """Session list entry."""

    id: UUID
    message_count: int
    document_names: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_session(cls, session: ChatSession) -> "SessionSummary":
        return cls(
            id=session.id,
            message_count=len(session.messages),
            document_names=[document.source_name for document in session.documents],
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class SessionDetail(SessionSummary):
    """Session with its full message history."""

    messages: list[ChatMessage]

    @classmethod
    def from_session(cls, session: ChatSession) -> "SessionDetail":
        summary = SessionSummary.from_session(session)
        return cls(**summary.model_dump(), messages=session.messages)
