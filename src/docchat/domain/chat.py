"""Domain models for chat sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from docchat.domain.documents import DocumentContext


class TextPart(BaseModel):
    """Plain text fragment of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image fragment of a multimodal message, as a base64 data URI."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    data_url: str


ContentPart = Annotated[TextPart | ImagePart, Field(discriminator="type")]


class ChatMessage(BaseModel):
    """One conversational turn."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str | tuple[ContentPart, ...]

    @classmethod
    def system(cls, text: str) -> "ChatMessage":
        return cls(role="system", content=text)

    @classmethod
    def user(cls, content: str | tuple[ContentPart, ...]) -> "ChatMessage":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, text: str) -> "ChatMessage":
        return cls(role="assistant", content=text)


MESSAGE_LIST = TypeAdapter(list[ChatMessage])
DOCUMENT_LIST = TypeAdapter(list[DocumentContext])


@dataclass(frozen=True)
class ChatSession:
    """Represents a persisted, owner-scoped conversation."""

    id: UUID
    owner_id: UUID
    messages: list[ChatMessage] = field(default_factory=list)
    documents: list[DocumentContext] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
