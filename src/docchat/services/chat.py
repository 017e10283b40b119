"""Chat turn orchestration: session, documents, context, stream, persistence."""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol
from uuid import UUID

from docchat.domain.chat import ChatMessage, ChatSession
from docchat.domain.documents import DocumentContext
from docchat.domain.streaming import ProviderError, StreamEvent
from docchat.domain.usage import UsageInfo, UsageKind
from docchat.errors import DocChatError, ModelCallFailed
from docchat.services.context import merge_context
from docchat.services.extraction import DocumentExtractor
from docchat.services.relay import RelayResult, StreamRelay, close_events
from docchat.services.sessions import SessionStore
from docchat.services.storage import ObjectStore, source_name
from docchat.services.usage import UsageService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonCompletion:
    """Raw JSON text answer of a structured model call."""

    text: str
    usage: UsageInfo | None = None


class ChatModelClient(Protocol):
    """Interface for the chat model provider."""

    def stream_chat(
        self, *, model: str, messages: list[ChatMessage]
    ) -> AsyncIterator[StreamEvent]:
        """Return the provider's incremental events for messages."""

    async def complete_json(
        self, *, model: str, messages: list[ChatMessage], schema: dict[str, object]
    ) -> JsonCompletion:
        """Return a single JSON answer constrained by schema."""


class TurnStage(StrEnum):
    """Progress of one chat turn."""

    RESOLVE_SESSION = "resolve_session"
    PROCESS_DOCUMENTS = "process_documents"
    BUILD_CONTEXT = "build_context"
    STREAM_MODEL = "stream_model"
    PERSIST_SESSION = "persist_session"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ChatTurn:
    """A started turn whose answer is consumed through ``body``."""

    session_id: UUID
    created_session: bool
    new_documents: list[DocumentContext]
    stage: TurnStage = TurnStage.STREAM_MODEL
    body: AsyncIterator[str] = field(init=False, repr=False)


@dataclass
class ChatOrchestrator:
    """Sequences one chat request from session lookup to persistence."""

    session_store: SessionStore
    object_store: ObjectStore
    extractor: DocumentExtractor
    chat_client: ChatModelClient
    usage_service: UsageService
    model: str
    system_prompt: str
    include_images: bool = False

    async def start_turn(
        self,
        owner_id: UUID,
        prompt: str,
        session_id: str | None = None,
        file_paths: Sequence[str] = (),
    ) -> ChatTurn:
        """Run every step up to the first model event and return the turn.

        Errors raised here happen before any body byte is sent: session store
        failures surface as PersistenceFailed, provider failures as
        ModelCallFailed carrying the session id. Document failures are logged
        and skipped.
        """
        stage = TurnStage.RESOLVE_SESSION
        try:
            session, created = self._resolve_session(session_id, owner_id)
            logger.info(
                "Resolved chat session",
                extra={"session_id": str(session.id), "new_session": created},
            )

            stage = TurnStage.PROCESS_DOCUMENTS
            new_documents = await self._process_documents(owner_id, file_paths)

            stage = TurnStage.BUILD_CONTEXT
            messages = merge_context(
                self.system_prompt,
                session.messages,
                session.documents,
                new_documents,
                prompt,
            )
            logger.info(
                "Sending messages to model",
                extra={
                    "session_id": str(session.id),
                    "messages": len(messages),
                    "documents": len(session.documents) + len(new_documents),
                },
            )

            stage = TurnStage.STREAM_MODEL
            events = await self._open_stream(session.id, messages)
        except DocChatError:
            logger.warning("Chat turn aborted", extra={"stage": stage.value})
            raise

        turn = ChatTurn(
            session_id=session.id,
            created_session=created,
            new_documents=new_documents,
        )
        turn.body = self._relay_and_persist(turn, owner_id, prompt, events)
        return turn

    def _resolve_session(
        self, session_id: str | None, owner_id: UUID
    ) -> tuple[ChatSession, bool]:
        if session_id:
            session = self.session_store.resolve(session_id, owner_id)
            if session is not None:
                return session, False
            logger.warning(
                "Chat session not found, starting a new one",
                extra={"requested_session_id": session_id},
            )
        return self.session_store.create_empty(owner_id), True

    async def _process_documents(
        self, owner_id: UUID, file_paths: Sequence[str]
    ) -> list[DocumentContext]:
        if not file_paths:
            return []
        results = await asyncio.gather(
            *(self._process_document(owner_id, path) for path in file_paths)
        )
        documents = [document for document in results if document is not None]
        logger.info(
            "Processed new documents",
            extra={"requested": len(file_paths), "processed": len(documents)},
        )
        return documents

    async def _process_document(
        self, owner_id: UUID, path: str
    ) -> DocumentContext | None:
        try:
            file_bytes = await asyncio.to_thread(
                self.object_store.download, path, owner_id
            )
            return await self.extractor.extract(
                file_bytes,
                source_name(path),
                include_images=self.include_images,
                mime_type=self.object_store.get_mime_type(path),
            )
        except Exception:
            logger.exception("Skipping document", extra={"file_path": path})
            return None

    async def _open_stream(
        self, session_id: UUID, messages: list[ChatMessage]
    ) -> AsyncIterator[StreamEvent]:
        events = self.chat_client.stream_chat(model=self.model, messages=messages)
        try:
            first = await anext(events, None)
        except Exception as exc:
            raise ModelCallFailed(str(exc), session_id=session_id) from exc
        if isinstance(first, ProviderError):
            await close_events(events)
            raise ModelCallFailed(first.message, session_id=session_id)
        return _prepend(first, events)

    async def _relay_and_persist(
        self,
        turn: ChatTurn,
        owner_id: UUID,
        prompt: str,
        events: AsyncIterator[StreamEvent],
    ) -> AsyncIterator[str]:
        relay = StreamRelay()
        try:
            async with aclosing(relay.relay(events)) as chunks:
                async for chunk in chunks:
                    yield chunk
        except ModelCallFailed:
            turn.stage = TurnStage.ABORTED
            logger.exception(
                "Model stream failed after output started",
                extra={"session_id": str(turn.session_id)},
            )
            return
        except (GeneratorExit, asyncio.CancelledError):
            turn.stage = TurnStage.ABORTED
            raise

        turn.stage = TurnStage.PERSIST_SESSION
        self._persist(turn, owner_id, prompt, relay.result)
        turn.stage = TurnStage.DONE

    def _persist(
        self, turn: ChatTurn, owner_id: UUID, prompt: str, result: RelayResult
    ) -> None:
        try:
            self.session_store.append_exchange(
                turn.session_id,
                owner_id,
                [ChatMessage.user(prompt), ChatMessage.assistant(result.full_text)],
                turn.new_documents,
            )
        except Exception:
            logger.exception(
                "Failed to persist chat session",
                extra={"session_id": str(turn.session_id)},
            )
        else:
            logger.info(
                "Persisted chat exchange",
                extra={
                    "session_id": str(turn.session_id),
                    "new_documents": len(turn.new_documents),
                },
            )
        try:
            self.usage_service.record(owner_id, UsageKind.CHAT, result.usage)
        except Exception:
            logger.exception(
                "Failed to record chat usage", extra={"user_id": str(owner_id)}
            )


async def _prepend(
    first: StreamEvent | None, events: AsyncIterator[StreamEvent]
) -> AsyncIterator[StreamEvent]:
    try:
        if first is not None:
            yield first
        async for event in events:
            yield event
    finally:
        await close_events(events)


