"""Shared test fixtures."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID, uuid4

import pytest

from docchat.config import Settings
from docchat.containers import AppContainer
from docchat.domain.analysis import Finding
from docchat.domain.chat import ChatMessage, ChatSession
from docchat.domain.documents import DocumentContext, DocumentPage
from docchat.domain.streaming import Delta, Done, StreamEvent, UsageOnly
from docchat.domain.usage import UsageInfo
from docchat.errors import AuthenticationFailed, DocumentNotFound
from docchat.services.analysis import AnalysisRepository, AnalysisService
from docchat.services.auth import Identity, IdentityVerifier
from docchat.services.chat import ChatModelClient, ChatOrchestrator, JsonCompletion
from docchat.services.extraction import DocumentExtractor, OcrClient
from docchat.services.sessions import SessionRepository, SessionStore
from docchat.services.storage import ObjectStore, guess_mime_type
from docchat.services.usage import UsageRepository, UsageService

OWNER_TOKEN = "owner-token"
OTHER_TOKEN = "other-token"


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory chat session repository for tests."""

    sessions: dict[UUID, ChatSession] = field(default_factory=dict)
    fail_reads: bool = False
    fail_writes: bool = False
    fail_creates: bool = False
    update_calls: int = 0

    def create_session(self, user_id: UUID) -> ChatSession:
        if self.fail_creates:
            raise RuntimeError("insert failed")
        now = datetime.now(tz=UTC)
        session = ChatSession(
            id=uuid4(), owner_id=user_id, created_at=now, updated_at=now
        )
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> ChatSession | None:
        if self.fail_reads:
            raise RuntimeError("select failed")
        return self.sessions.get(session_id)

    def list_sessions(self, user_id: UUID) -> list[ChatSession]:
        owned = [s for s in self.sessions.values() if s.owner_id == user_id]
        return sorted(owned, key=_updated_at, reverse=True)

    def update_session(
        self,
        session_id: UUID,
        messages: list[ChatMessage],
        documents: list[DocumentContext],
    ) -> ChatSession:
        self.update_calls += 1
        if self.fail_writes:
            raise RuntimeError("update failed")
        current = self.sessions[session_id]
        updated = ChatSession(
            id=current.id,
            owner_id=current.owner_id,
            messages=list(messages),
            documents=list(documents),
            created_at=current.created_at,
            updated_at=datetime.now(tz=UTC),
        )
        self.sessions[session_id] = updated
        return updated

    def add(
        self,
        owner_id: UUID,
        messages: list[ChatMessage] | None = None,
        documents: list[DocumentContext] | None = None,
    ) -> ChatSession:
        session = ChatSession(
            id=uuid4(),
            owner_id=owner_id,
            messages=messages or [],
            documents=documents or [],
        )
        self.sessions[session.id] = session
        return session


def _updated_at(session: ChatSession) -> datetime:
    return session.updated_at or datetime.min.replace(tzinfo=UTC)


@dataclass
class InMemoryUsageRepository(UsageRepository):
    """In-memory usage ledger for tests."""

    rows: list[dict[str, object]] = field(default_factory=list)

    def create_usage(self, user_id: UUID, usage_type: str, token_count: int) -> None:
        self.rows.append(
            {"user_id": user_id, "usage_type": usage_type, "token_count": token_count}
        )

    def list_recent(self, limit: int) -> list[dict[str, object]]:
        return list(reversed(self.rows))[:limit]


@dataclass
class InMemoryAnalysisRepository(AnalysisRepository):
    """In-memory analysis result repository for tests."""

    rows: list[dict[str, object]] = field(default_factory=list)

    def create_analysis(
        self,
        chat_id: UUID,
        user_id: UUID,
        prompt: str | None,
        findings: list[Finding],
    ) -> None:
        self.rows.append(
            {
                "chat_id": chat_id,
                "user_id": user_id,
                "prompt": prompt,
                "findings": findings,
            }
        )


@dataclass
class InMemoryObjectStore(ObjectStore):
    """Object store serving files registered per owner."""

    files: dict[str, tuple[UUID, bytes]] = field(default_factory=dict)

    def put(self, path: str, owner_id: UUID, content: bytes = b"%PDF-1.7") -> None:
        self.files[path] = (owner_id, content)

    def download(self, path: str, owner_id: UUID) -> bytes:
        entry = self.files.get(path)
        if entry is None or entry[0] != owner_id:
            raise DocumentNotFound(f"Document {path} not found")
        return entry[1]

    def get_mime_type(self, path: str) -> str:
        return guess_mime_type(path)


@dataclass
class FakeOcrClient(OcrClient):
    """OCR client returning one text page per requested page count."""

    pages_per_file: dict[str, int] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    payload: dict[str, object] | None = None
    staged_paths: list[Path] = field(default_factory=list)
    mime_types: list[str] = field(default_factory=list)

    async def recognize(  # noqa: PLR0913
        self,
        *,
        model: str,
        file_path: Path,
        file_name: str,
        mime_type: str,
        include_images: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.staged_paths.append(file_path)
        self.mime_types.append(mime_type)
        assert file_path.exists()
        if file_name in self.failing:
            raise RuntimeError(f"OCR failed for {file_name}")
        if self.payload is not None:
            return self.payload
        count = self.pages_per_file.get(file_name, 1)
        return {
            "pages": [
                {"index": index, "markdown": f"{file_name} page {index + 1}"}
                for index in range(count)
            ],
            "model": "ocr-test",
        }


@dataclass
class FakeChatClient(ChatModelClient):
    """Chat client replaying scripted stream events."""

    events: list[StreamEvent] = field(
        default_factory=lambda: [
            Delta(text="Hello"),
            Delta(text=" world"),
            UsageOnly(
                usage=UsageInfo(prompt_tokens=10, completion_tokens=2, total_tokens=12)
            ),
            Done(),
        ]
    )
    open_error: Exception | None = None
    json_text: str = '{"findings": []}'
    json_usage: UsageInfo | None = None
    json_error: Exception | None = None
    calls: list[list[ChatMessage]] = field(default_factory=list)
    json_calls: list[list[ChatMessage]] = field(default_factory=list)
    closed: int = 0

    async def stream_chat(
        self, *, model: str, messages: list[ChatMessage]
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append(list(messages))
        try:
            if self.open_error is not None:
                raise self.open_error
            for event in self.events:
                yield event
        finally:
            self.closed += 1

    async def complete_json(
        self, *, model: str, messages: list[ChatMessage], schema: dict[str, object]
    ) -> JsonCompletion:
        self.json_calls.append(list(messages))
        if self.json_error is not None:
            raise self.json_error
        return JsonCompletion(text=self.json_text, usage=self.json_usage)


@dataclass
class FakeIdentityVerifier(IdentityVerifier):
    """Identity verifier accepting a fixed set of tokens."""

    identities: dict[str, Identity] = field(default_factory=dict)

    def verify(self, token: str) -> Identity:
        identity = self.identities.get(token)
        if identity is None:
            raise AuthenticationFailed("Invalid or expired token")
        return identity


def make_document(name: str, pages: int = 1) -> DocumentContext:
    return DocumentContext(
        source_name=name,
        model="ocr-test",
        pages=tuple(
            DocumentPage(index=index, markdown=f"{name} page {index + 1}")
            for index in range(pages)
        ),
    )


async def read_body(body: AsyncIterator[str]) -> str:
    return "".join([chunk async for chunk in body])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        openai_api_key="openai-key",
        system_prompt="You are a test assistant.",
        environment="test",
    )


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def usage_repository() -> InMemoryUsageRepository:
    return InMemoryUsageRepository()


@pytest.fixture
def analysis_repository() -> InMemoryAnalysisRepository:
    return InMemoryAnalysisRepository()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def ocr_client() -> FakeOcrClient:
    return FakeOcrClient()


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    owner_id: UUID,
    other_owner_id: UUID,
    session_repository: InMemorySessionRepository,
    usage_repository: InMemoryUsageRepository,
    analysis_repository: InMemoryAnalysisRepository,
    object_store: InMemoryObjectStore,
    ocr_client: FakeOcrClient,
    chat_client: FakeChatClient,
) -> AppContainer:
    identity_verifier = FakeIdentityVerifier(
        identities={
            OWNER_TOKEN: Identity(user_id=owner_id),
            OTHER_TOKEN: Identity(user_id=other_owner_id),
        }
    )
    session_store = SessionStore(session_repository)
    usage_service = UsageService(usage_repository)
    document_extractor = DocumentExtractor(
        client=ocr_client, model=settings.openai_ocr_model
    )
    chat_orchestrator = ChatOrchestrator(
        session_store=session_store,
        object_store=object_store,
        extractor=document_extractor,
        chat_client=chat_client,
        usage_service=usage_service,
        model=settings.openai_model,
        system_prompt=settings.system_prompt,
    )
    analysis_service = AnalysisService(
        session_store=session_store,
        chat_client=chat_client,
        usage_service=usage_service,
        repository=analysis_repository,
        model=settings.openai_model,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        identity_verifier=identity_verifier,
        object_store=object_store,
        session_store=session_store,
        usage_service=usage_service,
        document_extractor=document_extractor,
        chat_orchestrator=chat_orchestrator,
        analysis_service=analysis_service,
        close_resources=close_resources,
    )
