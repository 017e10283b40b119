"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse

from docchat.api.admin import router as admin_router
from docchat.api.models import (
    AnalyzeRequest,
    ChatRequest,
    OcrRequest,
    SessionDetail,
    SessionSummary,
)
from docchat.app_logging import configure_logging
from docchat.containers import AppContainer
from docchat.domain.analysis import AnalysisReport
from docchat.domain.documents import DocumentContext
from docchat.errors import (
    AuthenticationFailed,
    DocChatError,
    DocumentProcessingFailed,
    ModelCallFailed,
    SessionNotFound,
    ValidationFailed,
)
from docchat.services.auth import Identity, parse_bearer_token
from docchat.services.storage import source_name

logger = logging.getLogger(__name__)

CHAT_ID_HEADER = "X-Chat-Id"


async def require_identity(
    request: Request, authorization: str | None = Header(default=None)
) -> Identity:
    """Resolve the caller from the ``Authorization: Bearer`` header."""
    token = parse_bearer_token(authorization)
    if token is None:
        raise AuthenticationFailed("Missing or malformed authorization header")
    container: AppContainer = request.app.state.container
    return container.identity_verifier.verify(token)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(DocChatError)
    async def handle_docchat_error(request: Request, exc: DocChatError) -> JSONResponse:
        state_container: AppContainer = request.app.state.container
        return _error_response(exc, state_container.settings.environment)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        state_container: AppContainer = request.app.state.container
        return _error_response(
            ValidationFailed(_describe_validation_error(exc)),
            state_container.settings.environment,
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/chat")
    async def chat(
        body: ChatRequest,
        request: Request,
        identity: Identity = Depends(require_identity),
    ) -> StreamingResponse:
        """Answer a prompt as a plain text stream within a chat session."""
        if not body.prompt.strip():
            raise ValidationFailed("Prompt is required")
        state_container: AppContainer = request.app.state.container
        turn = await state_container.chat_orchestrator.start_turn(
            identity.user_id,
            body.prompt,
            session_id=body.chat_id,
            file_paths=body.file_paths,
        )
        logger.info(
            "Streaming chat answer",
            extra={
                "session_id": str(turn.session_id),
                "new_session": turn.created_session,
                "new_documents": len(turn.new_documents),
            },
        )
        return StreamingResponse(
            turn.body,
            media_type="text/plain; charset=utf-8",
            headers=_chat_id_headers(str(turn.session_id)),
        )

    @app.post("/api/ocr")
    async def ocr(
        body: OcrRequest,
        request: Request,
        identity: Identity = Depends(require_identity),
    ) -> DocumentContext:
        """Recognize a single stored document without touching any session."""
        state_container: AppContainer = request.app.state.container
        name = source_name(body.file_path)
        try:
            file_bytes = await asyncio.to_thread(
                state_container.object_store.download, body.file_path, identity.user_id
            )
        except DocChatError:
            raise
        except Exception as exc:
            raise DocumentProcessingFailed(name, "Download failed") from exc
        return await state_container.document_extractor.extract(
            file_bytes,
            name,
            include_images=body.include_image_base64,
            mime_type=state_container.object_store.get_mime_type(body.file_path),
        )

    @app.post("/api/chat/{chat_id}/analyze")
    async def analyze(
        chat_id: str,
        request: Request,
        body: AnalyzeRequest | None = None,
        identity: Identity = Depends(require_identity),
    ) -> AnalysisReport:
        """Return structured findings for the documents of a chat session."""
        state_container: AppContainer = request.app.state.container
        return await state_container.analysis_service.analyze(
            chat_id, identity.user_id, body.prompt if body else None
        )

    @app.get("/api/sessions")
    async def list_sessions(
        request: Request, identity: Identity = Depends(require_identity)
    ) -> dict[str, list[SessionSummary]]:
        """Return the caller's sessions, most recently updated first."""
        state_container: AppContainer = request.app.state.container
        sessions = state_container.session_store.list_for_owner(identity.user_id)
        return {"sessions": [SessionSummary.from_session(item) for item in sessions]}

    @app.get("/api/sessions/{chat_id}")
    async def session_detail(
        chat_id: str,
        request: Request,
        identity: Identity = Depends(require_identity),
    ) -> SessionDetail:
        """Return one of the caller's sessions with its messages."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_store.resolve(chat_id, identity.user_id)
        if session is None:
            raise SessionNotFound(f"Chat session {chat_id} not found")
        return SessionDetail.from_session(session)

    return app


def _error_response(exc: DocChatError, environment: str) -> JSONResponse:
    error: dict[str, object] = {"code": exc.code, "message": exc.message}
    headers: dict[str, str] = {}
    if isinstance(exc, ModelCallFailed) and exc.session_id is not None:
        error["chat_id"] = str(exc.session_id)
        headers = _chat_id_headers(str(exc.session_id))
    if environment == "local" and exc.__cause__ is not None:
        error["debug"] = repr(exc.__cause__)
    if exc.status_code >= 500:
        logger.error("Request failed", extra={"code": exc.code})
    else:
        logger.info("Request rejected", extra={"code": exc.code})
    return JSONResponse(
        status_code=exc.status_code, content={"error": error}, headers=headers
    )


def _chat_id_headers(session_id: str) -> dict[str, str]:
    return {
        CHAT_ID_HEADER: session_id,
        "Access-Control-Expose-Headers": CHAT_ID_HEADER,
    }


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message
