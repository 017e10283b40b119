"""Error taxonomy shared by services and the HTTP layer."""

from uuid import UUID


class DocChatError(Exception):
    """Base error carrying a stable code and HTTP status."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationFailed(DocChatError):
    """Missing, invalid or expired identity token."""

    code = "authentication_failed"
    status_code = 401


class ValidationFailed(DocChatError):
    """Request is missing required data."""

    code = "validation_failed"
    status_code = 400


class SessionNotFound(DocChatError):
    """Session does not exist or is not owned by the caller."""

    code = "session_not_found"
    status_code = 404


class DocumentNotFound(DocChatError):
    """Stored file does not exist or is not owned by the caller."""

    code = "document_not_found"
    status_code = 404


class DocumentProcessingFailed(DocChatError):
    """A single document could not be downloaded or recognized."""

    code = "document_processing_failed"
    status_code = 502

    def __init__(self, source_name: str, message: str) -> None:
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name


class ModelCallFailed(DocChatError):
    """The model provider failed to produce a response."""

    code = "model_call_failed"
    status_code = 502

    def __init__(self, message: str, session_id: UUID | None = None) -> None:
        super().__init__(message)
        self.session_id = session_id


class AnalysisFailed(DocChatError):
    """The structured analysis answer could not be parsed or validated."""

    code = "analysis_failed"
    status_code = 502


class PersistenceFailed(DocChatError):
    """The relational store could not be read or written."""

    code = "persistence_failed"
    status_code = 500
