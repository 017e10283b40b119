"""Structured review of the documents attached to a chat session."""

import json
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from docchat.domain.analysis import AnalysisReport, Finding
from docchat.domain.usage import UsageKind
from docchat.errors import (
    AnalysisFailed,
    ModelCallFailed,
    SessionNotFound,
    ValidationFailed,
)
from docchat.prompts import ANALYSIS_REQUEST, analysis_system_prompt
from docchat.services.chat import ChatModelClient
from docchat.services.context import merge_context
from docchat.services.sessions import SessionStore
from docchat.services.usage import UsageService

logger = logging.getLogger(__name__)

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "findings": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "level": {"type": "string", "enum": ["info", "warning", "error"]},
                    "description": {"type": "string"},
                    "location_hint": {"type": "string"},
                },
                "required": ["level", "description", "location_hint"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["findings"],
    "additionalProperties": False,
}

_FINDINGS = TypeAdapter(list[Finding])


class AnalysisRepository(Protocol):
    """Persistence interface for analysis results."""

    def create_analysis(
        self,
        chat_id: UUID,
        user_id: UUID,
        prompt: str | None,
        findings: list[Finding],
    ) -> None:
        """Store one analysis result."""


@dataclass
class AnalysisService:
    """Asks the model for findings about a session's documents."""

    session_store: SessionStore
    chat_client: ChatModelClient
    usage_service: UsageService
    repository: AnalysisRepository
    model: str

    async def analyze(
        self, session_id: str | UUID, owner_id: UUID, extra_prompt: str | None = None
    ) -> AnalysisReport:
        """Return validated findings for every document in the session.

        The session must exist, belong to owner_id and hold at least one
        document. A model answer that is not a list of valid findings raises
        AnalysisFailed instead of producing an empty report.
        """
        session = self.session_store.resolve(session_id, owner_id)
        if session is None:
            raise SessionNotFound(f"Chat session {session_id} not found")
        if not session.documents:
            raise ValidationFailed("Chat session has no documents to analyze")

        messages = merge_context(
            analysis_system_prompt(extra_prompt),
            [],
            session.documents,
            [],
            ANALYSIS_REQUEST,
        )
        try:
            completion = await self.chat_client.complete_json(
                model=self.model, messages=messages, schema=ANALYSIS_SCHEMA
            )
        except Exception as exc:
            raise ModelCallFailed(str(exc), session_id=session.id) from exc
        findings = parse_findings(completion.text)
        logger.info(
            "Analyzed chat session",
            extra={"session_id": str(session.id), "findings": len(findings)},
        )

        report = AnalysisReport(
            chat_id=session.id, findings=findings, usage=completion.usage
        )
        self._store(report, owner_id, extra_prompt)
        return report

    def _store(
        self, report: AnalysisReport, owner_id: UUID, extra_prompt: str | None
    ) -> None:
        try:
            self.repository.create_analysis(
                chat_id=report.chat_id,
                user_id=owner_id,
                prompt=extra_prompt,
                findings=report.findings,
            )
        except Exception:
            logger.exception(
                "Failed to store analysis", extra={"session_id": str(report.chat_id)}
            )
        try:
            self.usage_service.record(owner_id, UsageKind.ANALYSIS, report.usage)
        except Exception:
            logger.exception(
                "Failed to record analysis usage", extra={"user_id": str(owner_id)}
            )


def parse_findings(text: str) -> list[Finding]:
    """Parse a findings array, either bare or wrapped in ``{"findings": ...}``."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalysisFailed("Model returned invalid JSON") from exc
    if isinstance(payload, dict):
        payload = payload.get("findings")
    if not isinstance(payload, list):
        raise AnalysisFailed("Model answer does not contain a findings array")
    try:
        return _FINDINGS.validate_python(payload)
    except ValidationError as exc:
        raise AnalysisFailed("Model returned malformed findings") from exc
