"""Supabase-backed analysis result repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from docchat.domain.analysis import Finding
from docchat.services.analysis import AnalysisRepository


@dataclass
class SupabaseAnalysisRepository(AnalysisRepository):
    """Supabase implementation for ``document_analysis`` rows."""

    client: Client

    def create_analysis(
        self,
        chat_id: UUID,
        user_id: UUID,
        prompt: str | None,
        findings: list[Finding],
    ) -> None:
        """Store one analysis result."""
        self.client.table("document_analysis").insert(
            {
                "chat_id": str(chat_id),
                "user_id": str(user_id),
                "prompt": prompt,
                "analysis": [finding.model_dump(mode="json") for finding in findings],
            }
        ).execute()
