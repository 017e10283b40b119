"""Models for document analysis results."""

from enum import StrEnum
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from docchat.domain.usage import UsageInfo


class FindingLevel(StrEnum):
    """Severity of an analysis finding."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Finding(BaseModel):
    """Single issue found in a session's documents."""

    level: FindingLevel
    description: str
    location_hint: str = Field(
        default="", validation_alias=AliasChoices("location_hint", "metadata")
    )


class AnalysisReport(BaseModel):
    """Structured answer of an analysis request."""

    chat_id: UUID
    findings: list[Finding]
    usage: UsageInfo | None = None
