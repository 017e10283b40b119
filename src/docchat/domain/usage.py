"""Token usage models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class UsageKind(StrEnum):
    """Ledger category of a model call."""

    CHAT = "chat"
    ANALYSIS = "analysis"


class UsageInfo(BaseModel):
    """Token accounting reported by the provider for one call."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
