"""Token usage ledger."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from docchat.domain.usage import UsageInfo, UsageKind


class UsageRepository(Protocol):
    """Persistence interface for the append-only usage ledger."""

    def create_usage(self, user_id: UUID, usage_type: str, token_count: int) -> None:
        """Append a ledger row."""

    def list_recent(self, limit: int) -> list[dict[str, object]]:
        """Return the newest ledger rows."""


@dataclass
class UsageService:
    """Records provider token counts per user and call kind."""

    repository: UsageRepository

    def record(self, user_id: UUID, kind: UsageKind, usage: UsageInfo | None) -> bool:
        """Append usage when the provider reported any; return whether it did."""
        if usage is None:
            return False
        self.repository.create_usage(
            user_id=user_id, usage_type=kind.value, token_count=usage.total_tokens
        )
        return True

    def list_recent(self, limit: int = 30) -> list[dict[str, object]]:
        """Return recent ledger rows for reporting."""
        return self.repository.list_recent(limit)
