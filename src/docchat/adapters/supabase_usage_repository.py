"""Supabase-backed usage ledger."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from docchat.services.usage import UsageRepository


@dataclass
class SupabaseUsageRepository(UsageRepository):
    """Supabase implementation for the ``user_usage`` ledger."""

    client: Client

    def create_usage(self, user_id: UUID, usage_type: str, token_count: int) -> None:
        """Append a ledger row."""
        self.client.table("user_usage").insert(
            {
                "user_id": str(user_id),
                "usage_type": usage_type,
                "token_count": token_count,
            }
        ).execute()

    def list_recent(self, limit: int) -> list[dict[str, object]]:
        """Return the newest ledger rows."""
        response = (
            self.client.table("user_usage")
            .select("user_id, usage_type, token_count, created_at")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []
