"""Supabase Auth token verification."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from docchat.errors import AuthenticationFailed
from docchat.services.auth import Identity, IdentityVerifier

logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityVerifier(IdentityVerifier):
    """Resolves access tokens to users through Supabase Auth."""

    client: Client

    def verify(self, token: str) -> Identity:
        """Return the identity behind token or raise AuthenticationFailed."""
        try:
            response = self.client.auth.get_user(token)
        except Exception as exc:
            logger.warning("Token verification failed", extra={"error": str(exc)})
            raise AuthenticationFailed("Invalid or expired token") from exc
        user = getattr(response, "user", None)
        if user is None:
            raise AuthenticationFailed("Invalid or expired token")
        return Identity(
            user_id=UUID(str(user.id)),
            claims={
                "email": getattr(user, "email", None),
                "role": getattr(user, "role", None),
            },
        )
