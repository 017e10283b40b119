"""Caller identity verification."""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""

    user_id: UUID
    claims: dict[str, object] = field(default_factory=dict)


class IdentityVerifier(Protocol):
    """Interface for verifying bearer tokens."""

    def verify(self, token: str) -> Identity:
        """Return the identity behind token or raise AuthenticationFailed."""


def parse_bearer_token(header: str | None) -> str | None:
    """Extract the token from an Authorization header value."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
