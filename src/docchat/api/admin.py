"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, Query, Request

from docchat.errors import AuthenticationFailed

if TYPE_CHECKING:
    from docchat.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise AuthenticationFailed("Invalid admin token")


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/usage", dependencies=[Depends(require_admin)])
async def list_usage(
    request: Request, limit: int = Query(default=30, ge=1, le=500)
) -> dict[str, object]:
    """Return the most recent usage ledger rows."""
    container: AppContainer = request.app.state.container
    return {"usage": container.usage_service.list_recent(limit)}
