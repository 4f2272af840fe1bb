from __future__ import annotations
"""Bearer-token resolution against the external auth provider.

Sessions, passwords and refresh live with the provider; this module only
asks it who a token belongs to and builds the SessionContext handed to the
rest of the app.
"""

import logging
from dataclasses import dataclass

import httpx
from fastapi import Depends, Header, HTTPException

from threadflow.config import get_settings
from threadflow.services.sessions import SessionContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None = None


class AuthError(Exception):
    pass


async def resolve_user(access_token: str, *, client: httpx.AsyncClient | None = None) -> AuthUser:
    """Ask the provider for the user behind ``access_token``."""
    settings = get_settings()
    if not settings.AUTH_URL:
        raise AuthError("Auth provider not configured")

    url = f"{settings.AUTH_URL.rstrip('/')}/auth/v1/user"
    headers = {"Authorization": f"Bearer {access_token}"}
    if settings.AUTH_API_KEY:
        headers["apikey"] = settings.AUTH_API_KEY

    own_client = client is None
    http = client or httpx.AsyncClient(timeout=float(settings.AUTH_TIMEOUT))
    try:
        response = await http.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("Auth provider unreachable: %s", e)
        raise AuthError("Auth provider unreachable") from e
    finally:
        if own_client:
            await http.aclose()

    if response.status_code != 200:
        raise AuthError(f"Token rejected (HTTP {response.status_code})")
    data = response.json()
    if not data.get("id"):
        raise AuthError("Auth provider returned no user id")
    return AuthUser(id=str(data["id"]), email=data.get("email"))


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token.strip()


async def get_current_user(authorization: str | None = Header(None)) -> AuthUser:
    """FastAPI dependency: the signed-in user, or 401."""
    token = _bearer_token(authorization)
    try:
        return await resolve_user(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e


async def get_session_context(
    authorization: str | None = Header(None),
    x_session_id: str | None = Header(None),
    user: AuthUser = Depends(get_current_user),
) -> SessionContext:
    """FastAPI dependency: explicit caller identity for the workflow."""
    return SessionContext(
        user_id=user.id,
        session_id=x_session_id or user.id,
        email=user.email,
        access_token=_bearer_token(authorization),
    )
