"""Bearer JWT and service-key authentication."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Header, HTTPException, Request
from jose import JWTError
from jose import jwt as jose_jwt

from brmacro_shared.config import settings
from brmacro_shared.models.indicators import Owner

logger = structlog.get_logger()

MISSING_HEADER = "Missing authorization header"
INVALID_TOKEN = "Invalid token"


class AuthError(Exception):
    """Raised when a request carries no usable bearer credential."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass
class AuthUser:
    user_id: str
    email: str | None = None

    @property
    def owner(self) -> Owner:
        return Owner.user(self.user_id)


def _validate_jwt(token: str) -> dict[str, Any] | None:
    """Validate a Supabase JWT and return its claims."""
    try:
        return jose_jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
    except JWTError as exc:
        logger.info("jwt_rejected", error=str(exc))
        return None


def authenticate(request: Request) -> AuthUser:
    """
    Resolve the caller from the Authorization header.

    Raises:
        AuthError: header missing, token invalid, or no subject claim.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthError(MISSING_HEADER)

    token = auth_header[7:] if auth_header.startswith("Bearer ") else auth_header
    claims = _validate_jwt(token)
    if claims is None or not claims.get("sub"):
        raise AuthError(INVALID_TOKEN)

    return AuthUser(user_id=claims["sub"], email=claims.get("email"))


async def require_auth(request: Request) -> AuthUser:
    """Dependency that requires a valid bearer token."""
    try:
        return authenticate(request)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc


async def require_service_key(
    x_service_key: str | None = Header(default=None),
) -> None:
    """Guard for the ingestion trigger; open when no service key is configured."""
    expected = settings.ingest_service_key
    if not expected:
        return
    if x_service_key is None or not hmac.compare_digest(x_service_key, expected):
        raise HTTPException(status_code=401, detail="Invalid service key")
