"""Shared FastAPI dependencies."""

from __future__ import annotations

from brmacro_shared.db import get_supabase_client

from brmacro_api.middleware.auth import (
    AuthError,
    AuthUser,
    authenticate,
    require_auth,
    require_service_key,
)

__all__ = [
    "AuthError",
    "AuthUser",
    "authenticate",
    "get_supabase_client",
    "require_auth",
    "require_service_key",
]
