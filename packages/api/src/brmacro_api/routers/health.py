"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from brmacro_shared import __version__
from brmacro_shared.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@router.get("/ready")
async def ready():
    """Ready once the datastore credentials are configured."""
    missing = [
        name
        for name, value in (
            ("supabase_url", settings.supabase_url),
            ("supabase_service_key", settings.supabase_service_key),
        )
        if not value
    ]
    if missing:
        return JSONResponse(status_code=503, content={"status": "not_ready", "missing": missing})
    return {"status": "ready"}
