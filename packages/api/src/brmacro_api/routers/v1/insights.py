"""AI insight endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from brmacro_api.dependencies import AuthError, AuthUser, authenticate, require_auth
from brmacro_api.responses import insight_error
from brmacro_api.services import insight_service
from brmacro_api.services.ai_gateway import GenerationErrorKind
from brmacro_api.services.insight_service import GenerationError, InsightRequest

logger = structlog.get_logger()

router = APIRouter(prefix="/insights", tags=["insights"])

ERROR_STATUS: dict[GenerationErrorKind, int] = {
    GenerationErrorKind.RATE_LIMITED: 429,
    GenerationErrorKind.QUOTA_EXHAUSTED: 402,
    GenerationErrorKind.GENERIC: 500,
}

ERROR_MESSAGES: dict[GenerationErrorKind, str] = {
    GenerationErrorKind.RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    GenerationErrorKind.QUOTA_EXHAUSTED: "AI credits exhausted. Please add credits to continue.",
}


@router.get("")
async def list_insights(user: AuthUser = Depends(require_auth)):
    """The caller's stored insights, newest first."""
    return {"insights": insight_service.list_insights(user)}


@router.post("/generate")
async def generate(request: Request):
    """Summarize the caller's indicators and ask the gateway for insights."""
    try:
        user = authenticate(request)
    except AuthError as exc:
        return JSONResponse(status_code=401, content=insight_error(exc.message))

    try:
        body = InsightRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as exc:
        logger.warning("insight_request_invalid", user_id=user.user_id, error=str(exc))
        return JSONResponse(status_code=500, content=insight_error(f"Invalid request body: {exc}"))

    try:
        return await insight_service.generate_insights(user, body)
    except GenerationError as exc:
        status = ERROR_STATUS[exc.kind]
        message = ERROR_MESSAGES.get(exc.kind, exc.message)
        return JSONResponse(status_code=status, content=insight_error(message))
    except Exception as exc:
        logger.error("insight_request_failed", error=str(exc))
        return JSONResponse(status_code=500, content=insight_error(str(exc)))
