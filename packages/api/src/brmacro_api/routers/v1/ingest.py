"""Ingestion trigger endpoint."""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from brmacro_shared.config import settings
from brmacro_shared.constants import ALL_INDICATORS
from brmacro_pipeline.pipelines import ingest as ingest_pipeline

from brmacro_api.dependencies import require_service_key

logger = structlog.get_logger()

router = APIRouter(prefix="/ingest", tags=["ingest"])


async def _requested_indicators(request: Request) -> list[str]:
    """indicators from the JSON body; a missing or malformed body means all."""
    try:
        body: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return [ALL_INDICATORS]

    indicators = body.get("indicators") if isinstance(body, dict) else None
    if not isinstance(indicators, list) or not indicators:
        return [ALL_INDICATORS]
    return [str(i) for i in indicators]


@router.post("", dependencies=[Depends(require_service_key)])
async def trigger_ingest(request: Request):
    """Fetch the requested indicators upstream and upsert them as system rows."""
    indicators = await _requested_indicators(request)
    lookback = request.query_params.get("lookback", settings.default_lookback).upper()

    try:
        result = await ingest_pipeline.run(indicators, lookback=lookback)
    except Exception as exc:
        logger.error("ingest_request_failed", error=str(exc))
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    if not result.success:
        return JSONResponse(status_code=500, content=result.to_dict())
    return result.to_dict()
