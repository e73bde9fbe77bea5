"""Indicator endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator

from brmacro_shared.constants import IndicatorKind, Unrecognized, canonicalize_indicator

from brmacro_api.dependencies import AuthUser, require_auth
from brmacro_api.responses import error_response, wrap_response
from brmacro_api.services import indicator_service
from brmacro_api.utils.filtering import parse_indicator, window_start

router = APIRouter(prefix="/indicators", tags=["indicators"])

WINDOW_PATTERN = r"^(6M|12M|24M)$"


class ManualValueIn(BaseModel):
    indicator: IndicatorKind
    reference_date: date
    value: float

    @field_validator("indicator", mode="before")
    @classmethod
    def _canonical(cls, v: object) -> object:
        kind = canonicalize_indicator(v if isinstance(v, str) else str(v))
        return v if isinstance(kind, Unrecognized) else kind


@router.get("")
async def list_indicators():
    """Static metadata for all indicators. No auth required."""
    data = indicator_service.list_indicators()
    return wrap_response(data, total_count=len(data))


@router.get("/values")
async def get_values(
    user: AuthUser = Depends(require_auth),
    indicator: str | None = Query(None, description="Indicator id or alias"),
    window: str | None = Query(None, pattern=WINDOW_PATTERN),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
):
    """System and caller observations, ascending by date."""
    since = start_date or window_start(window)
    data = indicator_service.get_values(
        user,
        indicator=parse_indicator(indicator),
        start_date=since,
        end_date=end_date,
    )
    return wrap_response(
        data,
        total_count=len(data),
        window=window,
        since=since.isoformat() if since else None,
    )


@router.post("/values", status_code=201)
async def upsert_value(body: ManualValueIn, user: AuthUser = Depends(require_auth)):
    """Create or replace the caller's own value for (indicator, date)."""
    data = indicator_service.upsert_user_value(
        user, body.indicator, body.reference_date, body.value
    )
    return wrap_response(data)


@router.delete("/values/{value_id}", status_code=204)
async def delete_value(value_id: str, user: AuthUser = Depends(require_auth)):
    """Delete one of the caller's manual values. System rows cannot be deleted."""
    if not indicator_service.delete_user_value(user, value_id):
        raise HTTPException(
            status_code=404,
            detail=error_response("NOT_FOUND", f"Value '{value_id}' not found."),
        )


@router.get("/snapshots")
async def get_snapshots(
    user: AuthUser = Depends(require_auth),
    window: str = Query("12M", pattern=WINDOW_PATTERN),
    include_history: bool = Query(False),
):
    """Derived metrics per indicator over the window."""
    since = window_start(window)
    data = indicator_service.get_snapshots(user, since=since, include_history=include_history)
    return wrap_response(data, total_count=len(data), window=window, since=since.isoformat())


@router.get("/correlation")
async def get_correlation(
    user: AuthUser = Depends(require_auth),
    window: str = Query("24M", pattern=WINDOW_PATTERN),
):
    """Pairwise Pearson correlation between indicators over the window."""
    since = window_start(window)
    data = indicator_service.get_correlation(user, since=since)
    return wrap_response(data, window=window, since=since.isoformat())
