"""Query parameter parsing and Supabase filter builders."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import HTTPException

from brmacro_shared.constants import IndicatorKind, Unrecognized, canonicalize_indicator
from brmacro_shared.time_utils import lookback_start

from brmacro_api.responses import error_response


def apply_date_filters(
    query: Any,
    column: str,
    start_date: date | None,
    end_date: date | None,
) -> Any:
    """Apply date range filters to a Supabase query builder."""
    if start_date is not None:
        query = query.gte(column, start_date.isoformat())
    if end_date is not None:
        query = query.lte(column, end_date.isoformat())
    return query


def parse_indicator(raw: str | None) -> IndicatorKind | None:
    """Resolve an ?indicator= value (aliases allowed); 400 when unknown."""
    if raw is None or not raw.strip():
        return None
    kind = canonicalize_indicator(raw)
    if isinstance(kind, Unrecognized):
        raise HTTPException(
            status_code=400,
            detail=error_response(
                "INVALID_INDICATOR",
                f"Indicator '{raw}' is not valid.",
                details={"valid": [k.value for k in IndicatorKind]},
            ),
        )
    return kind


def window_start(window: str | None, today: date | None = None) -> date | None:
    """First date covered by a 6M/12M/24M window; None means no lower bound."""
    if window is None:
        return None
    return lookback_start(window.upper(), today)
