"""Standardized API response wrappers."""

from __future__ import annotations

from typing import Any


def wrap_response(
    data: Any,
    *,
    total_count: int | None = None,
    window: str | None = None,
    since: str | None = None,
) -> dict[str, Any]:
    """Build a standardized {data, meta} response dict."""
    meta = {
        "total_count": total_count,
        "window": window,
        "since": since,
    }
    return {
        "data": data,
        "meta": {k: v for k, v in meta.items() if v is not None},
    }


def error_response(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a standardized error body for HTTPException.detail."""
    err: dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return {"error": err}


def insight_error(message: str) -> dict[str, Any]:
    """Error body of the insight generation contract."""
    return {"error": message, "insights": []}
