"""
transforms/time_series.py — Deduplication and reshaping of observation frames.

Works on polars DataFrames in the observation schema produced by the
source adapters (reference_date, indicator, value).

Usage:
    from brmacro_pipeline.transforms.time_series import (
        deduplicate_series,
        group_series,
    )

    # Remove duplicate (indicator, date) rows, keeping the last one seen
    df = deduplicate_series(df, ["indicator", "reference_date"])

    # {IndicatorKind: [SeriesPoint, ...]} in ascending date order
    series = group_series(df)
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

import polars as pl
import structlog

from brmacro_shared.constants import IndicatorKind
from brmacro_shared.models.indicators import SeriesPoint

log = structlog.get_logger(__name__)


def deduplicate_series(
    df: pl.DataFrame,
    key_cols: list[str],
    *,
    keep: Literal["first", "last"] = "last",
    sort_col: str | None = None,
) -> pl.DataFrame:
    """
    Remove duplicate rows by (key_cols), keeping first or last occurrence.

    Order of the surviving rows follows their first appearance. Without
    sort_col, "last" means last in the frame's current order.

    Args:
        df:       Input DataFrame.
        key_cols: Columns that define uniqueness.
        keep:     Which duplicate to keep ("first" | "last").
        sort_col: If set, sort by this column before deduplication.

    Returns:
        Deduplicated DataFrame.
    """
    n_before = len(df)

    if sort_col and sort_col in df.columns:
        df = df.sort(sort_col, descending=False, maintain_order=True)

    df = df.unique(subset=key_cols, keep=keep, maintain_order=True)

    dropped = n_before - len(df)
    if dropped:
        log.debug("deduplicated", dropped=dropped, key_cols=key_cols)

    return df


def rows_to_frame(rows: list[dict[str, Any]]) -> pl.DataFrame:
    """
    Build an observation frame from economic_indicators rows.

    Extra columns (id, user_id, created_at) are dropped.
    """
    schema = {"reference_date": pl.String, "indicator": pl.String, "value": pl.Float64}
    if not rows:
        return pl.DataFrame(schema=schema)
    return pl.DataFrame(
        {
            "reference_date": [str(r["reference_date"])[:10] for r in rows],
            "indicator": [str(r["indicator"]) for r in rows],
            "value": [float(r["value"]) for r in rows],
        },
        schema=schema,
    )


def group_series(df: pl.DataFrame) -> dict[IndicatorKind, list[SeriesPoint]]:
    """
    Split an observation frame into per-indicator ascending series.

    Unknown indicator ids are ignored. Indicators keep IndicatorKind order.
    """
    if df.is_empty():
        return {}

    ordered = df.sort(["indicator", "reference_date"])
    grouped: dict[IndicatorKind, list[SeriesPoint]] = {}
    known = {k.value: k for k in IndicatorKind}

    for (indicator,), group in ordered.group_by(["indicator"], maintain_order=True):
        kind = known.get(str(indicator))
        if kind is None:
            log.warning("unknown_indicator_skipped", indicator=indicator)
            continue
        grouped[kind] = [
            SeriesPoint(date=date.fromisoformat(d), value=v)
            for d, v in group.select(["reference_date", "value"]).iter_rows()
        ]

    return {k: grouped[k] for k in IndicatorKind if k in grouped}
