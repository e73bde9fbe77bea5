"""
pipelines/ingest.py — Brazilian macro indicators ingestion pipeline.

Orchestrates, per requested indicator and in parallel:
  1. Source adapter fetch (SGS, Ipeadata, IBGE, PTAX), bounded by
     settings.source_timeout_s
  2. Same-day deduplication, keeping the last row seen
  3. Upsert into economic_indicators with the system owner

A failing or slow adapter, or a failed upsert, contributes 0 records for its
indicator and never aborts the rest of the batch.

Usage:
    from brmacro_pipeline.pipelines.ingest import run
    result = await run(["selic", "dolar"], lookback="12M")
    print(result.results)   # {"selic": 250, "dolar": 248}
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol

import polars as pl

from brmacro_shared.config import settings
from brmacro_shared.constants import ALL_INDICATORS, IndicatorKind, resolve_indicators
from brmacro_shared.models.indicators import Owner
from brmacro_pipeline.loaders.supabase_loader import LoadResult, SupabaseLoader
from brmacro_pipeline.sources import SOURCE_FOR_INDICATOR
from brmacro_pipeline.sources.base import BaseSource
from brmacro_pipeline.transforms.time_series import deduplicate_series
from brmacro_pipeline.utils.logging import configure_logging, get_logger

log = get_logger(__name__, pipeline="ingest")


class ObservationLoader(Protocol):
    async def upsert_observations(self, df: pl.DataFrame, owner: Owner) -> LoadResult: ...


@dataclass
class IngestResult:
    """Per-indicator record counts of one ingestion run."""

    results: dict[str, int] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    success: bool = True
    error: str | None = None
    duration_ms: int = 0

    @property
    def total_records(self) -> int:
        return sum(self.results.values())

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, "results": dict(self.results)}


def _selected(indicators: Iterable[str] | None) -> list[IndicatorKind]:
    requested = None if indicators is None else [str(i) for i in indicators]
    kinds = resolve_indicators(requested)

    if requested is not None and ALL_INDICATORS not in requested:
        known = {k.value for k in kinds}
        for name in requested:
            if name.strip().lower() not in known:
                log.warning("unknown_indicator_ignored", indicator=name)
    return kinds


async def _ingest_one(
    kind: IndicatorKind,
    source: BaseSource,
    loader: ObservationLoader | None,
    *,
    lookback: str,
    today: date | None,
) -> tuple[int, str | None]:
    """Fetch, dedupe and store one indicator. Returns (records, error)."""
    ind_log = log.bind(indicator=kind.value, source_name=source.name)

    try:
        df = await asyncio.wait_for(
            source.fetch(kind, lookback, today=today),
            timeout=settings.source_timeout_s,
        )
    except asyncio.TimeoutError:
        ind_log.error("source_timeout", timeout_s=settings.source_timeout_s)
        return 0, f"timed out after {settings.source_timeout_s}s"

    if df.is_empty():
        ind_log.warning("no_observations")
        return 0, "no observations returned"

    df = deduplicate_series(df, ["indicator", "reference_date"], keep="last")

    if loader is None:
        ind_log.info("dry_run_indicator", rows=len(df))
        return len(df), None

    try:
        result = await loader.upsert_observations(df, Owner.system())
    except Exception as exc:
        ind_log.error("upsert_failed", error=str(exc))
        return 0, str(exc)

    if not result.success:
        ind_log.error("upsert_failed", errors=result.errors)
        return 0, "; ".join(result.errors) or "upsert failed"

    ind_log.info("indicator_ingested", records=result.records_loaded)
    return result.records_loaded, None


async def run(
    indicators: Iterable[str] | None = None,
    *,
    lookback: str = settings.default_lookback,
    dry_run: bool = False,
    loader: ObservationLoader | None = None,
    sources: dict[IndicatorKind, BaseSource] | None = None,
    today: date | None = None,
) -> IngestResult:
    """
    Run the ingestion pipeline end-to-end.

    Args:
        indicators: Indicator ids; "all" anywhere (or None) selects every kind.
        lookback:   "6M" | "12M" | "24M" window for date-filtered sources.
        dry_run:    If True, fetch and transform but do not write to Supabase.
        loader:     Loader to write through (default: SupabaseLoader()).
        sources:    Adapter overrides keyed by indicator.
        today:      Reference date for the lookback window (default: today).

    Returns:
        IngestResult; success is False only when the run itself could not
        start, e.g. the Supabase client could not be created.
    """
    configure_logging()
    t0 = time.monotonic()
    kinds = _selected(indicators)
    log.info(
        "ingest_start",
        indicators=[k.value for k in kinds],
        lookback=lookback,
        dry_run=dry_run,
    )

    if not dry_run and loader is None:
        try:
            loader = SupabaseLoader()
        except Exception as exc:
            log.error("ingest_failed", error=str(exc))
            return IngestResult(success=False, error=str(exc))

    sources = sources or {}
    adapters = {
        kind: sources.get(kind) or SOURCE_FOR_INDICATOR[kind]()
        for kind in kinds
    }

    outcomes = await asyncio.gather(
        *(
            _ingest_one(
                kind,
                adapters[kind],
                None if dry_run else loader,
                lookback=lookback,
                today=today,
            )
            for kind in kinds
        )
    )

    result = IngestResult()
    for kind, (records, error) in zip(kinds, outcomes):
        result.results[kind.value] = records
        if error:
            result.errors[kind.value] = error

    result.duration_ms = int((time.monotonic() - t0) * 1000)
    log.info(
        "ingest_complete",
        results=result.results,
        failed=sorted(result.errors),
        total_records=result.total_records,
        duration_ms=result.duration_ms,
    )
    return result
