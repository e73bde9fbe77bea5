"""
sources/base.py — Abstract base class for all data source adapters.

Each concrete source must implement:
  extract()      — call the upstream API, return the raw (raw_date, raw_value) frame
  transform()    — normalize dates and values into the observation schema

run() chains extract → transform with timing/logging and lets errors
propagate. fetch() is what the ingestion coordinator calls: it wraps run()
and turns any failure into an empty frame, so one broken upstream never
blocks the others.

Observation schema produced by transform():
    reference_date  String   "yyyy-mm-dd"
    indicator       String   IndicatorKind value
    value           Float64
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Any

import httpx
import polars as pl
import structlog

from brmacro_shared.config import settings
from brmacro_shared.constants import IndicatorKind, LookbackWindow
from brmacro_shared.time_utils import lookback_start
from brmacro_pipeline.utils.retry import with_retry

log = structlog.get_logger(__name__)

RAW_SCHEMA: dict[str, Any] = {"raw_date": pl.String, "raw_value": pl.String}

OBSERVATION_SCHEMA: dict[str, Any] = {
    "reference_date": pl.String,
    "indicator": pl.String,
    "value": pl.Float64,
}


def empty_raw() -> pl.DataFrame:
    return pl.DataFrame(schema=RAW_SCHEMA)


def empty_observations() -> pl.DataFrame:
    return pl.DataFrame(schema=OBSERVATION_SCHEMA)


def raw_frame(rows: list[tuple[Any, Any]]) -> pl.DataFrame:
    """Build a raw frame from (date, value) pairs; values may be str or number."""
    if not rows:
        return empty_raw()
    return pl.DataFrame(
        {
            "raw_date": [None if d is None else str(d) for d, _ in rows],
            "raw_value": [None if v is None else str(v) for _, v in rows],
        },
        schema=RAW_SCHEMA,
    )


class BaseSource(ABC):
    """Abstract base for all brmacro ingestion source adapters."""

    # Override in subclass; used for logging
    name: str = "unknown"
    # Indicator kinds this adapter can fetch
    indicators: tuple[IndicatorKind, ...] = ()

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(
        self,
        kind: IndicatorKind,
        *,
        start_date: date,
        end_date: date,
    ) -> pl.DataFrame:
        """
        Fetch raw points for one indicator.

        Returns:
            DataFrame with RAW_SCHEMA columns, in upstream order.
        """
        ...

    @abstractmethod
    def transform(self, raw: pl.DataFrame, kind: IndicatorKind) -> pl.DataFrame:
        """
        Normalize raw points into OBSERVATION_SCHEMA.

        Rows whose date cannot be normalized or whose value is not numeric
        are dropped individually.
        """
        ...

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def run(
        self,
        kind: IndicatorKind,
        *,
        lookback: LookbackWindow | str = settings.default_lookback,
        today: date | None = None,
    ) -> pl.DataFrame:
        """
        Extract + transform in sequence with timing and structured logging.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        self._require(kind)
        end_date = today or date.today()
        start_date = lookback_start(lookback, end_date)

        run_log = self._log.bind(indicator=kind.value, lookback=str(lookback))
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(kind, start_date=start_date, end_date=end_date)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            result = self.transform(raw, kind)
            run_log.info(
                "source_run_complete",
                output_rows=len(result),
                dropped_rows=len(raw) - len(result),
                total_duration_ms=int((time.monotonic() - t0) * 1000),
            )
            return result

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise

    async def fetch(
        self,
        kind: IndicatorKind,
        lookback: LookbackWindow | str = settings.default_lookback,
        *,
        today: date | None = None,
    ) -> pl.DataFrame:
        """
        Like run(), but never raises.

        Transport errors, non-2xx responses and unparseable bodies are logged
        and produce an empty observation frame.
        """
        try:
            return await self.run(kind, lookback=lookback, today=today)
        except Exception as exc:
            self._log.warning(
                "source_fetch_failed",
                indicator=kind.value,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return empty_observations()

    # ------------------------------------------------------------------
    # Shared helpers available to all subclasses
    # ------------------------------------------------------------------

    def _require(self, kind: IndicatorKind) -> None:
        if kind not in self.indicators:
            raise ValueError(f"{self.name} does not serve indicator '{kind.value}'")

    @with_retry(max_attempts=3, base_delay=1.0, retry_on=(httpx.TransportError,))
    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        """GET a JSON document; raises on non-2xx or an unparseable body."""
        self._log.debug("http_get", url=url, params=params)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _finalize(df: pl.DataFrame, kind: IndicatorKind) -> pl.DataFrame:
        """
        Cast raw_value to float, attach the indicator, drop unusable rows.

        Expects a reference_date String column (null when unparseable).
        """
        if df.is_empty():
            return empty_observations()

        df = df.with_columns(
            pl.col("raw_value").str.strip_chars().cast(pl.Float64, strict=False).alias("value"),
            pl.lit(kind.value).alias("indicator"),
        )
        df = df.filter(
            pl.col("reference_date").is_not_null()
            & pl.col("value").is_not_null()
            & pl.col("value").is_not_nan()
        )
        return df.select(list(OBSERVATION_SCHEMA))
