"""
sources/bcb_sgs.py — Banco Central do Brasil SGS time-series adapter.

The SGS service serves one JSON array per numbered series.

Endpoint:
  GET /bcdata.sgs.{code}/dados?formato=json&dataInicial=dd/mm/yyyy&dataFinal=dd/mm/yyyy

Response shape:
  [
    { "data": "02/01/2024", "valor": "11.75" },
    ...
  ]

Series we pull:
  432    — Selic target rate set by Copom (daily)
  22707  — Trade balance, FOB, US$ million (monthly)

Usage:
    source = SGSSource()
    df = await source.fetch(IndicatorKind.SELIC, "24M")
    # columns: reference_date, indicator, value
"""

from __future__ import annotations

from datetime import date

import polars as pl

from brmacro_shared.config import settings
from brmacro_shared.constants import IndicatorKind
from brmacro_shared.time_utils import br_date_to_iso, format_br_date
from brmacro_pipeline.sources.base import BaseSource, empty_observations, raw_frame

# Mapping: indicator → SGS series code
SERIES_CODES: dict[IndicatorKind, int] = {
    IndicatorKind.SELIC: 432,
    IndicatorKind.BALANCA_COMERCIAL: 22707,
}


class SGSSource(BaseSource):
    """Pulls the Selic target and the trade balance from BCB SGS."""

    name = "BCB-SGS"
    indicators = tuple(SERIES_CODES)

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout=timeout)
        self._base_url = settings.bcb_sgs_url.rstrip("/")

    def series_url(self, kind: IndicatorKind) -> str:
        return f"{self._base_url}/bcdata.sgs.{SERIES_CODES[kind]}/dados"

    async def extract(
        self,
        kind: IndicatorKind,
        *,
        start_date: date,
        end_date: date,
    ) -> pl.DataFrame:
        params = {
            "formato": "json",
            "dataInicial": format_br_date(start_date),
            "dataFinal": format_br_date(end_date),
        }
        payload = await self._get_json(self.series_url(kind), params)

        if not isinstance(payload, list):
            raise ValueError(f"SGS returned {type(payload).__name__}, expected a list")
        if not payload:
            self._log.warning("sgs_no_observations", indicator=kind.value)

        return raw_frame([(item.get("data"), item.get("valor")) for item in payload])

    def transform(self, raw: pl.DataFrame, kind: IndicatorKind) -> pl.DataFrame:
        if raw.is_empty():
            return empty_observations()

        df = raw.with_columns(
            pl.col("raw_date")
            .map_elements(br_date_to_iso, return_dtype=pl.String)
            .alias("reference_date")
        )
        return self._finalize(df, kind)
