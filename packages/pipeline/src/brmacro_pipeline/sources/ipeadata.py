"""
sources/ipeadata.py — Ipeadata OData v4 adapter (12-month inflation indices).

Endpoint:
  GET /ValoresSerie(SERCODIGO='{code}')

Response shape (the full history, oldest first):
  {
    "@odata.context": "...",
    "value": [
      { "SERCODIGO": "PRECOS12_IPCAG12",
        "VALDATA": "2024-01-01T00:00:00-02:00",
        "VALVALOR": 4.5123, "NIVNOME": "", "TERCODIGO": "" },
      ...
    ]
  }

The service ignores date filters, so only the trailing RECENT_RECORDS
records are kept.

Series we pull:
  PRECOS12_IPCAG12 — IPCA, 12-month accumulated (% a.a.)
  IGP12_IGPMG12    — IGP-M, 12-month accumulated (% a.a.)
"""

from __future__ import annotations

from datetime import date

import polars as pl

from brmacro_shared.config import settings
from brmacro_shared.constants import IndicatorKind
from brmacro_shared.time_utils import timestamp_to_iso
from brmacro_pipeline.sources.base import BaseSource, empty_observations, raw_frame

SERIES_CODES: dict[IndicatorKind, str] = {
    IndicatorKind.IPCA: "PRECOS12_IPCAG12",
    IndicatorKind.IGPM: "IGP12_IGPMG12",
}

RECENT_RECORDS = 24


class IpeadataSource(BaseSource):
    """Pulls IPCA and IGP-M 12-month rates from Ipeadata."""

    name = "Ipeadata"
    indicators = tuple(SERIES_CODES)

    def __init__(self, timeout: float = 30.0, recent_records: int = RECENT_RECORDS) -> None:
        super().__init__(timeout=timeout)
        self._base_url = settings.ipeadata_url.rstrip("/")
        self._recent_records = recent_records

    def series_url(self, kind: IndicatorKind) -> str:
        return f"{self._base_url}/ValoresSerie(SERCODIGO='{SERIES_CODES[kind]}')"

    async def extract(
        self,
        kind: IndicatorKind,
        *,
        start_date: date,
        end_date: date,
    ) -> pl.DataFrame:
        payload = await self._get_json(self.series_url(kind))
        values = payload.get("value") or []
        recent = values[-self._recent_records :]

        self._log.info(
            "ipeadata_records",
            indicator=kind.value,
            received=len(values),
            kept=len(recent),
        )
        return raw_frame([(item.get("VALDATA"), item.get("VALVALOR")) for item in recent])

    def transform(self, raw: pl.DataFrame, kind: IndicatorKind) -> pl.DataFrame:
        if raw.is_empty():
            return empty_observations()

        df = raw.with_columns(
            pl.col("raw_date")
            .map_elements(timestamp_to_iso, return_dtype=pl.String)
            .alias("reference_date")
        )
        return self._finalize(df, kind)
