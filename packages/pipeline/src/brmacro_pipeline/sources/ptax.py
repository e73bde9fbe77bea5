"""
sources/ptax.py — BCB Olinda PTAX adapter (USD/BRL selling rate).

Endpoint:
  GET /CotacaoDolarPeriodo(dataInicial=@dataInicial,dataFinalCotacao=@dataFinalCotacao)
      ?@dataInicial='MM-DD-YYYY'&@dataFinalCotacao='MM-DD-YYYY'
      &$format=json&$orderby=dataHoraCotacao desc

Response shape:
  {
    "@odata.context": "...",
    "value": [
      { "cotacaoCompra": 5.0974, "cotacaoVenda": 5.0980,
        "dataHoraCotacao": "2024-01-10 13:04:25.123" },
      ...
    ]
  }

A day can carry several bulletins. transform() truncates timestamps to
dates and collapses each day to the last quote in response order; quotes
are not re-sorted by timestamp. With the newest-first ordering requested
here, the last quote seen for a day is its earliest bulletin.
"""

from __future__ import annotations

from datetime import date

import polars as pl

from brmacro_shared.config import settings
from brmacro_shared.constants import IndicatorKind
from brmacro_shared.time_utils import timestamp_to_iso
from brmacro_pipeline.sources.base import BaseSource, empty_observations, raw_frame
from brmacro_pipeline.transforms.time_series import deduplicate_series

RESOURCE = (
    "CotacaoDolarPeriodo(dataInicial=@dataInicial,dataFinalCotacao=@dataFinalCotacao)"
)


def _olinda_date(d: date) -> str:
    return d.strftime("'%m-%d-%Y'")


class PTAXSource(BaseSource):
    """Pulls the PTAX USD selling rate from BCB Olinda."""

    name = "BCB-PTAX"
    indicators = (IndicatorKind.DOLAR,)

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout=timeout)
        self._base_url = settings.bcb_olinda_url.rstrip("/")

    async def extract(
        self,
        kind: IndicatorKind,
        *,
        start_date: date,
        end_date: date,
    ) -> pl.DataFrame:
        params = {
            "@dataInicial": _olinda_date(start_date),
            "@dataFinalCotacao": _olinda_date(end_date),
            "$format": "json",
            "$orderby": "dataHoraCotacao desc",
        }
        payload = await self._get_json(f"{self._base_url}/{RESOURCE}", params)
        values = payload.get("value") or []
        self._log.info("ptax_quotes", received=len(values))

        return raw_frame(
            [(item.get("dataHoraCotacao"), item.get("cotacaoVenda")) for item in values]
        )

    def transform(self, raw: pl.DataFrame, kind: IndicatorKind) -> pl.DataFrame:
        if raw.is_empty():
            return empty_observations()

        df = raw.with_columns(
            pl.col("raw_date")
            .map_elements(timestamp_to_iso, return_dtype=pl.String)
            .alias("reference_date")
        )
        return deduplicate_series(self._finalize(df, kind), ["reference_date"], keep="last")
