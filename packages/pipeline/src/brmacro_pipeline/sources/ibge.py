"""
sources/ibge.py — IBGE SIDRA aggregates API adapter (GDP, unemployment).

Endpoint:
  GET /agregados/{aggregate}/periodos/-{n}/variaveis/{variable}?localidades=N1[all]

Response shape (one element per requested variable):
  [
    {
      "id": "6564",
      "variavel": "Taxa trimestral",
      "resultados": [
        { "classificacoes": [],
          "series": [
            { "localidade": {"id": "1", "nome": "Brasil"},
              "serie": { "202301": "1.9", "202302": "0.9", "202303": "..." } }
          ] }
      ]
    }
  ]

Period codes are six digits. Whether the last two are a quarter or a month
depends on the aggregate, so each series declares its PeriodFormat here;
the code itself is never inspected to decide.

Series we pull:
  5932 / 6564 — GDP, quarter-on-quarter change (%), last 12 quarters
  6381 / 4099 — PNAD Contínua unemployment rate (%), last 24 periods
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

import polars as pl

from brmacro_shared.config import settings
from brmacro_shared.constants import IndicatorKind
from brmacro_shared.time_utils import PeriodFormat, period_code_to_iso
from brmacro_pipeline.sources.base import BaseSource, empty_observations, raw_frame


@dataclass(frozen=True)
class AggregateSeries:
    aggregate: int
    variable: int
    periods: int
    period_format: PeriodFormat


SERIES: dict[IndicatorKind, AggregateSeries] = {
    IndicatorKind.PIB: AggregateSeries(5932, 6564, 12, PeriodFormat.QUARTER),
    IndicatorKind.DESEMPREGO: AggregateSeries(6381, 4099, 24, PeriodFormat.MONTH),
}


class IBGESource(BaseSource):
    """Pulls GDP growth and unemployment from the IBGE aggregates API."""

    name = "IBGE"
    indicators = tuple(SERIES)

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout=timeout)
        self._base_url = settings.ibge_url.rstrip("/")

    def series_url(self, kind: IndicatorKind) -> str:
        s = SERIES[kind]
        return (
            f"{self._base_url}/agregados/{s.aggregate}"
            f"/periodos/-{s.periods}/variaveis/{s.variable}"
        )

    @staticmethod
    def _extract_serie(payload: Any) -> dict[str, Any]:
        """Dig the {period: value} mapping out of the nested response."""
        block = (payload[0] if payload else None) if isinstance(payload, list) else payload
        if not block:
            return {}
        resultados = block.get("resultados") or []
        if not resultados:
            return {}
        series = resultados[0].get("series") or []
        if not series:
            return {}
        serie = series[0].get("serie") or {}
        if not isinstance(serie, dict):
            raise ValueError("IBGE 'serie' is not an object")
        return serie

    async def extract(
        self,
        kind: IndicatorKind,
        *,
        start_date: date,
        end_date: date,
    ) -> pl.DataFrame:
        payload = await self._get_json(
            self.series_url(kind), {"localidades": "N1[all]"}
        )
        serie = self._extract_serie(payload)
        if not serie:
            self._log.warning("ibge_empty_series", indicator=kind.value)

        return raw_frame(list(serie.items()))

    def transform(self, raw: pl.DataFrame, kind: IndicatorKind) -> pl.DataFrame:
        if raw.is_empty():
            return empty_observations()

        fmt = SERIES[kind].period_format
        df = raw.with_columns(
            pl.col("raw_date")
            .map_elements(lambda code: period_code_to_iso(code, fmt), return_dtype=pl.String)
            .alias("reference_date")
        )
        return self._finalize(df, kind)
