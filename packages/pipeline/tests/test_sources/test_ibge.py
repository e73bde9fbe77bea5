"""
tests/test_sources/test_ibge.py — Unit tests for IBGESource.

Period codes are read with the format each series declares: quarters for
GDP, months for unemployment.
"""

from __future__ import annotations

from datetime import date

import httpx
import pytest
import respx

from brmacro_shared.constants import IndicatorKind
from brmacro_shared.time_utils import PeriodFormat
from brmacro_pipeline.sources.ibge import SERIES, IBGESource

PIB_URL = r".*agregados/5932/periodos/-12/variaveis/6564.*"
DESEMPREGO_URL = r".*agregados/6381/periodos/-24/variaveis/4099.*"


class TestIBGESeries:
    def test_period_formats(self):
        assert SERIES[IndicatorKind.PIB].period_format is PeriodFormat.QUARTER
        assert SERIES[IndicatorKind.DESEMPREGO].period_format is PeriodFormat.MONTH

    def test_extract_serie_from_dict(self):
        payload = {"resultados": [{"series": [{"serie": {"202301": "1.0"}}]}]}
        assert IBGESource._extract_serie(payload) == {"202301": "1.0"}

    def test_extract_serie_missing_results(self):
        assert IBGESource._extract_serie([{"resultados": []}]) == {}
        assert IBGESource._extract_serie([]) == {}


class TestIBGEPib:
    @pytest.mark.asyncio
    async def test_quarter_codes_map_to_quarter_end_month(self, load_fixture):
        with respx.mock() as router:
            route = router.get(url__regex=PIB_URL).mock(
                return_value=httpx.Response(200, json=load_fixture("ibge_pib.json"))
            )
            df = await IBGESource().run(IndicatorKind.PIB, today=date(2024, 3, 31))

        assert route.calls[0].request.url.params["localidades"] == "N1[all]"
        # "..." and "-" are skipped
        assert df["reference_date"].to_list() == [
            "2022-12-01",
            "2023-03-01",
            "2023-06-01",
            "2023-09-01",
        ]
        assert df["value"].to_list() == [2.7, 4.2, 3.5, 2.0]


class TestIBGEDesemprego:
    @pytest.mark.asyncio
    async def test_month_codes_keep_month(self, load_fixture):
        with respx.mock() as router:
            router.get(url__regex=DESEMPREGO_URL).mock(
                return_value=httpx.Response(200, json=load_fixture("ibge_desemprego.json"))
            )
            df = await IBGESource().run(IndicatorKind.DESEMPREGO)

        # empty string and null values are skipped
        assert df["reference_date"].to_list() == [
            "2023-09-01",
            "2023-10-01",
            "2023-11-01",
            "2023-12-01",
        ]
        assert df["value"].to_list() == [7.7, 7.6, 7.5, 7.4]

    @pytest.mark.asyncio
    async def test_fetch_empty_on_error(self):
        with respx.mock() as router:
            router.get(url__regex=DESEMPREGO_URL).mock(return_value=httpx.Response(500))
            df = await IBGESource().fetch(IndicatorKind.DESEMPREGO, "24M")

        assert df.is_empty()

    @pytest.mark.asyncio
    async def test_empty_response_list_yields_empty_frame(self):
        with respx.mock() as router:
            router.get(url__regex=DESEMPREGO_URL).mock(return_value=httpx.Response(200, json=[]))
            # run() propagates errors, so this must not raise
            df = await IBGESource().run(IndicatorKind.DESEMPREGO)

        assert df.is_empty()
        assert df.columns == ["reference_date", "indicator", "value"]
