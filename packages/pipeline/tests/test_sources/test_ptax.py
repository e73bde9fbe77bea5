"""
tests/test_sources/test_ptax.py — Unit tests for PTAXSource.
"""

from __future__ import annotations

from datetime import date

import httpx
import pytest
import respx

from brmacro_shared.constants import IndicatorKind
from brmacro_pipeline.sources.ptax import PTAXSource

PTAX_URL = r".*CotacaoDolarPeriodo.*"


class TestPTAX:
    @pytest.mark.asyncio
    async def test_same_day_quotes_collapse_to_last_seen(self, load_fixture):
        with respx.mock() as router:
            router.get(url__regex=PTAX_URL).mock(
                return_value=httpx.Response(200, json=load_fixture("ptax_dolar.json"))
            )
            df = await PTAXSource().run(IndicatorKind.DOLAR, today=date(2024, 1, 31))

        assert df["reference_date"].to_list() == ["2024-01-09", "2024-01-10", "2024-01-11"]
        by_date = dict(zip(df["reference_date"].to_list(), df["value"].to_list()))
        assert by_date["2024-01-10"] == pytest.approx(5.15)

    @pytest.mark.asyncio
    async def test_request_params(self):
        with respx.mock() as router:
            route = router.get(url__regex=PTAX_URL).mock(
                return_value=httpx.Response(200, json={"value": []})
            )
            df = await PTAXSource().run(IndicatorKind.DOLAR, lookback="6M", today=date(2024, 7, 15))

        params = route.calls[0].request.url.params
        assert params["@dataInicial"] == "'01-15-2024'"
        assert params["@dataFinalCotacao"] == "'07-15-2024'"
        assert params["$format"] == "json"
        assert params["$orderby"] == "dataHoraCotacao desc"
        assert df.is_empty()

    @pytest.mark.asyncio
    async def test_fetch_empty_on_rate_limit(self):
        with respx.mock() as router:
            router.get(url__regex=PTAX_URL).mock(return_value=httpx.Response(429))
            df = await PTAXSource().fetch(IndicatorKind.DOLAR, "12M")

        assert df.is_empty()

    @pytest.mark.asyncio
    async def test_newest_first_response_keeps_last_seen(self):
        payload = {
            "value": [
                {"cotacaoVenda": 5.15, "dataHoraCotacao": "2024-01-10 15:00:00.000"},
                {"cotacaoVenda": 5.10, "dataHoraCotacao": "2024-01-10 10:00:00.000"},
            ]
        }
        with respx.mock() as router:
            router.get(url__regex=PTAX_URL).mock(return_value=httpx.Response(200, json=payload))
            df = await PTAXSource().run(IndicatorKind.DOLAR, today=date(2024, 1, 31))

        # response order decides, not the timestamp
        assert df["reference_date"].to_list() == ["2024-01-10"]
        assert df["value"].to_list() == [pytest.approx(5.10)]
