"""Tests for AI insight summarization, normalization and the generate endpoint."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest
import respx

from brmacro_shared.config import settings
from brmacro_shared.constants import IndicatorKind

from brmacro_api.services.ai_gateway import Err, GenerationErrorKind, Ok, complete
from brmacro_api.services.insight_service import (
    MAX_INSIGHTS,
    IndicatorPayload,
    InsightRequest,
    InvalidInsightResponse,
    normalize_response,
    summarize,
)


def _indicator(ind_id: str = "selic", values: list[float] | None = None) -> dict:
    values = values if values is not None else [13.75, 13.75, 13.25, 12.75, 12.25, 11.75, 11.25]
    return {
        "id": ind_id,
        "name": "Taxa Selic",
        "shortName": "Selic",
        "value": values[-1] if values else 0.0,
        "unit": "% a.a.",
        "monthlyChange": -4.26,
        "annualChange": -18.2,
        "trend": "down",
        "historicalData": [
            {"date": f"2023-{m:02d}-01", "value": v} for m, v in enumerate(values, start=1)
        ],
    }


def _gateway_reply(insights: list[dict]) -> httpx.Response:
    content = json.dumps({"insights": insights})
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture()
def gateway_key(monkeypatch):
    monkeypatch.setattr(settings, "ai_gateway_key", "test-key")


# ---------------------------------------------------------------------------
# summarize()
# ---------------------------------------------------------------------------

class TestSummarize:
    def test_block_format(self):
        ind = IndicatorPayload.model_validate(_indicator())
        text = summarize([ind], "12M")

        assert "**Selic (Taxa Selic)** [id: selic]" in text
        assert "- Valor atual: 11.25 % a.a." in text
        assert "- Variação mensal: -4.26%" in text
        # (11.25 - 13.75) / 13.75
        assert "- Variação no período (12M): -18.18%" in text
        assert "- Tendência curto prazo: desacelerando" in text
        assert "- Últimos dados: 2023-02-01: 13.75, 2023-03-01: 13.25" in text
        assert "2023-01-01" not in text.split("Últimos dados:")[1]

    def test_order_follows_input(self):
        inds = [
            IndicatorPayload.model_validate(_indicator("ipca")),
            IndicatorPayload.model_validate(_indicator("selic")),
        ]
        text = summarize(inds, "6M")
        assert text.index("[id: ipca]") < text.index("[id: selic]")

    def test_empty_history_uses_current_value(self):
        ind = IndicatorPayload.model_validate(_indicator(values=[]))
        text = summarize([ind], "12M")
        assert "- Variação no período (12M): 0.00%" in text
        assert "- Tendência curto prazo: estável" in text


# ---------------------------------------------------------------------------
# normalize_response()
# ---------------------------------------------------------------------------

class TestNormalizeResponse:
    def test_caps_to_three(self):
        raw = {"insights": [{"title": f"t{i}", "message": f"m{i}"} for i in range(6)]}
        assert len(normalize_response(raw, "selic")) == MAX_INSIGHTS == 3

    def test_coerces_unknown_enums(self):
        raw = {"insights": [{"title": "x", "message": "y", "type": "forecast", "severity": "critical"}]}
        [c] = normalize_response(raw, "selic")
        assert c.kind == "trend"
        assert c.severity == "info"

    def test_keeps_valid_enums(self):
        raw = {"insights": [{"title": "x", "message": "y", "type": "correlation", "severity": "warning"}]}
        [c] = normalize_response(raw, "selic")
        assert (c.kind, c.severity) == ("correlation", "warning")

    def test_title_fallback_and_truncation(self):
        long_message = "A" * 80
        raw = {"insights": [{"message": long_message}, {"title": "T" * 150, "message": "m"}]}
        first, second = normalize_response(raw, "selic")
        assert first.title == "A" * 50
        assert len(second.title) == 100

    def test_indicator_aliases_and_fallbacks(self):
        raw = {
            "insights": [
                {"title": "a", "message": "a", "indicators": ["IGP-M", "selic"]},
                {"title": "b", "message": "b", "indicators": ["bitcoin"]},
                {"title": "c", "message": "c"},
            ]
        }
        a, b, c = normalize_response(raw, "usd")
        assert a.indicator is IndicatorKind.IGPM
        assert b.indicator is IndicatorKind.SELIC
        assert c.indicator is IndicatorKind.DOLAR

    def test_accepts_json_string(self):
        raw = json.dumps({"insights": [{"title": "a", "message": "b"}]})
        assert len(normalize_response(raw, "selic")) == 1

    def test_missing_insights_key_is_empty(self):
        assert normalize_response({}, "selic") == []

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"insights": "nope"}'])
    def test_invalid_shapes(self, raw):
        with pytest.raises(InvalidInsightResponse):
            normalize_response(raw, "selic")


# ---------------------------------------------------------------------------
# ai_gateway.complete()
# ---------------------------------------------------------------------------

class TestGateway:
    @pytest.mark.asyncio
    async def test_ok(self, gateway_key):
        with respx.mock() as router:
            route = router.post(settings.ai_gateway_url).mock(
                return_value=_gateway_reply([{"title": "a", "message": "b"}])
            )
            result = await complete("system", "user")

        assert isinstance(result, Ok)
        payload = json.loads(route.calls[0].request.content)
        assert payload["model"] == settings.ai_model
        assert payload["temperature"] == 0.3
        assert payload["response_format"] == {"type": "json_object"}
        assert route.calls[0].request.headers["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,kind",
        [
            (429, GenerationErrorKind.RATE_LIMITED),
            (402, GenerationErrorKind.QUOTA_EXHAUSTED),
            (500, GenerationErrorKind.GENERIC),
            (401, GenerationErrorKind.GENERIC),
        ],
    )
    async def test_status_classification(self, gateway_key, status, kind):
        with respx.mock() as router:
            router.post(settings.ai_gateway_url).mock(return_value=httpx.Response(status))
            result = await complete("system", "user")

        assert result == Err(kind, f"AI gateway error: {status}")

    @pytest.mark.asyncio
    async def test_missing_content(self, gateway_key):
        with respx.mock() as router:
            router.post(settings.ai_gateway_url).mock(
                return_value=httpx.Response(200, json={"choices": []})
            )
            result = await complete("system", "user")

        assert isinstance(result, Err)
        assert result.kind is GenerationErrorKind.GENERIC

    @pytest.mark.asyncio
    async def test_transport_error(self, gateway_key):
        with respx.mock() as router:
            router.post(settings.ai_gateway_url).mock(side_effect=httpx.ConnectError("refused"))
            result = await complete("system", "user")

        assert isinstance(result, Err)
        assert result.kind is GenerationErrorKind.GENERIC

    @pytest.mark.asyncio
    async def test_unconfigured_key(self, monkeypatch):
        monkeypatch.setattr(settings, "ai_gateway_key", "")
        result = await complete("system", "user")
        assert isinstance(result, Err)


# ---------------------------------------------------------------------------
# POST /v1/insights/generate
# ---------------------------------------------------------------------------

class TestGenerateEndpoint:
    def test_missing_token(self, client, supabase):
        response = client.post("/v1/insights/generate", json={"indicators": [_indicator()]})
        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header", "insights": []}

    def test_invalid_token(self, client, supabase):
        response = client.post(
            "/v1/insights/generate",
            json={"indicators": [_indicator()]},
            headers={"Authorization": "Bearer garbage"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_no_indicators(self, client, supabase, auth_headers):
        response = client.post("/v1/insights/generate", json={"indicators": []}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"insights": [], "message": "No indicators provided"}

    def test_no_visible_indicators(self, client, supabase, auth_headers):
        response = client.post(
            "/v1/insights/generate",
            json={"indicators": [_indicator()], "visibleIndicators": ["ipca"], "period": "12M"},
            headers=auth_headers,
        )
        assert response.json() == {"insights": [], "message": "No visible indicators"}

    @pytest.mark.parametrize(
        "body",
        [b"not json", b'{"indicators": "selic"}'],
    )
    def test_unreadable_body_is_server_error(self, client, supabase, auth_headers, body):
        response = client.post(
            "/v1/insights/generate",
            content=body,
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 500
        payload = response.json()
        assert payload["insights"] == []
        assert payload["error"].startswith("Invalid request body")
        supabase.table.assert_not_called()

    def test_success_persists_capped_insights(self, client, supabase, auth_headers, user_id, gateway_key):
        reply = [
            {"title": f"Insight {i}", "message": f"Mensagem {i}", "type": "alert",
             "severity": "warning", "indicators": ["usd"]}
            for i in range(5)
        ]
        with respx.mock() as router:
            route = router.post(settings.ai_gateway_url).mock(return_value=_gateway_reply(reply))
            response = client.post(
                "/v1/insights/generate",
                json={"indicators": [_indicator()], "window": "6M"},
                headers=auth_headers,
            )

        assert response.status_code == 200
        insights = response.json()["insights"]
        assert len(insights) == 3
        assert insights[0]["indicatorId"] == "dolar"
        assert insights[0]["id"].startswith("ai-insight-")
        assert insights[0]["date"] == date.today().isoformat()

        user_prompt = json.loads(route.calls[0].request.content)["messages"][1]["content"]
        assert "no período de 6M" in user_prompt

        chain = supabase.chains["generated_insights"]
        chain.delete.assert_called_once()
        chain.eq.assert_any_call("user_id", user_id)
        chain.lt.assert_called_once_with("reference_date", date.today().isoformat())
        rows = chain.insert.call_args.args[0]
        assert len(rows) == 3
        assert rows[0]["insight_type"] == "alert"
        assert rows[0]["indicator"] == "dolar"
        assert rows[0]["user_id"] == user_id

    @pytest.mark.parametrize("status,expected", [(429, 429), (402, 402), (503, 500)])
    def test_gateway_failures_leave_insights_untouched(
        self, client, supabase, auth_headers, gateway_key, status, expected
    ):
        with respx.mock() as router:
            router.post(settings.ai_gateway_url).mock(return_value=httpx.Response(status))
            response = client.post(
                "/v1/insights/generate",
                json={"indicators": [_indicator()]},
                headers=auth_headers,
            )

        assert response.status_code == expected
        assert response.json()["insights"] == []
        assert response.json()["error"]
        assert "generated_insights" not in supabase.chains

    def test_unparseable_reply_is_generic_failure(self, client, supabase, auth_headers, gateway_key):
        bad = httpx.Response(200, json={"choices": [{"message": {"content": "not json"}}]})
        with respx.mock() as router:
            router.post(settings.ai_gateway_url).mock(return_value=bad)
            response = client.post(
                "/v1/insights/generate",
                json={"indicators": [_indicator()]},
                headers=auth_headers,
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Invalid JSON from AI", "insights": []}
        assert "generated_insights" not in supabase.chains

    def test_request_model_accepts_period_alias(self):
        body = InsightRequest.model_validate({"indicators": [_indicator()], "period": "24M"})
        assert body.window == "24M"
        assert body.indicators[0].short_name == "Selic"
