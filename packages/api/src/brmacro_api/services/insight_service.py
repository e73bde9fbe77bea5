"""AI insight generation service.

Flow for one request:
  1. keep only the indicators the caller has visible
  2. summarize() each into a fixed Portuguese digest block
  3. send the digest to the chat completions gateway
  4. normalize_response() the JSON reply into at most MAX_INSIGHTS candidates
  5. prune the caller's stale insight rows and insert the new ones

Any gateway failure raises GenerationError before step 5, so stored
insights are only touched after a successful generation.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import date
from typing import Any

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from brmacro_shared.constants import (
    DEFAULT_INSIGHT_INDICATOR,
    IndicatorKind,
    InsightSeverity,
    InsightType,
    Trend,
    Unrecognized,
    canonicalize_indicator,
)
from brmacro_shared.db import get_supabase_client
from brmacro_shared.metrics import (
    change_pct,
    short_term_label,
    short_term_trend_pct,
    volatility,
)
from brmacro_shared.models.insights import InsightRecord

from brmacro_api.middleware.auth import AuthUser
from brmacro_api.services import ai_gateway
from brmacro_api.services.ai_gateway import Err, GenerationErrorKind

logger = structlog.get_logger()

TABLE = "generated_insights"
MAX_INSIGHTS = 3
SUMMARY_POINTS = 12
RECENT_POINTS = 6
TITLE_FALLBACK_CHARS = 50
TITLE_MAX_CHARS = 100

SEVERITIES: tuple[InsightSeverity, ...] = ("info", "warning", "success")
TYPES: tuple[InsightType, ...] = ("trend", "alert", "correlation")

SYSTEM_PROMPT = """Você é um analista econômico sênior especializado em macroeconomia brasileira.

Objetivo:
Gerar INSIGHTS AUTOMÁTICOS, claros e acionáveis, a partir dos dados econômicos fornecidos.

Contexto dos indicadores:
- Selic: Taxa básica de juros definida pelo Copom
- IPCA: Principal índice de inflação ao consumidor
- IGP-M: Índice de inflação usado em contratos (mais volátil)
- PIB: Crescimento econômico do país
- Desemprego: Taxa de desocupação da população
- Dólar: Cotação USD/BRL
- Balança Comercial: Diferença entre exportações e importações

Instruções:
1. Analise tendências recentes (curto e médio prazo)
2. Identifique aceleração, desaceleração ou reversões de tendência
3. Destaque divergências relevantes entre indicadores (ex: juros vs inflação)
4. Aponte possíveis relações macroeconômicas (correlação temporal)
5. Detecte eventos atípicos (picos, quedas abruptas)
6. Base TODOS os insights nos dados fornecidos, sem especulação

Formato de resposta (JSON):
{
  "insights": [
    {
      "title": "Título curto do insight (max 50 caracteres)",
      "message": "Descrição detalhada do insight",
      "type": "trend" | "alert" | "correlation",
      "severity": "info" | "warning" | "success",
      "indicators": ["indicador1", "indicador2"]
    }
  ]
}

Restrições:
- Gere exatamente 3 insights
- Cada insight deve ser curto, direto e interpretável por um usuário não técnico
- Não inventar dados
- Não usar previsões
- Não repetir insights redundantes
- Quando relevante, indique o período aproximado do fenômeno"""


class GenerationError(Exception):
    """Insight generation failed; nothing was persisted."""

    def __init__(self, kind: GenerationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class InvalidInsightResponse(ValueError):
    """The gateway reply is not the expected JSON object."""


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class HistoricalPoint(BaseModel):
    date: str
    value: float


class IndicatorPayload(BaseModel):
    """One dashboard card as sent by the client."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    short_name: str = Field(default="", alias="shortName")
    value: float
    unit: str = ""
    monthly_change: float = Field(default=0.0, alias="monthlyChange")
    annual_change: float = Field(default=0.0, alias="annualChange")
    trend: Trend = "stable"
    historical_data: list[HistoricalPoint] = Field(default_factory=list, alias="historicalData")


class InsightRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    indicators: list[IndicatorPayload] = Field(default_factory=list)
    visible_indicators: list[str] | None = Field(default=None, alias="visibleIndicators")
    window: str = Field(default="12M", validation_alias=AliasChoices("window", "period"))


@dataclass(frozen=True)
class InsightCandidate:
    title: str
    message: str
    kind: InsightType
    severity: InsightSeverity
    indicator: IndicatorKind


# ---------------------------------------------------------------------------
# Digest
# ---------------------------------------------------------------------------


def _summary_block(ind: IndicatorPayload, window: str) -> str:
    recent = ind.historical_data[-SUMMARY_POINTS:]
    values = [p.value for p in recent]

    first = values[0] if values else ind.value
    last = values[-1] if values else ind.value
    short_term = short_term_trend_pct(values)
    latest = ", ".join(f"{p.date}: {p.value:.2f}" for p in recent[-RECENT_POINTS:])

    return (
        f"\n**{ind.short_name} ({ind.name})** [id: {ind.id}]\n"
        f"- Valor atual: {ind.value:.2f} {ind.unit}\n"
        f"- Variação mensal: {ind.monthly_change:.2f}%\n"
        f"- Variação no período ({window}): {change_pct(last, first):.2f}%\n"
        f"- Tendência curto prazo: {short_term_label(short_term)}\n"
        f"- Volatilidade: {volatility(values, SUMMARY_POINTS):.2f}\n"
        f"- Últimos dados: {latest}\n"
    )


def summarize(active_indicators: list[IndicatorPayload], window: str) -> str:
    """Statistical digest handed to the text generator, one block per indicator."""
    return "\n".join(_summary_block(ind, window) for ind in active_indicators)


def build_user_prompt(active_indicators: list[IndicatorPayload], window: str) -> str:
    names = ", ".join(ind.short_name or ind.id for ind in active_indicators)
    return (
        f"Analise os seguintes indicadores econômicos brasileiros no período de {window} "
        f"e gere insights:\n\n"
        f"{summarize(active_indicators, window)}\n\n"
        f"Indicadores ativos para análise: {names}\n\n"
        f"Gere {MAX_INSIGHTS} insights relevantes baseados nesses dados."
    )


# ---------------------------------------------------------------------------
# Reply normalization
# ---------------------------------------------------------------------------


def _resolve_indicator(raw: Any) -> IndicatorKind:
    kind = canonicalize_indicator(raw)
    if isinstance(kind, Unrecognized):
        logger.info(
            "indicator_alias_unrecognized",
            raw=kind.raw,
            fallback=DEFAULT_INSIGHT_INDICATOR.value,
        )
        return DEFAULT_INSIGHT_INDICATOR
    return kind


def normalize_response(raw: str | dict[str, Any], fallback_indicator: str) -> list[InsightCandidate]:
    """
    Turn the gateway's JSON reply into at most MAX_INSIGHTS candidates.

    Unknown types become "trend", unknown severities "info". The indicator is
    the first of the insight's "indicators", else fallback_indicator, passed
    through canonicalize_indicator.

    Raises:
        InvalidInsightResponse: raw is not JSON or not an object.
    """
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidInsightResponse("Invalid JSON from AI") from exc
    else:
        parsed = raw

    if not isinstance(parsed, dict):
        raise InvalidInsightResponse("AI response is not a JSON object")

    items = parsed.get("insights") or []
    if not isinstance(items, list):
        raise InvalidInsightResponse("'insights' is not a list")

    candidates: list[InsightCandidate] = []
    for item in items:
        if len(candidates) == MAX_INSIGHTS:
            break
        if not isinstance(item, dict):
            continue

        message = str(item.get("message") or "")
        title = str(item.get("title") or message[:TITLE_FALLBACK_CHARS])
        if not title and not message:
            continue

        refs = item.get("indicators")
        ref = refs[0] if isinstance(refs, list) and refs else fallback_indicator

        candidates.append(
            InsightCandidate(
                title=title[:TITLE_MAX_CHARS],
                message=message,
                kind=item.get("type") if item.get("type") in TYPES else "trend",
                severity=item.get("severity") if item.get("severity") in SEVERITIES else "info",
                indicator=_resolve_indicator(ref),
            )
        )

    if len(items) > MAX_INSIGHTS:
        logger.info("insights_capped", received=len(items), kept=len(candidates))
    return candidates


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def _replace_insights(user: AuthUser, records: list[InsightRecord], today: date) -> None:
    supabase = get_supabase_client(service_role=True)
    (
        supabase.table(TABLE)
        .delete()
        .eq("user_id", user.user_id)
        .lt("reference_date", today.isoformat())
        .execute()
    )
    if not records:
        return
    try:
        supabase.table(TABLE).insert([r.to_insert_dict() for r in records]).execute()
        logger.info("insights_saved", user_id=user.user_id, count=len(records))
    except Exception as exc:
        logger.error("insights_save_failed", user_id=user.user_id, error=str(exc))


def list_insights(user: AuthUser) -> list[dict[str, Any]]:
    """The caller's stored insights, newest first."""
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(TABLE)
        .select("*")
        .eq("user_id", user.user_id)
        .order("reference_date", desc=True)
        .execute()
    )
    return [InsightRecord.from_db_row(r).model_dump(mode="json") for r in result.data or []]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def generate_insights(
    user: AuthUser,
    request: InsightRequest,
    *,
    today: date | None = None,
) -> dict[str, Any]:
    """
    Generate, persist and return insights for the caller.

    Raises:
        GenerationError: gateway failure or unusable reply. Stored insights
            are left untouched.
    """
    if not request.indicators:
        return {"insights": [], "message": "No indicators provided"}

    active = request.indicators
    if request.visible_indicators is not None:
        visible = set(request.visible_indicators)
        active = [ind for ind in active if ind.id in visible]
    if not active:
        return {"insights": [], "message": "No visible indicators"}

    gen_log = logger.bind(user_id=user.user_id, indicators=[i.id for i in active])
    gen_log.info("insight_generation_start", window=request.window)

    result = await ai_gateway.complete(SYSTEM_PROMPT, build_user_prompt(active, request.window))
    if isinstance(result, Err):
        gen_log.warning("insight_generation_failed", kind=result.kind.value, detail=result.detail)
        raise GenerationError(result.kind, result.detail)

    try:
        candidates = normalize_response(result.content, fallback_indicator=active[0].id)
    except InvalidInsightResponse as exc:
        gen_log.error("insight_response_invalid", error=str(exc))
        raise GenerationError(GenerationErrorKind.GENERIC, str(exc)) from exc

    today = today or date.today()
    records = [
        InsightRecord(
            user_id=user.user_id,
            indicator=c.indicator,
            title=c.title,
            description=c.message,
            severity=c.severity,
            kind=c.kind,
            reference_date=today,
        )
        for c in candidates
    ]
    _replace_insights(user, records, today)

    stamp = int(time.time() * 1000)
    insights = [
        {
            "id": f"ai-insight-{stamp}-{i}",
            "title": c.title,
            "message": c.message,
            "type": c.kind,
            "severity": c.severity,
            "indicatorId": c.indicator.value,
            "date": today.isoformat(),
        }
        for i, c in enumerate(candidates)
    ]
    gen_log.info("insight_generation_complete", count=len(insights))
    return {"insights": insights}
