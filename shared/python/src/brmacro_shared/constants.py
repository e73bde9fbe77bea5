"""
constants.py — shared constants used across the pipeline and API.

The closed set of indicator kinds, their display metadata, the alias table
used to canonicalize free-form indicator references, and typed literals are
defined here so they stay in sync between Python packages.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Literal


class IndicatorKind(str, Enum):
    """Macroeconomic series tracked by the dashboard."""

    SELIC = "selic"
    IPCA = "ipca"
    IGPM = "igpm"
    PIB = "pib"
    DOLAR = "dolar"
    BALANCA_COMERCIAL = "balanca_comercial"
    DESEMPREGO = "desemprego"

    def __str__(self) -> str:
        return self.value


Frequency = Literal["daily", "monthly", "quarterly"]
Trend = Literal["up", "down", "stable"]
LookbackWindow = Literal["6M", "12M", "24M"]
InsightSeverity = Literal["info", "warning", "success"]
InsightType = Literal["trend", "alert", "correlation"]


@dataclass(frozen=True)
class IndicatorMeta:
    name: str
    short_name: str
    unit: str
    frequency: Frequency
    source: str
    # True when a falling value is the good outcome (unemployment, inflation)
    inverted: bool = False


INDICATORS: Final[dict[IndicatorKind, IndicatorMeta]] = {
    IndicatorKind.IPCA: IndicatorMeta(
        name="IPCA - Índice de Preços ao Consumidor Amplo",
        short_name="Inflação (IPCA)",
        unit="% a.a.",
        frequency="monthly",
        source="Ipeadata",
        inverted=True,
    ),
    IndicatorKind.SELIC: IndicatorMeta(
        name="Taxa Selic",
        short_name="Selic",
        unit="% a.a.",
        frequency="daily",
        source="BCB-SGS",
    ),
    IndicatorKind.IGPM: IndicatorMeta(
        name="IGP-M - Índice Geral de Preços do Mercado",
        short_name="IGP-M",
        unit="% a.a.",
        frequency="monthly",
        source="Ipeadata",
        inverted=True,
    ),
    IndicatorKind.PIB: IndicatorMeta(
        name="PIB - Produto Interno Bruto",
        short_name="PIB",
        unit="% a.a.",
        frequency="quarterly",
        source="IBGE",
    ),
    IndicatorKind.DOLAR: IndicatorMeta(
        name="Taxa de Câmbio (USD/BRL)",
        short_name="Dólar",
        unit="R$",
        frequency="daily",
        source="BCB-PTAX",
    ),
    IndicatorKind.BALANCA_COMERCIAL: IndicatorMeta(
        name="Balança Comercial",
        short_name="Balança Comercial",
        unit="US$ mi",
        frequency="monthly",
        source="BCB-SGS",
    ),
    IndicatorKind.DESEMPREGO: IndicatorMeta(
        name="Taxa de Desemprego",
        short_name="Desemprego",
        unit="%",
        frequency="monthly",
        source="IBGE",
        inverted=True,
    ),
}

INDICATOR_IDS: Final[list[str]] = [kind.value for kind in IndicatorKind]

# Sentinel accepted by the ingestion trigger meaning "every known indicator"
ALL_INDICATORS: Final[str] = "all"

# Kind used when an insight references an indicator we cannot resolve
DEFAULT_INSIGHT_INDICATOR: Final[IndicatorKind] = IndicatorKind.SELIC

# ---------------------------------------------------------------------------
# Indicator aliases (as produced by the text-generation service and users)
# ---------------------------------------------------------------------------
INDICATOR_ALIASES: Final[dict[str, IndicatorKind]] = {
    "selic": IndicatorKind.SELIC,
    "ipca": IndicatorKind.IPCA,
    "igpm": IndicatorKind.IGPM,
    "igp-m": IndicatorKind.IGPM,
    "pib": IndicatorKind.PIB,
    "gdp": IndicatorKind.PIB,
    "dolar": IndicatorKind.DOLAR,
    "dólar": IndicatorKind.DOLAR,
    "usd": IndicatorKind.DOLAR,
    "cambio": IndicatorKind.DOLAR,
    "câmbio": IndicatorKind.DOLAR,
    "balanca_comercial": IndicatorKind.BALANCA_COMERCIAL,
    "balança comercial": IndicatorKind.BALANCA_COMERCIAL,
    "balanca comercial": IndicatorKind.BALANCA_COMERCIAL,
    "balanca": IndicatorKind.BALANCA_COMERCIAL,
    "desemprego": IndicatorKind.DESEMPREGO,
    "unemployment": IndicatorKind.DESEMPREGO,
}


@dataclass(frozen=True)
class Unrecognized:
    """Result of canonicalizing a reference that matches no indicator."""

    raw: str


def canonicalize_indicator(raw: str | None) -> IndicatorKind | Unrecognized:
    """
    Map a free-form indicator reference onto an IndicatorKind.

    Matching is case-insensitive and ignores surrounding whitespace. Never
    raises: unknown values come back as Unrecognized so the caller decides
    on the fallback.

    Examples:
        canonicalize_indicator("IGP-M")   -> IndicatorKind.IGPM
        canonicalize_indicator(" usd ")   -> IndicatorKind.DOLAR
        canonicalize_indicator("bitcoin") -> Unrecognized(raw="bitcoin")
    """
    if not isinstance(raw, str):
        return Unrecognized(raw=str(raw))
    return INDICATOR_ALIASES.get(raw.strip().lower(), Unrecognized(raw=raw))


def resolve_indicators(requested: list[str] | None) -> list[IndicatorKind]:
    """
    Expand an ingestion request into the indicator kinds to fetch.

    "all" anywhere in the list selects every kind, as does a missing list.
    Unknown names are skipped. Order follows IndicatorKind.
    """
    if requested is None or ALL_INDICATORS in requested:
        return list(IndicatorKind)
    wanted = {r.strip().lower() for r in requested if isinstance(r, str)}
    return [kind for kind in IndicatorKind if kind.value in wanted]
