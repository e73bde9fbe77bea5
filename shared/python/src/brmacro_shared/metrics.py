"""
metrics.py — Derived metrics over indicator time series.

Everything here is a pure function of an ascending (oldest → newest) series.
Nothing is cached or persisted; callers recompute on every read.

Usage:
    from brmacro_shared.metrics import compute_snapshot, correlation_matrix

    snap = compute_snapshot(IndicatorKind.SELIC, points)
    snap.monthly_change_pct, snap.trend, snap.volatility

    matrix = correlation_matrix({IndicatorKind.SELIC: [...], IndicatorKind.IPCA: [...]})
    matrix["selic"]["ipca"]   # Pearson r in [-1, 1]
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

import polars as pl

from brmacro_shared.constants import INDICATORS, IndicatorKind, Trend
from brmacro_shared.models.indicators import DerivedSnapshot, SeriesPoint

# |monthly change| above this many percent counts as a move
TREND_THRESHOLD_PCT = 1.0
VOLATILITY_WINDOW = 12
SHORT_TERM_SPAN = 3


def _as_series(values: Sequence[float]) -> pl.Series:
    return pl.Series("value", [float(v) for v in values], dtype=pl.Float64)


def _mean(values: Sequence[float]) -> float:
    # Empty windows divide by 1, giving 0.0
    if not values:
        return 0.0
    return float(_as_series(values).sum()) / len(values)


def change_pct(current: float, reference: float) -> float:
    """Percent change from reference to current; 0.0 when reference is 0."""
    if reference == 0:
        return 0.0
    return (current - reference) / reference * 100.0


def classify_trend(pct: float) -> Trend:
    """
    up above +1%, down below -1%, stable otherwise (bounds inclusive).

    The classification is direction-agnostic; see is_good_news().
    """
    if pct > TREND_THRESHOLD_PCT:
        return "up"
    if pct < -TREND_THRESHOLD_PCT:
        return "down"
    return "stable"


def is_good_news(kind: IndicatorKind, trend: Trend) -> bool | None:
    """Whether a move is favourable, honouring inverted indicators. None if stable."""
    if trend == "stable":
        return None
    rising = trend == "up"
    return not rising if INDICATORS[kind].inverted else rising


def volatility(values: Sequence[float], window: int = VOLATILITY_WINDOW) -> float:
    """Population standard deviation of the trailing `window` values."""
    tail = list(values)[-window:]
    if not tail:
        return 0.0
    std = _as_series(tail).std(ddof=0)
    return float(std) if std is not None else 0.0


def short_term_trend_pct(values: Sequence[float], span: int = SHORT_TERM_SPAN) -> float:
    """Percent change of mean(last `span`) against mean(the `span` before)."""
    values = list(values)
    recent = values[-span:]
    prior = values[-2 * span : -span]
    return change_pct(_mean(recent), _mean(prior))


def short_term_label(pct: float) -> str:
    """Portuguese label used in insight digests."""
    if pct > TREND_THRESHOLD_PCT:
        return "acelerando"
    if pct < -TREND_THRESHOLD_PCT:
        return "desacelerando"
    return "estável"


def pearson(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Pearson r over the most recent min(len(a), len(b)) points of each series.

    Series are aligned by position from the end, not by date. Returns 0.0
    with fewer than two overlapping points or when either side is constant.
    """
    n = min(len(a), len(b))
    if n < 2:
        return 0.0

    x = _as_series(list(a)[-n:])
    y = _as_series(list(b)[-n:])
    if x.n_unique() == 1 or y.n_unique() == 1:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    sxx = float((dx * dx).sum())
    syy = float((dy * dy).sum())
    if sxx == 0 or syy == 0:
        return 0.0

    r = float((dx * dy).sum()) / math.sqrt(sxx * syy)
    return max(-1.0, min(1.0, r))


def correlation_matrix(
    series: Mapping[IndicatorKind, Sequence[float]],
) -> dict[str, dict[str, float]]:
    """
    Symmetric matrix of pairwise Pearson coefficients keyed by indicator id.

    The diagonal is 1.0 for any series with at least two points and some
    variance, 0.0 otherwise.
    """
    kinds = list(series)
    matrix: dict[str, dict[str, float]] = {k.value: {} for k in kinds}

    for i, row in enumerate(kinds):
        values = list(series[row])
        valid = len(values) >= 2 and _as_series(values).n_unique() > 1
        matrix[row.value][row.value] = 1.0 if valid else 0.0
        for col in kinds[i + 1 :]:
            r = pearson(values, series[col])
            matrix[row.value][col.value] = r
            matrix[col.value][row.value] = r

    return matrix


def compute_snapshot(
    kind: IndicatorKind,
    points: Sequence[SeriesPoint],
    *,
    window: int | None = None,
) -> DerivedSnapshot:
    """
    Build the DerivedSnapshot for one indicator.

    Args:
        kind:   Indicator the series belongs to.
        points: Observations in ascending date order.
        window: Number of trailing points that make up the comparison
                window; defaults to the whole series.

    Raises:
        ValueError: if points is empty.
    """
    if not points:
        raise ValueError(f"no observations for {kind.value}")

    values = [p.value for p in points]
    latest = values[-1]
    previous = values[-2] if len(values) > 1 else latest
    windowed = values[-window:] if window else values
    first = windowed[0]

    monthly = change_pct(latest, previous)
    trend = classify_trend(monthly)

    return DerivedSnapshot(
        indicator=kind,
        latest_value=latest,
        previous_value=previous,
        first_value=first,
        monthly_change_pct=monthly,
        window_change_pct=change_pct(latest, first),
        trend=trend,
        volatility=volatility(values),
        short_term_trend_pct=short_term_trend_pct(values),
        inverted=INDICATORS[kind].inverted,
        is_good_news=is_good_news(kind, trend),
        reference_date=points[-1].date,
        points=len(points),
        history=list(points),
    )
