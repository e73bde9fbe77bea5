"""Indicator data service.

Reads combine the shared system rows with the caller's own manual entries.
When both exist for the same (indicator, date) the caller's value wins.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from brmacro_shared.constants import INDICATORS, IndicatorKind
from brmacro_shared.db import get_supabase_client
from brmacro_shared.metrics import compute_snapshot, correlation_matrix
from brmacro_shared.models.indicators import Observation, Owner, SeriesPoint

from brmacro_api.middleware.auth import AuthUser
from brmacro_api.utils.filtering import apply_date_filters

logger = structlog.get_logger()

TABLE = "economic_indicators"
CONFLICT_KEY = "user_id,indicator,reference_date"
COLUMNS = "id,user_id,indicator,reference_date,value,created_at"


def _serialize(obs: Observation) -> dict[str, Any]:
    return {
        "id": str(obs.id) if obs.id else None,
        "indicator": obs.indicator.value,
        "reference_date": obs.reference_date.isoformat(),
        "value": float(obs.value),
        "owner": obs.owner.kind.value,
    }


def list_indicators() -> list[dict[str, Any]]:
    """Static metadata for every indicator kind."""
    return [
        {
            "id": kind.value,
            "name": meta.name,
            "short_name": meta.short_name,
            "unit": meta.unit,
            "frequency": meta.frequency,
            "source": meta.source,
            "inverted": meta.inverted,
        }
        for kind, meta in INDICATORS.items()
    ]


def get_observations(
    user: AuthUser,
    *,
    indicator: IndicatorKind | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Observation]:
    """System + caller observations in ascending date order."""
    supabase = get_supabase_client(service_role=True)
    owners = [Owner.system().to_db_value(), user.owner.to_db_value()]

    query = supabase.table(TABLE).select(COLUMNS).in_("user_id", owners)
    if indicator is not None:
        query = query.eq("indicator", indicator.value)
    query = apply_date_filters(query, "reference_date", start_date, end_date)

    result = query.order("reference_date").execute()
    observations: list[Observation] = []
    for row in result.data or []:
        try:
            observations.append(Observation.from_db_row(row))
        except ValueError as exc:
            logger.warning("observation_row_skipped", row_id=row.get("id"), error=str(exc))
    return observations


def get_values(user: AuthUser, **filters: Any) -> list[dict[str, Any]]:
    return [_serialize(o) for o in get_observations(user, **filters)]


def merge_series(observations: list[Observation]) -> dict[IndicatorKind, list[SeriesPoint]]:
    """
    Fold observations into one ascending series per indicator.

    A user row replaces the system row for the same date.
    """
    by_key: dict[tuple[IndicatorKind, date], Observation] = {}
    for obs in sorted(observations, key=lambda o: not o.owner.is_system):
        by_key[(obs.indicator, obs.reference_date)] = obs

    series: dict[IndicatorKind, list[SeriesPoint]] = {}
    for (kind, ref_date), obs in sorted(by_key.items(), key=lambda kv: kv[0][1]):
        series.setdefault(kind, []).append(SeriesPoint(date=ref_date, value=float(obs.value)))

    return {k: series[k] for k in IndicatorKind if k in series}


def get_snapshots(
    user: AuthUser,
    *,
    since: date | None = None,
    include_history: bool = False,
) -> list[dict[str, Any]]:
    """DerivedSnapshot per indicator that has data in the window."""
    series = merge_series(get_observations(user, start_date=since))
    exclude = None if include_history else {"history"}
    return [
        compute_snapshot(kind, points).model_dump(mode="json", exclude=exclude)
        for kind, points in series.items()
    ]


def get_correlation(user: AuthUser, *, since: date | None = None) -> dict[str, dict[str, float]]:
    series = merge_series(get_observations(user, start_date=since))
    return correlation_matrix({k: [p.value for p in pts] for k, pts in series.items()})


def upsert_user_value(
    user: AuthUser,
    indicator: IndicatorKind,
    reference_date: date,
    value: float,
) -> dict[str, Any]:
    """Insert or replace the caller's own value for (indicator, date)."""
    obs = Observation(
        owner=user.owner,
        indicator=indicator,
        reference_date=reference_date,
        value=Decimal(str(value)),
    )
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(TABLE)
        .upsert(obs.to_insert_dict(), on_conflict=CONFLICT_KEY)
        .execute()
    )
    logger.info(
        "user_value_upserted",
        user_id=user.user_id,
        indicator=indicator.value,
        reference_date=reference_date.isoformat(),
    )
    if result.data:
        return _serialize(Observation.from_db_row(result.data[0]))
    return _serialize(obs)


def delete_user_value(user: AuthUser, value_id: str) -> bool:
    """Delete one of the caller's rows. System rows never match."""
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(TABLE)
        .delete()
        .eq("id", value_id)
        .eq("user_id", user.owner.to_db_value())
        .execute()
    )
    deleted = bool(result.data)
    logger.info("user_value_deleted", user_id=user.user_id, value_id=value_id, deleted=deleted)
    return deleted
