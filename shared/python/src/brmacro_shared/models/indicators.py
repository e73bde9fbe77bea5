"""
models/indicators.py — Pydantic models for the economic_indicators table
and the derived metrics computed from it.
"""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from brmacro_shared.constants import IndicatorKind, Trend

# Value stored in economic_indicators.user_id for ingested (shared) rows.
# Only the Owner model translates to and from it.
SYSTEM_OWNER_ID = UUID("00000000-0000-0000-0000-000000000000")


class OwnerKind(str, Enum):
    SYSTEM = "system"
    USER = "user"


class Owner(BaseModel):
    """Who a row belongs to: the ingestion system or a specific user."""

    kind: OwnerKind
    user_id: UUID | None = None

    @model_validator(mode="after")
    def _check_user_id(self) -> "Owner":
        if self.kind is OwnerKind.USER and self.user_id is None:
            raise ValueError("user owners need a user_id")
        if self.kind is OwnerKind.SYSTEM and self.user_id is not None:
            raise ValueError("the system owner has no user_id")
        return self

    @classmethod
    def system(cls) -> "Owner":
        return cls(kind=OwnerKind.SYSTEM)

    @classmethod
    def user(cls, user_id: UUID | str) -> "Owner":
        return cls(kind=OwnerKind.USER, user_id=UUID(str(user_id)))

    @property
    def is_system(self) -> bool:
        return self.kind is OwnerKind.SYSTEM

    def to_db_value(self) -> str:
        if self.kind is OwnerKind.SYSTEM:
            return str(SYSTEM_OWNER_ID)
        return str(self.user_id)

    @classmethod
    def from_db_value(cls, value: UUID | str) -> "Owner":
        user_id = UUID(str(value))
        if user_id == SYSTEM_OWNER_ID:
            return cls.system()
        return cls.user(user_id)


class Observation(BaseModel):
    """
    Matches the economic_indicators table row.

    Unique on (user_id, indicator, reference_date); that triple is the
    upsert conflict key.
    """

    owner: Owner
    indicator: IndicatorKind
    reference_date: date
    value: Decimal
    id: UUID | None = None
    created_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Observation":
        return cls(
            owner=Owner.from_db_value(row["user_id"]),
            indicator=row["indicator"],
            reference_date=row["reference_date"],
            value=Decimal(str(row["value"])),
            id=row.get("id"),
            created_at=row.get("created_at"),
        )

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.owner.to_db_value(),
            "indicator": self.indicator.value,
            "reference_date": self.reference_date.isoformat(),
            "value": float(self.value),
        }


class SeriesPoint(BaseModel):
    """One (date, value) pair of an indicator's history."""

    date: dt.date
    value: float


class DerivedSnapshot(BaseModel):
    """Metrics derived from an ascending observation series. Never stored."""

    indicator: IndicatorKind
    latest_value: float
    previous_value: float
    first_value: float
    monthly_change_pct: float
    window_change_pct: float
    trend: Trend
    volatility: float
    short_term_trend_pct: float
    inverted: bool = False
    is_good_news: bool | None = None
    reference_date: date | None = None
    points: int = 0
    history: list[SeriesPoint] = Field(default_factory=list)
