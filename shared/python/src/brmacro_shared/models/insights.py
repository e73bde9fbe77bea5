"""
models/insights.py — Pydantic model for the generated_insights table.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from brmacro_shared.constants import IndicatorKind, InsightSeverity, InsightType


class InsightRecord(BaseModel):
    """
    Matches the generated_insights table row.

    A generation run replaces the owner's previous insights; rows dated
    before today are pruned ahead of each insert batch.
    """

    user_id: UUID
    indicator: IndicatorKind
    title: str = Field(max_length=100)
    description: str
    severity: InsightSeverity = "info"
    kind: InsightType = "trend"
    reference_date: date = Field(default_factory=date.today)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "InsightRecord":
        return cls(
            user_id=row["user_id"],
            indicator=row["indicator"],
            title=row["title"],
            description=row["description"],
            severity=row.get("severity", "info"),
            kind=row.get("insight_type", "trend"),
            reference_date=row["reference_date"],
        )

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "indicator": self.indicator.value,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "insight_type": self.kind,
            "reference_date": self.reference_date.isoformat(),
        }
