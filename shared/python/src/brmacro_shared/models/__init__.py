"""
brmacro_shared.models — Pydantic models matching each database table.

These models are used by:
- packages/pipeline: validate data before writing to Supabase
- packages/api: serialize query results into API responses

Row models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict
"""

from brmacro_shared.models.indicators import (
    SYSTEM_OWNER_ID,
    DerivedSnapshot,
    Observation,
    Owner,
    OwnerKind,
    SeriesPoint,
)
from brmacro_shared.models.insights import InsightRecord

__all__ = [
    "SYSTEM_OWNER_ID",
    "Owner",
    "OwnerKind",
    "Observation",
    "SeriesPoint",
    "DerivedSnapshot",
    "InsightRecord",
]
