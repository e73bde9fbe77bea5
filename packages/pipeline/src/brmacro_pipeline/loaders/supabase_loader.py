"""
loaders/supabase_loader.py — Idempotent writes and reads against the indicator store.

Observation frames from the ingestion coordinator are stamped with their
owner's user_id and upserted on (user_id, indicator, reference_date), so a
re-run over unchanged upstream data rewrites the same rows. Rows go out in
batches; a failing batch is recorded on the LoadResult and the remaining
batches are still sent.

The supabase client is synchronous, so each request runs in a worker thread
to keep the coordinator's concurrent fetches moving.

Usage:
    from brmacro_pipeline.loaders.supabase_loader import SupabaseLoader

    loader = SupabaseLoader()
    result = await loader.upsert_observations(df, Owner.system())
    print(result.records_loaded, result.records_failed)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import polars as pl
import structlog

from brmacro_shared.db import get_supabase_client
from brmacro_shared.models.indicators import Owner

log = structlog.get_logger(__name__)

BATCH_SIZE = 500

OBSERVATIONS_TABLE = "economic_indicators"
OBSERVATION_CONFLICT_COLUMNS = ["user_id", "indicator", "reference_date"]
OBSERVATION_SELECT = "id,user_id,indicator,reference_date,value,created_at"


@dataclass
class LoadResult:
    """Counts for one upsert call."""

    table: str
    records_loaded: int = 0
    records_failed: int = 0
    batches_total: int = 0
    batches_failed: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.records_failed == 0

    @property
    def status(self) -> str:
        if self.success:
            return "success"
        return "partial_failure" if self.records_loaded else "failure"

    def record_failure(self, batch_no: int, size: int, exc: Exception) -> None:
        self.records_failed += size
        self.batches_failed += 1
        self.errors.append(f"Batch {batch_no}/{self.batches_total}: {exc}")


def _batches(rows: list[dict[str, Any]], size: int) -> Iterator[tuple[int, list[dict[str, Any]]]]:
    for batch_no, start in enumerate(range(0, len(rows), size), start=1):
        yield batch_no, rows[start : start + size]


class SupabaseLoader:
    """
    Pipeline-side access to Supabase.

    Runs with the service role key: ingestion writes rows owned by SYSTEM,
    which no end-user session may write.
    """

    def __init__(self, batch_size: int = BATCH_SIZE, client: Any = None) -> None:
        self._batch_size = batch_size
        self._client = client if client is not None else get_supabase_client(service_role=True)

    async def upsert(
        self,
        table: str,
        df: pl.DataFrame,
        conflict_columns: list[str],
    ) -> LoadResult:
        """
        Upsert every row of df into table, ON CONFLICT (conflict_columns) DO UPDATE.

        Never raises on a rejected batch; inspect the returned LoadResult.
        """
        result = LoadResult(table=table)
        if df.is_empty():
            log.warning("upsert_empty_dataframe", table=table)
            return result

        started = time.monotonic()
        rows = self._to_dicts(df)
        result.batches_total = -(-len(rows) // self._batch_size)
        on_conflict = ",".join(conflict_columns)
        table_log = log.bind(table=table, total_rows=len(rows), on_conflict=on_conflict)
        table_log.info("upsert_start")

        for batch_no, batch in _batches(rows, self._batch_size):
            try:
                request = self._client.table(table).upsert(batch, on_conflict=on_conflict)
                await asyncio.to_thread(request.execute)
            except Exception as exc:
                table_log.error("batch_failed", batch=batch_no, error=str(exc))
                result.record_failure(batch_no, len(batch), exc)
                continue
            result.records_loaded += len(batch)
            table_log.debug("batch_loaded", batch=batch_no, batch_size=len(batch))

        result.duration_ms = int((time.monotonic() - started) * 1000)
        table_log.info(
            "upsert_complete",
            records_loaded=result.records_loaded,
            records_failed=result.records_failed,
            duration_ms=result.duration_ms,
            status=result.status,
        )
        return result

    async def upsert_observations(self, df: pl.DataFrame, owner: Owner) -> LoadResult:
        """Write an observation frame as rows owned by owner."""
        if not df.is_empty():
            df = df.with_columns(pl.lit(owner.to_db_value()).alias("user_id"))
        return await self.upsert(OBSERVATIONS_TABLE, df, OBSERVATION_CONFLICT_COLUMNS)

    async def fetch_observations(
        self,
        owner: Owner,
        *,
        since: date | None = None,
    ) -> list[dict[str, Any]]:
        """One owner's observation rows, ascending by reference_date."""
        query = (
            self._client.table(OBSERVATIONS_TABLE)
            .select(OBSERVATION_SELECT)
            .eq("user_id", owner.to_db_value())
        )
        if since is not None:
            query = query.gte("reference_date", since.isoformat())
        result = await asyncio.to_thread(query.order("reference_date").execute)
        rows = result.data or []
        log.debug("observations_fetched", owner=owner.kind.value, rows=len(rows))
        return rows

    @staticmethod
    def _to_dicts(df: pl.DataFrame) -> list[dict[str, Any]]:
        # Date columns go out as ISO strings; nulls are left to column defaults
        dates = [name for name, dtype in df.schema.items() if dtype == pl.Date]
        if dates:
            df = df.with_columns(pl.col(dates).cast(pl.String))
        return [{k: v for k, v in row.items() if v is not None} for row in df.to_dicts()]
