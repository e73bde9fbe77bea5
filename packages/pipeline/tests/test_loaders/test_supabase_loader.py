"""
tests/test_loaders/test_supabase_loader.py — SupabaseLoader batching and owner stamping.
"""

from __future__ import annotations

import threading
from datetime import date
from unittest.mock import MagicMock

import polars as pl
import pytest

from brmacro_shared.models.indicators import SYSTEM_OWNER_ID, Owner
from brmacro_pipeline.loaders.supabase_loader import (
    OBSERVATION_CONFLICT_COLUMNS,
    LoadResult,
    SupabaseLoader,
)


def _frame(n: int) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "reference_date": [f"2024-01-{i + 1:02d}" for i in range(n)],
            "indicator": ["selic"] * n,
            "value": [11.75] * n,
        }
    )


class TestLoadResult:
    def test_status(self):
        assert LoadResult(table="t", records_loaded=3).status == "success"
        assert LoadResult(table="t", records_loaded=3, records_failed=1).status == "partial_failure"
        assert LoadResult(table="t", records_failed=1).status == "failure"


class TestUpsert:
    @pytest.mark.asyncio
    async def test_batches_rows(self, mock_supabase):
        loader = SupabaseLoader(batch_size=2)
        result = await loader.upsert("economic_indicators", _frame(5), ["user_id"])

        assert result.records_loaded == 5
        assert result.batches_total == 3
        assert mock_supabase.table.return_value.upsert.call_count == 3

    @pytest.mark.asyncio
    async def test_failed_batch_is_recorded_not_raised(self, mock_supabase):
        mock_supabase.table.return_value.upsert.return_value.execute.side_effect = [
            MagicMock(data=[]),
            RuntimeError("duplicate key value"),
        ]
        loader = SupabaseLoader(batch_size=2)
        result = await loader.upsert("economic_indicators", _frame(4), ["user_id"])

        assert result.records_loaded == 2
        assert result.records_failed == 2
        assert result.batches_failed == 1
        assert "duplicate key value" in result.errors[0]
        assert not result.success

    @pytest.mark.asyncio
    async def test_empty_frame_is_noop(self, mock_supabase):
        result = await SupabaseLoader().upsert("economic_indicators", _frame(0), ["user_id"])
        assert result.records_loaded == 0
        mock_supabase.table.return_value.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_observations_are_stamped_with_system_owner(self, mock_supabase):
        await SupabaseLoader().upsert_observations(_frame(1), Owner.system())

        upsert = mock_supabase.table.return_value.upsert
        rows = upsert.call_args.args[0]
        assert rows == [
            {
                "reference_date": "2024-01-01",
                "indicator": "selic",
                "value": 11.75,
                "user_id": str(SYSTEM_OWNER_ID),
            }
        ]
        assert upsert.call_args.kwargs["on_conflict"] == ",".join(OBSERVATION_CONFLICT_COLUMNS)
        mock_supabase.table.assert_called_with("economic_indicators")

    @pytest.mark.asyncio
    async def test_requests_run_off_the_event_loop_thread(self, mock_supabase):
        threads: list[int] = []

        def _execute():
            threads.append(threading.get_ident())
            return MagicMock(data=[])

        mock_supabase.table.return_value.upsert.return_value.execute.side_effect = _execute
        result = await SupabaseLoader(batch_size=1).upsert("economic_indicators", _frame(2), ["user_id"])

        assert result.records_loaded == 2
        assert len(threads) == 2
        assert threading.get_ident() not in threads

    def test_date_columns_serialize_to_iso(self):
        df = pl.DataFrame({"d": [date(2024, 1, 5)], "v": [None]}, schema={"d": pl.Date, "v": pl.Float64})
        assert SupabaseLoader._to_dicts(df) == [{"d": "2024-01-05"}]


class TestFetchObservations:
    @pytest.mark.asyncio
    async def test_filters_by_owner_and_date(self, mock_supabase):
        table = mock_supabase.table.return_value
        table.order.return_value.execute.return_value = MagicMock(
            data=[{"indicator": "selic", "reference_date": "2024-01-02", "value": 11.75}]
        )

        rows = await SupabaseLoader().fetch_observations(Owner.system(), since=date(2023, 3, 31))

        assert len(rows) == 1
        table.eq.assert_called_with("user_id", str(SYSTEM_OWNER_ID))
        table.gte.assert_called_with("reference_date", "2023-03-31")
