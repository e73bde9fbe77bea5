"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fixture_path()          — resolves paths to tests/fixtures/
  load_fixture()          — parsed JSON fixture by file name
  mock_supabase_client()  — MagicMock of the Supabase client (prevents real DB calls)
  mock_supabase()         — patches the loader's get_supabase_client with the mock
  mock_http               — configured respx router for faking HTTP responses
  frozen_today            — fixed reference date for lookback windows
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import respx

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def load_fixture() -> Callable[[str], Any]:
    def _load(name: str) -> Any:
        return json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))

    return _load


@pytest.fixture
def frozen_today() -> date:
    return date(2024, 3, 31)


# ---------------------------------------------------------------------------
# Supabase client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the supabase.Client interface.

    .upsert().execute() and the select chain return empty data by default.
    Override in individual tests: mock_supabase_client.table.return_value...
    """
    client = MagicMock()

    default_result = MagicMock()
    default_result.data = []
    default_result.count = 0

    table = client.table.return_value
    table.upsert.return_value.execute.return_value = default_result
    table.select.return_value = table
    table.eq.return_value = table
    table.gte.return_value = table
    table.order.return_value.execute.return_value = default_result

    return client


@pytest.fixture
def mock_supabase(mock_supabase_client: MagicMock):
    """
    Patch get_supabase_client() where the loader imports it.
    Yields the mock client so tests can inspect calls.
    """
    with patch(
        "brmacro_pipeline.loaders.supabase_loader.get_supabase_client",
        return_value=mock_supabase_client,
    ):
        yield mock_supabase_client


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get("https://...").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router
