"""Shared test fixtures for brmacro-api."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from brmacro_shared.config import settings

CHAIN_METHODS = (
    "select", "eq", "neq", "gt", "gte", "lt", "lte", "in_",
    "order", "limit", "range", "upsert", "insert", "delete", "update",
)


def make_chain(data=None, count=0):
    """Create a chainable mock that returns given data on execute()."""
    chain = MagicMock()
    chain.execute.return_value = MagicMock(data=data or [], count=count)
    for method in CHAIN_METHODS:
        getattr(chain, method).return_value = chain
    return chain


def make_supabase(table_data=None):
    """Create a mock Supabase client.

    table_data: optional dict mapping table name -> rows returned by execute().
    Each table keeps one chain so tests can inspect the calls made on it.
    """
    client = MagicMock()
    chains = {name: make_chain(rows) for name, rows in (table_data or {}).items()}

    def _table(name):
        if name not in chains:
            chains[name] = make_chain()
        return chains[name]

    client.table.side_effect = _table
    client.chains = chains
    return client


@pytest.fixture()
def supabase_factory() -> Callable[..., MagicMock]:
    return make_supabase


@pytest.fixture()
def patch_supabase():
    """Install a mock client in every service module; returns the installer."""
    active = []

    def _install(mock: MagicMock) -> MagicMock:
        for target in (
            "brmacro_api.services.indicator_service.get_supabase_client",
            "brmacro_api.services.insight_service.get_supabase_client",
        ):
            p = patch(target, return_value=mock)
            p.start()
            active.append(p)
        return mock

    yield _install
    for p in active:
        p.stop()


@pytest.fixture()
def supabase(patch_supabase):
    """Default mock client with empty tables."""
    return patch_supabase(make_supabase())


@pytest.fixture()
def app():
    from brmacro_api.app import create_app
    return create_app()


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture()
def user_id() -> str:
    return str(uuid4())


def make_token(sub: str, *, secret: str | None = None, audience: str = "authenticated") -> str:
    claims = {
        "sub": sub,
        "aud": audience,
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, secret or settings.jwt_secret, algorithm="HS256")


@pytest.fixture()
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture()
def auth_headers(user_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}
