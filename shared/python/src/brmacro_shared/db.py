"""
db.py — Supabase clients for the indicator store.

Two roles are used:
  anon          row-level security applies (per-user reads from the API)
  service_role  bypasses RLS; ingestion writes SYSTEM rows, and the API
                scopes queries by user_id itself

Usage:
    from brmacro_shared.db import get_supabase_client

    supabase = get_supabase_client(service_role=True)
"""

from __future__ import annotations

import threading

import structlog
from supabase import Client, create_client

from brmacro_shared.config import settings

logger = structlog.get_logger(__name__)

# role -> (settings attribute holding the key, env var named in errors)
_ROLE_KEYS: dict[str, tuple[str, str]] = {
    "anon": ("supabase_anon_key", "SUPABASE_ANON_KEY"),
    "service_role": ("supabase_service_key", "SUPABASE_SERVICE_KEY"),
}

_lock = threading.Lock()
_clients: dict[str, Client] = {}


def get_supabase_client(*, service_role: bool = False) -> Client:
    """
    Return the process-wide client for the requested role, creating it once.

    Raises:
        RuntimeError: the key for that role is not configured.
    """
    role = "service_role" if service_role else "anon"
    with _lock:
        client = _clients.get(role)
        if client is None:
            attr, env_name = _ROLE_KEYS[role]
            key = getattr(settings, attr)
            if not key:
                raise RuntimeError(f"{env_name} is not set; add it to .env.")
            client = create_client(settings.supabase_url, key)
            _clients[role] = client
            logger.info("supabase_client_created", role=role, url=settings.supabase_url)
        return client

