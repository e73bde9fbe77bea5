"""
config.py — environment-driven settings shared by the pipeline, CLI and API.

Values come from the process environment first, then the nearest .env
above the working directory. Upstream base URLs (BCB SGS, BCB Olinda,
Ipeadata, IBGE) and the AI gateway endpoint are overridable for tests and
mirrors.

Usage:
    from brmacro_shared.config import settings
    settings.source_timeout_s
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    cwd = Path.cwd()
    return next((d / ".env" for d in (cwd, *cwd.parents) if (d / ".env").is_file()), None)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: str = Field(default="")
    supabase_service_key: str = Field(default="")
    jwt_secret: str = Field(default="change-me-in-production")

    # -------------------------------------------------------------------------
    # Data sources
    # -------------------------------------------------------------------------
    bcb_sgs_url: str = Field(default="https://api.bcb.gov.br/dados/serie")
    bcb_olinda_url: str = Field(
        default="https://olinda.bcb.gov.br/olinda/servico/PTAX/versao/v1/odata"
    )
    ipeadata_url: str = Field(default="http://www.ipeadata.gov.br/api/odata4")
    ibge_url: str = Field(default="https://servicodados.ibge.gov.br/api/v3")

    # Per-adapter timeout used by the ingestion fan-out (seconds)
    source_timeout_s: float = Field(default=45.0)
    default_lookback: Literal["6M", "12M", "24M"] = Field(default="24M")

    # -------------------------------------------------------------------------
    # Text-generation gateway
    # -------------------------------------------------------------------------
    ai_gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions"
    )
    ai_gateway_key: str = Field(default="")
    ai_model: str = Field(default="google/gemini-3-flash-preview")
    ai_temperature: float = Field(default=0.3)
    ai_timeout_s: float = Field(default=60.0)

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(default="http://localhost:5173,http://localhost:8080")
    # When set, POST /v1/ingest requires a matching X-Service-Key header
    ingest_service_key: str = Field(default="")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @field_validator(
        "supabase_url",
        "bcb_sgs_url",
        "bcb_olinda_url",
        "ipeadata_url",
        "ibge_url",
        mode="before",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
settings = Settings()
