"""FastAPI application factory.

Start with:
    brmacro-api                       # uvicorn on settings.api_host:api_port
    uvicorn brmacro_api.app:app --reload
"""

from __future__ import annotations

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from brmacro_shared import __version__
from brmacro_shared.config import settings
from brmacro_pipeline.utils.logging import configure_logging

from brmacro_api.middleware.logging import LoggingMiddleware
from brmacro_api.routers.health import router as health_router
from brmacro_api.routers.v1 import v1_router

logger = structlog.get_logger()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="brmacro API",
        description="Brazilian macroeconomic indicators, derived metrics and AI insights",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(health_router)
    app.include_router(v1_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app


app = create_app()


def main() -> None:
    uvicorn.run(
        "brmacro_api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
