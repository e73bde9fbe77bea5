"""
utils/logging.py — structlog configuration for the pipeline and API.

JSON or human-readable console output is chosen by settings.log_format.
Call configure_logging() at process start (the CLI and the API app do);
repeat calls are no-ops unless force=True.

Usage:
    from brmacro_pipeline.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger("brmacro_pipeline.sources.bcb_sgs", source_name="BCB-SGS")
    log.info("extract_start", series_code="432", start_date="2024-01-01")
    log.bind(indicator="selic").info("rows_extracted", count=24)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from brmacro_shared.config import settings

# httpx/httpcore log every request at INFO; adapters already log their calls
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")

_configured = False


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
    *,
    force: bool = False,
) -> None:
    """
    Configure structlog (and stdlib logging underneath it).

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
        force:      Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger for `name`, pre-bound with initial_values."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]
