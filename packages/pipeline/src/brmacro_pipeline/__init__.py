"""
brmacro_pipeline — ETL workers for the brmacro indicator store.

Architecture:
  sources/     — one module per upstream provider (BCB SGS, BCB PTAX, Ipeadata, IBGE)
  transforms/  — same-day deduplication and reshaping of observation frames
  loaders/     — idempotent Supabase upserts with batch handling
  pipelines/   — the ingestion coordinator wiring sources -> transforms -> loaders
  utils/       — structlog configuration, exponential-backoff retry decorator

Quick start:
    from brmacro_pipeline.pipelines.ingest import run
    import asyncio
    result = asyncio.run(run(["all"], dry_run=True))

CLI:
    brmacro-pipeline ingest selic dolar --lookback 12M
    brmacro-pipeline ingest --dry-run
    brmacro-pipeline snapshot --window 12M
"""

__version__ = "0.1.0"
