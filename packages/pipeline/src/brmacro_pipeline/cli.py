"""
cli.py — Click CLI entrypoint for pipeline workers.

Usage:
    brmacro-pipeline ingest                 # all indicators, 24M lookback
    brmacro-pipeline ingest selic ipca --lookback 12M
    brmacro-pipeline ingest all --dry-run
    brmacro-pipeline snapshot --window 12M
"""

from __future__ import annotations

import asyncio

import click
import structlog

from brmacro_shared.config import settings
from brmacro_shared.constants import INDICATORS
from brmacro_shared.models.indicators import Owner
from brmacro_shared.time_utils import lookback_start
from brmacro_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)

WINDOWS = click.Choice(["6M", "12M", "24M"], case_sensitive=False)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level",
)
def main(log_level: str) -> None:
    """brmacro ETL pipeline workers."""
    configure_logging(log_level=log_level, force=True)


@main.command()
@click.argument("indicators", nargs=-1)
@click.option("--lookback", default=settings.default_lookback, type=WINDOWS, show_default=True)
@click.option("--dry-run", is_flag=True, help="Fetch and transform without writing.")
def ingest(indicators: tuple[str, ...], lookback: str, dry_run: bool) -> None:
    """Ingest INDICATORS (default: all) from the upstream services."""
    from brmacro_pipeline.pipelines.ingest import run

    result = asyncio.run(
        run(list(indicators) or ["all"], lookback=lookback.upper(), dry_run=dry_run)
    )

    if not result.success:
        click.echo(f"Ingestion failed: {result.error}", err=True)
        raise SystemExit(1)

    suffix = " (dry run)" if dry_run else ""
    click.echo(f"Ingestion complete{suffix}:")
    for indicator, count in result.results.items():
        mark = "✗" if indicator in result.errors else "✓"
        line = f"  {mark} {indicator:20s} {count:6d} rows"
        if indicator in result.errors:
            line += f"  ({result.errors[indicator]})"
        click.echo(line)


@main.command()
@click.option("--window", default="12M", type=WINDOWS, show_default=True)
def snapshot(window: str) -> None:
    """Print derived metrics and correlations for the stored system series."""
    from brmacro_shared.metrics import compute_snapshot, correlation_matrix
    from brmacro_pipeline.loaders.supabase_loader import SupabaseLoader
    from brmacro_pipeline.transforms.time_series import group_series, rows_to_frame

    since = lookback_start(window.upper())
    try:
        rows = asyncio.run(SupabaseLoader().fetch_observations(Owner.system(), since=since))
    except Exception as exc:
        click.echo(f"Error fetching observations: {exc}", err=True)
        raise SystemExit(1)

    series = group_series(rows_to_frame(rows))
    if not series:
        click.echo("No observations stored for this window.")
        return

    click.echo(f"Indicators since {since.isoformat()}:")
    for kind, points in series.items():
        snap = compute_snapshot(kind, points)
        unit = INDICATORS[kind].unit
        arrow = {"up": "↑", "down": "↓", "stable": "→"}[snap.trend]
        click.echo(
            f"  {arrow} {kind.value:20s} {snap.latest_value:12.4f} {unit:8s} "
            f"m/m {snap.monthly_change_pct:+7.2f}%  "
            f"window {snap.window_change_pct:+7.2f}%  "
            f"vol {snap.volatility:.4f}"
        )

    matrix = correlation_matrix({k: [p.value for p in pts] for k, pts in series.items()})
    ids = list(matrix)
    click.echo("")
    click.echo("Correlation:")
    click.echo(" " * 20 + "".join(f"{i[:8]:>9s}" for i in ids))
    for row in ids:
        click.echo(f"{row:20s}" + "".join(f"{matrix[row][col]:9.2f}" for col in ids))


if __name__ == "__main__":
    main()
