from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from permit_analytics.config import get_settings
from permit_analytics.domain.periods import all_periods, describe, resolve, utcnow
from permit_analytics.infrastructure.row_fetcher import InMemoryRowFetcher
from permit_analytics.orchestrator import available_dashboards, run_dashboards
from permit_analytics.reporter import print_reports
from permit_analytics.utils.coerce import parse_timestamp
from permit_analytics.utils.logging import configure_logging

app = typer.Typer(help="Permit portal analytics CLI.")


def _parse_now(value: Optional[str]):
    if value is None:
        return utcnow()
    parsed = parse_timestamp(value)
    if parsed is None:
        raise typer.BadParameter(f"cannot parse '{value}' as a timestamp", param_hint="--now")
    return parsed


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"period={settings.default_period} epoch={settings.all_time_epoch.date().isoformat()} "
        f"concurrency={settings.fetch_concurrency} env={settings.app_env}"
    )


@app.command()
def periods(
    now: Optional[str] = typer.Option(None, "--now", help="Reference instant (ISO 8601). Defaults to now."),
) -> None:
    """
    Show the date range every period keyword resolves to.
    """
    reference = _parse_now(now)
    for period in all_periods():
        rng = resolve(period, reference)
        typer.echo(f"{period.value:<10} {describe(period):<15} {rng.start.isoformat()} → {rng.end.isoformat()}")


@app.command()
def run(
    dashboard: str = typer.Option(
        "all",
        "--dashboard",
        "-d",
        help="Dashboard to build (registry, compliance, revenue, executive, all, or list).",
    ),
    period: Optional[str] = typer.Option(
        None,
        "--period",
        "-p",
        help="Period keyword (weekly, monthly, quarterly, yearly, mtd, ytd, last-year, all-time).",
    ),
    now: Optional[str] = typer.Option(None, "--now", help="Reference instant (ISO 8601). Defaults to now."),
    fixtures: Optional[Path] = typer.Option(
        None,
        "--fixtures",
        exists=True,
        dir_okay=False,
        help="Serve rows from a JSON fixture file instead of Postgres.",
    ),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write reports/latest.json."),
    as_json: bool = typer.Option(False, "--json", help="Print reports as JSON instead of tables."),
) -> None:
    """
    Build one or all dashboards via orchestrator and persist the reports.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    if dashboard == "list":
        typer.echo("Available dashboards: " + ", ".join(available_dashboards()))
        return

    names = ["all"] if dashboard == "all" else [dashboard]
    if dashboard != "all" and dashboard not in available_dashboards():
        raise typer.BadParameter(
            f"unknown dashboard '{dashboard}'. Available: {', '.join(available_dashboards())}",
            param_hint="--dashboard",
        )

    fetcher = InMemoryRowFetcher.from_json(fixtures) if fixtures is not None else None
    reports = run_dashboards(
        names=names,
        period=period,
        now=_parse_now(now),
        fetcher=fetcher,
        persist=persist,
    )
    if as_json:
        typer.echo(json.dumps(reports, indent=2, default=str))
    else:
        print_reports(reports)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
