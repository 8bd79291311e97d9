"""
Orchestrator for running dashboard views, fetching their tables, and persisting reports.

Usage (example from CLI):
    from permit_analytics.orchestrator import run_dashboards

    reports = run_dashboards(names=["revenue"], period="quarterly")
    print(reports)

Outputs are saved to `reports/` by default:
- `reports/latest.json` (last run)
- `reports/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from permit_analytics.config import get_settings
from permit_analytics.dashboards.abstract import DashboardReport, DashboardView
from permit_analytics.dashboards.compliance import ComplianceDashboard
from permit_analytics.dashboards.executive import ExecutiveDashboard
from permit_analytics.dashboards.registry import RegistryDashboard
from permit_analytics.dashboards.revenue import RevenueDashboard
from permit_analytics.domain.models import DateRange, Period
from permit_analytics.domain.periods import as_utc, resolve
from permit_analytics.exceptions import UnknownDashboardError
from permit_analytics.infrastructure.row_fetcher import PostgresRowFetcher, RowFetcher, fetch_all
from permit_analytics.utils.logging import get_logger

log = get_logger(__name__)


def _dashboard_factories() -> Dict[str, Callable[[], DashboardView]]:
    """Registry of available views."""
    return {
        "registry": lambda: RegistryDashboard(),
        "compliance": lambda: ComplianceDashboard(),
        "revenue": lambda: RevenueDashboard(),
        "executive": lambda: ExecutiveDashboard(),
    }


def available_dashboards() -> List[str]:
    """List available view names."""
    return sorted(_dashboard_factories().keys())


def _resolve_dashboard(name: str) -> DashboardView:
    factories = _dashboard_factories()
    if name not in factories:
        raise UnknownDashboardError(f"Unknown dashboard '{name}'. Available: {', '.join(factories)}")
    return factories[name]()


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=str)

    log.info("Reports persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def _failed_report(view: DashboardView, period: Period, rng: DateRange, now: datetime, exc: Exception) -> DashboardReport:
    return DashboardReport(
        dashboard=view.name,
        period=period.value,
        range={"start": rng.start.isoformat(), "end": rng.end.isoformat()},
        generated_at=now.isoformat(),
        kpis={},
        series={},
        distributions={},
        tables={},
        failed_tables=[],
        error=str(exc),
    )


def build_view(
    view: DashboardView,
    fetcher: RowFetcher,
    period: Period,
    rng: DateRange,
    now: datetime,
    max_workers: Optional[int] = None,
) -> DashboardReport:
    """
    Fetch one view's tables concurrently and aggregate them into its report.

    Any exception escaping the view is logged and folded into the report's
    `error` field.
    """
    now = as_utc(now)
    log.info(f"[DASHBOARD START] {view.name}", extra={"dashboard": view.name, "period": period.value})
    try:
        tables = fetch_all(fetcher, view.queries(rng), max_workers=max_workers)
        report = view.build(tables, period, rng, now)
        log.info(
            f"[DASHBOARD SUCCESS] {view.name}",
            extra={"dashboard": view.name, "failed_tables": report.get("failed_tables", [])},
        )
    except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
        log.exception(f"[DASHBOARD FAILED] {view.name}", extra={"dashboard": view.name})
        report = _failed_report(view, period, rng, now, exc)
    return report


def run_dashboards(
    names: Optional[Iterable[str]] = None,
    period: Period | str | None = None,
    now: Optional[datetime] = None,
    fetcher: Optional[RowFetcher] = None,
    persist: bool = True,
    results_dir: Path | str = "reports",
    max_workers: Optional[int] = None,
) -> List[DashboardReport]:
    """
    Run one or more dashboard views for a single period and optionally persist the reports.

    Parameters
    ----------
    names : iterable[str] | None
        View names to build. If None or ["all"], builds all available.
    period : Period | str | None
        Period keyword. Defaults to settings.default_period; unknown keywords
        fall back to monthly.
    now : datetime | None
        Reference instant for period resolution and trend windows.
    fetcher : RowFetcher | None
        Row source. Defaults to a Postgres fetcher on the shared pool.
    persist : bool
        Whether to write reports to disk.
    results_dir : Path | str
        Directory to store JSON artifacts.
    max_workers : int | None
        Concurrent queries per view. Defaults to settings.fetch_concurrency.

    Returns
    -------
    List[DashboardReport]
        One report per requested view, in request order.
    """
    settings = get_settings()
    selected = Period.parse(period if period is not None else settings.default_period)
    now = as_utc(now)
    rng = resolve(selected, now)

    requested = list(names) if names is not None else ["all"]
    if len(requested) == 1 and requested[0] == "all":
        requested = available_dashboards()
    # Unknown names fail before any query is issued.
    views = [_resolve_dashboard(name) for name in requested]

    source = fetcher if fetcher is not None else PostgresRowFetcher()

    reports: List[DashboardReport] = []
    for index, view in enumerate(views, start=1):
        log.info(
            f"[DASHBOARD {index}/{len(views)}] {view.name.upper()}",
            extra={"dashboard": view.name, "start": rng.start.isoformat(), "end": rng.end.isoformat()},
        )
        reports.append(build_view(view, source, selected, rng, now, max_workers=max_workers))

    payload = {
        "timestamp": now.isoformat(),
        "period": selected.value,
        "range": {"start": rng.start.isoformat(), "end": rng.end.isoformat()},
        "dashboards": requested,
        "reports": reports,
    }

    if persist:
        _persist_results(payload, Path(results_dir))

    log.info(
        f"[ORCHESTRATOR COMPLETE] {len(views)} dashboard(s) built",
        extra={"dashboards": requested, "period": selected.value},
    )
    return reports


class ViewState:
    """
    Last published report per view, plus the currently selected period.

    `publish` stores whatever it is given. A report built for a period the
    user has since moved away from still replaces the newer one when it
    arrives last.
    """

    def __init__(self, period: Period | str | None = None) -> None:
        self._lock = threading.Lock()
        self.period = Period.parse(period)
        self.reports: Dict[str, DashboardReport] = {}

    def select(self, period: Period | str) -> Period:
        with self._lock:
            self.period = Period.parse(period)
            return self.period

    def publish(self, view: str, report: DashboardReport) -> None:
        with self._lock:
            self.reports[view] = report

    def current(self, view: str) -> Optional[DashboardReport]:
        with self._lock:
            return self.reports.get(view)


__all__ = [
    "ViewState",
    "available_dashboards",
    "build_view",
    "run_dashboards",
]
