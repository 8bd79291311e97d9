from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from permit_analytics.domain.periods import describe


def format_value(value: Any) -> str:
    """Render a KPI value: None reads as unavailable, floats get two decimals."""
    if value is None:
        return "[dim]n/a[/dim]"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def kpi_table(report: Mapping[str, Any]) -> Table:
    """
    One row per KPI figure, grouped by card.

    A card whose source table failed to load is shown as a single
    "unavailable" row rather than dropped.
    """
    rng = report.get("range", {})
    table = Table(
        title=f"{report.get('dashboard', '?').title()} KPIs\n"
        f"[dim]{describe(report.get('period', ''))}: {rng.get('start', '')} → {rng.get('end', '')}[/dim]",
        box=box.ROUNDED,
    )
    table.add_column("Card", style="cyan", no_wrap=True)
    table.add_column("Metric", style="magenta")
    table.add_column("Value", justify="right", style="bold green")

    for card, values in (report.get("kpis") or {}).items():
        if values is None:
            table.add_row(card, "[red]unavailable[/red]", "")
            continue
        if isinstance(values, list):
            # radar-style cards are a list of {metric, value}
            for item in values:
                table.add_row(card, str(item.get("metric")), format_value(item.get("value")))
            continue
        for metric, value in values.items():
            if isinstance(value, (dict, list)):
                continue
            table.add_row(card, metric, format_value(value))
    return table


def distribution_table(name: str, slices: Optional[List[Dict[str, Any]]]) -> Table:
    table = Table(title=name.replace("_", " ").title(), box=box.SIMPLE)
    table.add_column("Slice", style="cyan")
    table.add_column("Value", justify="right", style="green")
    if slices is None:
        table.add_row("[red]unavailable[/red]", "")
        return table
    for item in slices:
        color = item.get("color") or ""
        # rich understands hex colours only
        swatch = f"[{color}]●[/] " if color.startswith("#") else "● "
        table.add_row(f"{swatch}{item.get('name')}", format_value(item.get("value")))
    return table


def print_reports(reports: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """
    Render dashboard reports as rich tables.

    Views that raised are shown with their error; failed tables are listed
    under the KPI table.
    """
    console = console or Console()

    if not reports:
        console.print("[yellow]No reports to display.[/yellow]")
        return

    for report in reports:
        if report.get("error"):
            console.print(f"[bold red]{report.get('dashboard')} failed:[/bold red] {report['error']}")
            continue
        console.print(kpi_table(report))
        failed = report.get("failed_tables") or []
        if failed:
            console.print(f"[yellow]Degraded: could not load {', '.join(failed)}[/yellow]")
        for name, slices in (report.get("distributions") or {}).items():
            console.print(distribution_table(name, slices))
