"""
Abstract dashboard interfaces and report contracts.

Concrete views (registry, compliance, revenue, executive) implement the
DashboardView protocol and return a DashboardReport TypedDict so the
orchestrator and reporter can treat every view alike.
"""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, TypedDict, runtime_checkable

from permit_analytics.aggregation.distribution import as_dicts
from permit_analytics.domain.models import DateRange, DistributionSlice, FetchResult, Period, Record, SummaryStat
from permit_analytics.domain.periods import as_utc
from permit_analytics.infrastructure.row_fetcher import RowQuery
from permit_analytics.utils.logging import get_logger

log = get_logger(__name__)

Tables = Mapping[str, FetchResult]


class DashboardReport(TypedDict, total=False):
    """
    JSON-ready output of one view.

    A KPI group, series or distribution whose source tables failed to load, or
    whose computation raised, is present with value None; the rest of the
    report is unaffected.
    """

    dashboard: str
    period: str
    range: Dict[str, str]
    generated_at: str
    kpis: Dict[str, Optional[Dict[str, Any]]]
    series: Dict[str, Optional[List[Dict[str, Any]]]]
    distributions: Dict[str, Optional[List[Dict[str, Any]]]]
    tables: Dict[str, Any]
    failed_tables: List[str]
    error: Optional[str]


@runtime_checkable
class DashboardView(Protocol):
    """
    Common interface every dashboard view implements.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the view.
    """

    name: str
    description: str

    def queries(self, rng: DateRange) -> List[RowQuery]:
        """Row fetches this view needs for the selected range."""
        ...

    def build(self, tables: Tables, period: Period, rng: DateRange, now: datetime) -> DashboardReport:
        """Aggregate fetched tables into the view's report."""
        ...


class AbstractDashboardView(abc.ABC):
    """
    ABC helper for class-based views.

    Subclasses set `name` and `description`, declare their queries, and fill
    the report sections in `compose`. Each section is computed through
    `section`, which isolates failures to that section.
    """

    name: str
    description: str

    @abc.abstractmethod
    def queries(self, rng: DateRange) -> List[RowQuery]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def compose(self, ctx: "ViewContext") -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def build(self, tables: Tables, period: Period, rng: DateRange, now: datetime) -> DashboardReport:
        ctx = ViewContext(self.name, tables, period, rng, now)
        self.compose(ctx)
        return ctx.report()


class ViewContext:
    """
    Working state for one build: the fetched tables and the report sections
    accumulated so far.
    """

    def __init__(self, view: str, tables: Tables, period: Period, rng: DateRange, now: datetime) -> None:
        self.view = view
        self.tables = tables
        self.period = period
        self.range = rng
        self.now = as_utc(now)
        self.kpis: Dict[str, Any] = {}
        self.series: Dict[str, Any] = {}
        self.distributions: Dict[str, Any] = {}
        self.extra: Dict[str, Any] = {}

    def failed(self, *keys: str) -> List[str]:
        return [key for key in keys if key not in self.tables or not self.tables[key].ok]

    def rows(self, key: str) -> List[Record]:
        result = self.tables.get(key)
        return result.rows if result is not None else []

    def section(
        self,
        target: Dict[str, Any],
        name: str,
        depends_on: Sequence[str],
        compute: Callable[[], Any],
    ) -> None:
        """Store `compute()` under `name`, or None when a dependency failed to load."""
        missing = self.failed(*depends_on)
        if missing:
            log.warning(
                f"[DEGRADED] {self.view}.{name}",
                extra={"dashboard": self.view, "section": name, "missing": missing},
            )
            target[name] = None
            return
        try:
            value = compute()
        except Exception:  # noqa: BLE001 - intentional broad catch to record failures
            log.exception(f"[SECTION FAILED] {self.view}.{name}", extra={"dashboard": self.view})
            target[name] = None
            return
        if isinstance(value, SummaryStat):
            value = value.flat()
        elif isinstance(value, list) and value and isinstance(value[0], DistributionSlice):
            value = as_dicts(value)
        target[name] = value

    def kpi(self, name: str, depends_on: Sequence[str], compute: Callable[[], Any]) -> None:
        self.section(self.kpis, name, depends_on, compute)

    def trend(self, name: str, depends_on: Sequence[str], compute: Callable[[], Any]) -> None:
        self.section(self.series, name, depends_on, compute)

    def distribution(self, name: str, depends_on: Sequence[str], compute: Callable[[], Any]) -> None:
        self.section(self.distributions, name, depends_on, compute)

    def table(self, name: str, depends_on: Sequence[str], compute: Callable[[], Any]) -> None:
        self.section(self.extra, name, depends_on, compute)

    def report(self) -> DashboardReport:
        return DashboardReport(
            dashboard=self.view,
            period=self.period.value,
            range={"start": self.range.start.isoformat(), "end": self.range.end.isoformat()},
            generated_at=self.now.isoformat(),
            kpis=self.kpis,
            series=self.series,
            distributions=self.distributions,
            tables=self.extra,
            failed_tables=sorted(k for k, r in self.tables.items() if not r.ok),
        )


__all__ = [
    "AbstractDashboardView",
    "DashboardReport",
    "DashboardView",
    "Tables",
    "ViewContext",
]
