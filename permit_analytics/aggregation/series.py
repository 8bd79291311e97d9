"""
Series builders: fold rows into ordered `{label, metric...}` points for
line/area/bar charts.

Rows are partitioned into buckets once per timestamp field; every metric
extractor then reads the same per-bucket subset, so adding a metric does not
add another pass over the rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from permit_analytics.domain.models import DateRange, Period, Record
from permit_analytics.domain.periods import Buckets, monthly_window, trend_buckets
from permit_analytics.utils.coerce import is_blank, to_number

Predicate = Callable[[Record], bool]
SeriesPoint = Dict[str, Any]

OTHER_SECTOR = "Other"


@dataclass(frozen=True)
class MetricExtractor:
    """
    Named metric computed from one bucket's rows.

    `ts_field` overrides the timestamp used to place rows in buckets for this
    metric only (e.g. "collected" buckets invoices by their paid date).
    """

    name: str
    fn: Callable[[Sequence[Record]], float]
    ts_field: Optional[str] = None


@dataclass(frozen=True)
class DerivedMetric:
    """Metric computed from the other metrics of the same point."""

    name: str
    fn: Callable[[Mapping[str, Any]], float]


def count(name: str, ts_field: Optional[str] = None) -> MetricExtractor:
    return MetricExtractor(name, len, ts_field)


def count_where(name: str, predicate: Predicate, ts_field: Optional[str] = None) -> MetricExtractor:
    return MetricExtractor(name, lambda rows: sum(1 for row in rows if predicate(row)), ts_field)


def sum_of(
    name: str,
    field: str,
    predicate: Optional[Predicate] = None,
    ts_field: Optional[str] = None,
) -> MetricExtractor:
    def _sum(rows: Sequence[Record]) -> float:
        return sum(to_number(row.get(field)) for row in rows if predicate is None or predicate(row))

    return MetricExtractor(name, _sum, ts_field)


def difference(name: str, minuend: str, subtrahend: str) -> DerivedMetric:
    return DerivedMetric(name, lambda point: point[minuend] - point[subtrahend])


def total_of(name: str, *parts: str) -> DerivedMetric:
    return DerivedMetric(name, lambda point: sum(point[p] for p in parts))


def status_in(*statuses: str, field: str = "status") -> Predicate:
    accepted = frozenset(statuses)
    return lambda row: row.get(field) in accepted


@dataclass(frozen=True)
class SeriesSource:
    """One row set plus the extractors that read it."""

    rows: Sequence[Record]
    extractors: Sequence[MetricExtractor]
    ts_field: str = "created_at"


def _partition(rows: Iterable[Record], buckets: Buckets, ts_field: str) -> List[List[Record]]:
    parts: List[List[Record]] = [[] for _ in range(len(buckets))]
    for row in rows:
        idx = buckets.index(row.get(ts_field))
        if idx is not None:
            parts[idx].append(row)
    return parts


def build_multi_series(
    buckets: Buckets,
    sources: Sequence[SeriesSource],
    derived: Sequence[DerivedMetric] = (),
    label_key: str = "period",
) -> List[SeriesPoint]:
    """
    One point per bucket label with every source's metrics side by side.
    """
    resolved = []
    for source in sources:
        partitions: Dict[str, List[List[Record]]] = {}
        for extractor in source.extractors:
            ts_field = extractor.ts_field or source.ts_field
            if ts_field not in partitions:
                partitions[ts_field] = _partition(source.rows or (), buckets, ts_field)
            resolved.append((extractor, partitions[ts_field]))

    points: List[SeriesPoint] = []
    for idx, label in enumerate(buckets.labels):
        point: SeriesPoint = {label_key: label}
        for extractor, parts in resolved:
            point[extractor.name] = extractor.fn(parts[idx])
        for metric in derived:
            point[metric.name] = metric.fn(point)
        points.append(point)
    return points


def build_series(
    rows: Optional[Sequence[Record]],
    buckets: Buckets,
    extractors: Sequence[MetricExtractor],
    ts_field: str = "created_at",
    derived: Sequence[DerivedMetric] = (),
    label_key: str = "period",
) -> List[SeriesPoint]:
    return build_multi_series(
        buckets,
        [SeriesSource(rows or (), extractors, ts_field)],
        derived=derived,
        label_key=label_key,
    )


def build_period_series(
    rows: Optional[Sequence[Record]],
    period: Period | str,
    rng: DateRange,
    extractors: Sequence[MetricExtractor],
    now: Optional[datetime] = None,
    ts_field: str = "created_at",
    derived: Sequence[DerivedMetric] = (),
) -> List[SeriesPoint]:
    """Trend series using the buckets the selected period plots."""
    buckets = trend_buckets(period, rng, now)
    return build_series(rows, buckets, extractors, ts_field, derived)


def build_monthly_trend(
    applications: Optional[Sequence[Record]],
    payments: Optional[Sequence[Record]],
    now: Optional[datetime] = None,
    approved_statuses: Sequence[str] = ("approved", "issued"),
) -> List[SeriesPoint]:
    """
    Applications, approvals and paid revenue for the 12 months ending now.
    The window is fixed and ignores the selected period.
    """
    paid = status_in("paid", field="payment_status")
    return build_multi_series(
        monthly_window(now),
        [
            SeriesSource(
                applications or (),
                [count("applications"), count_where("approvals", status_in(*approved_statuses))],
            ),
            SeriesSource(payments or (), [sum_of("revenue", "total_fee", predicate=paid)]),
        ],
        label_key="month",
    )


def sector_lookup(
    applications: Optional[Iterable[Record]],
    type_field: str = "permit_type",
    fallback: str = OTHER_SECTOR,
) -> Dict[Any, str]:
    """id -> sector map, built once per render."""
    lookup: Dict[Any, str] = {}
    for app in applications or ():
        if app.get("id") is None:
            continue
        sector = app.get(type_field)
        lookup[app["id"]] = fallback if is_blank(sector) else str(sector)
    return lookup


def build_sector_revenue(
    payments: Optional[Sequence[Record]],
    applications: Optional[Sequence[Record]],
    parent_field: str = "permit_application_id",
    amount_field: str = "amount_paid",
    type_field: str = "permit_type",
    predicate: Optional[Predicate] = None,
) -> List[SeriesPoint]:
    """
    Revenue per sector, joining each payment to its parent application's
    type. Unresolved parents fall under "Other". Sorted by revenue, largest first.
    """
    lookup = sector_lookup(applications, type_field)
    totals: Dict[str, List[float]] = {}
    for payment in payments or ():
        if predicate is not None and not predicate(payment):
            continue
        sector = lookup.get(payment.get(parent_field), OTHER_SECTOR)
        entry = totals.setdefault(sector, [0.0, 0])
        entry[0] += to_number(payment.get(amount_field))
        entry[1] += 1
    ranked = sorted(totals.items(), key=lambda item: item[1][0], reverse=True)
    return [{"sector": sector, "revenue": value, "payments": n} for sector, (value, n) in ranked]


def build_sector_revenue_series(
    payments: Optional[Sequence[Record]],
    applications: Optional[Sequence[Record]],
    buckets: Buckets,
    parent_field: str = "permit_application_id",
    amount_field: str = "amount_paid",
    type_field: str = "permit_type",
    ts_field: str = "created_at",
) -> List[SeriesPoint]:
    """Stacked variant: one metric per sector in every bucket."""
    lookup = sector_lookup(applications, type_field)
    payments = payments or ()

    def _sector(row: Record) -> str:
        return lookup.get(row.get(parent_field), OTHER_SECTOR)

    sectors = sorted({_sector(row) for row in payments})
    extractors = [
        sum_of(sector, amount_field, predicate=lambda row, s=sector: _sector(row) == s)
        for sector in sectors
    ]
    return build_series(payments, buckets, extractors, ts_field=ts_field)


__all__ = [
    "DerivedMetric",
    "MetricExtractor",
    "OTHER_SECTOR",
    "SeriesSource",
    "build_monthly_trend",
    "build_multi_series",
    "build_period_series",
    "build_sector_revenue",
    "build_sector_revenue_series",
    "build_series",
    "count",
    "count_where",
    "difference",
    "sector_lookup",
    "status_in",
    "sum_of",
    "total_of",
]
