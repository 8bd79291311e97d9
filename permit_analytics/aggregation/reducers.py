"""
Statistic reducers: fold a row set into a fixed-shape SummaryStat.

Each portal domain (permits, inspections, invoices, ...) is described by a
`ReducerSchema` naming which raw status strings count towards which bucket,
which monetary fields are summed, and which rates are derived. A single
`StatusReducer` walks the rows once per call regardless of schema.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from permit_analytics.domain.models import Record, SummaryStat
from permit_analytics.domain.periods import as_utc
from permit_analytics.utils.coerce import is_blank, parse_timestamp, to_number


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def safe_rate(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Percentage `numerator / denominator * 100`.

    A zero denominator yields `default` (0 unless a view says otherwise),
    never NaN or Infinity.
    """
    if not denominator:
        return default
    rate = numerator / denominator * 100
    return rate if math.isfinite(rate) else default


def sum_field(rows: Iterable[Record], name: str) -> float:
    return sum(to_number(row.get(name)) for row in rows)


def average_of(rows: Iterable[Record], name: str) -> float:
    """Mean over rows where `name` is present; rows with a null score are not counted."""
    total = 0.0
    count = 0
    for row in rows:
        value = row.get(name)
        if is_blank(value):
            continue
        total += to_number(value)
        count += 1
    return total / count if count else 0.0


def is_overdue(
    row: Record,
    now: datetime,
    due_field: str = "due_date",
    done_statuses: Sequence[str] = ("completed",),
    status_field: str = "status",
) -> bool:
    """Not in a done status and carrying a due timestamp strictly before `now`."""
    if row.get(status_field) in done_statuses:
        return False
    due = parse_timestamp(row.get(due_field))
    return due is not None and due < as_utc(now)


@dataclass(frozen=True)
class SumSpec:
    field: str
    # Status bucket, count or flag a row must belong to; None sums every row.
    within: Optional[str] = None


@dataclass(frozen=True)
class RateSpec:
    numerator: str
    denominator: str
    rounded: bool = False


@dataclass(frozen=True)
class AverageSpec:
    field: str
    within: Optional[str] = None
    rounded: bool = False


@dataclass(frozen=True)
class FlagSpec:
    field: str
    negate: bool = False

    def test(self, row: Record) -> bool:
        return bool(row.get(self.field)) is not self.negate


@dataclass(frozen=True)
class OverdueRule:
    due_field: str = "due_date"
    done_statuses: Tuple[str, ...] = ("completed",)
    name: str = "overdue"


@dataclass(frozen=True)
class ReducerSchema:
    """
    Declarative shape of one domain's SummaryStat.

    Buckets are checked in declaration order and a row lands in the first
    one whose accepted statuses contain its status, so buckets never overlap.
    Rows matching no bucket go to `remainder` when one is named, and are
    otherwise only reflected in `total`.
    """

    name: str
    status_field: str = "status"
    buckets: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    remainder: Optional[str] = None
    normalize_status: bool = False
    sums: Mapping[str, SumSpec] = field(default_factory=dict)
    rates: Mapping[str, RateSpec] = field(default_factory=dict)
    averages: Mapping[str, AverageSpec] = field(default_factory=dict)
    flags: Mapping[str, FlagSpec] = field(default_factory=dict)
    overdue: Optional[OverdueRule] = None

    def bucket_names(self) -> Tuple[str, ...]:
        names = tuple(self.buckets)
        if self.remainder and self.remainder not in names:
            names += (self.remainder,)
        return names

    @property
    def exhaustive(self) -> bool:
        return self.remainder is not None


class StatusReducer:
    """
    Reduce rows to a SummaryStat according to a ReducerSchema.
    """

    def __init__(self, schema: ReducerSchema) -> None:
        self.schema = schema
        self._lookup: Dict[str, str] = {}
        for bucket, statuses in schema.buckets.items():
            for status in statuses:
                self._lookup.setdefault(status, bucket)

    @property
    def name(self) -> str:
        return self.schema.name

    def _status(self, row: Record) -> Optional[str]:
        value = row.get(self.schema.status_field)
        if value is None:
            return None
        value = str(value)
        return value.lower() if self.schema.normalize_status else value

    def classify(self, row: Record) -> Optional[str]:
        status = self._status(row)
        bucket = self._lookup.get(status) if status is not None else None
        return bucket or self.schema.remainder

    def reduce(self, rows: Optional[Iterable[Record]], now: Optional[datetime] = None) -> SummaryStat:
        schema = self.schema
        now = as_utc(now)
        rows = list(rows or [])

        by_status = {name: 0 for name in schema.bucket_names()}
        counts = {name: 0 for name in schema.flags}
        if schema.overdue:
            counts[schema.overdue.name] = 0
        sums = {name: 0.0 for name in schema.sums}
        avg_acc = {name: [0.0, 0] for name in schema.averages}

        for row in rows:
            memberships = set()
            bucket = self.classify(row)
            if bucket is not None:
                by_status[bucket] += 1
                memberships.add(bucket)
            for flag_name, flag in schema.flags.items():
                if flag.test(row):
                    counts[flag_name] += 1
                    memberships.add(flag_name)
            rule = schema.overdue
            if rule and is_overdue(row, now, rule.due_field, rule.done_statuses, schema.status_field):
                counts[rule.name] += 1
                memberships.add(rule.name)

            for sum_name, spec in schema.sums.items():
                if spec.within is None or spec.within in memberships:
                    sums[sum_name] += to_number(row.get(spec.field))
            for avg_name, spec in schema.averages.items():
                if spec.within is not None and spec.within not in memberships:
                    continue
                value = row.get(spec.field)
                if is_blank(value):
                    continue
                avg_acc[avg_name][0] += to_number(value)
                avg_acc[avg_name][1] += 1

        averages: Dict[str, float] = {}
        for avg_name, (total, count) in avg_acc.items():
            mean = total / count if count else 0.0
            averages[avg_name] = round_half_up(mean) if schema.averages[avg_name].rounded else mean

        scope: Dict[str, float] = {"total": len(rows), **by_status, **counts, **sums}
        rates: Dict[str, float] = {}
        for rate_name, spec in schema.rates.items():
            value = safe_rate(scope.get(spec.numerator, 0), scope.get(spec.denominator, 0))
            rates[rate_name] = round_half_up(value) if spec.rounded else value

        return SummaryStat(
            total=len(rows),
            by_status=by_status,
            counts=counts,
            sums=sums,
            rates=rates,
            averages=averages,
        )

    __call__ = reduce


__all__ = [
    "AverageSpec",
    "FlagSpec",
    "OverdueRule",
    "RateSpec",
    "ReducerSchema",
    "StatusReducer",
    "SumSpec",
    "average_of",
    "is_overdue",
    "round_half_up",
    "safe_rate",
    "sum_field",
]
