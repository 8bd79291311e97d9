"""
Date-range resolution and trend bucketing.

`resolve` maps a Period keyword to the concrete window used to filter rows.
`trend_buckets` maps the same keyword to the ordered buckets a trend chart
plots. The two are intentionally independent: month-granular trends always
show the 12 months ending at the current month, whatever the filter window.

Every function takes `now` explicitly; when omitted it is read at call time,
so two calls a moment apart may resolve to different windows.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from permit_analytics.config import get_settings
from permit_analytics.domain.models import DateRange, Period, Record
from permit_analytics.utils.coerce import parse_timestamp

TREND_MONTHS = 12
_ONE_MICRO = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(now: Optional[datetime] = None) -> datetime:
    """`now` as an aware UTC instant; naive values are read as UTC, None is the current time."""
    if now is None:
        return utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _day_start(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def _month_start(ts: datetime) -> datetime:
    return _day_start(ts).replace(day=1)


def _year_start(ts: datetime) -> datetime:
    return _month_start(ts).replace(month=1)


def resolve(
    period: Period | str,
    now: Optional[datetime] = None,
    epoch: Optional[datetime] = None,
) -> DateRange:
    """
    Resolve a Period keyword to a DateRange relative to `now`.

    Fixed windows (weekly/monthly/quarterly/yearly) end at `now`; calendar
    periods (mtd/ytd/last-year) snap to month or year boundaries; all-time
    starts at a configured epoch sentinel rather than the oldest record.
    """
    now = as_utc(now)
    period = Period.parse(period)

    if period is Period.WEEKLY:
        return DateRange(start=now - timedelta(days=7), end=now)
    if period is Period.QUARTERLY:
        return DateRange(start=now - relativedelta(months=3), end=now)
    if period is Period.YEARLY:
        return DateRange(start=now - relativedelta(years=1), end=now)
    if period is Period.MTD:
        return DateRange(start=_month_start(now), end=now)
    if period is Period.YTD:
        return DateRange(start=_year_start(now), end=now)
    if period is Period.LAST_YEAR:
        this_year = _year_start(now)
        return DateRange(start=this_year - relativedelta(years=1), end=this_year - _ONE_MICRO)
    if period is Period.ALL_TIME:
        sentinel = as_utc(epoch or get_settings().all_time_epoch)
        return DateRange(start=min(sentinel, now), end=now)
    return DateRange(start=now - timedelta(days=30), end=now)


@dataclass(frozen=True)
class Buckets:
    """
    Ordered, contiguous trend slots. Each span is [start, end).
    """

    labels: Tuple[str, ...]
    starts: Tuple[datetime, ...]
    end: datetime

    def __len__(self) -> int:
        return len(self.labels)

    def span(self, idx: int) -> Tuple[datetime, datetime]:
        upper = self.starts[idx + 1] if idx + 1 < len(self.starts) else self.end
        return self.starts[idx], upper

    def index(self, value: Any) -> Optional[int]:
        """Bucket position for a raw or parsed timestamp, or None if outside every span."""
        ts = value if isinstance(value, datetime) and value.tzinfo else parse_timestamp(value)
        if ts is None or not self.starts or ts < self.starts[0] or ts >= self.end:
            return None
        return bisect_right(self.starts, ts) - 1


def _build(labels: List[str], starts: List[datetime], end: datetime) -> Buckets:
    return Buckets(labels=tuple(labels), starts=tuple(starts), end=end)


def monthly_window(now: Optional[datetime] = None, months: int = TREND_MONTHS) -> Buckets:
    """The `months` calendar months ending with (and including) the current one."""
    now = as_utc(now)
    current = _month_start(now)
    starts = [current - relativedelta(months=offset) for offset in range(months - 1, -1, -1)]
    labels = [start.strftime("%b %Y") for start in starts]
    return _build(labels, starts, current + relativedelta(months=1))


def _daily(rng: DateRange) -> Buckets:
    starts: List[datetime] = []
    cursor = _day_start(rng.start)
    while cursor <= rng.end:
        starts.append(cursor)
        cursor += timedelta(days=1)
    return _build([s.strftime("%d %b") for s in starts], starts, cursor)


def _weekly(rng: DateRange) -> Buckets:
    starts: List[datetime] = []
    cursor = rng.start
    while cursor <= rng.end:
        starts.append(cursor)
        cursor += timedelta(days=7)
    labels = [f"Wk {n}" for n in range(1, len(starts) + 1)]
    return _build(labels, starts, rng.end + _ONE_MICRO)


def _yearly(rng: DateRange, now: datetime) -> Buckets:
    starts: List[datetime] = []
    cursor = _year_start(rng.start)
    while cursor <= now:
        starts.append(cursor)
        cursor += relativedelta(years=1)
    return _build([s.strftime("%Y") for s in starts], starts, cursor)


def trend_buckets(
    period: Period | str,
    rng: Optional[DateRange] = None,
    now: Optional[datetime] = None,
) -> Buckets:
    """
    Buckets a trend chart uses for `period`.

    weekly/mtd plot days across the filter range, monthly/quarterly plot
    7-day slots across it, all-time plots calendar years. yearly, ytd and
    last-year plot the trailing 12-month window ending at the current month,
    which is not the filter range.
    """
    now = as_utc(now)
    period = Period.parse(period)
    rng = rng or resolve(period, now)

    if period in (Period.WEEKLY, Period.MTD):
        return _daily(rng)
    if period in (Period.MONTHLY, Period.QUARTERLY):
        return _weekly(rng)
    if period is Period.ALL_TIME:
        return _yearly(rng, now)
    return monthly_window(now)


def trend_labels(
    period: Period | str,
    rng: Optional[DateRange] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    return list(trend_buckets(period, rng, now).labels)


def bucket_index(
    timestamp: Any,
    period: Period | str,
    rng: Optional[DateRange] = None,
    now: Optional[datetime] = None,
) -> Optional[int]:
    return trend_buckets(period, rng, now).index(timestamp)


def filter_by_date_range(
    rows: Optional[Iterable[Record]],
    rng: DateRange,
    field: str = "created_at",
) -> List[Record]:
    """Rows whose `field` parses to a timestamp inside `rng`; blanks are dropped."""
    if not rows:
        return []
    return [row for row in rows if rng.contains(parse_timestamp(row.get(field)))]


def describe(period: Period | str) -> str:
    return _DESCRIPTIONS[Period.parse(period)]


_DESCRIPTIONS = {
    Period.WEEKLY: "Last 7 Days",
    Period.MONTHLY: "Last 30 Days",
    Period.QUARTERLY: "Last 3 Months",
    Period.YEARLY: "Last 12 Months",
    Period.MTD: "Month to Date",
    Period.YTD: "Year to Date",
    Period.LAST_YEAR: "Last Year",
    Period.ALL_TIME: "All Time",
}


def all_periods() -> Sequence[Period]:
    return tuple(Period)


__all__ = [
    "Buckets",
    "TREND_MONTHS",
    "all_periods",
    "as_utc",
    "bucket_index",
    "describe",
    "filter_by_date_range",
    "monthly_window",
    "resolve",
    "trend_buckets",
    "trend_labels",
    "utcnow",
]
