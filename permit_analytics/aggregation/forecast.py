"""
Revenue projection for the next 12 months.

This is a business heuristic, not a statistical model. The constants in
`ForecastConfig` are literal configuration carried over from the revenue
dashboard and are not derived from data.

For every active permit:
  * its renewal month is `expiry_date`, or `created_at` plus one year;
  * its fee is `fee_amount`, or the average fee of active permits that have
    one (the flat fallback fee when none do).
On top of renewals, an "annual fees" line is projected every month as
`annual_fee_ratio * average fee * active count`, scaled by a seasonal
multiplier (1.5 for the first projected quarter, 1.2 for the second, 1.0
after that).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from permit_analytics.aggregation.schemas import ACTIVE_PERMIT_STATUSES
from permit_analytics.config import get_settings
from permit_analytics.domain.models import Record
from permit_analytics.domain.periods import Buckets, as_utc, monthly_window
from permit_analytics.utils.coerce import is_blank, parse_timestamp, to_number

HORIZON_MONTHS = 12


@dataclass(frozen=True)
class ForecastConfig:
    annual_fee_ratio: float = 0.10
    fallback_fee: float = 5000.0
    seasonal_multipliers: Tuple[float, ...] = (1.5, 1.5, 1.5, 1.2, 1.2, 1.2)
    default_multiplier: float = 1.0
    horizon: int = HORIZON_MONTHS
    expiry_field: str = "expiry_date"
    created_field: str = "created_at"
    fee_field: str = "fee_amount"

    @classmethod
    def from_settings(cls) -> "ForecastConfig":
        settings = get_settings()
        return cls(
            annual_fee_ratio=settings.forecast_annual_fee_ratio,
            fallback_fee=settings.forecast_fallback_fee,
        )

    def multiplier(self, month_offset: int) -> float:
        if month_offset < len(self.seasonal_multipliers):
            return self.seasonal_multipliers[month_offset]
        return self.default_multiplier


def active_only(
    rows: Optional[Sequence[Record]],
    statuses: Sequence[str] = ACTIVE_PERMIT_STATUSES,
    status_field: str = "status",
) -> List[Record]:
    accepted = {s.lower() for s in statuses}
    return [row for row in rows or () if str(row.get(status_field) or "").lower() in accepted]


def average_fee(rows: Sequence[Record], config: ForecastConfig) -> float:
    fees = [to_number(row.get(config.fee_field)) for row in rows if not is_blank(row.get(config.fee_field))]
    return sum(fees) / len(fees) if fees else config.fallback_fee


def renewal_date(row: Record, config: ForecastConfig) -> Optional[datetime]:
    expiry = parse_timestamp(row.get(config.expiry_field))
    if expiry is not None:
        return expiry
    created = parse_timestamp(row.get(config.created_field))
    return created + relativedelta(years=1) if created is not None else None


def projection_window(now: Optional[datetime], horizon: int = HORIZON_MONTHS) -> Buckets:
    """`horizon` calendar months starting with the month after `now`."""
    now = as_utc(now)
    return monthly_window(now + relativedelta(months=horizon), months=horizon)


def forecast_revenue(
    active_rows: Optional[Sequence[Record]],
    now: Optional[datetime] = None,
    config: Optional[ForecastConfig] = None,
) -> List[Dict[str, Any]]:
    """
    Project renewal and annual fee revenue for each of the next `horizon` months.

    Renewals dated before the first projected month or after the last are
    not counted.
    """
    config = config or ForecastConfig()
    rows = list(active_rows or ())
    window = projection_window(now, config.horizon)

    avg_fee = average_fee(rows, config)
    annual_base = config.annual_fee_ratio * avg_fee * len(rows)

    renewals = [0] * len(window)
    renewal_fees = [0.0] * len(window)
    for row in rows:
        idx = window.index(renewal_date(row, config))
        if idx is None:
            continue
        fee = row.get(config.fee_field)
        renewals[idx] += 1
        renewal_fees[idx] += avg_fee if is_blank(fee) else to_number(fee)

    points: List[Dict[str, Any]] = []
    for idx, label in enumerate(window.labels):
        multiplier = config.multiplier(idx)
        annual = annual_base * multiplier
        points.append(
            {
                "month": label,
                "renewals": renewals[idx],
                "renewal_fees": renewal_fees[idx],
                "annual_fees": annual,
                "multiplier": multiplier,
                "projected": renewal_fees[idx] + annual,
            }
        )
    return points


__all__ = [
    "ForecastConfig",
    "HORIZON_MONTHS",
    "active_only",
    "average_fee",
    "forecast_revenue",
    "projection_window",
    "renewal_date",
]
