"""
Domain package for permit analytics.

Exports the value types shared by the aggregation layer and the period
resolver that turns a user's selection into concrete date windows.
"""

from permit_analytics.domain.models import (
    DateRange,
    DistributionSlice,
    FetchResult,
    Period,
    Record,
    SummaryStat,
)
from permit_analytics.domain.periods import (
    Buckets,
    bucket_index,
    filter_by_date_range,
    monthly_window,
    resolve,
    trend_buckets,
    trend_labels,
)

__all__ = [
    "Buckets",
    "DateRange",
    "DistributionSlice",
    "FetchResult",
    "Period",
    "Record",
    "SummaryStat",
    "bucket_index",
    "filter_by_date_range",
    "monthly_window",
    "resolve",
    "trend_buckets",
    "trend_labels",
]
