"""
Aggregation package for permit analytics.

Pure functions over already-fetched rows: statistic reducers, trend series,
category distributions, the revenue forecast heuristic and per-view rollups.
Nothing here performs I/O or keeps state between calls.
"""

from permit_analytics.aggregation.distribution import (
    DEFAULT_PALETTE,
    build_distribution,
    fixed_distribution,
    zero_filled_distribution,
)
from permit_analytics.aggregation.forecast import ForecastConfig, forecast_revenue
from permit_analytics.aggregation.reducers import (
    ReducerSchema,
    StatusReducer,
    is_overdue,
    safe_rate,
)
from permit_analytics.aggregation.series import (
    MetricExtractor,
    build_monthly_trend,
    build_period_series,
    build_sector_revenue,
    build_series,
    count,
    count_where,
    sum_of,
)

__all__ = [
    "DEFAULT_PALETTE",
    "ForecastConfig",
    "MetricExtractor",
    "ReducerSchema",
    "StatusReducer",
    "build_distribution",
    "build_monthly_trend",
    "build_period_series",
    "build_sector_revenue",
    "build_series",
    "count",
    "count_where",
    "fixed_distribution",
    "forecast_revenue",
    "is_overdue",
    "safe_rate",
    "sum_of",
    "zero_filled_distribution",
]
