"""
Permit Analytics - dashboard aggregation for an environmental permit portal.

This package turns rows fetched from the portal's tables into the figures its
dashboards show, including:

- Period resolution (weekly, monthly, quarterly, yearly, MTD, YTD, last year, all time)
- Status-bucketed KPI reducers with rates, sums and averages
- Time-bucketed trend series and category distributions
- A heuristic 12-month revenue projection

Four views (registry, compliance, revenue, executive) are built from the same
primitives; a failed table degrades only the figures that depend on it.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from permit_analytics.config import Settings, get_settings
from permit_analytics.dashboards.abstract import (
    AbstractDashboardView,
    DashboardReport,
    DashboardView,
)
from permit_analytics.domain.models import DateRange, DistributionSlice, FetchResult, Period, SummaryStat
from permit_analytics.domain.periods import resolve
from permit_analytics.exceptions import AnalyticsError, FetchError, UnknownDashboardError
from permit_analytics.orchestrator import ViewState, available_dashboards, run_dashboards
from permit_analytics.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "DateRange",
    "DistributionSlice",
    "FetchResult",
    "Period",
    "SummaryStat",
    "resolve",
    # Orchestration
    "ViewState",
    "available_dashboards",
    "run_dashboards",
    # View abstractions
    "AbstractDashboardView",
    "DashboardReport",
    "DashboardView",
    # Errors
    "AnalyticsError",
    "FetchError",
    "UnknownDashboardError",
    # Logging
    "configure_logging",
    "get_logger",
]
