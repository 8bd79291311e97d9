"""
Dashboard views for permit analytics.

This module re-exports the abstract interfaces and the concrete view classes
so downstream code can import from `permit_analytics.dashboards` directly.
"""

from permit_analytics.dashboards.abstract import (
    AbstractDashboardView,
    DashboardReport,
    DashboardView,
    ViewContext,
)
from permit_analytics.dashboards.compliance import ComplianceDashboard
from permit_analytics.dashboards.executive import ExecutiveDashboard
from permit_analytics.dashboards.registry import RegistryDashboard
from permit_analytics.dashboards.revenue import RevenueDashboard

__all__ = [
    # Abstracts
    "AbstractDashboardView",
    "DashboardReport",
    "DashboardView",
    "ViewContext",
    # Concrete views
    "ComplianceDashboard",
    "ExecutiveDashboard",
    "RegistryDashboard",
    "RevenueDashboard",
]
