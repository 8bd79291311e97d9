"""Exception hierarchy for permit analytics."""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for errors raised by this package."""


class UnknownDashboardError(AnalyticsError, ValueError):
    """Requested dashboard view is not registered."""


class FetchError(AnalyticsError):
    """A row fetch failed and its rows were required."""


__all__ = ["AnalyticsError", "FetchError", "UnknownDashboardError"]
