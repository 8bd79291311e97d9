"""
Utilities package for permit analytics.

Exports shared helpers for logging and value coercion. Keep this package
lightweight and free of dashboard-specific logic.
"""

from permit_analytics.utils.coerce import parse_timestamp, to_number
from permit_analytics.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "parse_timestamp",
    "to_number",
]
