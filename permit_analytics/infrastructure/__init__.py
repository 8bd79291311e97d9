"""
Infrastructure package for permit analytics.

Centralizes the backing-store boundary (connection pooling and row fetching).
Keep this layer focused on I/O and resource management, decoupled from the
aggregation and dashboard logic.
"""

from permit_analytics.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)
from permit_analytics.infrastructure.row_fetcher import (
    InMemoryRowFetcher,
    PostgresRowFetcher,
    RowFetcher,
    RowQuery,
    fetch_all,
)

__all__ = [
    "InMemoryRowFetcher",
    "PoolManager",
    "PostgresRowFetcher",
    "RowFetcher",
    "RowQuery",
    "build_dsn",
    "fetch_all",
    "get_sync_connection",
    "get_sync_pool",
]
