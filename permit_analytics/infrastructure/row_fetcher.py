"""
Row fetchers: the only I/O boundary of the analytics layer.

A fetch is parameterised by table, column projection, equality filters and an
optional date range on one timestamp column, and always returns a
`FetchResult`. A failed query is reported through `error` and never raised, so
one broken table degrades only the figures that depend on it.

`fetch_all` issues a view's queries concurrently. Nothing cancels or orders
them: whichever query returns is recorded.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from permit_analytics.config import get_settings
from permit_analytics.domain.models import DateRange, FetchResult, Record
from permit_analytics.domain.periods import filter_by_date_range
from permit_analytics.infrastructure.db_factory import apply_statement_timeout, get_sync_pool
from permit_analytics.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class RowQuery:
    """
    One logical row fetch.

    `key` names the result in a view's table map and defaults to `table`, so
    a view can fetch the same table twice with different projections.
    """

    table: str
    columns: Tuple[str, ...] = ()
    eq: Mapping[str, Any] = field(default_factory=dict)
    date_range: Optional[DateRange] = None
    date_field: str = "created_at"
    key: Optional[str] = None

    @property
    def name(self) -> str:
        return self.key or self.table

    def with_range(self, rng: Optional[DateRange]) -> "RowQuery":
        return RowQuery(self.table, self.columns, self.eq, rng, self.date_field, self.key)


@runtime_checkable
class RowFetcher(Protocol):
    """Common interface for anything that can serve portal rows."""

    def fetch(self, query: RowQuery) -> FetchResult:
        ...


class PostgresRowFetcher:
    """
    Fetch rows from Postgres through the shared psycopg pool.
    """

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        schema: str = "public",
        statement_timeout_ms: Optional[int] = None,
    ) -> None:
        self._pool = pool
        self.schema = schema
        self.statement_timeout_ms = (
            statement_timeout_ms
            if statement_timeout_ms is not None
            else get_settings().db_statement_timeout_ms
        )

    def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = get_sync_pool()
        return self._pool

    def compose(self, query: RowQuery) -> Tuple[sql.Composed, List[Any]]:
        """Build the SELECT statement and its parameters for `query`."""
        if query.columns:
            projection = sql.SQL(", ").join(sql.Identifier(c) for c in query.columns)
        else:
            projection = sql.SQL("*")

        clauses: List[sql.Composable] = []
        params: List[Any] = []
        for column, value in query.eq.items():
            clauses.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(value)
        if query.date_range is not None:
            clauses.append(
                sql.SQL("{col} >= %s AND {col} <= %s").format(col=sql.Identifier(query.date_field))
            )
            params.extend([query.date_range.start, query.date_range.end])

        stmt = sql.SQL("SELECT {} FROM {}").format(
            projection, sql.Identifier(self.schema, query.table)
        )
        if clauses:
            stmt = stmt + sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses)
        return stmt, params

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        reraise=True,
    )
    def _run(self, stmt: sql.Composed, params: Sequence[Any]) -> List[Dict[str, Any]]:
        with self._get_pool().connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, self.statement_timeout_ms)
                cur.execute(stmt, params)
                return list(cur.fetchall())

    def fetch(self, query: RowQuery) -> FetchResult:
        stmt, params = self.compose(query)
        try:
            rows = self._run(stmt, params)
        except psycopg.Error as exc:
            log.warning(
                f"[FETCH FAILED] {query.name}",
                extra={"table": query.table, "error": str(exc)},
            )
            return FetchResult(error=str(exc))
        log.debug(f"[FETCH] {query.name}", extra={"table": query.table, "rows": len(rows)})
        return FetchResult(data=rows)


class InMemoryRowFetcher:
    """
    Serve rows from an in-memory table map with the same filter semantics as
    the Postgres fetcher. Used for tests, fixtures and offline report runs.
    """

    def __init__(
        self,
        tables: Mapping[str, Optional[Sequence[Record]]],
        failing: Sequence[str] = (),
    ) -> None:
        self.tables = dict(tables)
        self.failing = frozenset(failing)
        self.calls: List[RowQuery] = []

    @classmethod
    def from_json(cls, path: Path | str) -> "InMemoryRowFetcher":
        with Path(path).open("r", encoding="utf-8") as f:
            payload = json.load(f)
        return cls(payload.get("tables", payload))

    def fetch(self, query: RowQuery) -> FetchResult:
        self.calls.append(query)
        error = None
        if query.table in self.failing:
            error = f"query against {query.table} failed"
        elif query.table not in self.tables:
            error = f'relation "public.{query.table}" does not exist'
        if error is not None:
            log.warning(f"[FETCH FAILED] {query.name}", extra={"table": query.table, "error": error})
            return FetchResult(error=error)

        rows = self.tables[query.table]
        if rows is None:
            return FetchResult(data=None)
        selected = [row for row in rows if all(row.get(k) == v for k, v in query.eq.items())]
        if query.date_range is not None:
            selected = filter_by_date_range(selected, query.date_range, query.date_field)
        if query.columns:
            selected = [{c: row.get(c) for c in query.columns} for row in selected]
        else:
            selected = [dict(row) for row in selected]
        return FetchResult(data=selected)


def fetch_all(
    fetcher: RowFetcher,
    queries: Sequence[RowQuery],
    max_workers: Optional[int] = None,
) -> Dict[str, FetchResult]:
    """
    Run `queries` concurrently and map each query's name to its result.
    """
    if not queries:
        return {}
    workers = max(1, min(max_workers or get_settings().fetch_concurrency, len(queries)))

    def _one(query: RowQuery) -> FetchResult:
        try:
            return fetcher.fetch(query)
        except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
            log.exception(f"[FETCH ERROR] {query.name}", extra={"table": query.table})
            return FetchResult(error=str(exc))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="row-fetch") as pool:
        results = list(pool.map(_one, queries))
    return {query.name: result for query, result in zip(queries, results)}


__all__ = [
    "InMemoryRowFetcher",
    "PostgresRowFetcher",
    "RowFetcher",
    "RowQuery",
    "fetch_all",
]
