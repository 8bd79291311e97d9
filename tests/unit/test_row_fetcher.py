from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import psycopg
import pytest
from psycopg import sql

from permit_analytics.domain.models import DateRange, FetchResult
from permit_analytics.exceptions import FetchError
from permit_analytics.infrastructure.row_fetcher import (
    InMemoryRowFetcher,
    PostgresRowFetcher,
    RowFetcher,
    RowQuery,
    fetch_all,
)

JUNE = DateRange(
    start=datetime(2024, 6, 1, tzinfo=timezone.utc),
    end=datetime(2024, 6, 30, 23, 59, tzinfo=timezone.utc),
)
ROWS = [
    {"id": 1, "status": "paid", "amount": 10, "created_at": "2024-06-02T00:00:00Z"},
    {"id": 2, "status": "pending", "amount": 20, "created_at": "2024-06-03T00:00:00Z"},
    {"id": 3, "status": "paid", "amount": 30, "created_at": "2024-05-03T00:00:00Z"},
]


class _BrokenPool:
    """Pool stand-in whose connections fail with a non-transient query error."""

    @contextmanager
    def connection(self):
        raise psycopg.errors.UndefinedTable('relation "public.ghost" does not exist')
        yield  # pragma: no cover


def test_in_memory_applies_eq_range_and_projection() -> None:
    fetcher = InMemoryRowFetcher({"invoices": ROWS})
    result = fetcher.fetch(RowQuery("invoices", columns=("id",), eq={"status": "paid"}, date_range=JUNE))

    assert result.ok
    assert result.rows == [{"id": 1}]
    assert fetcher.calls[0].table == "invoices"


def test_in_memory_returns_copies() -> None:
    fetcher = InMemoryRowFetcher({"invoices": ROWS})
    fetcher.fetch(RowQuery("invoices")).rows[0]["status"] = "tampered"
    assert ROWS[0]["status"] == "paid"


def test_in_memory_unknown_table_is_an_error_result() -> None:
    result = InMemoryRowFetcher({}).fetch(RowQuery("ghost"))
    assert not result.ok
    assert "ghost" in result.error
    assert result.rows == []
    with pytest.raises(FetchError):
        result.unwrap()


def test_in_memory_failing_table() -> None:
    result = InMemoryRowFetcher({"invoices": ROWS}, failing=["invoices"]).fetch(RowQuery("invoices"))
    assert result.error == "query against invoices failed"


def test_null_data_reads_as_no_rows() -> None:
    result = InMemoryRowFetcher({"invoices": None}).fetch(RowQuery("invoices"))
    assert result.ok
    assert result.data is None
    assert result.rows == []


def test_from_json_accepts_generator_payload(tmp_path: Path) -> None:
    path = tmp_path / "portal.json"
    path.write_text(json.dumps({"generated_at": "x", "tables": {"invoices": ROWS}}), encoding="utf-8")
    assert len(InMemoryRowFetcher.from_json(path).fetch(RowQuery("invoices")).rows) == 3


def test_query_key_defaults_to_table() -> None:
    assert RowQuery("invoices").name == "invoices"
    assert RowQuery("invoices", key="open_invoices").name == "open_invoices"
    assert RowQuery("invoices").with_range(JUNE).date_range == JUNE


def test_fetchers_satisfy_protocol() -> None:
    assert isinstance(InMemoryRowFetcher({}), RowFetcher)
    assert isinstance(PostgresRowFetcher(statement_timeout_ms=1000), RowFetcher)


def test_compose_parameterises_filters() -> None:
    fetcher = PostgresRowFetcher(statement_timeout_ms=1000)
    stmt, params = fetcher.compose(
        RowQuery("invoices", columns=("id", "amount"), eq={"status": "paid"}, date_range=JUNE)
    )

    assert isinstance(stmt, sql.Composed)
    assert params == ["paid", JUNE.start, JUNE.end]
    rendered = repr(stmt)
    assert "Identifier('public', 'invoices')" in rendered
    assert "Identifier('status')" in rendered
    assert "WHERE" in rendered


def test_compose_without_filters_selects_everything() -> None:
    stmt, params = PostgresRowFetcher(statement_timeout_ms=1000).compose(RowQuery("entities"))
    assert params == []
    assert "WHERE" not in repr(stmt)


def test_postgres_query_error_becomes_error_result() -> None:
    fetcher = PostgresRowFetcher(pool=_BrokenPool(), statement_timeout_ms=1000)
    result = fetcher.fetch(RowQuery("ghost"))
    assert not result.ok
    assert "does not exist" in result.error


def test_fetch_all_maps_results_by_name() -> None:
    fetcher = InMemoryRowFetcher({"invoices": ROWS, "entities": []}, failing=["entities"])
    results = fetch_all(
        fetcher,
        [RowQuery("invoices"), RowQuery("entities"), RowQuery("invoices", eq={"status": "paid"}, key="paid")],
        max_workers=3,
    )

    assert set(results) == {"invoices", "entities", "paid"}
    assert len(results["invoices"].rows) == 3
    assert len(results["paid"].rows) == 2
    assert not results["entities"].ok


def test_fetch_all_records_raising_fetcher_as_error() -> None:
    class Exploding:
        def fetch(self, query: RowQuery) -> FetchResult:
            raise RuntimeError("socket closed")

    results = fetch_all(Exploding(), [RowQuery("invoices")], max_workers=1)
    assert results["invoices"].error == "socket closed"


def test_fetch_all_with_no_queries() -> None:
    assert fetch_all(InMemoryRowFetcher({}), []) == {}
