from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from permit_analytics.main import app

QUIET = {"LOG_LEVEL": "ERROR"}

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """`run` reconfigures root logging onto the runner's streams; undo that."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def fixture_file(portal_tables, tmp_path: Path) -> Path:
    path = tmp_path / "portal.json"
    path.write_text(json.dumps({"tables": portal_tables}), encoding="utf-8")
    return path


def test_info_prints_configuration() -> None:
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert "DB=" in result.output
    assert "period=" in result.output


def test_periods_lists_every_keyword() -> None:
    result = runner.invoke(app, ["periods", "--now", "2024-06-15T12:00:00Z"])
    assert result.exit_code == 0
    for keyword in ("weekly", "monthly", "ytd", "last-year", "all-time"):
        assert keyword in result.output
    assert "2023-01-01T00:00:00+00:00" in result.output


def test_periods_rejects_bad_now() -> None:
    result = runner.invoke(app, ["periods", "--now", "someday"])
    assert result.exit_code != 0


def test_run_list() -> None:
    result = runner.invoke(app, ["run", "--dashboard", "list"], env=QUIET)
    assert result.exit_code == 0
    assert "registry" in result.output
    assert "executive" in result.output


def test_run_unknown_dashboard_is_usage_error(fixture_file: Path) -> None:
    result = runner.invoke(app, ["run", "-d", "sales", "--fixtures", str(fixture_file), "--no-persist"], env=QUIET)
    assert result.exit_code == 2


def test_run_json_from_fixtures(fixture_file: Path) -> None:
    result = runner.invoke(
        app,
        [
            "run",
            "-d",
            "registry",
            "-p",
            "monthly",
            "--now",
            "2024-06-15T12:00:00Z",
            "--fixtures",
            str(fixture_file),
            "--no-persist",
            "--json",
        ],
        env=QUIET,
    )
    assert result.exit_code == 0, result.output
    reports = json.loads(result.output)
    assert reports[0]["dashboard"] == "registry"
    assert reports[0]["kpis"]["permits"]["total"] == 4


def test_run_renders_tables(fixture_file: Path) -> None:
    result = runner.invoke(
        app,
        ["run", "-d", "revenue", "--now", "2024-06-15T12:00:00Z", "--fixtures", str(fixture_file), "--no-persist"],
        env=QUIET,
    )
    assert result.exit_code == 0, result.output
    assert "Revenue KPIs" in result.output
