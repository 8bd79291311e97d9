from __future__ import annotations

from datetime import datetime, timezone

import pytest

from permit_analytics.aggregation.forecast import (
    ForecastConfig,
    active_only,
    average_fee,
    forecast_revenue,
    projection_window,
    renewal_date,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
HORIZON = 12

ACTIVE = [
    {"status": "approved", "fee_amount": 10000, "expiry_date": "2024-08-20T00:00:00Z", "created_at": "2023-08-20T00:00:00Z"},
    {"status": "issued", "fee_amount": None, "expiry_date": None, "created_at": "2023-09-01T00:00:00Z"},
    {"status": "active", "fee_amount": 2000, "expiry_date": "2024-06-20T00:00:00Z", "created_at": "2023-06-20T00:00:00Z"},
]


def test_window_starts_next_month() -> None:
    window = projection_window(NOW)
    assert len(window) == HORIZON
    assert window.labels[0] == "Jul 2024"
    assert window.labels[-1] == "Jun 2025"


def test_multiplier_schedule() -> None:
    config = ForecastConfig()
    assert [config.multiplier(i) for i in range(HORIZON)] == [1.5] * 3 + [1.2] * 3 + [1.0] * 6


def test_average_fee_uses_rows_with_a_fee() -> None:
    assert average_fee(ACTIVE, ForecastConfig()) == pytest.approx(6000.0)


def test_average_fee_falls_back_to_flat_fee() -> None:
    assert average_fee([{"fee_amount": None}], ForecastConfig()) == 5000.0


def test_renewal_date_prefers_expiry_then_created_plus_one_year() -> None:
    config = ForecastConfig()
    assert renewal_date(ACTIVE[0], config) == datetime(2024, 8, 20, tzinfo=timezone.utc)
    assert renewal_date(ACTIVE[1], config) == datetime(2024, 9, 1, tzinfo=timezone.utc)
    assert renewal_date({"expiry_date": None, "created_at": None}, config) is None


def test_forecast_places_renewals_and_scales_annual_fees() -> None:
    points = forecast_revenue(ACTIVE, NOW, ForecastConfig())
    annual_base = 0.10 * 6000.0 * len(ACTIVE)

    assert len(points) == HORIZON
    july, august, september, october = points[:4]

    assert july["month"] == "Jul 2024"
    assert july["renewals"] == 0
    assert july["annual_fees"] == pytest.approx(annual_base * 1.5)
    assert july["projected"] == pytest.approx(annual_base * 1.5)

    assert august["renewals"] == 1
    assert august["renewal_fees"] == pytest.approx(10000.0)
    assert august["projected"] == pytest.approx(10000.0 + annual_base * 1.5)

    # no fee on record: the average fee stands in
    assert september["renewal_fees"] == pytest.approx(6000.0)

    assert october["multiplier"] == 1.2
    assert points[-1]["multiplier"] == 1.0


def test_renewals_before_window_are_ignored() -> None:
    points = forecast_revenue(ACTIVE, NOW, ForecastConfig())
    # the June 20 renewal falls in the current month, which is not projected
    assert sum(p["renewals"] for p in points) == 2


def test_empty_portfolio_projects_zero() -> None:
    points = forecast_revenue([], NOW, ForecastConfig())
    assert all(p["projected"] == 0 for p in points)


def test_config_reads_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORECAST_FALLBACK_FEE", "7500")
    monkeypatch.setenv("FORECAST_ANNUAL_FEE_RATIO", "0.2")
    config = ForecastConfig.from_settings()
    assert config.fallback_fee == 7500.0
    assert config.annual_fee_ratio == 0.2


def test_active_only_is_case_insensitive() -> None:
    rows = [{"status": "APPROVED"}, {"status": "pending"}, {"status": None}, {"status": "Active"}]
    assert len(active_only(rows)) == 2
