"""
Revenue analytics: invoicing, collections, receivables aging, debtors,
sector revenue and the 12-month projection.
"""

from __future__ import annotations

from typing import List, Optional

from permit_analytics.aggregation import schemas
from permit_analytics.aggregation.distribution import build_distribution, fixed_distribution
from permit_analytics.aggregation.forecast import ForecastConfig, active_only, forecast_revenue
from permit_analytics.aggregation.insights import aging_analysis, top_debtors
from permit_analytics.aggregation.reducers import StatusReducer
from permit_analytics.aggregation.series import (
    build_period_series,
    build_sector_revenue,
    difference,
    status_in,
    sum_of,
)
from permit_analytics.dashboards.abstract import AbstractDashboardView, ViewContext
from permit_analytics.domain.models import DateRange
from permit_analytics.infrastructure.row_fetcher import RowQuery
from permit_analytics.utils.coerce import is_blank

INVOICE_TYPE_TOP_N = 6
DEBTOR_LIMIT = 10


class RevenueDashboard(AbstractDashboardView):
    name: str = "revenue"
    description: str = "Invoicing, collections, aging, debtors, sector revenue and forecast."

    def __init__(self, forecast_config: Optional[ForecastConfig] = None) -> None:
        self.invoices = StatusReducer(schemas.INVOICES)
        self.payments = StatusReducer(schemas.FEE_PAYMENTS)
        self.forecast_config = forecast_config

    def queries(self, rng: DateRange) -> List[RowQuery]:
        # Entities and permits are not date-filtered: debtors and renewals span all time.
        return [
            RowQuery("invoices", date_range=rng),
            RowQuery("fee_payments", date_range=rng),
            RowQuery("entities", columns=("id", "name", "entity_type")),
            RowQuery(
                "permit_applications",
                columns=("id", "status", "permit_type", "created_at", "expiry_date", "fee_amount"),
            ),
        ]

    def compose(self, ctx: ViewContext) -> None:
        invoices = ctx.rows("invoices")
        payments = ctx.rows("fee_payments")
        entities = ctx.rows("entities")
        permits = ctx.rows("permit_applications")

        ctx.kpi("invoices", ["invoices"], lambda: self.invoices.reduce(invoices, ctx.now))
        ctx.kpi("payments", ["fee_payments"], lambda: self.payments.reduce(payments, ctx.now))

        def paid_with_date(row) -> bool:
            return row.get("status") == "paid" and not is_blank(row.get("paid_date"))

        ctx.trend(
            "revenue",
            ["invoices"],
            lambda: build_period_series(
                invoices,
                ctx.period,
                ctx.range,
                [
                    sum_of("invoiced", "amount"),
                    sum_of("collected", "amount", predicate=paid_with_date, ts_field="paid_date"),
                ],
                now=ctx.now,
                derived=[difference("outstanding", "invoiced", "collected")],
            ),
        )
        ctx.trend(
            "sector_revenue",
            ["fee_payments", "permit_applications"],
            lambda: build_sector_revenue(
                payments,
                permits,
                predicate=status_in("paid", field="payment_status"),
            ),
        )
        ctx.trend(
            "forecast",
            ["permit_applications"],
            lambda: forecast_revenue(
                active_only(permits),
                ctx.now,
                self.forecast_config or ForecastConfig.from_settings(),
            ),
        )

        def _status_pie():
            stat = self.invoices.reduce(invoices, ctx.now)
            return fixed_distribution(
                [
                    ("Paid", stat.by_status["paid"], "#10b981"),
                    ("Pending", stat.by_status["pending"], "#f59e0b"),
                    ("Overdue", stat.counts["overdue"], "#ef4444"),
                ]
            )

        ctx.distribution("invoice_status", ["invoices"], _status_pie)
        ctx.distribution(
            "invoice_types",
            ["invoices"],
            lambda: build_distribution(
                invoices,
                "invoice_type",
                "General",
                value_field="amount",
                top_n=INVOICE_TYPE_TOP_N,
            ),
        )
        ctx.table("aging", ["invoices"], lambda: aging_analysis(invoices, ctx.now))
        ctx.table(
            "top_debtors",
            ["invoices", "entities"],
            lambda: top_debtors(invoices, entities, limit=DEBTOR_LIMIT),
        )


__all__ = ["RevenueDashboard"]
