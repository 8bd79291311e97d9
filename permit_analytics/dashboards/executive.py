"""
Executive analytics: portal-wide KPIs, provincial spread, 12-month trends and
investment value for the managing director's dashboard.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from permit_analytics.aggregation import schemas
from permit_analytics.aggregation.distribution import (
    EXECUTIVE_PALETTE,
    build_distribution,
    color_for,
    zero_filled_distribution,
)
from permit_analytics.aggregation.forecast import active_only
from permit_analytics.aggregation.insights import available_years, investment_by_level
from permit_analytics.aggregation.reducers import StatusReducer, sum_field
from permit_analytics.aggregation.series import build_monthly_trend
from permit_analytics.dashboards.abstract import AbstractDashboardView, ViewContext
from permit_analytics.domain.models import DateRange, DistributionSlice
from permit_analytics.infrastructure.row_fetcher import RowQuery
from permit_analytics.utils.coerce import is_blank

PERMIT_TYPE_TOP_N = 10

PNG_PROVINCES = (
    "Western Province",
    "Gulf Province",
    "Central Province",
    "National Capital District",
    "Milne Bay Province",
    "Oro Province",
    "Southern Highlands Province",
    "Hela Province",
    "Enga Province",
    "Western Highlands Province",
    "Jiwaka Province",
    "Chimbu Province",
    "Eastern Highlands Province",
    "Morobe Province",
    "Madang Province",
    "East Sepik Province",
    "Sandaun Province",
    "Manus Province",
    "New Ireland Province",
    "East New Britain Province",
    "West New Britain Province",
    "Autonomous Region of Bougainville",
)


class ExecutiveDashboard(AbstractDashboardView):
    name: str = "executive"
    description: str = "Portal-wide KPIs, provincial spread, trends and investment value."

    def __init__(self, investment_year: Optional[int] = None) -> None:
        self.investment_year = investment_year
        self.permits = StatusReducer(schemas.EXECUTIVE_PERMITS)
        self.revenue = StatusReducer(schemas.EXECUTIVE_REVENUE)
        self.inspections = StatusReducer(schemas.INSPECTIONS)
        self.assessments = StatusReducer(schemas.EXECUTIVE_ASSESSMENTS)
        self.entities = StatusReducer(schemas.ENTITIES)
        self.status_groups = StatusReducer(schemas.EXECUTIVE_STATUS_GROUPS)

    def queries(self, rng: DateRange) -> List[RowQuery]:
        return [
            RowQuery(
                "permit_applications",
                columns=("id", "status", "permit_type", "created_at", "updated_at", "province", "entity_name"),
                date_range=rng,
            ),
            RowQuery("entities", columns=("id", "entity_type", "province", "created_at", "is_suspended")),
            RowQuery(
                "fee_payments",
                columns=("id", "total_fee", "payment_status", "created_at", "payment_method"),
                date_range=rng,
            ),
            RowQuery(
                "inspections",
                columns=("id", "status", "inspection_type", "province", "scheduled_date", "completed_date", "findings"),
                date_range=rng,
            ),
            RowQuery(
                "compliance_assessments",
                columns=("id", "assessment_status", "compliance_score", "created_at"),
                date_range=rng,
            ),
            RowQuery(
                "intent_registrations",
                columns=("id", "status", "province", "created_at", "estimated_cost_kina", "activity_level"),
            ),
            RowQuery("compliance_reports", columns=("id", "status", "created_at", "permit_id"), date_range=rng),
        ]

    def _permit_kpis(self, rows, now) -> Dict[str, Any]:
        stat = self.permits.reduce(rows, now)
        return {
            "total_applications": stat.total,
            "approved_applications": stat.by_status["approved"],
            "pending_applications": stat.by_status["pending"],
            "rejected_applications": stat.by_status["rejected"],
            "approval_rate": stat.rates["approval_rate"],
        }

    def _revenue_kpis(self, rows, now) -> Dict[str, Any]:
        stat = self.revenue.reduce(rows, now)
        return {
            "total_revenue": stat.sums["total_revenue"],
            "collected_revenue": stat.sums["collected_revenue"],
            "pending_revenue": stat.sums["pending_revenue"],
            "collection_rate": stat.rates["collection_rate"],
        }

    def _inspection_kpis(self, rows, now) -> Dict[str, Any]:
        stat = self.inspections.reduce(rows, now)
        return {
            "total_inspections": stat.total,
            "completed_inspections": stat.by_status["completed"],
            "scheduled_inspections": stat.by_status["scheduled"],
            "inspection_rate": stat.rates["completion_rate"],
        }

    def _assessment_kpis(self, rows, now) -> Dict[str, Any]:
        return {"avg_compliance_score": self.assessments.reduce(rows, now).averages["avg_compliance_score"]}

    def _entity_kpis(self, rows, now) -> Dict[str, Any]:
        stat = self.entities.reduce(rows, now)
        return {
            "total_entities": stat.total,
            "active_entities": stat.counts["active"],
            "entity_activity_rate": stat.rates["activity_rate"],
        }

    @staticmethod
    def _intent_kpis(rows, now) -> Dict[str, Any]:
        return {
            "total_project_value": sum_field(rows, "estimated_cost_kina"),
            "total_intents": len(rows),
        }

    def _summary(self, ctx: ViewContext) -> Dict[str, Any]:
        """Headline KPIs; figures whose table failed to load read as None."""
        parts = (
            ("permit_applications", self._permit_kpis),
            ("fee_payments", self._revenue_kpis),
            ("inspections", self._inspection_kpis),
            ("compliance_assessments", self._assessment_kpis),
            ("entities", self._entity_kpis),
            ("intent_registrations", self._intent_kpis),
        )
        summary: Dict[str, Any] = {}
        for table, fn in parts:
            if ctx.failed(table):
                summary.update(dict.fromkeys(fn([], ctx.now), None))
            else:
                summary.update(fn(ctx.rows(table), ctx.now))
        return summary

    def compose(self, ctx: ViewContext) -> None:
        permits = ctx.rows("permit_applications")
        payments = ctx.rows("fee_payments")
        inspections = ctx.rows("inspections")
        entities = ctx.rows("entities")
        intents = ctx.rows("intent_registrations")
        reports = ctx.rows("compliance_reports")

        ctx.kpi("summary", [], lambda: self._summary(ctx))
        ctx.kpi("performance_radar", [], lambda: self._radar(ctx.kpis["summary"]))

        def _compliance() -> Dict[str, Any]:
            violations = [i for i in inspections if not is_blank(i.get("findings"))]
            return {
                "total_permits": len(permits),
                "total_compliance_reports": len(reports),
                "total_inspections_carried": sum(1 for i in inspections if i.get("status") == "completed"),
                "violations_reported": len(violations),
            }

        ctx.kpi("compliance", ["permit_applications", "inspections", "compliance_reports"], _compliance)

        year = self.investment_year or ctx.now.year
        ctx.kpi(
            "investment",
            ["intent_registrations"],
            lambda: {
                "year": year,
                "available_years": available_years(intents, ctx.now),
                **investment_by_level(intents, year),
            },
        )

        ctx.trend(
            "monthly",
            ["permit_applications", "fee_payments"],
            lambda: build_monthly_trend(permits, payments, ctx.now),
        )

        ctx.distribution(
            "provinces",
            ["permit_applications"],
            lambda: zero_filled_distribution(
                active_only(permits),
                "province",
                PNG_PROVINCES,
                palette=EXECUTIVE_PALETTE,
            ),
        )
        ctx.distribution(
            "permit_types",
            ["permit_applications"],
            lambda: build_distribution(
                permits,
                "permit_type",
                "Unknown",
                top_n=PERMIT_TYPE_TOP_N,
                palette=EXECUTIVE_PALETTE,
            ),
        )
        ctx.distribution("application_status", ["permit_applications"], lambda: self._status_pie(permits, ctx))
        ctx.distribution(
            "entity_types",
            ["entities"],
            lambda: build_distribution(entities, "entity_type", "Unknown", palette=EXECUTIVE_PALETTE),
        )
        ctx.distribution(
            "permits_by_sector",
            ["permit_applications"],
            lambda: build_distribution(permits, "permit_type", "Other", palette=EXECUTIVE_PALETTE),
        )

    def _status_pie(self, permits, ctx: ViewContext) -> List[DistributionSlice]:
        stat = self.status_groups.reduce(permits, ctx.now)
        # Pending/Approved/Rejected order is kept rather than ranking by size.
        present = [(name, value) for name, value in stat.by_status.items() if value > 0]
        return [
            DistributionSlice(name=name, value=value, color=color_for(position, EXECUTIVE_PALETTE))
            for position, (name, value) in enumerate(present)
        ]

    @staticmethod
    def _radar(summary: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"metric": "Approval Rate", "value": summary["approval_rate"], "full_mark": 100},
            {"metric": "Collection Rate", "value": summary["collection_rate"], "full_mark": 100},
            {"metric": "Compliance Score", "value": summary["avg_compliance_score"], "full_mark": 100},
            {"metric": "Inspection Rate", "value": summary["inspection_rate"], "full_mark": 100},
            {"metric": "Entity Activity", "value": summary["entity_activity_rate"], "full_mark": 100},
        ]


__all__ = ["ExecutiveDashboard", "PNG_PROVINCES"]
