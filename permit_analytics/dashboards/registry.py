"""
Registry analytics: application intake, approvals, entity mix and SLA
performance of the registry unit.
"""

from __future__ import annotations

from typing import List

from permit_analytics.aggregation import schemas
from permit_analytics.aggregation.distribution import build_distribution, fixed_distribution, truncate_label
from permit_analytics.aggregation.insights import processing_time_by_stage, sla_compliance
from permit_analytics.aggregation.reducers import StatusReducer
from permit_analytics.aggregation.series import SeriesSource, build_multi_series, count, total_of
from permit_analytics.dashboards.abstract import AbstractDashboardView, ViewContext
from permit_analytics.domain.models import DateRange
from permit_analytics.domain.periods import trend_buckets
from permit_analytics.infrastructure.row_fetcher import RowQuery

PERMIT_TYPE_TOP_N = 7


class RegistryDashboard(AbstractDashboardView):
    """
    Permit and intent intake, entity registrations and workflow SLA.
    """

    name: str = "registry"
    description: str = "Registry intake, approvals, entity types and SLA compliance."

    def __init__(self) -> None:
        self.permits = StatusReducer(schemas.PERMITS)
        self.intents = StatusReducer(schemas.INTENTS)
        self.entities = StatusReducer(schemas.ENTITIES)

    def queries(self, rng: DateRange) -> List[RowQuery]:
        return [
            RowQuery("entities", date_range=rng),
            RowQuery("permit_applications", date_range=rng),
            RowQuery("intent_registrations", date_range=rng),
            RowQuery("application_workflow_state", date_range=rng),
        ]

    def compose(self, ctx: ViewContext) -> None:
        permits = ctx.rows("permit_applications")
        intents = ctx.rows("intent_registrations")
        entities = ctx.rows("entities")
        workflow = ctx.rows("application_workflow_state")

        ctx.kpi("permits", ["permit_applications"], lambda: self.permits.reduce(permits, ctx.now))
        ctx.kpi("intents", ["intent_registrations"], lambda: self.intents.reduce(intents, ctx.now))
        ctx.kpi("entities", ["entities"], lambda: self.entities.reduce(entities, ctx.now))
        ctx.kpi("sla", ["application_workflow_state"], lambda: sla_compliance(workflow, ctx.now))

        ctx.trend(
            "applications",
            ["permit_applications", "intent_registrations"],
            lambda: build_multi_series(
                trend_buckets(ctx.period, ctx.range, ctx.now),
                [
                    SeriesSource(intents, [count("intents")]),
                    SeriesSource(permits, [count("permits")]),
                ],
                derived=[total_of("total", "intents", "permits")],
            ),
        )

        def _status_pie():
            p = self.permits.reduce(permits, ctx.now)
            i = self.intents.reduce(intents, ctx.now)
            return fixed_distribution(
                [
                    ("Approved", p.by_status["approved"] + i.by_status["approved"], "#10b981"),
                    ("Pending", p.by_status["pending"] + i.by_status["pending"], "#f59e0b"),
                    ("Rejected", p.by_status["rejected"] + i.by_status["rejected"], "#ef4444"),
                    ("Draft", p.counts["draft"], "#6b7280"),
                ]
            )

        ctx.distribution("application_status", ["permit_applications", "intent_registrations"], _status_pie)
        ctx.distribution(
            "permit_types",
            ["permit_applications"],
            lambda: build_distribution(
                permits,
                "permit_type",
                "Unspecified",
                top_n=PERMIT_TYPE_TOP_N,
                label=truncate_label,
            ),
        )
        ctx.distribution(
            "entity_types",
            ["entities"],
            lambda: build_distribution(entities, "entity_type", "Unknown"),
        )
        ctx.table(
            "processing_time",
            ["application_workflow_state"],
            lambda: processing_time_by_stage(workflow),
        )


__all__ = ["RegistryDashboard"]
