"""
Compliance analytics: assessments, inspections, compliance reports and
officer tasks.
"""

from __future__ import annotations

from typing import List

from permit_analytics.aggregation import schemas
from permit_analytics.aggregation.distribution import build_distribution, fixed_distribution, humanize
from permit_analytics.aggregation.insights import score_distribution
from permit_analytics.aggregation.reducers import StatusReducer
from permit_analytics.aggregation.series import SeriesSource, build_multi_series, count
from permit_analytics.dashboards.abstract import AbstractDashboardView, ViewContext
from permit_analytics.domain.models import DateRange
from permit_analytics.domain.periods import trend_buckets
from permit_analytics.infrastructure.row_fetcher import RowQuery

PROVINCE_TOP_N = 8


class ComplianceDashboard(AbstractDashboardView):
    name: str = "compliance"
    description: str = "Assessment, inspection, report and task throughput for compliance staff."

    def __init__(self) -> None:
        self.assessments = StatusReducer(schemas.ASSESSMENTS)
        self.inspections = StatusReducer(schemas.INSPECTIONS)
        self.reports = StatusReducer(schemas.COMPLIANCE_REPORTS)
        self.tasks = StatusReducer(schemas.TASKS)

    def queries(self, rng: DateRange) -> List[RowQuery]:
        return [
            RowQuery("compliance_assessments", date_range=rng),
            RowQuery("inspections", date_range=rng),
            RowQuery("compliance_reports", date_range=rng),
            RowQuery("compliance_tasks", date_range=rng),
        ]

    def compose(self, ctx: ViewContext) -> None:
        assessments = ctx.rows("compliance_assessments")
        inspections = ctx.rows("inspections")
        reports = ctx.rows("compliance_reports")
        tasks = ctx.rows("compliance_tasks")

        ctx.kpi("assessments", ["compliance_assessments"], lambda: self.assessments.reduce(assessments, ctx.now))
        ctx.kpi("inspections", ["inspections"], lambda: self.inspections.reduce(inspections, ctx.now))
        ctx.kpi("reports", ["compliance_reports"], lambda: self.reports.reduce(reports, ctx.now))
        ctx.kpi("tasks", ["compliance_tasks"], lambda: self.tasks.reduce(tasks, ctx.now))

        # Inspections are plotted by when they are scheduled, not when the row was created.
        ctx.trend(
            "activity",
            ["compliance_assessments", "inspections", "compliance_reports"],
            lambda: build_multi_series(
                trend_buckets(ctx.period, ctx.range, ctx.now),
                [
                    SeriesSource(assessments, [count("assessments")]),
                    SeriesSource(inspections, [count("inspections")], ts_field="scheduled_date"),
                    SeriesSource(reports, [count("reports")]),
                ],
            ),
        )

        def _assessment_pie():
            stat = self.assessments.reduce(assessments, ctx.now)
            return fixed_distribution(
                [
                    ("Completed", stat.by_status["completed"], "#10b981"),
                    ("In Progress", stat.by_status["in_progress"], "#3b82f6"),
                    ("Pending", stat.by_status["pending"], "#f59e0b"),
                ]
            )

        def _inspection_pie():
            stat = self.inspections.reduce(inspections, ctx.now)
            return fixed_distribution(
                [
                    ("Completed", stat.by_status["completed"], "#10b981"),
                    ("Scheduled", stat.by_status["scheduled"], "#3b82f6"),
                    ("In Progress", stat.by_status["in_progress"], "#f59e0b"),
                    ("Cancelled", stat.by_status["cancelled"], "#6b7280"),
                ]
            )

        ctx.distribution("assessment_status", ["compliance_assessments"], _assessment_pie)
        ctx.distribution("inspection_status", ["inspections"], _inspection_pie)
        ctx.distribution(
            "inspection_types",
            ["inspections"],
            lambda: build_distribution(inspections, "inspection_type", "General", label=humanize),
        )
        ctx.distribution(
            "provinces",
            ["inspections"],
            lambda: build_distribution(inspections, "province", "Unknown", top_n=PROVINCE_TOP_N),
        )
        ctx.distribution("compliance_scores", ["compliance_assessments"], lambda: score_distribution(assessments))


__all__ = ["ComplianceDashboard"]
