"""
Per-domain reducer schemas.

Status acceptance sets differ between views on purpose (the executive view
treats "issued" as approved, the registry view does not); keep each view's
sets as they are rather than unifying them.
"""

from __future__ import annotations

from permit_analytics.aggregation.reducers import (
    AverageSpec,
    FlagSpec,
    OverdueRule,
    RateSpec,
    ReducerSchema,
    SumSpec,
)

# Registry

PERMITS = ReducerSchema(
    name="permits",
    buckets={
        "approved": ("approved",),
        "pending": ("pending", "submitted"),
        "rejected": ("rejected",),
    },
    flags={"draft": FlagSpec("is_draft")},
    rates={"approval_rate": RateSpec("approved", "total")},
)

INTENTS = ReducerSchema(
    name="intents",
    buckets={
        "approved": ("approved",),
        "pending": ("pending", "submitted"),
        "rejected": ("rejected",),
    },
    rates={"approval_rate": RateSpec("approved", "total")},
)

ENTITIES = ReducerSchema(
    name="entities",
    flags={
        "active": FlagSpec("is_suspended", negate=True),
        "suspended": FlagSpec("is_suspended"),
    },
    rates={"activity_rate": RateSpec("active", "total", rounded=True)},
)

# Compliance

ASSESSMENTS = ReducerSchema(
    name="assessments",
    status_field="assessment_status",
    buckets={
        "completed": ("completed",),
        "in_progress": ("in_progress",),
        "pending": ("pending",),
    },
    averages={"avg_score": AverageSpec("compliance_score", within="completed")},
)

INSPECTIONS = ReducerSchema(
    name="inspections",
    buckets={
        "scheduled": ("scheduled",),
        "completed": ("completed",),
        "in_progress": ("in_progress",),
        "cancelled": ("cancelled",),
    },
    rates={"completion_rate": RateSpec("completed", "total", rounded=True)},
)

COMPLIANCE_REPORTS = ReducerSchema(
    name="compliance_reports",
    buckets={
        "pending": ("pending",),
        "reviewed": ("reviewed",),
        "approved": ("approved",),
    },
)

TASKS = ReducerSchema(
    name="tasks",
    buckets={
        "pending": ("pending",),
        "completed": ("completed",),
    },
    overdue=OverdueRule(due_field="due_date", done_statuses=("completed",)),
)

# Revenue

INVOICES = ReducerSchema(
    name="invoices",
    buckets={
        "paid": ("paid",),
        "pending": ("pending",),
    },
    overdue=OverdueRule(due_field="due_date", done_statuses=("paid",)),
    sums={
        "total_amount": SumSpec("amount"),
        "collected_amount": SumSpec("amount", within="paid"),
        "pending_amount": SumSpec("amount", within="pending"),
        "overdue_amount": SumSpec("amount", within="overdue"),
    },
    rates={"collection_rate": RateSpec("collected_amount", "total_amount")},
)

FEE_PAYMENTS = ReducerSchema(
    name="fee_payments",
    status_field="payment_status",
    buckets={
        "paid": ("paid",),
        "pending": ("pending",),
    },
    sums={"total_collected": SumSpec("amount_paid", within="paid")},
)

# Executive

EXECUTIVE_PERMITS = ReducerSchema(
    name="executive_permits",
    buckets={
        "approved": ("approved", "issued"),
        "pending": (
            "pending",
            "submitted",
            "under_review",
            "under_initial_review",
            "under_technical_review",
        ),
        "rejected": ("rejected", "denied"),
    },
    rates={"approval_rate": RateSpec("approved", "total", rounded=True)},
)

EXECUTIVE_REVENUE = ReducerSchema(
    name="executive_revenue",
    status_field="payment_status",
    buckets={
        "paid": ("paid",),
        "pending": ("pending",),
    },
    sums={
        "total_revenue": SumSpec("total_fee"),
        "collected_revenue": SumSpec("total_fee", within="paid"),
        "pending_revenue": SumSpec("total_fee", within="pending"),
    },
    rates={"collection_rate": RateSpec("collected_revenue", "total_revenue", rounded=True)},
)

EXECUTIVE_ASSESSMENTS = ReducerSchema(
    name="executive_assessments",
    status_field="assessment_status",
    averages={"avg_compliance_score": AverageSpec("compliance_score", rounded=True)},
)

# Status groupings for pie charts, lower-cased before matching.
EXECUTIVE_STATUS_GROUPS = ReducerSchema(
    name="executive_status_groups",
    normalize_status=True,
    buckets={
        "Pending": (
            "pending",
            "submitted",
            "under_review",
            "under_technical_review",
            "under_compliance_review",
        ),
        "Approved": ("approved", "active", "issued"),
        "Rejected": ("rejected", "declined", "cancelled"),
    },
)

ACTIVE_PERMIT_STATUSES = ("approved", "active", "issued")

__all__ = [
    "ACTIVE_PERMIT_STATUSES",
    "ASSESSMENTS",
    "COMPLIANCE_REPORTS",
    "ENTITIES",
    "EXECUTIVE_ASSESSMENTS",
    "EXECUTIVE_PERMITS",
    "EXECUTIVE_REVENUE",
    "EXECUTIVE_STATUS_GROUPS",
    "FEE_PAYMENTS",
    "INSPECTIONS",
    "INTENTS",
    "INVOICES",
    "PERMITS",
    "TASKS",
]
