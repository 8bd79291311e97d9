"""
Single-purpose rollups used by individual dashboards: invoice aging, SLA
compliance, score bands, top debtors, stage processing times and investment
value by activity level.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from permit_analytics.aggregation.distribution import fixed_distribution, humanize
from permit_analytics.aggregation.reducers import round_half_up, safe_rate
from permit_analytics.domain.models import DistributionSlice, Record
from permit_analytics.domain.periods import as_utc
from permit_analytics.utils.coerce import is_blank, parse_timestamp, to_number

AGING_BUCKETS = (
    # label, max days past due (inclusive), colour
    ("Current", 0, "#10b981"),
    ("1-30 Days", 30, "#f59e0b"),
    ("31-60 Days", 60, "#f97316"),
    ("61-90 Days", 90, "#ef4444"),
    ("90+ Days", None, "#dc2626"),
)


def _whole_days(later: datetime, earlier: datetime) -> int:
    """Whole days between two instants, truncated toward zero."""
    seconds = (later - earlier).total_seconds()
    return int(seconds / 86400)


def aging_analysis(
    invoices: Optional[Sequence[Record]],
    now: Optional[datetime] = None,
    paid_status: str = "paid",
) -> List[Dict[str, Any]]:
    """
    Unpaid invoices bucketed by days past due. Invoices without a parseable
    due date count as current.
    """
    now = as_utc(now)
    counts = [0] * len(AGING_BUCKETS)
    amounts = [0.0] * len(AGING_BUCKETS)
    for invoice in invoices or ():
        if invoice.get("status") == paid_status:
            continue
        due = parse_timestamp(invoice.get("due_date"))
        days = _whole_days(now, due) if due is not None else 0
        for idx, (_, limit, _) in enumerate(AGING_BUCKETS):
            if limit is None or days <= limit:
                counts[idx] += 1
                amounts[idx] += to_number(invoice.get("amount"))
                break
    return [
        {"period": label, "count": counts[idx], "amount": amounts[idx], "color": color}
        for idx, (label, _, color) in enumerate(AGING_BUCKETS)
    ]


def sla_compliance(
    workflow_rows: Optional[Sequence[Record]],
    now: Optional[datetime] = None,
) -> Dict[str, float]:
    """
    On time: deadline not yet passed, or a final decision was recorded.
    Rows without a deadline are not classified. Nothing classified reads as 100%.
    """
    now = as_utc(now)
    on_time = 0
    delayed = 0
    for row in workflow_rows or ():
        deadline = parse_timestamp(row.get("sla_deadline"))
        if deadline is None:
            continue
        if deadline >= now or not is_blank(row.get("final_decision_at")):
            on_time += 1
        else:
            delayed += 1
    return {
        "on_time": on_time,
        "delayed": delayed,
        "rate": safe_rate(on_time, on_time + delayed, default=100.0),
    }


def score_distribution(
    assessments: Optional[Sequence[Record]],
    field: str = "compliance_score",
) -> List[DistributionSlice]:
    bands = [0, 0, 0, 0]
    for row in assessments or ():
        value = row.get(field)
        if value is None:
            continue
        score = to_number(value)
        if score >= 90:
            bands[0] += 1
        elif score >= 70:
            bands[1] += 1
        elif score >= 50:
            bands[2] += 1
        else:
            bands[3] += 1
    return fixed_distribution(
        [
            ("Excellent (90+)", bands[0], "#10b981"),
            ("Good (70-89)", bands[1], "#3b82f6"),
            ("Fair (50-69)", bands[2], "#f59e0b"),
            ("Poor (<50)", bands[3], "#ef4444"),
        ]
    )


def top_debtors(
    invoices: Optional[Sequence[Record]],
    entities: Optional[Sequence[Record]],
    limit: int = 10,
    paid_status: str = "paid",
) -> List[Dict[str, Any]]:
    totals: Dict[Any, List[float]] = {}
    for invoice in invoices or ():
        entity_id = invoice.get("entity_id")
        if invoice.get("status") == paid_status or is_blank(entity_id):
            continue
        entry = totals.setdefault(entity_id, [0.0, 0])
        entry[0] += to_number(invoice.get("amount"))
        entry[1] += 1

    by_id = {entity.get("id"): entity for entity in entities or ()}
    ranked = sorted(totals.items(), key=lambda item: item[1][0], reverse=True)[:limit]
    debtors = []
    for entity_id, (outstanding, n) in ranked:
        entity = by_id.get(entity_id) or {}
        debtors.append(
            {
                "name": entity.get("name") or "Unknown Entity",
                "entity_type": entity.get("entity_type") or "Unknown",
                "outstanding": outstanding,
                "invoice_count": n,
            }
        )
    return debtors


def processing_time_by_stage(workflow_rows: Optional[Sequence[Record]]) -> List[Dict[str, Any]]:
    """Average whole days from submission to registry completion, per current stage."""
    stages: Dict[str, List[int]] = {}
    for row in workflow_rows or ():
        completed = parse_timestamp(row.get("registry_completed_at"))
        submitted = parse_timestamp(row.get("submitted_at"))
        if completed is None or submitted is None:
            continue
        stage = row.get("current_stage") or "unknown"
        entry = stages.setdefault(str(stage), [0, 0])
        entry[0] += _whole_days(completed, submitted)
        entry[1] += 1
    return [
        {"stage": humanize(stage), "avg_days": round_half_up(total / n), "count": n}
        for stage, (total, n) in stages.items()
    ]


def investment_by_level(
    intents: Optional[Sequence[Record]],
    year: int,
    value_field: str = "estimated_cost_kina",
) -> Dict[str, Any]:
    """Approved Level 2 and Level 3 intent registrations created in `year`."""
    levels = {"level2": ("Level 2", "2"), "level3": ("Level 3", "3")}
    out: Dict[str, Any] = {name: {"value": 0.0, "count": 0} for name in levels}
    for intent in intents or ():
        created = parse_timestamp(intent.get("created_at"))
        if created is None or created.year != year or intent.get("status") != "approved":
            continue
        level = str(intent.get("activity_level") or "")
        for name, accepted in levels.items():
            if level in accepted:
                out[name]["value"] += to_number(intent.get(value_field))
                out[name]["count"] += 1
    out["total"] = out["level2"]["value"] + out["level3"]["value"]
    out["total_count"] = out["level2"]["count"] + out["level3"]["count"]
    return out


def available_years(rows: Optional[Sequence[Record]], now: Optional[datetime] = None) -> List[int]:
    years = {as_utc(now).year}
    for row in rows or ():
        created = parse_timestamp(row.get("created_at"))
        if created is not None:
            years.add(created.year)
    return sorted(years, reverse=True)


__all__ = [
    "AGING_BUCKETS",
    "aging_analysis",
    "available_years",
    "investment_by_level",
    "processing_time_by_stage",
    "score_distribution",
    "sla_compliance",
    "top_debtors",
]
