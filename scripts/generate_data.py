"""
Data generation and loading script for permit analytics.

Implements deterministic pseudo-random portal rows (entities, permit and intent
applications, workflow state, compliance activity, invoices and fee payments),
JSON fixture emission for offline runs, and Postgres COPY loading.
"""

from __future__ import annotations

import json
import random
import sys
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from dateutil.relativedelta import relativedelta
from psycopg import sql

from permit_analytics.infrastructure.db_factory import build_dsn, get_sync_connection
from permit_analytics.utils.coerce import parse_timestamp

app = typer.Typer(help="Generate synthetic portal data as JSON fixtures and optionally load into Postgres.")

Tables = Dict[str, List[Dict[str, Any]]]

PROVINCES = [
    "National Capital District",
    "Morobe Province",
    "Western Province",
    "Enga Province",
    "Madang Province",
    "East New Britain Province",
    "Autonomous Region of Bougainville",
]
ENTITY_TYPES = ["Company", "Individual", "Government Agency", "NGO"]
PERMIT_TYPES = [
    "Environment Permit Level 2",
    "Environment Permit Level 3",
    "Water Extraction Permit",
    "Waste Discharge Permit",
    "Land Clearing Permit",
    "Mining Exploration Permit",
    "Forestry Operations Permit",
    "Fisheries Processing Permit",
]
PERMIT_STATUSES = ["approved", "pending", "submitted", "rejected", "issued", "under_review", "draft"]
INTENT_STATUSES = ["approved", "pending", "submitted", "rejected"]
STAGES = ["registry", "compliance", "technical_review", "director_review", "final_decision"]
INSPECTION_TYPES = ["routine", "follow_up", "complaint_response", "site_verification", None]
INVOICE_TYPES = ["application_fee", "annual_fee", "renewal_fee", "amendment_fee", "penalty", None]
PAYMENT_METHODS = ["bank_transfer", "cheque", "cash", "online"]

TABLE_ORDER = [
    "entities",
    "permit_applications",
    "intent_registrations",
    "application_workflow_state",
    "compliance_assessments",
    "inspections",
    "compliance_reports",
    "compliance_tasks",
    "invoices",
    "fee_payments",
]


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def _created(rng: random.Random, now: datetime, days: int) -> datetime:
    return now - timedelta(days=rng.randint(0, days), hours=rng.randint(0, 23), minutes=rng.randint(0, 59))


def generate_tables(rows: int, seed: int, now: datetime, history_days: int = 730) -> Tables:
    """
    Build every portal table with `rows` entities and proportionally sized
    child tables. The same seed and `now` always yield the same tables.
    """
    rng = random.Random(seed)
    tables: Tables = {name: [] for name in TABLE_ORDER}

    for i in range(1, rows + 1):
        tables["entities"].append(
            {
                "id": i,
                "name": f"Entity {i:04d} Ltd",
                "entity_type": rng.choice(ENTITY_TYPES),
                "province": rng.choice(PROVINCES),
                "is_suspended": rng.random() < 0.1,
                "created_at": _iso(_created(rng, now, history_days)),
            }
        )
    entities = tables["entities"]

    for i in range(1, rows * 2 + 1):
        entity = rng.choice(entities)
        created = _created(rng, now, history_days)
        status = rng.choice(PERMIT_STATUSES)
        tables["permit_applications"].append(
            {
                "id": i,
                "entity_id": entity["id"],
                "entity_name": entity["name"],
                "status": status,
                "is_draft": status == "draft",
                "permit_type": rng.choice(PERMIT_TYPES + [None]),
                "province": rng.choice(PROVINCES + [None]),
                "fee_amount": rng.choice([None, round(rng.uniform(1_000, 20_000), 2)]),
                "created_at": _iso(created),
                "updated_at": _iso(created + timedelta(days=rng.randint(0, 30))),
                "expiry_date": _iso(
                    created + relativedelta(years=rng.choice([1, 2, 3])) if rng.random() < 0.7 else None
                ),
            }
        )
    permits = tables["permit_applications"]

    for i in range(1, rows + 1):
        tables["intent_registrations"].append(
            {
                "id": i,
                "entity_id": rng.choice(entities)["id"],
                "status": rng.choice(INTENT_STATUSES),
                "province": rng.choice(PROVINCES),
                "activity_level": rng.choice(["Level 2", "Level 3", "2", "3", "Level 1"]),
                "estimated_cost_kina": round(rng.uniform(50_000, 5_000_000), 2),
                "created_at": _iso(_created(rng, now, history_days)),
            }
        )

    for permit in permits:
        submitted = parse_timestamp(permit["created_at"])
        completed = submitted + timedelta(days=rng.randint(1, 60)) if rng.random() < 0.6 else None
        decided = completed + timedelta(days=rng.randint(1, 30)) if completed and rng.random() < 0.5 else None
        tables["application_workflow_state"].append(
            {
                "id": permit["id"],
                "application_id": permit["id"],
                "current_stage": rng.choice(STAGES),
                "submitted_at": _iso(submitted),
                "registry_completed_at": _iso(completed),
                "sla_deadline": _iso(submitted + timedelta(days=90) if rng.random() < 0.9 else None),
                "final_decision_at": _iso(decided),
                "created_at": permit["created_at"],
            }
        )

    for i in range(1, rows + 1):
        permit = rng.choice(permits)
        status = rng.choice(["completed", "in_progress", "pending"])
        tables["compliance_assessments"].append(
            {
                "id": i,
                "permit_id": permit["id"],
                "assessment_status": status,
                "compliance_score": rng.randint(20, 100) if status == "completed" else None,
                "created_at": _iso(_created(rng, now, history_days)),
            }
        )

        created = _created(rng, now, history_days)
        scheduled = created + timedelta(days=rng.randint(1, 45))
        inspection_status = rng.choice(["scheduled", "completed", "in_progress", "cancelled"])
        tables["inspections"].append(
            {
                "id": i,
                "permit_id": permit["id"],
                "status": inspection_status,
                "inspection_type": rng.choice(INSPECTION_TYPES),
                "province": permit["province"],
                "scheduled_date": _iso(scheduled),
                "completed_date": _iso(scheduled if inspection_status == "completed" else None),
                "findings": rng.choice([None, "", "Minor discharge above limit", "Unlicensed clearing"]),
                "created_at": _iso(created),
            }
        )

        tables["compliance_reports"].append(
            {
                "id": i,
                "permit_id": permit["id"],
                "status": rng.choice(["pending", "reviewed", "approved"]),
                "created_at": _iso(_created(rng, now, history_days)),
            }
        )

        created = _created(rng, now, history_days)
        tables["compliance_tasks"].append(
            {
                "id": i,
                "status": rng.choice(["pending", "completed", "in_progress"]),
                "due_date": _iso(created + timedelta(days=rng.randint(-10, 60))),
                "created_at": _iso(created),
            }
        )

    for i in range(1, rows * 2 + 1):
        created = _created(rng, now, history_days)
        status = rng.choice(["paid", "pending", "pending", "cancelled"])
        tables["invoices"].append(
            {
                "id": i,
                "entity_id": rng.choice(entities + [{"id": None}])["id"],
                "status": status,
                "invoice_type": rng.choice(INVOICE_TYPES),
                "amount": round(rng.uniform(500, 25_000), 2),
                "due_date": _iso(created + timedelta(days=30)),
                "paid_date": _iso(created + timedelta(days=rng.randint(1, 45)) if status == "paid" else None),
                "created_at": _iso(created),
            }
        )

    for i, permit in enumerate(rng.sample(permits, k=len(permits) // 2), start=1):
        total_fee = round(rng.uniform(1_000, 20_000), 2)
        status = rng.choice(["paid", "paid", "pending"])
        tables["fee_payments"].append(
            {
                "id": i,
                "permit_application_id": permit["id"],
                "payment_status": status,
                "total_fee": total_fee,
                "amount_paid": total_fee if status == "paid" else 0.0,
                "payment_method": rng.choice(PAYMENT_METHODS),
                "created_at": _iso(_created(rng, now, history_days)),
            }
        )

    return tables


def write_fixtures(tables: Tables, path: Path, now: datetime, seed: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"generated_at": now.isoformat(), "seed": seed, "tables": tables}
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def _column_type(name: str, values: List[Any]) -> str:
    sample = next((v for v in values if v is not None), None)
    if name == "id" or name.endswith("_id"):
        return "bigint"
    if name.endswith(("_at", "_date", "_deadline")):
        return "timestamptz"
    if isinstance(sample, bool):
        return "boolean"
    if isinstance(sample, int):
        return "bigint"
    if isinstance(sample, float):
        return "numeric(14, 2)"
    return "text"


def _copy_into_db(dsn: str, tables: Tables, schema: str = "public") -> int:
    """Recreate each table and stream its rows with COPY. Returns rows loaded."""
    loaded = 0
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            for name in TABLE_ORDER:
                rows = tables.get(name) or []
                if not rows:
                    continue
                columns = list(dict.fromkeys(col for row in rows for col in row))
                ident = sql.Identifier(schema, name)
                cur.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(ident))
                cur.execute(
                    sql.SQL("CREATE TABLE {} ({})").format(
                        ident,
                        sql.SQL(", ").join(
                            sql.SQL("{} {}").format(
                                sql.Identifier(col),
                                sql.SQL(_column_type(col, [r.get(col) for r in rows])),
                            )
                            for col in columns
                        ),
                    )
                )
                copy_stmt = sql.SQL("COPY {} ({}) FROM STDIN").format(
                    ident, sql.SQL(", ").join(map(sql.Identifier, columns))
                )
                with cur.copy(copy_stmt) as copy:
                    for row in rows:
                        copy.write_row([row.get(col) for col in columns])
                loaded += len(rows)
            conn.commit()
    return loaded


@app.command()
def main(
    rows: int = typer.Option(
        200,
        "--rows",
        "-r",
        help="Number of entities to generate; child tables scale from it.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    now: Optional[str] = typer.Option(
        None,
        "--now",
        help="Anchor instant for generated timestamps (ISO 8601). Defaults to now.",
    ),
    output: Path = typer.Option(
        Path("fixtures/portal.json"),
        "--output",
        "-o",
        help="JSON fixture output path.",
    ),
    dsn: Optional[str] = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    load: bool = typer.Option(
        False,
        "--load",
        help="Also load the generated tables into Postgres.",
    ),
) -> None:
    """
    Generate synthetic portal data and optionally load it into Postgres using COPY.
    """
    start = time.perf_counter()
    anchor = parse_timestamp(now) if now else datetime.now(timezone.utc)
    if anchor is None:
        raise typer.BadParameter(f"cannot parse '{now}' as a timestamp", param_hint="--now")

    typer.echo(f"Generating portal data for {rows:,} entities -> {output} (seed={seed})")
    tables = generate_tables(rows=rows, seed=seed, now=anchor)
    write_fixtures(tables, output, anchor, seed)
    total = sum(len(t) for t in tables.values())
    typer.echo(f"Generated {total:,} rows across {len(tables)} tables in {time.perf_counter() - start:.2f}s")

    if not load:
        return

    load_start = time.perf_counter()
    typer.echo("Loading tables into Postgres via COPY...")
    loaded = _copy_into_db(dsn or build_dsn(), tables)
    typer.echo(f"Loaded {loaded:,} rows in {time.perf_counter() - load_start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
