"""
Pytest configuration for permit analytics.

Provides fixtures for:
- A frozen reference instant and a small, hand-checked portal dataset
- In-memory row fetchers over that dataset
- Settings cache isolation
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List

import psycopg
import pytest

from permit_analytics.config import Settings, get_settings
from permit_analytics.infrastructure.row_fetcher import InMemoryRowFetcher

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Drop cached Settings so environment tweaks in one test don't leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return NOW


def _portal_tables() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "entities": [
            {"id": 1, "name": "Kumul Mining Ltd", "entity_type": "Company", "province": "Morobe Province",
             "is_suspended": False, "created_at": "2024-06-01T09:00:00Z"},
            {"id": 2, "name": "Sepik Timber", "entity_type": "Company", "province": "East Sepik Province",
             "is_suspended": True, "created_at": "2024-06-05T09:00:00Z"},
            {"id": 3, "name": "J. Kila", "entity_type": "Individual", "province": None,
             "is_suspended": False, "created_at": "2023-01-10T09:00:00Z"},
        ],
        "permit_applications": [
            {"id": 10, "entity_id": 1, "entity_name": "Kumul Mining Ltd", "status": "approved",
             "is_draft": False, "permit_type": "Mining Exploration Permit", "province": "Morobe Province",
             "fee_amount": 10000, "created_at": "2024-06-10T08:00:00Z", "updated_at": "2024-06-11T08:00:00Z",
             "expiry_date": "2024-08-20T00:00:00Z"},
            {"id": 11, "entity_id": 2, "entity_name": "Sepik Timber", "status": "pending",
             "is_draft": False, "permit_type": "Forestry Operations Permit", "province": "East Sepik Province",
             "fee_amount": None, "created_at": "2024-06-12T08:00:00Z", "updated_at": "2024-06-12T08:00:00Z",
             "expiry_date": None},
            {"id": 12, "entity_id": 3, "entity_name": "J. Kila", "status": "issued",
             "is_draft": False, "permit_type": None, "province": "Morobe Province",
             "fee_amount": 2000, "created_at": "2024-05-20T08:00:00Z", "updated_at": "2024-05-21T08:00:00Z",
             "expiry_date": None},
            {"id": 13, "entity_id": 1, "entity_name": "Kumul Mining Ltd", "status": "draft",
             "is_draft": True, "permit_type": "Mining Exploration Permit", "province": None,
             "fee_amount": None, "created_at": "2024-06-14T08:00:00Z", "updated_at": "2024-06-14T08:00:00Z",
             "expiry_date": None},
            {"id": 14, "entity_id": 2, "entity_name": "Sepik Timber", "status": "rejected",
             "is_draft": False, "permit_type": "Water Extraction Permit", "province": "East Sepik Province",
             "fee_amount": None, "created_at": "2023-11-02T08:00:00Z", "updated_at": "2023-11-03T08:00:00Z",
             "expiry_date": None},
        ],
        "intent_registrations": [
            {"id": 1, "entity_id": 1, "status": "approved", "province": "Morobe Province",
             "activity_level": "Level 2", "estimated_cost_kina": 250000, "created_at": "2024-06-02T08:00:00Z"},
            {"id": 2, "entity_id": 3, "status": "pending", "province": None,
             "activity_level": "3", "estimated_cost_kina": 90000, "created_at": "2024-06-03T08:00:00Z"},
        ],
        "application_workflow_state": [
            {"id": 1, "application_id": 10, "current_stage": "technical_review",
             "submitted_at": "2024-06-01T00:00:00Z", "registry_completed_at": "2024-06-11T00:00:00Z",
             "sla_deadline": "2024-06-10T00:00:00Z", "final_decision_at": "2024-06-11T00:00:00Z",
             "created_at": "2024-06-01T00:00:00Z"},
            {"id": 2, "application_id": 11, "current_stage": "registry",
             "submitted_at": "2024-05-20T00:00:00Z", "registry_completed_at": None,
             "sla_deadline": "2024-06-01T00:00:00Z", "final_decision_at": None,
             "created_at": "2024-05-20T00:00:00Z"},
            {"id": 3, "application_id": 13, "current_stage": "registry",
             "submitted_at": "2024-06-14T00:00:00Z", "registry_completed_at": None,
             "sla_deadline": "2024-07-14T00:00:00Z", "final_decision_at": None,
             "created_at": "2024-06-14T00:00:00Z"},
        ],
        "compliance_assessments": [
            {"id": 1, "permit_id": 10, "assessment_status": "completed", "compliance_score": 95,
             "created_at": "2024-06-03T00:00:00Z"},
            {"id": 2, "permit_id": 12, "assessment_status": "completed", "compliance_score": 60,
             "created_at": "2024-06-04T00:00:00Z"},
            {"id": 3, "permit_id": 11, "assessment_status": "pending", "compliance_score": None,
             "created_at": "2024-06-05T00:00:00Z"},
        ],
        "inspections": [
            {"id": 1, "permit_id": 10, "status": "completed", "inspection_type": "site_verification",
             "province": "Morobe Province", "scheduled_date": "2024-06-06T00:00:00Z",
             "completed_date": "2024-06-06T00:00:00Z", "findings": "Sediment runoff",
             "created_at": "2024-06-01T00:00:00Z"},
            {"id": 2, "permit_id": 11, "status": "scheduled", "inspection_type": None,
             "province": "East Sepik Province", "scheduled_date": "2024-06-20T00:00:00Z",
             "completed_date": None, "findings": None, "created_at": "2024-06-02T00:00:00Z"},
        ],
        "compliance_reports": [
            {"id": 1, "permit_id": 10, "status": "reviewed", "created_at": "2024-06-07T00:00:00Z"},
        ],
        "compliance_tasks": [
            {"id": 1, "status": "pending", "due_date": "2024-06-01T00:00:00Z", "created_at": "2024-05-25T00:00:00Z"},
            {"id": 2, "status": "completed", "due_date": "2024-06-01T00:00:00Z", "created_at": "2024-05-25T00:00:00Z"},
        ],
        "invoices": [
            {"id": 1, "entity_id": 1, "status": "paid", "invoice_type": "application_fee", "amount": 1000,
             "due_date": "2024-06-10T00:00:00Z", "paid_date": "2024-06-08T00:00:00Z",
             "created_at": "2024-06-01T00:00:00Z"},
            {"id": 2, "entity_id": 2, "status": "pending", "invoice_type": "annual_fee", "amount": 3000,
             "due_date": "2024-06-01T00:00:00Z", "paid_date": None, "created_at": "2024-05-20T00:00:00Z"},
            {"id": 3, "entity_id": 2, "status": "pending", "invoice_type": None, "amount": 500,
             "due_date": "2024-07-01T00:00:00Z", "paid_date": None, "created_at": "2024-06-12T00:00:00Z"},
        ],
        "fee_payments": [
            {"id": 1, "permit_application_id": 10, "payment_status": "paid", "total_fee": 10000,
             "amount_paid": 10000, "payment_method": "bank_transfer", "created_at": "2024-06-11T00:00:00Z"},
            {"id": 2, "permit_application_id": 999, "payment_status": "paid", "total_fee": 400,
             "amount_paid": 400, "payment_method": "cash", "created_at": "2024-06-13T00:00:00Z"},
            {"id": 3, "permit_application_id": 11, "payment_status": "pending", "total_fee": 1500,
             "amount_paid": 0, "payment_method": "cheque", "created_at": "2024-06-14T00:00:00Z"},
        ],
    }


@pytest.fixture
def portal_tables() -> Dict[str, List[Dict[str, Any]]]:
    return _portal_tables()


@pytest.fixture
def fetcher(portal_tables) -> InMemoryRowFetcher:
    return InMemoryRowFetcher(portal_tables)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "permit_portal"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return test_settings.dsn


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def seeded_portal(db_connection: psycopg.Connection, test_dsn: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load the hand-checked portal dataset into Postgres with the generator's
    COPY loader and return the tables that were loaded.
    """
    from scripts.generate_data import _copy_into_db

    tables = _portal_tables()
    _copy_into_db(test_dsn, tables)
    return tables
