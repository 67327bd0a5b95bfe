"""Pytest fixtures for reconciliation engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from reconciliation_engine.api.app import create_app
from reconciliation_engine.api.dependencies import get_orchestrator
from reconciliation_engine.calculators.earnings import EarningsCalculator
from reconciliation_engine.database import create_tables, make_session_factory
from reconciliation_engine.domain.dates import parse_date
from reconciliation_engine.services.generator import DocumentGenerator
from reconciliation_engine.services.notifications import LoggingNotifier
from reconciliation_engine.services.orchestrator import ReconciliationOrchestrator
from reconciliation_engine.store.memory import InMemoryDocumentStore
from reconciliation_engine.store.sql import SqlDocumentStore

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "today" for calendar-dependent tests: March 2025 invoices are
# pending on this date (overdue starts 15 April)
TODAY = date(2025, 4, 10)

JANE_ID = "jane-id"
SITE_A = "site-a"


def timesheet(
    employee_id: str = JANE_ID,
    employee_name: str = "Jane Doe",
    work_date: str = "2025-03-03",
    hours: str | None = "8",
    site_id: str | None = SITE_A,
    site_name: str | None = "Site A",
    approval_status: str = "pending",
    is_leave: bool = False,
    clocked_out: bool = True,
    **extra: Any,
) -> dict[str, Any]:
    """Build a timesheet record document."""
    day = parse_date(work_date) or date(2025, 3, 3)
    doc = {
        "employee_id": employee_id,
        "employee_name": employee_name,
        "work_date": work_date,
        "clock_in": f"{day.isoformat()}T08:00:00",
        "clock_out": f"{day.isoformat()}T16:00:00" if clocked_out else None,
        "hours_worked": Decimal(hours) if hours is not None else None,
        "site_id": site_id,
        "site_name": site_name,
        "approval_status": approval_status,
        "is_leave": is_leave,
    }
    doc.update(extra)
    return doc


def jane_seed(tax_registered: bool = False) -> dict[str, list[dict[str, Any]]]:
    """Jane Doe: $25/hr at Site A, two 8 hour shifts in March 2025."""
    return {
        "employees": [
            {
                "id": JANE_ID,
                "name": "Jane Doe",
                "email": "jane@example.com",
                "tax_registered": tax_registered,
            }
        ],
        "sites": [{"id": SITE_A, "name": "Site A", "client_name": "Acme"}],
        "rate_entries": [
            {
                "employee_id": JANE_ID,
                "site_id": SITE_A,
                "site_name": "Site A",
                "hourly_rate": Decimal("25.00"),
                "currency": "AUD",
            }
        ],
        "timesheets": [
            timesheet(work_date="2025-03-03"),
            timesheet(work_date="2025-03-04"),
        ],
    }


def make_orchestrator(store, notifier=None, today: date = TODAY) -> ReconciliationOrchestrator:
    """Orchestrator with explicit configuration and a fixed clock."""
    return ReconciliationOrchestrator(
        store,
        calculator=EarningsCalculator(default_currency="AUD"),
        generator=DocumentGenerator(payment_cycle_days=45, tax_rate=Decimal("0.10")),
        notifier=notifier,
        clock=lambda: today,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Store seeded with Jane Doe's March 2025 timesheets."""
    return InMemoryDocumentStore(jane_seed())


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def orchestrator(store, notifier) -> ReconciliationOrchestrator:
    return make_orchestrator(store, notifier)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with all document tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(engine) -> SqlDocumentStore:
    """SQL document store over the in-memory database."""
    return SqlDocumentStore(make_session_factory(engine))


@pytest_asyncio.fixture
async def client(store, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app(store=store)
    app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(store, notifier)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
