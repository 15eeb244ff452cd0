"""
Pytest fixtures for the inventory ledger test suite.

Provides:
- Structured logging configured once per session, plus ``captured_logs``
- A DeterministicClock
- ``store``: parametrized over the in-memory store and the SQL store on
  in-memory SQLite, so every store-facing test runs against both
- A material catalog with three materials and a fully wired InventoryLedger

Environment Variables:
- None.  The SQL store runs on ``sqlite://``; no database server is needed.
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from inventory_kernel.catalog import InMemoryMaterialCatalog
from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.records import Material
from inventory_kernel.ledger import InventoryLedger
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.services.locks import KeyedLockRegistry
from inventory_kernel.store.memory_store import InMemoryLedgerStore
from inventory_kernel.store.sql_store import SqlLedgerStore

# Test actor id for all test operations
TEST_ACTOR_ID = "user-test"
TEST_COMPANY_ID = "acme"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, recorder):
            recorder.record(...)
            logs = captured_logs()
            assert any(r["message"] == "transaction_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "sql_only: mark test as exercising the SQLAlchemy store only"
    )


# =============================================================================
# Clock and store
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def memory_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def sql_store():
    """SqlLedgerStore on a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield SqlLedgerStore()
    drop_tables()
    reset_engine()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every LedgerStore implementation, one test run each."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


# =============================================================================
# Catalog and services
# =============================================================================


@pytest.fixture
def catalog() -> InMemoryMaterialCatalog:
    return InMemoryMaterialCatalog(
        [
            Material("M1", "Gauze Pads", category="Wound Care"),
            Material("M2", "Medical Tape", category="Wound Care"),
            Material("M3", "Saline 500ml", category="Fluids", unit_of_measure="bottle"),
        ]
    )


@pytest.fixture
def ledger(store, catalog, clock) -> InventoryLedger:
    """Fully wired ledger with its own lock registry."""
    return InventoryLedger(
        store,
        catalog,
        company_id=TEST_COMPANY_ID,
        clock=clock,
        locks=KeyedLockRegistry(),
    )


@pytest.fixture
def levels(ledger):
    return ledger.levels


@pytest.fixture
def recorder(ledger):
    return ledger.recorder


@pytest.fixture
def warehouse(ledger):
    return ledger.warehouse


@pytest.fixture
def coordinator(ledger):
    return ledger.coordinator


@pytest.fixture
def checks(ledger):
    return ledger.checks


@pytest.fixture
def templates(ledger):
    return ledger.templates


@pytest.fixture
def applicator(ledger):
    return ledger.applicator


@pytest.fixture
def reconciler(ledger):
    return ledger.reconciler


@pytest.fixture
def actor() -> str:
    return TEST_ACTOR_ID


@pytest.fixture
def stock(recorder):
    """
    Seed a level through the recorder.

    Usage::

        stock("vehicle-A", "M1", 10)
    """

    def _stock(location_id: str, material_id: str, quantity, transaction_type="purchase"):
        return recorder.record(
            location_id, material_id, transaction_type, Decimal(str(quantity)), TEST_ACTOR_ID
        )

    return _stock
