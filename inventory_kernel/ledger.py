"""
inventory_kernel.ledger -- Central DI container for the ledger services.

Responsibility:
    Creates every ledger service exactly once and wires them together over
    one store, one clock, one catalog and one lock registry.  No service
    creates other services internally.

Architecture position:
    Kernel top level.  The only module that reads ``LedgerSettings`` and the
    only place where the store backend is chosen.

Invariants enforced:
    - Single-instance lifecycle: every service shares the same store, clock
      and KeyedLockRegistry, so the recorder, the reconciler and the
      coordinator serialize on the same per-key locks.
    - DI transparency: all wiring is visible in ``__init__``.

Failure modes:
    - SQLAlchemy errors from ``from_settings`` when the database URL cannot
      be reached or tables cannot be created.

Usage:
    from inventory_config import get_active_settings
    from inventory_kernel.ledger import InventoryLedger

    ledger = InventoryLedger.from_settings(get_active_settings(), catalog)
    ledger.recorder.record("vehicle-A", "M1", "purchase", 10, "user-1")
    ledger.coordinator.transfer("vehicle-A", "vehicle-B", items, "user-1")
"""

from __future__ import annotations

from inventory_config.schema import LedgerSettings
from inventory_kernel.catalog import MaterialCatalog
from inventory_kernel.db.engine import create_tables, init_engine_from_url
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.logging_config import configure_logging, get_logger
from inventory_kernel.selectors.stock_report_selector import StockReportSelector
from inventory_kernel.selectors.transaction_selector import TransactionSelector
from inventory_kernel.services.inventory_check import InventoryCheckWorkflow
from inventory_kernel.services.level_repository import LevelRepository
from inventory_kernel.services.locks import KeyedLockRegistry
from inventory_kernel.services.reconciliation import LedgerReconciler
from inventory_kernel.services.template_applicator import (
    TemplateApplicator,
    TemplateRepository,
)
from inventory_kernel.services.transaction_recorder import TransactionRecorder
from inventory_kernel.services.transfer_coordinator import TransferCoordinator
from inventory_kernel.services.warehouse_service import WarehouseInventoryService
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import DEFAULT_WAREHOUSE_LOCATION_ID, PartitionResolver
from inventory_kernel.store.memory_store import InMemoryLedgerStore
from inventory_kernel.store.sql_store import SqlLedgerStore

logger = get_logger("ledger")


class InventoryLedger:
    """Central factory for the ledger services.

    Contract:
        Receives a LedgerStore, a MaterialCatalog and optional Clock and
        KeyedLockRegistry.  Constructs every service exactly once, in
        dependency order, and exposes them as public attributes.

    Non-goals:
        - Does NOT own engine lifecycle; ``from_settings`` initializes the
          module-level engine and callers reset it.
    """

    def __init__(
        self,
        store: LedgerStore,
        catalog: MaterialCatalog,
        company_id: str,
        warehouse_location_id: str = DEFAULT_WAREHOUSE_LOCATION_ID,
        enforce_transfer_stock_check: bool = True,
        clock: Clock | None = None,
        locks: KeyedLockRegistry | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.clock = clock or SystemClock()
        self.locks = locks or KeyedLockRegistry()

        # Order matters: each service only receives services built above it.
        self.partitions = PartitionResolver(company_id, warehouse_location_id)
        self.levels = LevelRepository(store, self.clock, partitions=self.partitions)
        self.recorder = TransactionRecorder(
            store, self.levels, catalog, clock=self.clock, locks=self.locks
        )
        self.warehouse = WarehouseInventoryService(self.recorder, company_id)
        self.coordinator = TransferCoordinator(
            self.recorder,
            self.warehouse,
            warehouse_location_id=warehouse_location_id,
            enforce_stock_check=enforce_transfer_stock_check,
            clock=self.clock,
        )
        self.checks = InventoryCheckWorkflow(store, self.levels, self.recorder, self.clock)
        self.templates = TemplateRepository(store, company_id)
        self.applicator = TemplateApplicator(self.templates, self.recorder)
        self.reconciler = LedgerReconciler(store, self.levels, locks=self.locks)

        self.transactions = TransactionSelector(store, self.partitions)
        self.reports = StockReportSelector(store, catalog, self.partitions)

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings,
        catalog: MaterialCatalog,
        clock: Clock | None = None,
    ) -> InventoryLedger:
        """Configure logging, build the configured store and wire every service."""
        configure_logging(level=settings.log_level)

        if settings.store_backend == "memory":
            store: LedgerStore = InMemoryLedgerStore()
        else:
            init_engine_from_url(settings.database_url, echo=settings.echo_sql)
            create_tables()
            store = SqlLedgerStore()

        ledger = cls(
            store,
            catalog,
            company_id=settings.company_id,
            warehouse_location_id=settings.warehouse_location_id,
            enforce_transfer_stock_check=settings.enforce_transfer_stock_check,
            clock=clock,
            locks=KeyedLockRegistry(settings.lock_shards),
        )
        logger.info(
            "inventory_ledger_wired",
            extra={
                "store_backend": settings.store_backend,
                "company_id": settings.company_id,
                "warehouse_location_id": settings.warehouse_location_id,
                "lock_shards": settings.lock_shards,
            },
        )
        return ledger
