"""Services for the inventory ledger kernel (write side)."""

from inventory_kernel.services.inventory_check import InventoryCheckWorkflow, compute_variance
from inventory_kernel.services.level_exchange import ImportResult, export_rows, import_rows
from inventory_kernel.services.level_repository import LevelRepository
from inventory_kernel.services.locks import KeyedLockRegistry, default_lock_registry
from inventory_kernel.services.reconciliation import LedgerReconciler, LevelDrift
from inventory_kernel.services.template_applicator import (
    ApplyResult,
    TemplateApplicator,
    TemplateRepository,
)
from inventory_kernel.services.transaction_recorder import TransactionRecorder
from inventory_kernel.services.transfer_coordinator import (
    TransferCoordinator,
    TransferItem,
    TransferResult,
)
from inventory_kernel.services.warehouse_service import WarehouseInventoryService

__all__ = [
    "ApplyResult",
    "ImportResult",
    "InventoryCheckWorkflow",
    "KeyedLockRegistry",
    "LedgerReconciler",
    "LevelDrift",
    "LevelRepository",
    "TemplateApplicator",
    "TemplateRepository",
    "TransactionRecorder",
    "TransferCoordinator",
    "TransferItem",
    "TransferResult",
    "WarehouseInventoryService",
    "compute_variance",
    "default_lock_registry",
    "export_rows",
    "import_rows",
]
