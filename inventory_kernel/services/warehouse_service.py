"""
WarehouseInventoryService -- the company warehouse as a ledger location.

Responsibility:
    The warehouse is an abstract location id (``WAREHOUSE`` by default) in
    transfer requests.  Its stock lives in the company partition
    (``COMPANY#<company_id>``) and its movements are recorded as
    ``allocation`` when stock leaves for a vehicle or case and ``return``
    when it comes back, not as ``transfer`` rows.

Architecture position:
    Kernel > Services.  Sibling of the vehicle/case level store with the same
    ``record`` contract.  Used by the TransferCoordinator.

Invariants enforced:
    - Warehouse stock is never availability-checked; the warehouse may be
      driven negative (backorders).
"""

from decimal import Decimal
from typing import Any

from inventory_kernel.domain.records import InventoryLevel, InventoryTransaction
from inventory_kernel.domain.values import TransactionType
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.transaction_recorder import TransactionRecorder
from inventory_kernel.store.keys import company_partition

logger = get_logger("services.warehouse")


class WarehouseInventoryService:
    """Records warehouse movements in the company partition."""

    def __init__(self, recorder: TransactionRecorder, company_id: str):
        self._recorder = recorder
        self.company_id = company_id

    @property
    def partition_id(self) -> str:
        return company_partition(self.company_id)

    def get_level(self, material_id: str) -> InventoryLevel | None:
        return self._recorder.levels.get_level(self.partition_id, material_id)

    def list_levels(self) -> list[InventoryLevel]:
        return self._recorder.levels.list_levels(self.partition_id)

    def record(
        self,
        material_id: str,
        transaction_type: Any,
        quantity: Any,
        actor_id: str,
        **options: Any,
    ) -> InventoryTransaction:
        """Record any movement against warehouse stock."""
        return self._recorder.record(
            self.partition_id, material_id, transaction_type, quantity, actor_id, **options
        )

    def allocate(
        self,
        material_id: str,
        quantity: Decimal,
        actor_id: str,
        destination_id: str,
        project_id: str | None = None,
        notes: str | None = None,
    ) -> InventoryTransaction:
        """Stock leaves the warehouse for ``destination_id``."""
        txn = self.record(
            material_id,
            TransactionType.ALLOCATION,
            quantity,
            actor_id,
            counterpart_id=destination_id,
            project_id=project_id,
            notes=notes,
        )
        logger.info(
            "warehouse_allocation_recorded",
            extra={
                "company_id": self.company_id,
                "material_id": material_id,
                "quantity": quantity,
                "destination_id": destination_id,
            },
        )
        return txn

    def receive_return(
        self,
        material_id: str,
        quantity: Decimal,
        actor_id: str,
        source_id: str,
        project_id: str | None = None,
        notes: str | None = None,
    ) -> InventoryTransaction:
        """Stock comes back to the warehouse from ``source_id``."""
        txn = self.record(
            material_id,
            TransactionType.RETURN,
            quantity,
            actor_id,
            counterpart_id=source_id,
            project_id=project_id,
            notes=notes,
        )
        logger.info(
            "warehouse_return_recorded",
            extra={
                "company_id": self.company_id,
                "material_id": material_id,
                "quantity": quantity,
                "source_id": source_id,
            },
        )
        return txn
