"""
TransferCoordinator -- move stock between two locations.

Responsibility:
    Orchestrate a two-sided transfer as a saga: for each item, record the
    source side (outgoing) and then the destination side (incoming).  The
    warehouse side of a transfer is routed to the WarehouseInventoryService.

Architecture position:
    Kernel > Services.  Depends on TransactionRecorder and
    WarehouseInventoryService.  Never touches levels directly.

Invariants enforced:
    - Source and destination resolve to different partitions; the
      configured warehouse id and the company partition are one location.
      The item list is non-empty.
    - Every item is validated (positive finite quantity, known material,
      enough stock at a tracked source) before the first write.
    - Each source write re-checks availability under the level lock.  The
      warehouse is never availability-checked.
    - Conservation: on success the source decreased and the destination
      increased by exactly each item's quantity.

Failure modes:
    - InvalidTransferError, InvalidQuantityError, MaterialNotFoundError,
      InsufficientStockError before any write: nothing was recorded.
    - PartialTransferError once any source-side row exists: the transfer is
      partially applied and the caller must compensate.  Retrying the same
      transfer double-applies the completed items.

Audit relevance:
    Both sides reference each other through ``source_id``/``destination_id``
    on the transaction rows.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.movements import build_movement
from inventory_kernel.domain.records import InventoryTransaction
from inventory_kernel.domain.values import (
    ZERO,
    LocationKind,
    TransactionType,
    TransferRole,
    classify_location,
)
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidTransferError,
    LevelUpdateError,
    PartialTransferError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.transaction_recorder import TransactionRecorder
from inventory_kernel.services.warehouse_service import WarehouseInventoryService
from inventory_kernel.store.keys import DEFAULT_WAREHOUSE_LOCATION_ID

logger = get_logger("services.transfer_coordinator")


@dataclass(frozen=True)
class TransferItem:
    material_id: str
    quantity: Decimal


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a fully applied transfer."""

    source_transaction_ids: tuple[str, ...]
    destination_transaction_ids: tuple[str, ...]
    transferred_items: tuple[TransferItem, ...]
    timestamp: datetime


class TransferCoordinator:
    """Two-sided transfers across warehouse, vehicles and cases."""

    def __init__(
        self,
        recorder: TransactionRecorder,
        warehouse: WarehouseInventoryService,
        warehouse_location_id: str = DEFAULT_WAREHOUSE_LOCATION_ID,
        enforce_stock_check: bool = True,
        clock: Clock | None = None,
    ):
        self._recorder = recorder
        self._warehouse = warehouse
        self.warehouse_location_id = warehouse_location_id
        self.enforce_stock_check = enforce_stock_check
        self._clock = clock or SystemClock()

    def transfer(
        self,
        source_location_id: str,
        destination_location_id: str,
        items: Iterable[TransferItem | Mapping[str, Any]],
        actor_id: str,
        *,
        project_id: str | None = None,
        notes: str | None = None,
    ) -> TransferResult:
        """
        Move every item from source to destination.

        Returns:
            TransferResult with the transaction ids of both sides.

        Raises:
            PartialTransferError: a write failed after at least one source
                row was recorded.
        """
        if self._partition(source_location_id) == self._partition(destination_location_id):
            raise InvalidTransferError(
                "source and destination must differ",
                source_id=source_location_id,
                destination_id=destination_location_id,
            )

        timestamp = self._clock.now()
        transfer_items = self._validate(source_location_id, destination_location_id, items)

        logger.info(
            "transfer_started",
            extra={
                "source_location_id": source_location_id,
                "destination_location_id": destination_location_id,
                "item_count": len(transfer_items),
                "actor_id": actor_id,
            },
        )

        source_ids: list[str] = []
        destination_ids: list[str] = []

        for item in transfer_items:
            try:
                source_txn = self._record_source(
                    source_location_id, destination_location_id, item, actor_id, project_id, notes
                )
            except Exception as exc:
                if isinstance(exc, LevelUpdateError):
                    source_ids.append(exc.transaction_id)
                if not source_ids:
                    raise
                raise self._partial(
                    source_location_id, destination_location_id, item,
                    source_ids, destination_ids, exc,
                ) from exc
            source_ids.append(source_txn.transaction_id)

            try:
                destination_txn = self._record_destination(
                    source_location_id, destination_location_id, item, actor_id, project_id, notes
                )
            except Exception as exc:
                if isinstance(exc, LevelUpdateError):
                    destination_ids.append(exc.transaction_id)
                raise self._partial(
                    source_location_id, destination_location_id, item,
                    source_ids, destination_ids, exc,
                ) from exc
            destination_ids.append(destination_txn.transaction_id)

        logger.info(
            "transfer_completed",
            extra={
                "source_location_id": source_location_id,
                "destination_location_id": destination_location_id,
                "item_count": len(transfer_items),
                "source_transaction_ids": source_ids,
                "destination_transaction_ids": destination_ids,
            },
        )
        return TransferResult(
            source_transaction_ids=tuple(source_ids),
            destination_transaction_ids=tuple(destination_ids),
            transferred_items=tuple(transfer_items),
            timestamp=timestamp,
        )

    def _is_warehouse(self, location_id: str) -> bool:
        if location_id == self._warehouse.partition_id:
            return True
        return classify_location(location_id, self.warehouse_location_id) == LocationKind.WAREHOUSE

    def _partition(self, location_id: str) -> str:
        if self._is_warehouse(location_id):
            return self._warehouse.partition_id
        return self._recorder.levels.partition_for(location_id)

    def _validate(
        self,
        source_location_id: str,
        destination_location_id: str,
        items: Iterable[TransferItem | Mapping[str, Any]],
    ) -> list[TransferItem]:
        transfer_items = [self._coerce_item(item) for item in items]
        if not transfer_items:
            raise InvalidTransferError(
                "transfer requires at least one item",
                source_id=source_location_id,
                destination_id=destination_location_id,
            )

        requested: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for item in transfer_items:
            self._recorder.catalog.require_material(item.material_id)
            requested[item.material_id] += item.quantity

        if self.enforce_stock_check and not self._is_warehouse(source_location_id):
            for material_id, quantity in requested.items():
                level = self._recorder.levels.get_level(source_location_id, material_id)
                available = level.current_quantity if level is not None else ZERO
                if quantity > available:
                    raise InsufficientStockError(
                        source_location_id, material_id, requested=quantity, available=available
                    )
        return transfer_items

    @staticmethod
    def _coerce_item(item: TransferItem | Mapping[str, Any]) -> TransferItem:
        if isinstance(item, TransferItem):
            material_id, quantity = item.material_id, item.quantity
        else:
            material_id, quantity = item.get("material_id"), item.get("quantity")
        if not material_id:
            raise InvalidTransferError("every transfer item needs a material_id")
        movement = build_movement(
            TransactionType.TRANSFER, quantity, transfer_role=TransferRole.OUTGOING
        )
        return TransferItem(material_id=material_id, quantity=movement.quantity)

    def _record_source(
        self,
        source_location_id: str,
        destination_location_id: str,
        item: TransferItem,
        actor_id: str,
        project_id: str | None,
        notes: str | None,
    ) -> InventoryTransaction:
        if self._is_warehouse(source_location_id):
            return self._warehouse.allocate(
                item.material_id,
                item.quantity,
                actor_id,
                destination_id=destination_location_id,
                project_id=project_id,
                notes=notes,
            )
        return self._recorder.record(
            source_location_id,
            item.material_id,
            TransactionType.TRANSFER,
            item.quantity,
            actor_id,
            transfer_role=TransferRole.OUTGOING,
            counterpart_id=destination_location_id,
            project_id=project_id,
            notes=notes,
            require_available=self.enforce_stock_check,
        )

    def _record_destination(
        self,
        source_location_id: str,
        destination_location_id: str,
        item: TransferItem,
        actor_id: str,
        project_id: str | None,
        notes: str | None,
    ) -> InventoryTransaction:
        if self._is_warehouse(destination_location_id):
            return self._warehouse.receive_return(
                item.material_id,
                item.quantity,
                actor_id,
                source_id=source_location_id,
                project_id=project_id,
                notes=notes,
            )
        return self._recorder.record(
            destination_location_id,
            item.material_id,
            TransactionType.TRANSFER,
            item.quantity,
            actor_id,
            transfer_role=TransferRole.INCOMING,
            counterpart_id=source_location_id,
            project_id=project_id,
            notes=notes,
        )

    @staticmethod
    def _partial(
        source_location_id: str,
        destination_location_id: str,
        item: TransferItem,
        source_ids: list[str],
        destination_ids: list[str],
        cause: Exception,
    ) -> PartialTransferError:
        cause_code = getattr(cause, "code", type(cause).__name__)
        error = PartialTransferError(
            source_location_id=source_location_id,
            destination_location_id=destination_location_id,
            failed_material_id=item.material_id,
            source_transaction_ids=source_ids,
            destination_transaction_ids=destination_ids,
            reason=f"{cause_code}: {cause}",
        )
        logger.error(
            "transfer_partially_applied",
            extra={
                "source_location_id": source_location_id,
                "destination_location_id": destination_location_id,
                "failed_material_id": item.material_id,
                "source_transaction_ids": source_ids,
                "destination_transaction_ids": destination_ids,
                "cause_code": cause_code,
            },
        )
        return error
