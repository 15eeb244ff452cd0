"""
TransactionRecorder -- append a movement, then move the level.

Responsibility:
    The single write path for quantity changes.  Validates the movement,
    appends an immutable InventoryTransaction, applies the Quantity Policy to
    the current level and upserts the new absolute value.

Architecture position:
    Kernel > Services.  Called by the TransferCoordinator, the
    WarehouseInventoryService, the InventoryCheckWorkflow, the
    TemplateApplicator and the level import.  Depends on LevelRepository,
    MaterialCatalog, KeyedLockRegistry and the pure quantity policy.

Invariants enforced:
    - Read level, append row, upsert level happen under the
      per-(location, material) lock; concurrent recorders for the same key
      never lose an update.
    - The level write is also conditional on the version that was read, so
      recorders in other processes (which do not share the lock) cannot
      lose an update either.  A conflict re-reads the level and re-applies
      the effect.
    - The configured warehouse id is recorded in the company partition.
    - The transaction row is written before the level.  It is never rolled
      back; a level failure after the append surfaces as LevelUpdateError
      carrying the transaction id.
    - Recording is permissive about negative results unless
      ``require_available`` is set.

Failure modes:
    - InvalidTransactionTypeError, InvalidQuantityError, InvalidTransferError
      before anything is written.
    - MaterialNotFoundError for materials unknown to the catalog.
    - LocationNotFoundError for a blank location id.
    - InsufficientStockError when ``require_available`` and the outgoing
      quantity exceeds the tracked level.
    - LevelUpdateError: transaction recorded, level stale until the
      LedgerReconciler repairs it.  Also raised when the level write keeps
      conflicting after LEVEL_WRITE_ATTEMPTS tries.

Audit relevance:
    Every quantity change, including physical counts and template
    application, leaves a transaction row, so the level can always be
    re-derived from the log.
"""

from decimal import Decimal
from typing import Any
from uuid import uuid4

from inventory_kernel.catalog import MaterialCatalog
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.movements import Movement, Transfer, build_movement
from inventory_kernel.domain.quantity_policy import (
    QuantityEffect,
    apply_effect,
    effect_for,
    outgoing_quantity,
    parse_transaction_type,
)
from inventory_kernel.domain.records import InventoryLevel, InventoryTransaction
from inventory_kernel.domain.values import ZERO, TransferRole
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InventoryLedgerError,
    LevelUpdateError,
    OptimisticLockError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.level_repository import LevelRepository
from inventory_kernel.services.locks import KeyedLockRegistry, default_lock_registry
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import (
    TRANSACTION_SEQUENCE,
    material_index_key,
    transaction_sort_key,
)

logger = get_logger("services.transaction_recorder")

LEVEL_WRITE_ATTEMPTS = 5


class TransactionRecorder(BaseService):
    """
    Appends transactions and keeps levels in step.

    Contract:
        ``record()`` either raises before writing anything (validation,
        catalog, availability) or writes the transaction row.  Once the row
        is written the only possible failure is LevelUpdateError.
    """

    def __init__(
        self,
        store: LedgerStore,
        levels: LevelRepository,
        catalog: MaterialCatalog,
        clock: Clock | None = None,
        locks: KeyedLockRegistry | None = None,
    ):
        super().__init__(store, clock)
        self.levels = levels
        self.catalog = catalog
        self.locks = locks or default_lock_registry()

    def record(
        self,
        location_id: str,
        material_id: str,
        transaction_type: Any,
        quantity: Any,
        actor_id: str,
        *,
        transfer_role: TransferRole | str | None = None,
        counterpart_id: str | None = None,
        project_id: str | None = None,
        notes: str | None = None,
        require_available: bool = False,
        standard_quantity: Decimal | None = None,
        location: str | None = None,
        min_quantity: Decimal | None = None,
    ) -> InventoryTransaction:
        """
        Record one movement at one location.

        Args:
            transaction_type: TransactionType or its string value.
            quantity: Magnitude (or signed delta for adjustments; absolute
                count for inventory_check).
            transfer_role: Required for ``transfer``.
            counterpart_id: Other side of a transfer, allocation or return.
            require_available: Reject outgoing movements larger than the
                tracked level.
            standard_quantity, location, min_quantity: Level metadata written
                together with the new quantity.

        Returns:
            The recorded transaction.
        """
        try:
            location_id = self.levels.partition_for(location_id)
            txn_type = parse_transaction_type(transaction_type)
            movement = build_movement(
                txn_type,
                quantity,
                transfer_role=transfer_role,
                counterpart_id=counterpart_id,
            )
            self.catalog.require_material(material_id)

            with self.locks.hold(location_id, material_id):
                level = self.levels.get_level(location_id, material_id)
                current = level.current_quantity if level is not None else ZERO
                effect = effect_for(movement)

                requested = outgoing_quantity(effect)
                if require_available and requested > current:
                    raise InsufficientStockError(
                        location_id, material_id, requested=requested, available=current
                    )

                txn = self._append(
                    location_id,
                    material_id,
                    movement,
                    actor_id,
                    counterpart_id=counterpart_id,
                    project_id=project_id,
                    notes=notes,
                    outgoing=requested > ZERO,
                )

                try:
                    current, new_quantity = self._apply_to_level(
                        level,
                        location_id,
                        material_id,
                        effect,
                        actor_id,
                        standard_quantity=standard_quantity,
                        location=location,
                        min_quantity=min_quantity,
                    )
                except Exception as exc:
                    raise LevelUpdateError(
                        txn.transaction_id, location_id, material_id, str(exc)
                    ) from exc
        except InventoryLedgerError as exc:
            exc.with_context(
                location_id=location_id,
                material_id=material_id,
                transaction_type=str(getattr(transaction_type, "value", transaction_type)),
            )
            logger.warning(
                "transaction_record_failed",
                extra={
                    "location_id": location_id,
                    "material_id": material_id,
                    "error_code": exc.code,
                    "error": str(exc),
                },
            )
            raise

        logger.info(
            "transaction_recorded",
            extra={
                "transaction_id": txn.transaction_id,
                "location_id": location_id,
                "material_id": material_id,
                "transaction_type": txn.transaction_type.value,
                "quantity": txn.quantity,
                "previous_quantity": current,
                "new_quantity": new_quantity,
                "sequence": txn.sequence,
            },
        )
        return txn

    def _apply_to_level(
        self,
        level: InventoryLevel | None,
        location_id: str,
        material_id: str,
        effect: QuantityEffect,
        actor_id: str,
        **metadata: Any,
    ) -> tuple[Decimal, Decimal]:
        """
        Write the effect onto the level read as ``level``.

        The write is conditional on the level version.  When a writer outside
        this process got there first, the level is re-read and the effect is
        applied to the fresh value.

        Returns:
            (quantity the effect was applied to, new quantity)
        """
        for attempt in range(1, LEVEL_WRITE_ATTEMPTS + 1):
            current = level.current_quantity if level is not None else ZERO
            new_quantity = apply_effect(current, effect)
            try:
                self.levels.set_level_if_unchanged(
                    level, location_id, material_id, new_quantity, actor_id, **metadata
                )
                return current, new_quantity
            except OptimisticLockError:
                if attempt == LEVEL_WRITE_ATTEMPTS:
                    raise
                logger.info(
                    "level_write_conflict_retry",
                    extra={
                        "location_id": location_id,
                        "material_id": material_id,
                        "attempt": attempt,
                    },
                )
                level = self.levels.get_level(location_id, material_id)
        raise AssertionError("unreachable")

    def _append(
        self,
        location_id: str,
        material_id: str,
        movement: Movement,
        actor_id: str,
        *,
        counterpart_id: str | None,
        project_id: str | None,
        notes: str | None,
        outgoing: bool,
    ) -> InventoryTransaction:
        created_at = self.clock.now()
        sequence = self.store.next_sequence(location_id, TRANSACTION_SEQUENCE)

        if isinstance(movement, Transfer):
            outgoing = movement.role == TransferRole.OUTGOING
        source_id = destination_id = None
        if counterpart_id is not None:
            if outgoing:
                source_id, destination_id = location_id, counterpart_id
            else:
                source_id, destination_id = counterpart_id, location_id

        txn = InventoryTransaction(
            transaction_id=str(uuid4()),
            location_id=location_id,
            material_id=material_id,
            transaction_type=movement.transaction_type,
            quantity=_stored_quantity(movement),
            sequence=sequence,
            transfer_role=movement.role if isinstance(movement, Transfer) else None,
            source_id=source_id,
            destination_id=destination_id,
            project_id=project_id,
            notes=notes,
            created_by=actor_id,
            created_at=created_at,
        )
        sort_key = transaction_sort_key(created_at, sequence)
        self.store.put(
            location_id,
            sort_key,
            txn.to_record(),
            index_key=(material_index_key(material_id), sort_key),
        )
        return txn


def _stored_quantity(movement: Movement) -> Decimal:
    """Quantity as the caller gave it: magnitude, signed delta or count."""
    delta = getattr(movement, "delta", None)
    return delta if delta is not None else movement.quantity
