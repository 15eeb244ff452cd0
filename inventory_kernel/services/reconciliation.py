"""
LedgerReconciler -- re-derive levels from the transaction log.

Responsibility:
    Replay a location's transactions for one material through the quantity
    policy, compare the result with the stored level, and repair levels that
    drifted (for example after a LevelUpdateError).

Architecture position:
    Kernel > Services.  Reads the log through the LedgerStore, writes levels
    through the LevelRepository.  Pure replay lives in
    ``domain.quantity_policy.replay``.

Invariants enforced:
    - Replay order is the transaction sort key order (clock timestamp, then
      per-location sequence).
    - ``inventory_check`` rows are reset points.
    - Repair takes the level lock, so it cannot interleave with a recorder
      writing the same key.
    - Location ids go through the LevelRepository partition mapping, so the
      warehouse id replays the company partition.
    - Repair writes no transaction: the log already holds the replayed value.
"""

from dataclasses import dataclass
from decimal import Decimal

from inventory_kernel.domain.movements import build_movement
from inventory_kernel.domain.quantity_policy import replay
from inventory_kernel.domain.records import InventoryLevel, InventoryTransaction
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.level_repository import LevelRepository
from inventory_kernel.services.locks import KeyedLockRegistry, default_lock_registry
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import TRANSACTION_PREFIX

logger = get_logger("services.reconciliation")


@dataclass(frozen=True)
class LevelDrift:
    """A stored level that disagrees with its replayed history."""

    location_id: str
    material_id: str
    stored_quantity: Decimal
    replayed_quantity: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_quantity - self.replayed_quantity


class LedgerReconciler:
    def __init__(
        self,
        store: LedgerStore,
        levels: LevelRepository,
        locks: KeyedLockRegistry | None = None,
    ):
        self._store = store
        self._levels = levels
        self._locks = locks or default_lock_registry()

    def transactions_for(self, location_id: str, material_id: str) -> list[InventoryTransaction]:
        """The location's transactions for one material, oldest first."""
        return [
            txn
            for txn in (
                InventoryTransaction.from_record(record)
                for record in self._store.query_by_prefix(
                    self._levels.partition_for(location_id), TRANSACTION_PREFIX
                )
            )
            if txn.material_id == material_id
        ]

    def replay_quantity(self, location_id: str, material_id: str) -> Decimal:
        return replay(
            build_movement(
                txn.transaction_type,
                txn.quantity,
                transfer_role=txn.transfer_role,
            )
            for txn in self.transactions_for(location_id, material_id)
        )

    def verify_location(self, location_id: str) -> list[LevelDrift]:
        """Every level at ``location_id`` whose stored quantity differs from replay."""
        location_id = self._levels.partition_for(location_id)
        drifts = []
        for level in self._levels.list_levels(location_id):
            replayed = self.replay_quantity(location_id, level.material_id)
            if replayed != level.current_quantity:
                drifts.append(
                    LevelDrift(
                        location_id=location_id,
                        material_id=level.material_id,
                        stored_quantity=level.current_quantity,
                        replayed_quantity=replayed,
                    )
                )
        if drifts:
            logger.warning(
                "level_drift_detected",
                extra={
                    "location_id": location_id,
                    "drift_count": len(drifts),
                    "material_ids": [d.material_id for d in drifts],
                },
            )
        return drifts

    def repair_level(
        self, location_id: str, material_id: str, actor_id: str
    ) -> InventoryLevel | None:
        """
        Overwrite the level with its replayed value.

        Returns:
            The repaired level, or None when the level already matched.

        Raises:
            OptimisticLockError: another process wrote the level between the
                replay and the repair.  Verify again and retry.
        """
        location_id = self._levels.partition_for(location_id)
        with self._locks.hold(location_id, material_id):
            level = self._levels.get_level(location_id, material_id)
            replayed = self.replay_quantity(location_id, material_id)
            if level is not None and level.current_quantity == replayed:
                return None
            repaired = self._levels.set_level_if_unchanged(
                level, location_id, material_id, replayed, actor_id
            )

        logger.warning(
            "level_repaired",
            extra={
                "location_id": location_id,
                "material_id": material_id,
                "stored_quantity": level.current_quantity if level is not None else None,
                "replayed_quantity": replayed,
                "actor_id": actor_id,
            },
        )
        return repaired
