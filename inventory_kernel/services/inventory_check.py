"""
InventoryCheckWorkflow -- physical counts and reconciliation.

Responsibility:
    Create a check that snapshots a location's levels, record counted
    quantities item by item, and complete the check: compute the variance
    and optionally reset every counted level to the counted quantity.

Architecture position:
    Kernel > Services.  Depends on LevelRepository (snapshot and stock-check
    stamps) and TransactionRecorder (reconciliation).  Check records live in
    the LedgerStore under ``(location_id, "CHECK#" + check_id)``.

Invariants enforced:
    - State machine: ``pending -> completed``.  Completed is terminal.
    - ``expected_quantity`` is snapshotted from ``standard_quantity`` at
      creation and never changes afterwards.
    - Variance is only populated on completion.
    - The completing write is conditional on ``status == pending`` and on
      the ``updated_at`` that was read; of two concurrent completions exactly
      one wins, and a count landing mid-completion is never dropped.
    - Stock-check stamps are written under the level lock.
    - Reconciliation goes through the recorder as ``inventory_check``
      transactions, so replaying the log reproduces the reconciled level.

Failure modes:
    - CheckNotFoundError / CheckItemNotFoundError (both NotFoundError).
    - AlreadyCompletedError on any mutation of a completed check.
    - InvalidQuantityError for negative or non-finite counts.
    - OptimisticLockError when another writer counted an item of the same
      check between our read and our write (on count or completion); the
      caller re-reads and retries.
    - Errors raised while reconciling propagate after the check has been
      marked completed; ``reconciled`` stays False so the caller can see the
      levels were not all reset.
"""

from dataclasses import replace
from typing import Any
from uuid import uuid4

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.records import (
    CheckItem,
    CheckVariance,
    InventoryCheck,
    VarianceLine,
    items_to_record,
    variance_to_record,
)
from inventory_kernel.domain.values import ZERO, CheckStatus, TransactionType, to_quantity
from inventory_kernel.exceptions import (
    AlreadyCompletedError,
    CheckItemNotFoundError,
    CheckNotFoundError,
    InvalidQuantityError,
    OptimisticLockError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.level_repository import LevelRepository
from inventory_kernel.services.transaction_recorder import TransactionRecorder
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import CHECK_PREFIX, check_sort_key

logger = get_logger("services.inventory_check")

_PENDING = {"status": CheckStatus.PENDING.value}


def compute_variance(items: tuple[CheckItem, ...]) -> CheckVariance:
    """
    Split per-item differences into missing and extra lines.

    ``actual - expected < 0`` is missing (as a magnitude), ``> 0`` is extra,
    zero appears in neither list.  Item order is preserved.
    """
    missing: list[VarianceLine] = []
    extra: list[VarianceLine] = []
    for item in items:
        diff = item.difference
        if diff < ZERO:
            missing.append(VarianceLine(item.material_id, -diff))
        elif diff > ZERO:
            extra.append(VarianceLine(item.material_id, diff))
    return CheckVariance(missing=tuple(missing), extra=tuple(extra))


class InventoryCheckWorkflow(BaseService):
    """Create, count and complete inventory checks."""

    def __init__(
        self,
        store: LedgerStore,
        levels: LevelRepository,
        recorder: TransactionRecorder,
        clock: Clock | None = None,
    ):
        super().__init__(store, clock)
        self._levels = levels
        self._recorder = recorder

    def create_check(
        self,
        location_id: str,
        actor_id: str,
        notes: str | None = None,
    ) -> InventoryCheck:
        """Snapshot every level of ``location_id`` into a new pending check."""
        location_id = self._levels.partition_for(location_id)
        now = self.clock.now()
        levels = sorted(self._levels.list_levels(location_id), key=lambda lvl: lvl.material_id)
        check = InventoryCheck(
            check_id=str(uuid4()),
            location_id=location_id,
            performed_by=actor_id,
            date=now,
            items=tuple(
                CheckItem(
                    material_id=level.material_id,
                    expected_quantity=(
                        level.standard_quantity if level.standard_quantity is not None else ZERO
                    ),
                    actual_quantity=ZERO,
                )
                for level in levels
            ),
            notes=notes,
            created_at=now,
            updated_at=now,
            created_by=actor_id,
            updated_by=actor_id,
        )
        self.store.put(location_id, check_sort_key(check.check_id), check.to_record())
        logger.info(
            "inventory_check_created",
            extra={
                "check_id": check.check_id,
                "location_id": location_id,
                "item_count": len(check.items),
            },
        )
        return check

    def get_check(self, check_id: str, location_id: str) -> InventoryCheck:
        """
        Raises:
            CheckNotFoundError: no such check at the location.
        """
        location_id = self._levels.partition_for(location_id)
        record = self.store.get(location_id, check_sort_key(check_id))
        if record is None:
            raise CheckNotFoundError(check_id, location_id)
        return InventoryCheck.from_record(record)

    def list_checks(self, location_id: str, limit: int | None = None) -> list[InventoryCheck]:
        """Checks for a location, newest first."""
        location_id = self._levels.partition_for(location_id)
        checks = [
            InventoryCheck.from_record(record)
            for record in self.store.query_by_prefix(location_id, CHECK_PREFIX)
        ]
        checks.sort(key=lambda check: check.date, reverse=True)
        return checks[:limit] if limit is not None else checks

    def record_item_count(
        self,
        check_id: str,
        location_id: str,
        material_id: str,
        actual_quantity: Any,
        notes: str | None = None,
        actor_id: str = "",
    ) -> InventoryCheck:
        """
        Overwrite one item's counted quantity.  The check stays pending.

        Omitted ``notes`` keep the item's stored notes.
        """
        location_id = self._levels.partition_for(location_id)
        check = self.get_check(check_id, location_id)
        if check.completed:
            raise AlreadyCompletedError(check_id)

        item = check.item(material_id)
        if item is None:
            raise CheckItemNotFoundError(check_id, material_id)

        counted = to_quantity(actual_quantity)
        if counted < ZERO:
            raise InvalidQuantityError(actual_quantity, "counted quantity cannot be negative")

        updated = check.with_item(
            replace(
                item,
                actual_quantity=counted,
                notes=notes if notes is not None else item.notes,
            )
        )
        now = self.clock.now()
        try:
            self.store.update(
                location_id,
                check_sort_key(check_id),
                {
                    "items": items_to_record(updated.items),
                    "updated_at": now.isoformat(),
                    "updated_by": actor_id,
                },
                expected={**_PENDING, "updated_at": check.updated_at.isoformat()},
            )
        except OptimisticLockError as exc:
            if exc.field == "status":
                raise AlreadyCompletedError(check_id) from None
            raise

        logger.info(
            "inventory_check_item_counted",
            extra={
                "check_id": check_id,
                "location_id": location_id,
                "material_id": material_id,
                "actual_quantity": counted,
            },
        )
        return replace(updated, updated_at=now, updated_by=actor_id)

    def complete_check(
        self,
        check_id: str,
        location_id: str,
        reconcile_levels: bool,
        actor_id: str,
    ) -> InventoryCheck:
        """
        Complete a pending check.

        Steps:
            1. Compute the variance from the stored items.
            2. Conditionally write ``status=completed`` and the variance.
            3. If ``reconcile_levels``, record an ``inventory_check``
               transaction per item setting the level to the counted value,
               then flag the check ``reconciled``.
            4. Stamp ``last_stock_check`` on every existing level.

        Raises:
            AlreadyCompletedError: the check was already completed, by an
                earlier call or a concurrent one.  The stored variance is
                left untouched.
            OptimisticLockError: an item was counted after the check was
                read, so the variance would miss that count.  Nothing is
                written; the caller re-reads and retries.
        """
        location_id = self._levels.partition_for(location_id)
        check = self.get_check(check_id, location_id)
        if check.completed:
            raise AlreadyCompletedError(check_id)

        variance = compute_variance(check.items)
        now = self.clock.now()
        try:
            self.store.update(
                location_id,
                check_sort_key(check_id),
                {
                    "status": CheckStatus.COMPLETED.value,
                    "completed": True,
                    "variance": variance_to_record(variance),
                    "updated_at": now.isoformat(),
                    "updated_by": actor_id,
                },
                expected={**_PENDING, "updated_at": check.updated_at.isoformat()},
            )
        except OptimisticLockError as exc:
            if exc.field != "status":
                raise
            logger.warning(
                "inventory_check_completion_lost_race",
                extra={"check_id": check_id, "location_id": location_id},
            )
            raise AlreadyCompletedError(check_id) from None

        completed = replace(
            check,
            status=CheckStatus.COMPLETED,
            variance=variance,
            updated_at=now,
            updated_by=actor_id,
        )

        if reconcile_levels:
            for item in check.items:
                self._recorder.record(
                    location_id,
                    item.material_id,
                    TransactionType.INVENTORY_CHECK,
                    item.actual_quantity,
                    actor_id,
                    notes=f"inventory check {check_id}",
                )
            self.store.update(location_id, check_sort_key(check_id), {"reconciled": True})
            completed = replace(completed, reconciled=True)

        for item in check.items:
            with self._recorder.locks.hold(location_id, item.material_id):
                if self._levels.get_level(location_id, item.material_id) is not None:
                    self._levels.mark_stock_checked(location_id, item.material_id, now, actor_id)

        logger.info(
            "inventory_check_completed",
            extra={
                "check_id": check_id,
                "location_id": location_id,
                "missing_count": len(variance.missing),
                "extra_count": len(variance.extra),
                "reconciled": completed.reconciled,
            },
        )
        return completed
