"""
LevelRepository -- read and absolute-set of inventory levels.

Responsibility:
    Get, upsert and list the derived current-quantity record of each
    (location, material) pair.  ``upsert_level`` is a set, never a delta;
    callers compute the new absolute value first.  Every public location id
    is mapped to its store partition here, so the configured warehouse id
    and the company partition name the same levels.

Architecture position:
    Kernel > Services.  Called by the TransactionRecorder (inside the
    per-key lock) and by read paths.  Writes through the LedgerStore only.

Invariants enforced:
    - On create, ``standard_quantity`` defaults to the initial quantity.
    - On update, omitted optionals keep their stored values.
    - ``updated_at``/``updated_by`` are touched and ``version`` is bumped on
      every write.
    - ``set_level_if_unchanged`` writes only when the stored level still
      carries the version it was computed from.  This holds across
      processes sharing one database, where the in-process lock does not.
    - Levels are never deleted.

Failure modes:
    - OptimisticLockError from ``set_level_if_unchanged`` when another
      writer changed (or created) the level first.
    - RecordNotFoundError from ``mark_stock_checked`` on a missing level.
"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.records import InventoryLevel
from inventory_kernel.exceptions import OptimisticLockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import LEVEL_PREFIX, PartitionResolver, level_sort_key

logger = get_logger("services.level_repository")

STOCK_CHECK_STAMP_ATTEMPTS = 5


class LevelRepository(BaseService):
    """Inventory level persistence."""

    def __init__(
        self,
        store: LedgerStore,
        clock: Clock | None = None,
        partitions: PartitionResolver | None = None,
    ):
        super().__init__(store, clock)
        self.partitions = partitions or PartitionResolver()

    def partition_for(self, location_id: str) -> str:
        return self.partitions.partition_for(location_id)

    def get_level(self, location_id: str, material_id: str) -> InventoryLevel | None:
        record = self.store.get(self.partition_for(location_id), level_sort_key(material_id))
        return InventoryLevel.from_record(record) if record is not None else None

    def upsert_level(
        self,
        location_id: str,
        material_id: str,
        new_quantity: Decimal,
        actor_id: str,
        standard_quantity: Decimal | None = None,
        location: str | None = None,
        min_quantity: Decimal | None = None,
    ) -> InventoryLevel:
        """
        Set the level to ``new_quantity``, creating it if absent.

        Returns:
            The level as written.
        """
        existing = self.get_level(location_id, material_id)
        return self._write(
            existing,
            location_id,
            material_id,
            new_quantity,
            actor_id,
            standard_quantity=standard_quantity,
            location=location,
            min_quantity=min_quantity,
            conditional=False,
        )

    def set_level_if_unchanged(
        self,
        snapshot: InventoryLevel | None,
        location_id: str,
        material_id: str,
        new_quantity: Decimal,
        actor_id: str,
        standard_quantity: Decimal | None = None,
        location: str | None = None,
        min_quantity: Decimal | None = None,
    ) -> InventoryLevel:
        """
        Like ``upsert_level``, but against the level read earlier.

        ``snapshot`` is the level the new quantity was computed from, or
        None if there was no level.

        Raises:
            OptimisticLockError: the stored level is no longer ``snapshot``.
        """
        return self._write(
            snapshot,
            location_id,
            material_id,
            new_quantity,
            actor_id,
            standard_quantity=standard_quantity,
            location=location,
            min_quantity=min_quantity,
            conditional=True,
        )

    def _write(
        self,
        existing: InventoryLevel | None,
        location_id: str,
        material_id: str,
        new_quantity: Decimal,
        actor_id: str,
        *,
        standard_quantity: Decimal | None,
        location: str | None,
        min_quantity: Decimal | None,
        conditional: bool,
    ) -> InventoryLevel:
        now = self.clock.now()
        partition = self.partition_for(location_id)

        if existing is None:
            level = InventoryLevel(
                location_id=partition,
                material_id=material_id,
                current_quantity=new_quantity,
                standard_quantity=(
                    standard_quantity if standard_quantity is not None else new_quantity
                ),
                min_quantity=min_quantity,
                location=location,
                created_at=now,
                updated_at=now,
                created_by=actor_id,
                updated_by=actor_id,
                version=1,
            )
        else:
            level = replace(
                existing,
                current_quantity=new_quantity,
                standard_quantity=(
                    standard_quantity
                    if standard_quantity is not None
                    else existing.standard_quantity
                ),
                min_quantity=min_quantity if min_quantity is not None else existing.min_quantity,
                location=location if location is not None else existing.location,
                updated_at=now,
                updated_by=actor_id,
                version=existing.version + 1,
            )

        if not conditional:
            self.store.put(partition, level_sort_key(material_id), level.to_record())
        elif existing is None:
            self.store.put(
                partition, level_sort_key(material_id), level.to_record(), create_only=True
            )
        else:
            self.store.put(
                partition,
                level_sort_key(material_id),
                level.to_record(),
                expected={"version": existing.version},
            )

        logger.debug(
            "level_upserted",
            extra={
                "location_id": partition,
                "material_id": material_id,
                "current_quantity": new_quantity,
                "level_created": existing is None,
                "level_version": level.version,
            },
        )
        return level

    def list_levels(self, location_id: str) -> list[InventoryLevel]:
        return [
            InventoryLevel.from_record(record)
            for record in self.store.query_by_prefix(self.partition_for(location_id), LEVEL_PREFIX)
        ]

    def mark_stock_checked(
        self,
        location_id: str,
        material_id: str,
        checked_at: datetime,
        actor_id: str,
    ) -> InventoryLevel:
        """
        Stamp ``last_stock_check`` without touching quantities.

        The stamp is a versioned update, so a recorder computing from the
        previous version cannot overwrite it with a stale full record.
        """
        partition = self.partition_for(location_id)
        sort_key = level_sort_key(material_id)
        for attempt in range(1, STOCK_CHECK_STAMP_ATTEMPTS + 1):
            record = self.store.get(partition, sort_key)
            stored_version = record.get("version") if record is not None else None
            try:
                updated = self.store.update(
                    partition,
                    sort_key,
                    {
                        "last_stock_check": checked_at.isoformat(),
                        "updated_at": self.clock.now().isoformat(),
                        "updated_by": actor_id,
                        "version": (stored_version or 0) + 1,
                    },
                    expected={"version": stored_version} if record is not None else None,
                )
                return InventoryLevel.from_record(updated)
            except OptimisticLockError:
                if attempt == STOCK_CHECK_STAMP_ATTEMPTS:
                    raise
                logger.info(
                    "stock_check_stamp_retry",
                    extra={"location_id": partition, "material_id": material_id, "attempt": attempt},
                )
        raise AssertionError("unreachable")
