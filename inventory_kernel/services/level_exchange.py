"""
Level import and export as plain rows.

Responsibility:
    Bridge between the ledger and an external file layer (CSV, S3) that is
    not part of this package.  Import takes in-memory rows of
    ``{material_id, quantity, standard_quantity?, location?}`` and sets each
    level; export produces rows enriched from the material catalog.

Architecture position:
    Kernel > Services.  Imports go through the TransactionRecorder as
    ``inventory_check`` movements, so an imported quantity is a reset point
    in the log like any physical count.

Failure modes:
    - A row that fails validation or recording is counted in
      ``failed_rows`` with its message; the remaining rows still run.
    - Errors outside the ledger hierarchy (store outages) abort the import.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from inventory_kernel.catalog import UNKNOWN_MATERIAL_NAME, MaterialCatalog
from inventory_kernel.domain.values import TransactionType, to_quantity
from inventory_kernel.exceptions import InventoryLedgerError, ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.level_repository import LevelRepository
from inventory_kernel.services.transaction_recorder import TransactionRecorder

logger = get_logger("services.level_exchange")

EXPORT_COLUMNS = (
    "material_id",
    "name",
    "category",
    "current_quantity",
    "standard_quantity",
    "location",
    "last_stock_check",
)


@dataclass(frozen=True)
class ImportResult:
    total_rows: int
    success_rows: int
    failed_rows: int
    errors: tuple[tuple[int, str], ...] = field(default_factory=tuple)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def import_rows(
    recorder: TransactionRecorder,
    location_id: str,
    rows: Iterable[Mapping[str, Any]],
    actor_id: str,
) -> ImportResult:
    """
    Set one level per row.  Row numbers in ``errors`` are 1-based.
    """
    total = success = 0
    errors: list[tuple[int, str]] = []

    for total, row in enumerate(rows, start=1):
        try:
            material_id = row.get("material_id")
            if _blank(material_id):
                raise ValidationError("material_id is required")
            if _blank(row.get("quantity")):
                raise ValidationError("quantity is required")
            standard = row.get("standard_quantity")
            recorder.record(
                location_id,
                str(material_id).strip(),
                TransactionType.INVENTORY_CHECK,
                row["quantity"],
                actor_id,
                notes="level import",
                standard_quantity=None if _blank(standard) else to_quantity(standard),
                location=None if _blank(row.get("location")) else str(row["location"]),
            )
            success += 1
        except InventoryLedgerError as exc:
            errors.append((total, str(exc)))
            logger.warning(
                "level_import_row_failed",
                extra={"location_id": location_id, "row": total, "error_code": exc.code},
            )

    result = ImportResult(
        total_rows=total,
        success_rows=success,
        failed_rows=len(errors),
        errors=tuple(errors),
    )
    logger.info(
        "level_import_completed",
        extra={
            "location_id": location_id,
            "total_rows": result.total_rows,
            "success_rows": result.success_rows,
            "failed_rows": result.failed_rows,
        },
    )
    return result


def export_rows(
    levels: LevelRepository,
    catalog: MaterialCatalog,
    location_id: str,
) -> list[dict[str, Any]]:
    """One row per level, ordered by material id, keyed by ``EXPORT_COLUMNS``."""
    rows = []
    for level in sorted(levels.list_levels(location_id), key=lambda lvl: lvl.material_id):
        material = catalog.get_material(level.material_id)
        rows.append(
            {
                "material_id": level.material_id,
                "name": material.name if material else UNKNOWN_MATERIAL_NAME,
                "category": material.category if material else "",
                "current_quantity": level.current_quantity,
                "standard_quantity": level.standard_quantity,
                "location": level.location or "",
                "last_stock_check": level.last_stock_check,
            }
        )
    return rows
