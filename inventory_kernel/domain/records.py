"""
Ledger record DTOs.

Responsibility:
    Frozen dataclasses for the three ledger record kinds (levels,
    transactions, checks) plus templates and catalog materials, and their
    mapping to and from the JSON-safe dicts held by the LedgerStore.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Decimals are stored as strings, timestamps as ISO-8601 strings. No
      float ever reaches the store.
    - ``InventoryCheck.variance`` is empty until the check is completed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from inventory_kernel.domain.values import (
    CheckStatus,
    TemplateKind,
    TransactionType,
    TransferRole,
)


def _dec(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _dec_str(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _ts_str(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


@dataclass(frozen=True)
class InventoryLevel:
    """Current tracked quantity of one material at one location."""

    location_id: str
    material_id: str
    current_quantity: Decimal
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str
    standard_quantity: Decimal | None = None
    min_quantity: Decimal | None = None
    location: str | None = None
    last_stock_check: datetime | None = None
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": "level",
            "location_id": self.location_id,
            "material_id": self.material_id,
            "current_quantity": _dec_str(self.current_quantity),
            "standard_quantity": _dec_str(self.standard_quantity),
            "min_quantity": _dec_str(self.min_quantity),
            "location": self.location,
            "last_stock_check": _ts_str(self.last_stock_check),
            "created_at": _ts_str(self.created_at),
            "updated_at": _ts_str(self.updated_at),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "version": self.version,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> InventoryLevel:
        return cls(
            location_id=record["location_id"],
            material_id=record["material_id"],
            current_quantity=_dec(record["current_quantity"]),
            standard_quantity=_dec(record.get("standard_quantity")),
            min_quantity=_dec(record.get("min_quantity")),
            location=record.get("location"),
            last_stock_check=_ts(record.get("last_stock_check")),
            created_at=_ts(record["created_at"]),
            updated_at=_ts(record["updated_at"]),
            created_by=record["created_by"],
            updated_by=record["updated_by"],
            version=record.get("version", 0),
        )


@dataclass(frozen=True)
class InventoryTransaction:
    """Immutable record of one quantity-changing event."""

    transaction_id: str
    location_id: str
    material_id: str
    transaction_type: TransactionType
    quantity: Decimal
    sequence: int
    created_by: str
    created_at: datetime
    transfer_role: TransferRole | None = None
    source_id: str | None = None
    destination_id: str | None = None
    project_id: str | None = None
    notes: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": "transaction",
            "transaction_id": self.transaction_id,
            "location_id": self.location_id,
            "material_id": self.material_id,
            "transaction_type": self.transaction_type.value,
            "quantity": _dec_str(self.quantity),
            "sequence": self.sequence,
            "transfer_role": self.transfer_role.value if self.transfer_role else None,
            "source_id": self.source_id,
            "destination_id": self.destination_id,
            "project_id": self.project_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": _ts_str(self.created_at),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> InventoryTransaction:
        role = record.get("transfer_role")
        return cls(
            transaction_id=record["transaction_id"],
            location_id=record["location_id"],
            material_id=record["material_id"],
            transaction_type=TransactionType(record["transaction_type"]),
            quantity=_dec(record["quantity"]),
            sequence=int(record["sequence"]),
            transfer_role=TransferRole(role) if role else None,
            source_id=record.get("source_id"),
            destination_id=record.get("destination_id"),
            project_id=record.get("project_id"),
            notes=record.get("notes"),
            created_by=record["created_by"],
            created_at=_ts(record["created_at"]),
        )


@dataclass(frozen=True)
class CheckItem:
    """One counted line of an inventory check."""

    material_id: str
    expected_quantity: Decimal
    actual_quantity: Decimal
    notes: str = ""

    @property
    def difference(self) -> Decimal:
        """actual - expected; negative means missing."""
        return self.actual_quantity - self.expected_quantity


@dataclass(frozen=True)
class VarianceLine:
    material_id: str
    quantity: Decimal


@dataclass(frozen=True)
class CheckVariance:
    missing: tuple[VarianceLine, ...] = ()
    extra: tuple[VarianceLine, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.missing and not self.extra


@dataclass(frozen=True)
class InventoryCheck:
    """A physical-count event for one location."""

    check_id: str
    location_id: str
    performed_by: str
    date: datetime
    items: tuple[CheckItem, ...]
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str
    status: CheckStatus = CheckStatus.PENDING
    variance: CheckVariance = field(default_factory=CheckVariance)
    reconciled: bool = False
    notes: str | None = None

    @property
    def completed(self) -> bool:
        return self.status == CheckStatus.COMPLETED

    def item(self, material_id: str) -> CheckItem | None:
        for item in self.items:
            if item.material_id == material_id:
                return item
        return None

    def with_item(self, updated: CheckItem) -> InventoryCheck:
        items = tuple(
            updated if item.material_id == updated.material_id else item
            for item in self.items
        )
        return replace(self, items=items)

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": "check",
            "check_id": self.check_id,
            "location_id": self.location_id,
            "performed_by": self.performed_by,
            "date": _ts_str(self.date),
            "items": items_to_record(self.items),
            "variance": variance_to_record(self.variance),
            "status": self.status.value,
            "completed": self.completed,
            "reconciled": self.reconciled,
            "notes": self.notes,
            "created_at": _ts_str(self.created_at),
            "updated_at": _ts_str(self.updated_at),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> InventoryCheck:
        variance = record.get("variance") or {}
        return cls(
            check_id=record["check_id"],
            location_id=record["location_id"],
            performed_by=record["performed_by"],
            date=_ts(record["date"]),
            items=tuple(
                CheckItem(
                    material_id=item["material_id"],
                    expected_quantity=_dec(item["expected_quantity"]),
                    actual_quantity=_dec(item["actual_quantity"]),
                    notes=item.get("notes") or "",
                )
                for item in record.get("items", [])
            ),
            variance=CheckVariance(
                missing=tuple(
                    VarianceLine(line["material_id"], _dec(line["quantity"]))
                    for line in variance.get("missing", [])
                ),
                extra=tuple(
                    VarianceLine(line["material_id"], _dec(line["quantity"]))
                    for line in variance.get("extra", [])
                ),
            ),
            status=CheckStatus(record.get("status", CheckStatus.PENDING.value)),
            reconciled=bool(record.get("reconciled", False)),
            notes=record.get("notes"),
            created_at=_ts(record["created_at"]),
            updated_at=_ts(record["updated_at"]),
            created_by=record["created_by"],
            updated_by=record["updated_by"],
        )


def items_to_record(items: tuple[CheckItem, ...]) -> list[dict[str, Any]]:
    return [
        {
            "material_id": item.material_id,
            "expected_quantity": _dec_str(item.expected_quantity),
            "actual_quantity": _dec_str(item.actual_quantity),
            "notes": item.notes,
        }
        for item in items
    ]


def variance_to_record(variance: CheckVariance) -> dict[str, list[dict[str, str]]]:
    return {
        "missing": [
            {"material_id": line.material_id, "quantity": _dec_str(line.quantity)}
            for line in variance.missing
        ],
        "extra": [
            {"material_id": line.material_id, "quantity": _dec_str(line.quantity)}
            for line in variance.extra
        ],
    }


@dataclass(frozen=True)
class TemplateItem:
    material_id: str
    standard_quantity: Decimal
    location: str | None = None
    min_quantity: Decimal | None = None


@dataclass(frozen=True)
class Template:
    """Named list of materials and standard quantities for a case or vehicle."""

    template_id: str
    owner_id: str
    name: str
    kind: TemplateKind
    items: tuple[TemplateItem, ...]
    description: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": "template",
            "template_id": self.template_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "template_kind": self.kind.value,
            "description": self.description,
            "items": [
                {
                    "material_id": item.material_id,
                    "standard_quantity": _dec_str(item.standard_quantity),
                    "location": item.location,
                    "min_quantity": _dec_str(item.min_quantity),
                }
                for item in self.items
            ],
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Template:
        return cls(
            template_id=record["template_id"],
            owner_id=record["owner_id"],
            name=record["name"],
            kind=TemplateKind(record["template_kind"]),
            description=record.get("description"),
            items=tuple(
                TemplateItem(
                    material_id=item["material_id"],
                    standard_quantity=_dec(item["standard_quantity"]),
                    location=item.get("location"),
                    min_quantity=_dec(item.get("min_quantity")),
                )
                for item in record.get("items", [])
            ),
        )


@dataclass(frozen=True)
class Material:
    """Catalog entry. Used for existence checks and report enrichment only."""

    material_id: str
    name: str
    category: str = ""
    unit_of_measure: str = "each"

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": "material",
            "material_id": self.material_id,
            "name": self.name,
            "category": self.category,
            "unit_of_measure": self.unit_of_measure,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Material:
        return cls(
            material_id=record["material_id"],
            name=record["name"],
            category=record.get("category", ""),
            unit_of_measure=record.get("unit_of_measure", "each"),
        )
