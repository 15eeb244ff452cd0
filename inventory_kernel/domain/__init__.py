"""
Pure domain layer.

This package contains value types, immutable records and the quantity
policy, with NO dependencies on:
- ORM (SQLAlchemy)
- Ledger store
- I/O

Time enters only through an injected Clock.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.movements import (
    Adjustment,
    CountReset,
    Damage,
    Issue,
    Movement,
    Receipt,
    Transfer,
    build_movement,
)
from inventory_kernel.domain.quantity_policy import (
    Delta,
    QuantityEffect,
    SetTo,
    apply_effect,
    effect_for,
    parse_transaction_type,
)
from inventory_kernel.domain.records import (
    CheckItem,
    CheckVariance,
    InventoryCheck,
    InventoryLevel,
    InventoryTransaction,
    Material,
    Template,
    TemplateItem,
    VarianceLine,
)
from inventory_kernel.domain.values import (
    ZERO,
    CheckStatus,
    LocationKind,
    TemplateKind,
    TransactionType,
    TransferRole,
    classify_location,
    to_quantity,
)

__all__ = [
    "Adjustment",
    "CheckItem",
    "CheckStatus",
    "CheckVariance",
    "Clock",
    "CountReset",
    "Damage",
    "Delta",
    "DeterministicClock",
    "InventoryCheck",
    "InventoryLevel",
    "InventoryTransaction",
    "Issue",
    "LocationKind",
    "Material",
    "Movement",
    "QuantityEffect",
    "Receipt",
    "SetTo",
    "SystemClock",
    "Template",
    "TemplateItem",
    "TemplateKind",
    "TransactionType",
    "Transfer",
    "TransferRole",
    "VarianceLine",
    "ZERO",
    "apply_effect",
    "build_movement",
    "classify_location",
    "effect_for",
    "parse_transaction_type",
    "to_quantity",
]
