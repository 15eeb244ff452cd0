"""
Value types for the inventory ledger.

Responsibility:
    Enumerations for transaction types, transfer roles, location kinds and
    check status, plus the single sanctioned conversion from caller input to a
    quantity ``Decimal``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Quantities are ``Decimal``. Floats are converted through ``str()`` so
      that ``0.1`` becomes ``Decimal("0.1")`` and not its binary expansion.
    - NaN and infinities are rejected at conversion time.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from inventory_kernel.exceptions import InvalidQuantityError

ZERO = Decimal("0")


class TransactionType(str, Enum):
    """Kind of quantity-changing event."""

    PURCHASE = "purchase"
    STOCK = "stock"
    RETURN = "return"
    ALLOCATION = "allocation"
    USAGE = "usage"
    ADJUSTMENT = "adjustment"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    DAMAGE = "damage"
    TRANSFER = "transfer"
    INVENTORY_CHECK = "inventory_check"


class TransferRole(str, Enum):
    """Which side of a transfer a location is on."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"


class LocationKind(str, Enum):
    """Kind of inventory-holding location."""

    WAREHOUSE = "warehouse"
    VEHICLE = "vehicle"
    CASE = "case"
    OTHER = "other"


class CheckStatus(str, Enum):
    """Lifecycle of an inventory check. ``completed`` is terminal."""

    PENDING = "pending"
    COMPLETED = "completed"


class TemplateKind(str, Enum):
    """What a template seeds."""

    CASE = "case"
    VEHICLE = "vehicle"


def to_quantity(value: Any) -> Decimal:
    """
    Convert caller input to a finite ``Decimal``.

    Raises:
        InvalidQuantityError: for booleans, unparseable values, NaN or
            infinities.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidQuantityError(value, "quantity must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidQuantityError(value, "quantity is not a number") from None
    if not result.is_finite():
        raise InvalidQuantityError(value, "quantity must be finite")
    return result


def classify_location(location_id: str, warehouse_location_id: str) -> LocationKind:
    """
    Derive the location kind from its identifier.

    The warehouse is the one abstract location. Vehicles and cases are
    recognized by their id prefix (``vehicle-``/``VEHICLE#``, ``case-``/``CASE#``).
    """
    if location_id == warehouse_location_id:
        return LocationKind.WAREHOUSE
    lowered = location_id.lower()
    if lowered.startswith(("vehicle-", "vehicle#")):
        return LocationKind.VEHICLE
    if lowered.startswith(("case-", "case#")):
        return LocationKind.CASE
    return LocationKind.OTHER
