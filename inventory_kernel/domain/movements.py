"""
Movements -- the closed set of quantity-changing events.

Responsibility:
    Turn a caller's loose ``(type, quantity, role)`` triple into exactly one
    frozen variant that carries only the fields its type needs.  Validation of
    quantity and sign happens here, once, before anything is written.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Magnitude-typed movements (everything except the adjustments) carry a
      strictly positive quantity.  ``CountReset`` additionally allows zero.
    - Adjustments carry a signed, non-zero delta.
    - A ``Transfer`` always knows its direction; it is never inferred from
      the sign of the quantity.

Failure modes:
    - InvalidQuantityError: zero, negative magnitude, NaN, infinities.
    - InvalidTransferError: transfer without an explicit role.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from inventory_kernel.domain.values import (
    ZERO,
    TransactionType,
    TransferRole,
    to_quantity,
)
from inventory_kernel.exceptions import InvalidQuantityError, InvalidTransferError


@dataclass(frozen=True)
class Receipt:
    """Stock arriving: purchase, stock or return."""

    transaction_type: TransactionType
    quantity: Decimal


@dataclass(frozen=True)
class Issue:
    """Stock consumed or handed out: allocation or usage."""

    transaction_type: TransactionType
    quantity: Decimal


@dataclass(frozen=True)
class Adjustment:
    """Signed correction. ``delta`` carries its own sign."""

    transaction_type: TransactionType
    delta: Decimal


@dataclass(frozen=True)
class Damage:
    quantity: Decimal
    transaction_type: TransactionType = TransactionType.DAMAGE


@dataclass(frozen=True)
class Transfer:
    """One side of a two-location transfer."""

    role: TransferRole
    quantity: Decimal
    counterpart_id: str | None = None
    transaction_type: TransactionType = TransactionType.TRANSFER


@dataclass(frozen=True)
class CountReset:
    """Physical count. Sets the level absolutely."""

    quantity: Decimal
    transaction_type: TransactionType = TransactionType.INVENTORY_CHECK


Movement = Union[Receipt, Issue, Adjustment, Damage, Transfer, CountReset]

_RECEIPT_TYPES = frozenset(
    {TransactionType.PURCHASE, TransactionType.STOCK, TransactionType.RETURN}
)
_ISSUE_TYPES = frozenset({TransactionType.ALLOCATION, TransactionType.USAGE})
_ADJUSTMENT_TYPES = frozenset(
    {TransactionType.ADJUSTMENT, TransactionType.MANUAL_ADJUSTMENT}
)


def _magnitude(value: Any, transaction_type: TransactionType, allow_zero: bool = False) -> Decimal:
    quantity = to_quantity(value)
    if quantity < ZERO:
        raise InvalidQuantityError(
            value, f"{transaction_type.value} takes a positive magnitude"
        )
    if quantity == ZERO and not allow_zero:
        raise InvalidQuantityError(value, "quantity must be non-zero")
    return quantity


def build_movement(
    transaction_type: TransactionType,
    quantity: Any,
    *,
    transfer_role: TransferRole | str | None = None,
    counterpart_id: str | None = None,
) -> Movement:
    """
    Build the movement variant for a transaction type.

    Preconditions:
        ``transaction_type`` is already parsed (see
        ``quantity_policy.parse_transaction_type``).

    Raises:
        InvalidQuantityError: quantity is zero (outside inventory checks),
            non-finite, or negative for a magnitude-typed movement.
        InvalidTransferError: transfer without ``transfer_role``.
    """
    if transaction_type in _RECEIPT_TYPES:
        return Receipt(transaction_type, _magnitude(quantity, transaction_type))
    if transaction_type in _ISSUE_TYPES:
        return Issue(transaction_type, _magnitude(quantity, transaction_type))
    if transaction_type in _ADJUSTMENT_TYPES:
        delta = to_quantity(quantity)
        if delta == ZERO:
            raise InvalidQuantityError(quantity, "adjustment must be non-zero")
        return Adjustment(transaction_type, delta)
    if transaction_type == TransactionType.DAMAGE:
        return Damage(_magnitude(quantity, transaction_type))
    if transaction_type == TransactionType.TRANSFER:
        if transfer_role is None:
            raise InvalidTransferError("transfer requires an explicit transfer_role")
        try:
            role = TransferRole(transfer_role)
        except ValueError:
            raise InvalidTransferError(
                f"unknown transfer_role: {transfer_role}"
            ) from None
        return Transfer(
            role=role,
            quantity=_magnitude(quantity, transaction_type),
            counterpart_id=counterpart_id,
        )
    if transaction_type == TransactionType.INVENTORY_CHECK:
        return CountReset(_magnitude(quantity, transaction_type, allow_zero=True))
    raise AssertionError(f"unhandled transaction type: {transaction_type!r}")
