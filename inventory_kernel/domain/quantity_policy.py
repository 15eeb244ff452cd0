"""
Quantity Policy -- how a movement changes a level.

Responsibility:
    Map every movement to a ``QuantityEffect``: either a signed ``Delta`` or an
    absolute ``SetTo``.  One dispatch table, one entry per transaction type.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  Consumed by the
    TransactionRecorder (forward) and the LedgerReconciler (replay).

Invariants enforced:
    - Every TransactionType has exactly one entry in ``_EFFECTS``; a type
      added to the enum without a policy fails at import time.
    - ``inventory_check`` is the only absolute set.  Every other type is a
      delta, so replaying the log from zero with ``inventory_check`` as a reset
      point reproduces the stored level.

Failure modes:
    - InvalidTransactionTypeError from ``parse_transaction_type`` for
      anything outside the enum.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from inventory_kernel.domain.movements import (
    Adjustment,
    CountReset,
    Damage,
    Issue,
    Movement,
    Receipt,
    Transfer,
)
from inventory_kernel.domain.values import ZERO, TransactionType, TransferRole
from inventory_kernel.exceptions import InvalidTransactionTypeError


@dataclass(frozen=True)
class Delta:
    amount: Decimal


@dataclass(frozen=True)
class SetTo:
    quantity: Decimal


QuantityEffect = Union[Delta, SetTo]


def _receipt(movement: Receipt) -> QuantityEffect:
    return Delta(movement.quantity)


def _issue(movement: Issue) -> QuantityEffect:
    return Delta(-movement.quantity)


def _adjustment(movement: Adjustment) -> QuantityEffect:
    return Delta(movement.delta)


def _damage(movement: Damage) -> QuantityEffect:
    return Delta(-movement.quantity)


def _transfer(movement: Transfer) -> QuantityEffect:
    if movement.role == TransferRole.INCOMING:
        return Delta(movement.quantity)
    return Delta(-movement.quantity)


def _count_reset(movement: CountReset) -> QuantityEffect:
    return SetTo(movement.quantity)


_EFFECTS: dict[TransactionType, Callable[[Any], QuantityEffect]] = {
    TransactionType.PURCHASE: _receipt,
    TransactionType.STOCK: _receipt,
    TransactionType.RETURN: _receipt,
    TransactionType.ALLOCATION: _issue,
    TransactionType.USAGE: _issue,
    TransactionType.ADJUSTMENT: _adjustment,
    TransactionType.MANUAL_ADJUSTMENT: _adjustment,
    TransactionType.DAMAGE: _damage,
    TransactionType.TRANSFER: _transfer,
    TransactionType.INVENTORY_CHECK: _count_reset,
}

assert set(_EFFECTS) == set(TransactionType), "every transaction type needs a policy"


def parse_transaction_type(value: Any) -> TransactionType:
    """
    Parse caller input into a TransactionType.

    Raises:
        InvalidTransactionTypeError: value is not a member of the enum.
    """
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value)
    except ValueError:
        raise InvalidTransactionTypeError(value) from None


def effect_for(movement: Movement) -> QuantityEffect:
    """Return the effect a movement has on its location's level."""
    return _EFFECTS[movement.transaction_type](movement)


def apply_effect(current: Decimal, effect: QuantityEffect) -> Decimal:
    """Return the new absolute quantity. The result may be negative."""
    if isinstance(effect, SetTo):
        return effect.quantity
    return current + effect.amount


def outgoing_quantity(effect: QuantityEffect) -> Decimal:
    """Quantity leaving the location under ``effect``; zero for increases and sets."""
    if isinstance(effect, Delta) and effect.amount < ZERO:
        return -effect.amount
    return ZERO


def replay(movements: Iterable[Movement], start: Decimal = ZERO) -> Decimal:
    """
    Fold movements in order from ``start``.

    ``CountReset`` discards everything before it, so the result only depends
    on the suffix after the last physical count.
    """
    quantity = start
    for movement in movements:
        quantity = apply_effect(quantity, effect_for(movement))
    return quantity
