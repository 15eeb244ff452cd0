"""
Tests for the Quantity Policy (``inventory_kernel.domain.quantity_policy``).

Covers the dispatch table that maps each transaction type to a level effect,
transaction type parsing, and ``replay`` with physical counts as reset
points.  Property tests use hypothesis.
"""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from inventory_kernel.domain.movements import CountReset, build_movement
from inventory_kernel.domain.quantity_policy import (
    Delta,
    SetTo,
    apply_effect,
    effect_for,
    outgoing_quantity,
    parse_transaction_type,
    replay,
)
from inventory_kernel.domain.values import ZERO, TransactionType, TransferRole
from inventory_kernel.exceptions import InvalidTransactionTypeError


def _effect(transaction_type, quantity, role=None):
    return effect_for(build_movement(transaction_type, quantity, transfer_role=role))


# =========================================================================
# Dispatch table
# =========================================================================


class TestEffectTable:
    """One effect per transaction type."""

    @pytest.mark.parametrize(
        "transaction_type",
        [TransactionType.PURCHASE, TransactionType.STOCK, TransactionType.RETURN],
    )
    def test_receipts_increase(self, transaction_type):
        assert _effect(transaction_type, 5) == Delta(Decimal("5"))

    @pytest.mark.parametrize(
        "transaction_type", [TransactionType.ALLOCATION, TransactionType.USAGE]
    )
    def test_issues_decrease(self, transaction_type):
        assert _effect(transaction_type, 3) == Delta(Decimal("-3"))

    def test_damage_decreases(self):
        assert _effect(TransactionType.DAMAGE, "1.5") == Delta(Decimal("-1.5"))

    @pytest.mark.parametrize(
        "transaction_type",
        [TransactionType.ADJUSTMENT, TransactionType.MANUAL_ADJUSTMENT],
    )
    @pytest.mark.parametrize("delta", ["4", "-2.5"])
    def test_adjustments_keep_their_sign(self, transaction_type, delta):
        assert _effect(transaction_type, delta) == Delta(Decimal(delta))

    def test_transfer_direction_comes_from_role(self):
        assert _effect(TransactionType.TRANSFER, 5, TransferRole.INCOMING) == Delta(Decimal("5"))
        assert _effect(TransactionType.TRANSFER, 5, TransferRole.OUTGOING) == Delta(Decimal("-5"))

    def test_inventory_check_sets_absolutely(self):
        assert _effect(TransactionType.INVENTORY_CHECK, 6) == SetTo(Decimal("6"))

    def test_every_type_has_an_effect(self):
        for transaction_type in TransactionType:
            effect = _effect(transaction_type, 1, TransferRole.OUTGOING)
            assert isinstance(effect, (Delta, SetTo))


# =========================================================================
# apply_effect / outgoing_quantity
# =========================================================================


class TestApplyEffect:
    def test_delta_adds(self):
        assert apply_effect(Decimal("7"), Delta(Decimal("3"))) == Decimal("10")

    def test_set_ignores_current(self):
        assert apply_effect(Decimal("7"), SetTo(Decimal("6"))) == Decimal("6")

    def test_result_may_go_negative(self):
        assert apply_effect(Decimal("2"), Delta(Decimal("-5"))) == Decimal("-3")

    def test_outgoing_quantity(self):
        assert outgoing_quantity(Delta(Decimal("-4"))) == Decimal("4")
        assert outgoing_quantity(Delta(Decimal("4"))) == ZERO
        assert outgoing_quantity(SetTo(Decimal("0"))) == ZERO


# =========================================================================
# parse_transaction_type
# =========================================================================


class TestParseTransactionType:
    def test_parses_string_value(self):
        assert parse_transaction_type("usage") is TransactionType.USAGE

    def test_passes_enum_through(self):
        assert parse_transaction_type(TransactionType.DAMAGE) is TransactionType.DAMAGE

    @pytest.mark.parametrize("value", ["bogus", "", None, "PURCHASE"])
    def test_rejects_unknown(self, value):
        with pytest.raises(InvalidTransactionTypeError) as exc_info:
            parse_transaction_type(value)
        assert exc_info.value.code == "INVALID_TRANSACTION_TYPE"


# =========================================================================
# replay
# =========================================================================

_DELTA_TYPES = [
    TransactionType.PURCHASE,
    TransactionType.STOCK,
    TransactionType.RETURN,
    TransactionType.ALLOCATION,
    TransactionType.USAGE,
    TransactionType.DAMAGE,
]


@st.composite
def delta_movements(draw):
    transaction_type = draw(
        st.sampled_from(_DELTA_TYPES + [TransactionType.ADJUSTMENT, TransactionType.TRANSFER])
    )
    if transaction_type == TransactionType.ADJUSTMENT:
        amount = draw(st.integers(min_value=-500, max_value=500).filter(lambda n: n != 0))
    else:
        amount = draw(st.integers(min_value=1, max_value=500))
    role = draw(st.sampled_from(list(TransferRole)))
    return build_movement(transaction_type, amount, transfer_role=role)


class TestReplay:
    def test_empty_history_is_zero(self):
        assert replay([]) == ZERO

    def test_case_history(self):
        movements = [
            build_movement(TransactionType.PURCHASE, 10),
            build_movement(TransactionType.USAGE, 3),
        ]
        assert replay(movements) == Decimal("7")

    @given(
        before=st.lists(delta_movements(), max_size=15),
        count=st.integers(min_value=0, max_value=1000),
        after=st.lists(delta_movements(), max_size=15),
    )
    def test_count_is_a_reset_point(self, before, count, after):
        reset = CountReset(Decimal(count))
        assert replay(before + [reset] + after) == replay(after, start=Decimal(count))

    @given(movements=st.lists(delta_movements(), max_size=25))
    def test_replay_matches_stepwise_application(self, movements):
        quantity = ZERO
        for movement in movements:
            quantity = apply_effect(quantity, effect_for(movement))
        assert replay(movements) == quantity

    @given(movements=st.lists(delta_movements(), min_size=1, max_size=25))
    def test_deltas_commute(self, movements):
        assert replay(movements) == replay(list(reversed(movements)))
