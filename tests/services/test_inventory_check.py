"""
Tests for InventoryCheckWorkflow (``inventory_kernel.services.inventory_check``).

Invariants tested:
- ``pending -> completed`` is the only transition; completed is terminal.
- Expected quantities are snapshotted from standard quantities.
- Variance splits into missing and extra and is set only on completion.
- Reconciliation resets levels through inventory_check transactions, so the
  reconciled level replays from the log.
- A count that lands while a check is being completed is never dropped.
- Stock-check stamps are written while holding the level lock.
- The configured warehouse id addresses the company partition.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from inventory_kernel.domain.records import CheckItem
from inventory_kernel.domain.values import CheckStatus, TransactionType
from inventory_kernel.exceptions import (
    AlreadyCompletedError,
    CheckItemNotFoundError,
    CheckNotFoundError,
    InvalidQuantityError,
    NotFoundError,
    OptimisticLockError,
)
from inventory_kernel.services.inventory_check import compute_variance


# =========================================================================
# compute_variance
# =========================================================================


class TestComputeVariance:
    def test_split(self):
        variance = compute_variance(
            (
                CheckItem("M1", Decimal("10"), Decimal("6")),
                CheckItem("M2", Decimal("2"), Decimal("5")),
                CheckItem("M3", Decimal("4"), Decimal("4")),
            )
        )
        assert [(v.material_id, v.quantity) for v in variance.missing] == [("M1", Decimal("4"))]
        assert [(v.material_id, v.quantity) for v in variance.extra] == [("M2", Decimal("3"))]
        assert not variance.is_clean

    def test_clean(self):
        variance = compute_variance((CheckItem("M1", Decimal("1"), Decimal("1")),))
        assert variance.is_clean


# =========================================================================
# The case-42 scenario
# =========================================================================


class TestCase42Scenario:
    def test_count_and_reconcile(self, ledger, checks, recorder, levels, reconciler, actor, clock):
        recorder.record("case-42", "M1", "purchase", 10, actor)
        recorder.record("case-42", "M1", "usage", 3, actor)
        assert levels.get_level("case-42", "M1").current_quantity == Decimal("7")

        check = checks.create_check("case-42", actor)
        assert check.status is CheckStatus.PENDING
        assert [(i.material_id, i.expected_quantity, i.actual_quantity) for i in check.items] == [
            ("M1", Decimal("10"), Decimal("0"))
        ]

        clock.advance(60)
        checks.record_item_count(check.check_id, "case-42", "M1", 6, actor_id=actor)
        completed = checks.complete_check(check.check_id, "case-42", True, actor)

        assert completed.completed
        assert completed.reconciled
        assert [(v.material_id, v.quantity) for v in completed.variance.missing] == [
            ("M1", Decimal("4"))
        ]
        assert completed.variance.extra == ()

        level = levels.get_level("case-42", "M1")
        assert level.current_quantity == Decimal("6")
        assert level.last_stock_check == clock.now()

        [reset, *_] = ledger.transactions.for_location("case-42")
        assert reset.transaction_type is TransactionType.INVENTORY_CHECK
        assert reset.quantity == Decimal("6")
        assert reconciler.replay_quantity("case-42", "M1") == Decimal("6")

        stored = checks.get_check(check.check_id, "case-42")
        assert stored == completed

    def test_complete_without_reconcile(self, checks, stock, levels, actor):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        checks.record_item_count(check.check_id, "case-42", "M1", 6, actor_id=actor)

        completed = checks.complete_check(check.check_id, "case-42", False, actor)

        assert not completed.reconciled
        assert completed.variance.missing[0].quantity == Decimal("4")
        level = levels.get_level("case-42", "M1")
        assert level.current_quantity == Decimal("10")
        assert level.last_stock_check is not None


# =========================================================================
# Creation and counting
# =========================================================================


class TestCreateAndCount:
    def test_snapshot_of_empty_location(self, checks, actor):
        check = checks.create_check("case-99", actor, notes="first")
        assert check.items == ()
        assert check.notes == "first"
        assert check.variance.is_clean

    def test_items_sorted_by_material(self, checks, stock, actor):
        stock("case-42", "M2", 1)
        stock("case-42", "M1", 1)
        check = checks.create_check("case-42", actor)
        assert [item.material_id for item in check.items] == ["M1", "M2"]

    def test_expected_does_not_follow_later_movements(self, checks, stock, actor):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        stock("case-42", "M1", 5)
        counted = checks.record_item_count(check.check_id, "case-42", "M1", 12, actor_id=actor)
        assert counted.item("M1").expected_quantity == Decimal("10")

    def test_count_overwrites_and_keeps_notes(self, checks, stock, actor):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        checks.record_item_count(check.check_id, "case-42", "M1", 3, notes="torn box", actor_id=actor)
        updated = checks.record_item_count(check.check_id, "case-42", "M1", 4, actor_id=actor)

        item = updated.item("M1")
        assert item.actual_quantity == Decimal("4")
        assert item.notes == "torn box"
        assert checks.get_check(check.check_id, "case-42").item("M1") == item
        assert updated.status is CheckStatus.PENDING

    def test_missing_check(self, checks, actor):
        with pytest.raises(CheckNotFoundError) as exc_info:
            checks.record_item_count("nope", "case-42", "M1", 1, actor_id=actor)
        assert isinstance(exc_info.value, NotFoundError)

    def test_missing_item(self, checks, stock, actor):
        stock("case-42", "M1", 1)
        check = checks.create_check("case-42", actor)
        with pytest.raises(CheckItemNotFoundError) as exc_info:
            checks.record_item_count(check.check_id, "case-42", "M2", 1, actor_id=actor)
        assert exc_info.value.code == "CHECK_ITEM_NOT_FOUND"

    @pytest.mark.parametrize("count", [-1, "Infinity", "NaN"])
    def test_invalid_count(self, checks, stock, actor, count):
        stock("case-42", "M1", 1)
        check = checks.create_check("case-42", actor)
        with pytest.raises(InvalidQuantityError):
            checks.record_item_count(check.check_id, "case-42", "M1", count, actor_id=actor)

    def test_zero_count_allowed(self, checks, stock, actor):
        stock("case-42", "M1", 1)
        check = checks.create_check("case-42", actor)
        counted = checks.record_item_count(check.check_id, "case-42", "M1", 0, actor_id=actor)
        assert counted.item("M1").actual_quantity == Decimal("0")

    def test_list_checks_newest_first(self, checks, actor, clock):
        first = checks.create_check("case-42", actor)
        clock.advance(10)
        second = checks.create_check("case-42", actor)
        checks.create_check("case-7", actor)

        assert [c.check_id for c in checks.list_checks("case-42")] == [
            second.check_id,
            first.check_id,
        ]
        assert [c.check_id for c in checks.list_checks("case-42", limit=1)] == [second.check_id]


# =========================================================================
# Terminal state
# =========================================================================


class TestCompletedIsTerminal:
    def test_second_completion_rejected(self, checks, stock, actor):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        checks.record_item_count(check.check_id, "case-42", "M1", 6, actor_id=actor)
        first = checks.complete_check(check.check_id, "case-42", False, actor)

        with pytest.raises(AlreadyCompletedError) as exc_info:
            checks.complete_check(check.check_id, "case-42", True, actor)

        assert exc_info.value.code == "ALREADY_COMPLETED"
        assert checks.get_check(check.check_id, "case-42").variance == first.variance

    def test_count_after_completion_rejected(self, checks, stock, actor):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        checks.complete_check(check.check_id, "case-42", False, actor)

        with pytest.raises(AlreadyCompletedError):
            checks.record_item_count(check.check_id, "case-42", "M1", 1, actor_id=actor)

    def test_lost_race_maps_to_already_completed(self, checks, stock, actor, store):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        # Another worker completes the check between our read and our write.
        original_get = checks.get_check

        def stale_get(check_id, location_id):
            snapshot = original_get(check_id, location_id)
            store.update(
                location_id,
                f"CHECK#{check_id}",
                {"status": CheckStatus.COMPLETED.value, "completed": True},
            )
            return snapshot

        checks.get_check = stale_get
        with pytest.raises(AlreadyCompletedError):
            checks.complete_check(check.check_id, "case-42", True, actor)

    def test_concurrent_count_conflict_surfaces(self, checks, stock, actor, store, clock):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        original_get = checks.get_check

        def stale_get(check_id, location_id):
            snapshot = original_get(check_id, location_id)
            clock.advance(1)
            store.update(
                location_id,
                f"CHECK#{check_id}",
                {"updated_at": clock.now().isoformat()},
            )
            return snapshot

        checks.get_check = stale_get
        with pytest.raises(OptimisticLockError) as exc_info:
            checks.record_item_count(check.check_id, "case-42", "M1", 3, actor_id=actor)
        assert exc_info.value.field == "updated_at"

    def test_count_during_completion_is_not_dropped(self, checks, stock, actor, clock):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        original_get = checks.get_check

        def get_then_count(check_id, location_id):
            snapshot = original_get(check_id, location_id)
            checks.get_check = original_get
            clock.advance(1)
            checks.record_item_count(check_id, location_id, "M1", 7, actor_id="other")
            return snapshot

        checks.get_check = get_then_count
        with pytest.raises(OptimisticLockError) as exc_info:
            checks.complete_check(check.check_id, "case-42", False, actor)
        assert exc_info.value.field == "updated_at"

        stored = checks.get_check(check.check_id, "case-42")
        assert stored.status is CheckStatus.PENDING
        assert stored.item("M1").actual_quantity == Decimal("7")

        completed = checks.complete_check(check.check_id, "case-42", False, actor)
        assert [(line.material_id, line.quantity) for line in completed.variance.missing] == [
            ("M1", Decimal("3"))
        ]


# =========================================================================
# Stock-check stamps
# =========================================================================


class TestStockCheckStamp:
    def test_stamp_holds_the_level_lock(self, checks, levels, recorder, stock, actor, monkeypatch):
        stock("case-42", "M1", 10)
        check = checks.create_check("case-42", actor)
        before = levels.get_level("case-42", "M1")
        lock_held = []
        original = levels.mark_stock_checked

        def stamp(location_id, material_id, checked_at, actor_id):
            lock = recorder.locks.lock_for(location_id, material_id)
            with ThreadPoolExecutor(max_workers=1) as pool:
                lock_held.append(not pool.submit(lock.acquire, False).result())
            return original(location_id, material_id, checked_at, actor_id)

        monkeypatch.setattr(levels, "mark_stock_checked", stamp)
        checks.complete_check(check.check_id, "case-42", False, actor)

        assert lock_held == [True]
        after = levels.get_level("case-42", "M1")
        assert after.last_stock_check is not None
        assert after.version == before.version + 1
        assert after.current_quantity == before.current_quantity


# =========================================================================
# Warehouse checks
# =========================================================================


class TestWarehouseChecks:
    def test_warehouse_id_checks_company_stock(self, checks, warehouse, stock, actor):
        stock("WAREHOUSE", "M1", 10)

        check = checks.create_check("WAREHOUSE", actor)

        assert [item.material_id for item in check.items] == ["M1"]
        assert check.location_id == warehouse.partition_id
        assert [c.check_id for c in checks.list_checks(warehouse.partition_id)] == [check.check_id]
        checks.record_item_count(check.check_id, "WAREHOUSE", "M1", 8, actor_id=actor)
        checks.complete_check(check.check_id, "WAREHOUSE", True, actor)
        assert warehouse.get_level("M1").current_quantity == Decimal("8")
