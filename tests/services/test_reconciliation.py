"""
Tests for LedgerReconciler (``inventory_kernel.services.reconciliation``).

Invariants tested:
- Replay of the transaction log equals the stored level after any sequence
  of recorded movements.
- ``inventory_check`` rows are reset points.
- Drift is detected and repaired without writing a transaction.
"""

from decimal import Decimal

import pytest

from inventory_kernel.domain.values import TransferRole
from inventory_kernel.services.transfer_coordinator import TransferItem


class TestReplayConsistency:
    def test_mixed_history(self, recorder, levels, reconciler, actor):
        recorder.record("vehicle-A", "M1", "purchase", 10, actor)
        recorder.record("vehicle-A", "M1", "usage", 2, actor)
        recorder.record("vehicle-A", "M1", "adjustment", "-1.25", actor)
        recorder.record("vehicle-A", "M1", "damage", 1, actor)
        recorder.record("vehicle-A", "M1", "transfer", 3, actor, transfer_role=TransferRole.INCOMING)
        recorder.record("vehicle-A", "M1", "return", 1, actor)

        stored = levels.get_level("vehicle-A", "M1").current_quantity
        assert stored == Decimal("9.75")
        assert reconciler.replay_quantity("vehicle-A", "M1") == stored

    def test_count_is_reset_point(self, recorder, reconciler, actor):
        recorder.record("case-42", "M1", "purchase", 10, actor)
        recorder.record("case-42", "M1", "usage", 7, actor)
        recorder.record("case-42", "M1", "inventory_check", 5, actor)
        recorder.record("case-42", "M1", "stock", 1, actor)
        assert reconciler.replay_quantity("case-42", "M1") == Decimal("6")

    def test_materials_replay_independently(self, recorder, reconciler, actor):
        recorder.record("case-42", "M1", "purchase", 10, actor)
        recorder.record("case-42", "M2", "purchase", 3, actor)
        assert reconciler.replay_quantity("case-42", "M1") == Decimal("10")
        assert reconciler.replay_quantity("case-42", "M2") == Decimal("3")
        assert reconciler.replay_quantity("case-42", "M3") == Decimal("0")

    def test_transfer_keeps_both_sides_consistent(self, coordinator, reconciler, stock, actor):
        stock("vehicle-A", "M1", 5)
        coordinator.transfer("vehicle-A", "vehicle-B", [TransferItem("M1", Decimal("5"))], actor)
        assert reconciler.verify_location("vehicle-A") == []
        assert reconciler.verify_location("vehicle-B") == []

    def test_get_level_is_idempotent(self, levels, stock):
        stock("case-42", "M1", 3)
        assert levels.get_level("case-42", "M1") == levels.get_level("case-42", "M1")


class TestDriftRepair:
    @pytest.fixture
    def drifted(self, recorder, levels, actor):
        recorder.record("case-42", "M1", "purchase", 10, actor)
        recorder.record("case-42", "M1", "usage", 4, actor)
        recorder.record("case-42", "M2", "purchase", 2, actor)
        # Simulate a level write that never landed.
        levels.upsert_level("case-42", "M1", Decimal("10"), "crashed-writer")

    def test_verify_reports_drift(self, reconciler, drifted, captured_logs):
        [drift] = reconciler.verify_location("case-42")
        assert drift.material_id == "M1"
        assert drift.stored_quantity == Decimal("10")
        assert drift.replayed_quantity == Decimal("6")
        assert drift.difference == Decimal("4")
        assert any(r["message"] == "level_drift_detected" for r in captured_logs())

    def test_repair(self, ledger, reconciler, levels, drifted, actor):
        before = len(ledger.transactions.for_location("case-42"))

        repaired = reconciler.repair_level("case-42", "M1", actor)

        assert repaired.current_quantity == Decimal("6")
        assert levels.get_level("case-42", "M1").current_quantity == Decimal("6")
        assert len(ledger.transactions.for_location("case-42")) == before
        assert reconciler.verify_location("case-42") == []

    def test_repair_of_matching_level_is_noop(self, reconciler, drifted, actor):
        assert reconciler.repair_level("case-42", "M2", actor) is None
