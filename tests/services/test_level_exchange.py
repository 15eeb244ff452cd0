"""
Tests for level import and export rows (``inventory_kernel.services.level_exchange``).
"""

from decimal import Decimal

from inventory_kernel.catalog import InMemoryMaterialCatalog
from inventory_kernel.domain.values import TransactionType
from inventory_kernel.services.level_exchange import EXPORT_COLUMNS, export_rows, import_rows


class TestImportRows:
    def test_sets_levels(self, ledger, recorder, levels, stock, actor):
        stock("case-42", "M1", 9)

        result = import_rows(
            recorder,
            "case-42",
            [
                {"material_id": "M1", "quantity": "3", "standard_quantity": "5", "location": "Shelf 2"},
                {"material_id": " M2 ", "quantity": 7},
            ],
            actor,
        )

        assert (result.total_rows, result.success_rows, result.failed_rows) == (2, 2, 0)
        m1 = levels.get_level("case-42", "M1")
        assert m1.current_quantity == Decimal("3")
        assert m1.standard_quantity == Decimal("5")
        assert m1.location == "Shelf 2"
        assert levels.get_level("case-42", "M2").current_quantity == Decimal("7")

        latest = ledger.transactions.for_location("case-42", limit=1)[0]
        assert latest.transaction_type is TransactionType.INVENTORY_CHECK
        assert latest.notes == "level import"

    def test_bad_rows_are_reported_and_skipped(self, recorder, levels, actor, captured_logs):
        result = import_rows(
            recorder,
            "case-42",
            [
                {"material_id": "", "quantity": "1"},
                {"material_id": "M1", "quantity": "4"},
                {"material_id": "M2"},
                {"material_id": "M404", "quantity": "1"},
                {"material_id": "M3", "quantity": "-2"},
            ],
            actor,
        )

        assert (result.total_rows, result.success_rows, result.failed_rows) == (5, 1, 4)
        assert [row for row, _ in result.errors] == [1, 3, 4, 5]
        assert "material_id is required" in result.errors[0][1]
        assert levels.get_level("case-42", "M1").current_quantity == Decimal("4")
        assert levels.get_level("case-42", "M3") is None

        [summary] = [r for r in captured_logs() if r["message"] == "level_import_completed"]
        assert summary["failed_rows"] == 4

    def test_empty_import(self, recorder, actor):
        result = import_rows(recorder, "case-42", [], actor)
        assert (result.total_rows, result.success_rows, result.failed_rows) == (0, 0, 0)


class TestExportRows:
    def test_enriched_and_sorted(self, levels, catalog, stock):
        stock("case-42", "M3", 2)
        stock("case-42", "M1", 5)
        levels.upsert_level("case-42", "M1", Decimal("5"), "user-test", location="Top")

        rows = export_rows(levels, catalog, "case-42")

        assert [row["material_id"] for row in rows] == ["M1", "M3"]
        assert set(rows[0]) == set(EXPORT_COLUMNS)
        assert rows[0]["name"] == "Gauze Pads"
        assert rows[0]["category"] == "Wound Care"
        assert rows[0]["location"] == "Top"
        assert rows[1]["current_quantity"] == Decimal("2")
        assert rows[1]["location"] == ""

    def test_unknown_material_name(self, levels, store):
        levels.upsert_level("case-42", "M9", Decimal("1"), "user-test")
        [row] = export_rows(levels, InMemoryMaterialCatalog(), "case-42")
        assert row["name"] == "Unknown Material"
        assert row["category"] == ""
