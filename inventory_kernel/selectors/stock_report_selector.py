"""
Module: inventory_kernel.selectors.stock_report_selector
Responsibility: Per-location stock reports derived from current levels.

    shortfall   levels below their standard (par) quantity, biggest deficit
                first, with the catalog name
    low_stock   levels below their minimum quantity

Levels without a standard (or minimum) quantity never appear in the
respective report.
"""

from dataclasses import dataclass
from decimal import Decimal

from inventory_kernel.catalog import UNKNOWN_MATERIAL_NAME, MaterialCatalog
from inventory_kernel.domain.records import InventoryLevel
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import LEVEL_PREFIX, PartitionResolver


@dataclass(frozen=True)
class ShortfallLine:
    material_id: str
    name: str
    current_quantity: Decimal
    standard_quantity: Decimal

    @property
    def deficit(self) -> Decimal:
        return self.standard_quantity - self.current_quantity


@dataclass(frozen=True)
class LowStockLine:
    material_id: str
    name: str
    current_quantity: Decimal
    min_quantity: Decimal


class StockReportSelector(BaseSelector):
    def __init__(
        self,
        store: LedgerStore,
        catalog: MaterialCatalog,
        partitions: PartitionResolver | None = None,
    ):
        super().__init__(store, partitions)
        self._catalog = catalog

    def _levels(self, location_id: str) -> list[InventoryLevel]:
        return [
            InventoryLevel.from_record(r)
            for r in self.store.query_by_prefix(
                self.partitions.partition_for(location_id), LEVEL_PREFIX
            )
        ]

    def _name(self, material_id: str) -> str:
        material = self._catalog.get_material(material_id)
        return material.name if material is not None else UNKNOWN_MATERIAL_NAME

    def shortfall(self, location_id: str) -> list[ShortfallLine]:
        lines = [
            ShortfallLine(
                material_id=level.material_id,
                name=self._name(level.material_id),
                current_quantity=level.current_quantity,
                standard_quantity=level.standard_quantity,
            )
            for level in self._levels(location_id)
            if level.standard_quantity is not None
            and level.current_quantity < level.standard_quantity
        ]
        lines.sort(key=lambda line: (-line.deficit, line.material_id))
        return lines

    def low_stock(self, location_id: str) -> list[LowStockLine]:
        return [
            LowStockLine(
                material_id=level.material_id,
                name=self._name(level.material_id),
                current_quantity=level.current_quantity,
                min_quantity=level.min_quantity,
            )
            for level in self._levels(location_id)
            if level.min_quantity is not None and level.current_quantity < level.min_quantity
        ]
