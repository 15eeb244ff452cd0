"""
Module: inventory_kernel.selectors.transaction_selector
Responsibility: Transaction history queries, per location on the primary key
    and per material across locations on the secondary index.
"""

from inventory_kernel.domain.records import InventoryTransaction
from inventory_kernel.domain.values import TransactionType
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.store.keys import TRANSACTION_PREFIX, material_index_key


class TransactionSelector(BaseSelector):
    """Newest-first transaction history."""

    def for_location(
        self,
        location_id: str,
        limit: int | None = None,
        material_id: str | None = None,
        transaction_type: TransactionType | None = None,
    ) -> list[InventoryTransaction]:
        records = self.store.query_by_prefix(
            self.partitions.partition_for(location_id),
            TRANSACTION_PREFIX,
            # Filters apply after the query, so the limit does too.
            limit=limit if material_id is None and transaction_type is None else None,
            descending=True,
        )
        transactions = [InventoryTransaction.from_record(r) for r in records]
        if material_id is not None:
            transactions = [t for t in transactions if t.material_id == material_id]
        if transaction_type is not None:
            transactions = [t for t in transactions if t.transaction_type == transaction_type]
        return transactions[:limit] if limit is not None else transactions

    def for_material(
        self, material_id: str, limit: int | None = None
    ) -> list[InventoryTransaction]:
        """Movements of one material at every location."""
        return [
            InventoryTransaction.from_record(r)
            for r in self.store.query_by_prefix(
                material_index_key(material_id),
                TRANSACTION_PREFIX,
                limit=limit,
                descending=True,
                secondary_index=True,
            )
        ]
