"""Read-only selectors for the inventory ledger kernel."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.stock_report_selector import (
    LowStockLine,
    ShortfallLine,
    StockReportSelector,
)
from inventory_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "BaseSelector",
    "LowStockLine",
    "ShortfallLine",
    "StockReportSelector",
    "TransactionSelector",
]
