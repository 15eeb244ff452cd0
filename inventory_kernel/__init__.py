"""
Inventory Ledger Kernel.

Tracks material quantities across the company warehouse, vehicles and
employee cases.  Every movement is an immutable transaction; the current
quantity per (location, material) is a derived level kept consistent with
that history.
"""

__version__ = "0.1.0"
