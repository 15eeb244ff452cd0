"""Ledger store contract and its SQL and in-memory implementations."""

from inventory_kernel.store.base import IndexKey, LedgerStore
from inventory_kernel.store.memory_store import InMemoryLedgerStore
from inventory_kernel.store.sql_store import SqlLedgerStore

__all__ = ["IndexKey", "LedgerStore", "InMemoryLedgerStore", "SqlLedgerStore"]
