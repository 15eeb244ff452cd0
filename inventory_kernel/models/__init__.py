"""ORM models for the SQL-backed ledger store."""

from inventory_kernel.models.ledger_record import LedgerRecord, LedgerSequence

__all__ = ["LedgerRecord", "LedgerSequence"]
