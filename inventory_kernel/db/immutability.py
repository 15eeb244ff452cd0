"""
ORM-Level Immutability Enforcement for the transaction log.

===============================================================================
WHY THIS EXISTS
===============================================================================

The transaction log is the source of truth; inventory levels are a cache
derived from it.  If a transaction row could be edited after the fact, a
replay would no longer explain the stored level and drift would become
undetectable.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events for ledger rows whose
sort key marks them as transactions:

    session.flush()
         |
         v
    [before_update event] --> _check_transaction_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_transaction_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Levels, checks, templates and catalog rows share the same table but are
mutable; only ``TRANSACTION#`` rows are protected.

===============================================================================
USAGE
===============================================================================

Called by create_tables() by default:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_transaction_immutability(mapper, connection, target):
    """Prevent any update to a transaction row."""
    if not target.is_transaction:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryTransaction",
            "entity_id": f"{target.partition_key}/{target.sort_key}",
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryTransaction",
        entity_id=f"{target.partition_key}/{target.sort_key}",
        reason="Inventory transactions are append-only and cannot be modified",
    )


def _check_transaction_delete(mapper, connection, target):
    """Prevent deletion of a transaction row."""
    if not target.is_transaction:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryTransaction",
            "entity_id": f"{target.partition_key}/{target.sort_key}",
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryTransaction",
        entity_id=f"{target.partition_key}/{target.sort_key}",
        reason="Inventory transactions cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register the transaction-log immutability listeners.

    Safe to call more than once; a listener already attached is skipped.
    """
    from inventory_kernel.models.ledger_record import LedgerRecord

    for event_name, listener_fn in (
        ("before_update", _check_transaction_immutability),
        ("before_delete", _check_transaction_delete),
    ):
        if not event.contains(LedgerRecord, event_name, listener_fn):
            event.listen(LedgerRecord, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the immutability listeners.

    WARNING: Only use this in tests that intentionally violate immutability.
    """
    from inventory_kernel.models.ledger_record import LedgerRecord

    _safe_remove_listener(LedgerRecord, "before_update", _check_transaction_immutability)
    _safe_remove_listener(LedgerRecord, "before_delete", _check_transaction_delete)
