"""
Typed Exception Hierarchy for the Inventory Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Handlers map ledger failures to transport responses. Parsing message strings
for that is fragile, so every failure has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (location, material, quantities)

Example - WRONG way to handle errors:
    try:
        coordinator.transfer(...)
    except Exception as e:
        if "not enough" in str(e):
            ...

Example - RIGHT way:
    try:
        coordinator.transfer(...)
    except InsufficientStockError as e:
        api_response(code=e.code, available=e.available, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryLedgerError (base)
    |
    +-- NotFoundError
    |   +-- ResourceNotFoundError
    |       +-- MaterialNotFoundError
    |       +-- LocationNotFoundError
    |       +-- TemplateNotFoundError
    |       +-- CheckNotFoundError
    |       +-- CheckItemNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidTransactionTypeError
    |   +-- InvalidTransferError
    |   +-- TemplateOwnerMismatchError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- WorkflowError
    |   +-- AlreadyCompletedError
    |
    +-- TransferError
    |   +-- PartialTransferError
    |
    +-- ConsistencyError
    |   +-- LevelUpdateError
    |
    +-- StoreError
        +-- RecordNotFoundError
        +-- OptimisticLockError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|------------------------------------------
Not found    | MATERIAL_NOT_FOUND        | Material unknown to the catalog
             | LOCATION_NOT_FOUND        | Location id does not resolve
             | TEMPLATE_NOT_FOUND        | Template id does not resolve
             | CHECK_NOT_FOUND           | Inventory check does not exist
             | CHECK_ITEM_NOT_FOUND      | Material not part of the check
-------------|---------------------------|------------------------------------------
Validation   | INVALID_QUANTITY          | Zero, NaN, non-finite, wrong sign
             | INVALID_TRANSACTION_TYPE  | Unknown transaction type
             | INVALID_TRANSFER          | Same source/destination, missing role
             | TEMPLATE_OWNER_MISMATCH   | Template saved for another company
-------------|---------------------------|------------------------------------------
Stock        | INSUFFICIENT_STOCK        | Outgoing quantity exceeds tracked level
-------------|---------------------------|------------------------------------------
Workflow     | ALREADY_COMPLETED         | Check completed or modified twice
-------------|---------------------------|------------------------------------------
Transfer     | PARTIAL_TRANSFER          | Destination failed after source write
-------------|---------------------------|------------------------------------------
Consistency  | LEVEL_UPDATE_FAILED       | Transaction logged, level not updated
-------------|---------------------------|------------------------------------------
Store        | RECORD_NOT_FOUND          | Partial update on a missing record
             | OPTIMISTIC_LOCK_CONFLICT  | Conditional update condition failed
             | IMMUTABILITY_VIOLATION    | UPDATE/DELETE of a transaction row

===============================================================================
HANDLING PATTERNS
===============================================================================

1. RECORDED BUT NOT REFLECTED:

    except LevelUpdateError as e:
        # The transaction row e.transaction_id exists; the level is stale
        # until LedgerReconciler.repair_level() runs.
        schedule_repair(e.location_id, e.material_id)

2. PARTIAL TRANSFERS ARE NOT RETRIED BLINDLY:

    except PartialTransferError as e:
        compensate(e.source_transaction_ids, e.failed_material_id)

3. CONTEXT:

    Services attach location/material/transaction type to ``error.context``
    before re-raising. The structured log formatter emits it as ``exc_context``.
"""

from decimal import Decimal
from typing import Any


class InventoryLedgerError(Exception):
    """
    Base exception for all inventory ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_LEDGER_ERROR"

    def __init__(self, message: str = ""):
        self.context: dict[str, Any] = {}
        super().__init__(message)

    def with_context(self, **fields: Any) -> "InventoryLedgerError":
        """Attach fields to ``context`` without overwriting existing keys."""
        for key, value in fields.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self


# Not-found exceptions


class NotFoundError(InventoryLedgerError):
    """Base exception for absent locations, materials, templates and checks."""

    code: str = "NOT_FOUND"


class ResourceNotFoundError(NotFoundError):
    """A referenced resource does not exist."""

    code: str = "RESOURCE_NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")


class MaterialNotFoundError(ResourceNotFoundError):
    """Material is unknown to the material catalog."""

    code: str = "MATERIAL_NOT_FOUND"

    def __init__(self, material_id: str):
        self.material_id = material_id
        super().__init__("Material", material_id)


class LocationNotFoundError(ResourceNotFoundError):
    """Location id does not resolve."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__("Location", location_id)


class TemplateNotFoundError(ResourceNotFoundError):
    """Case or vehicle template does not exist."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__("Template", template_id)


class CheckNotFoundError(ResourceNotFoundError):
    """Inventory check does not exist for the location."""

    code: str = "CHECK_NOT_FOUND"

    def __init__(self, check_id: str, location_id: str):
        self.check_id = check_id
        self.location_id = location_id
        super().__init__("Inventory check", f"{check_id} at {location_id}")


class CheckItemNotFoundError(ResourceNotFoundError):
    """Material is not part of the inventory check."""

    code: str = "CHECK_ITEM_NOT_FOUND"

    def __init__(self, check_id: str, material_id: str):
        self.check_id = check_id
        self.material_id = material_id
        super().__init__("Inventory check item", f"{material_id} in check {check_id}")


# Validation exceptions


class ValidationError(InventoryLedgerError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity is zero, NaN, non-finite, or has the wrong sign for its type."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: Any, reason: str):
        self.quantity = str(quantity)
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity}: {reason}")


class InvalidTransactionTypeError(ValidationError):
    """Transaction type is not a recognized TransactionType."""

    code: str = "INVALID_TRANSACTION_TYPE"

    def __init__(self, transaction_type: Any):
        self.transaction_type = str(transaction_type)
        super().__init__(f"Unknown transaction type: {transaction_type}")


class InvalidTransferError(ValidationError):
    """Transfer request is malformed."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, reason: str, source_id: str | None = None, destination_id: str | None = None):
        self.reason = reason
        self.source_id = source_id
        self.destination_id = destination_id
        super().__init__(f"Invalid transfer: {reason}")


class TemplateOwnerMismatchError(ValidationError):
    """Template belongs to a company other than the repository's."""

    code: str = "TEMPLATE_OWNER_MISMATCH"

    def __init__(self, template_id: str, owner_id: str, company_id: str):
        self.template_id = template_id
        self.owner_id = owner_id
        self.company_id = company_id
        super().__init__(
            f"Template {template_id} is owned by {owner_id}, not {company_id}"
        )


# Stock exceptions


class StockError(InventoryLedgerError):
    """Base exception for stock availability errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Requested outgoing quantity exceeds the tracked source quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, location_id: str, material_id: str, requested: Decimal, available: Decimal):
        self.location_id = location_id
        self.material_id = material_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough {material_id} at {location_id}: "
            f"requested {requested}, available {available}"
        )


# Workflow exceptions


class WorkflowError(InventoryLedgerError):
    """Base exception for state machine violations."""

    code: str = "WORKFLOW_ERROR"


class AlreadyCompletedError(WorkflowError):
    """Inventory check has already been completed (terminal state)."""

    code: str = "ALREADY_COMPLETED"

    def __init__(self, check_id: str):
        self.check_id = check_id
        super().__init__(f"Inventory check already completed: {check_id}")


# Transfer exceptions


class TransferError(InventoryLedgerError):
    """Base exception for multi-location transfer failures."""

    code: str = "TRANSFER_ERROR"


class PartialTransferError(TransferError):
    """
    A transfer was left partially applied.

    The source side of at least one item was recorded but a later write
    failed. Callers must compensate; retrying the transfer double-applies.
    """

    code: str = "PARTIAL_TRANSFER"

    def __init__(
        self,
        source_location_id: str,
        destination_location_id: str,
        failed_material_id: str,
        source_transaction_ids: list[str],
        destination_transaction_ids: list[str],
        reason: str,
    ):
        self.source_location_id = source_location_id
        self.destination_location_id = destination_location_id
        self.failed_material_id = failed_material_id
        self.source_transaction_ids = list(source_transaction_ids)
        self.destination_transaction_ids = list(destination_transaction_ids)
        self.reason = reason
        super().__init__(
            f"Transfer {source_location_id} -> {destination_location_id} partially "
            f"applied; failed at material {failed_material_id}: {reason}"
        )


# Consistency exceptions


class ConsistencyError(InventoryLedgerError):
    """Base exception for derived-state drift."""

    code: str = "CONSISTENCY_ERROR"


class LevelUpdateError(ConsistencyError):
    """
    Transaction was recorded but the derived level was not updated.

    The transaction log is never rolled back; the level stays stale until a
    reconciliation pass recomputes it from history.
    """

    code: str = "LEVEL_UPDATE_FAILED"

    def __init__(self, transaction_id: str, location_id: str, material_id: str, reason: str):
        self.transaction_id = transaction_id
        self.location_id = location_id
        self.material_id = material_id
        self.reason = reason
        super().__init__(
            f"Transaction {transaction_id} recorded but level {location_id}/{material_id} "
            f"was not updated: {reason}"
        )


# Store exceptions


class StoreError(InventoryLedgerError):
    """Base exception for ledger store failures."""

    code: str = "STORE_ERROR"


class RecordNotFoundError(StoreError):
    """Partial update addressed a record that does not exist."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, partition_key: str, sort_key: str):
        self.partition_key = partition_key
        self.sort_key = sort_key
        super().__init__(f"Record not found: ({partition_key}, {sort_key})")


class OptimisticLockError(StoreError):
    """Conditional update found a different value than expected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, partition_key: str, sort_key: str, field: str):
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.field = field
        super().__init__(
            f"Optimistic lock conflict on ({partition_key}, {sort_key}): "
            f"field '{field}' was modified by another writer"
        )


class ImmutabilityViolationError(StoreError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
