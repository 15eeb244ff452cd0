"""
Module: inventory_kernel.selectors.base
Responsibility: Abstract base class for read-only ledger queries.  Selectors
    form the query side of the kernel and return frozen dataclasses, never raw
    store dicts.
Architecture position: Kernel > Selectors.  May import from store/, domain/
    and catalog.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors call ``get`` and ``query_by_prefix`` only.
    - Location ids are mapped to store partitions the same way the write
      side maps them.
"""

from abc import ABC

from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import PartitionResolver


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Non-goals:
        - BaseSelector does NOT define any query methods; subclasses
          implement the transaction history and stock reports.
    """

    def __init__(self, store: LedgerStore, partitions: PartitionResolver | None = None):
        self.store = store
        self.partitions = partitions or PartitionResolver()
