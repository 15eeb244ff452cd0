"""
BaseService -- abstract base for the ledger services.

Responsibility:
    Common constructor for every service that reads or writes the ledger:
    a LedgerStore and an injected Clock.

Architecture position:
    Kernel > Services.  Every service in ``inventory_kernel/services/`` that
    touches the store extends this class.

Invariants enforced:
    - Services never call ``datetime.now()``; timestamps come from
      ``self.clock`` so ledgers are reproducible under a DeterministicClock.
    - Services never talk to SQLAlchemy directly; the store owns sessions
      and commits.
"""

from abc import ABC

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.store.base import LedgerStore


class BaseService(ABC):
    """
    Abstract base class for ledger services.

    Non-goals:
        - Does NOT provide read-only report queries; those belong in
          ``inventory_kernel/selectors/``.
    """

    def __init__(self, store: LedgerStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()
