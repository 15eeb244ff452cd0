"""
LedgerStore -- the key-value contract every ledger component writes through.

Responsibility:
    Addressable records under ``(partition_key, sort_key)`` with full-overwrite
    puts, partial merges with an optional equality condition, ordered prefix
    queries on the primary or the single secondary index, and a per-partition
    counter.

Architecture position:
    Kernel > Store.  Services depend on this ABC only; ``SqlLedgerStore`` and
    ``InMemoryLedgerStore`` are interchangeable.

Invariants enforced:
    - Records cross the boundary as plain dicts.  Callers get copies; mutating
      a returned dict never changes stored state.
    - ``update(..., expected=...)`` and ``put(..., expected=...)`` are atomic
      per record: the condition check and the write are one step.
    - ``put(..., create_only=True)`` succeeds for exactly one of several
      concurrent writers of a new key.
    - ``next_sequence`` is strictly increasing per ``(partition_key, name)``.

Failure modes:
    - RecordNotFoundError: ``update`` on a missing record.
    - OptimisticLockError: ``expected`` did not match the stored record, or
      a ``create_only`` put found the key taken.
    - ImmutabilityViolationError: overwrite of a transaction row.
"""

from abc import ABC, abstractmethod
from typing import Any

from inventory_kernel.exceptions import OptimisticLockError, RecordNotFoundError

IndexKey = tuple[str, str]


class LedgerStore(ABC):
    """Abstract ledger store."""

    @abstractmethod
    def get(self, partition_key: str, sort_key: str) -> dict[str, Any] | None:
        """Return the record or None."""

    @abstractmethod
    def put(
        self,
        partition_key: str,
        sort_key: str,
        record: dict[str, Any],
        index_key: IndexKey | None = None,
        *,
        expected: dict[str, Any] | None = None,
        create_only: bool = False,
    ) -> None:
        """
        Write ``record``, replacing whatever was stored under the key.

        Args:
            expected: Field values the stored record must hold for the
                overwrite to happen.
            create_only: Write only if nothing is stored under the key.

        Raises:
            RecordNotFoundError: ``expected`` given and nothing stored.
            OptimisticLockError: the ``expected`` or ``create_only``
                condition failed.
        """

    @abstractmethod
    def update(
        self,
        partition_key: str,
        sort_key: str,
        fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Merge ``fields`` into the stored record and return the result.

        Raises:
            RecordNotFoundError: nothing stored under the key.
            OptimisticLockError: a field in ``expected`` differs from the
                stored value.
        """

    @abstractmethod
    def query_by_prefix(
        self,
        partition_key: str,
        sort_key_prefix: str,
        limit: int | None = None,
        descending: bool = False,
        secondary_index: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Records whose sort key starts with ``sort_key_prefix``, ordered by
        sort key.  With ``secondary_index`` both keys address the index pair.
        """

    @abstractmethod
    def next_sequence(self, partition_key: str, name: str) -> int:
        """Allocate the next value (starting at 1) of a named counter."""


def check_expected(
    partition_key: str,
    sort_key: str,
    record: dict[str, Any],
    expected: dict[str, Any] | None,
) -> None:
    """Raise OptimisticLockError on the first ``expected`` field that differs."""
    for field, value in (expected or {}).items():
        if record.get(field) != value:
            raise OptimisticLockError(partition_key, sort_key, field)


def check_put_condition(
    partition_key: str,
    sort_key: str,
    record: dict[str, Any] | None,
    expected: dict[str, Any] | None,
    create_only: bool,
) -> None:
    """Apply the ``put`` conditions to the currently stored ``record``."""
    if create_only and record is not None:
        raise OptimisticLockError(partition_key, sort_key, "sort_key")
    if expected:
        if record is None:
            raise RecordNotFoundError(partition_key, sort_key)
        check_expected(partition_key, sort_key, record, expected)
