"""
InMemoryLedgerStore -- dict-backed LedgerStore for tests and local use.

Every operation runs under one process-wide lock, so a conditional update is
atomic with respect to concurrent writers in the same process.  Transaction
rows follow the same append-only rule as the SQL store.
"""

import copy
import threading
from collections import defaultdict
from typing import Any

from inventory_kernel.exceptions import ImmutabilityViolationError, RecordNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.store.base import (
    IndexKey,
    LedgerStore,
    check_expected,
    check_put_condition,
)
from inventory_kernel.store.keys import TRANSACTION_PREFIX

logger = get_logger("store.memory")


class InMemoryLedgerStore(LedgerStore):
    """Thread-safe in-process ledger store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: dict[tuple[str, str], dict[str, Any]] = {}
        self._index: dict[tuple[str, str], IndexKey] = {}
        self._sequences: dict[tuple[str, str], int] = defaultdict(int)

    def get(self, partition_key: str, sort_key: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._records.get((partition_key, sort_key))
            return copy.deepcopy(record) if record is not None else None

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
        key = (partition_key, sort_key)
        with self._lock:
            if key in self._records and sort_key.startswith(TRANSACTION_PREFIX):
                self._reject(partition_key, sort_key, "UPDATE")
            check_put_condition(
                partition_key, sort_key, self._records.get(key), expected, create_only
            )
            self._records[key] = copy.deepcopy(record)
            if index_key is not None:
                self._index[key] = index_key
            else:
                self._index.pop(key, None)

    def update(
        self,
        partition_key: str,
        sort_key: str,
        fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        key = (partition_key, sort_key)
        with self._lock:
            current = self._records.get(key)
            if current is None:
                raise RecordNotFoundError(partition_key, sort_key)
            if sort_key.startswith(TRANSACTION_PREFIX):
                self._reject(partition_key, sort_key, "UPDATE")
            check_expected(partition_key, sort_key, current, expected)
            merged = {**current, **copy.deepcopy(fields)}
            self._records[key] = merged
            return copy.deepcopy(merged)

    def query_by_prefix(
        self,
        partition_key: str,
        sort_key_prefix: str,
        limit: int | None = None,
        descending: bool = False,
        secondary_index: bool = False,
    ) -> list[dict[str, Any]]:
        with self._lock:
            if secondary_index:
                matches = [
                    (index_key[1], key)
                    for key, index_key in self._index.items()
                    if index_key[0] == partition_key
                    and index_key[1].startswith(sort_key_prefix)
                ]
            else:
                matches = [
                    (key[1], key)
                    for key in self._records
                    if key[0] == partition_key and key[1].startswith(sort_key_prefix)
                ]
            # Index sort keys may collide across partitions; the primary key breaks ties.
            matches.sort(reverse=descending)
            if limit is not None:
                matches = matches[:limit]
            return [copy.deepcopy(self._records[key]) for _, key in matches]

    def next_sequence(self, partition_key: str, name: str) -> int:
        with self._lock:
            self._sequences[(partition_key, name)] += 1
            return self._sequences[(partition_key, name)]

    @staticmethod
    def _reject(partition_key: str, sort_key: str, operation: str) -> None:
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": "InventoryTransaction",
                "entity_id": f"{partition_key}/{sort_key}",
                "operation": operation,
            },
        )
        raise ImmutabilityViolationError(
            entity_type="InventoryTransaction",
            entity_id=f"{partition_key}/{sort_key}",
            reason="Inventory transactions are append-only and cannot be modified",
        )
