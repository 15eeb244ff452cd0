"""
SqlLedgerStore -- LedgerStore over SQLAlchemy.

Responsibility:
    Map the key-value contract onto the ``ledger_records`` and
    ``ledger_sequences`` tables.  Each call runs in its own
    ``session_scope()`` and commits before returning, so a written
    transaction row survives any later failure in the caller.

Architecture position:
    Kernel > Store.  Imports db/ and models/; never imports services.

Invariants enforced:
    - Conditional updates read the row ``FOR UPDATE`` (PostgreSQL) before
      checking ``expected``, so the check and the merge are one atomic step.
    - A ``create_only`` put that loses an insert race to another connection
      surfaces the unique-constraint violation as OptimisticLockError.
    - Sequence counters are incremented on a locked row.  The SQL
      aggregate-max-plus-one pattern is never used.
    - Transaction rows are append-only; the ORM listener in
      db/immutability.py raises on any UPDATE/DELETE.

Failure modes:
    - RecordNotFoundError / OptimisticLockError from ``update`` and from
      conditional ``put``.
    - ImmutabilityViolationError on overwriting a transaction row.
    - RuntimeError if the engine has not been initialized.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.engine import session_scope
from inventory_kernel.exceptions import OptimisticLockError, RecordNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.ledger_record import LedgerRecord, LedgerSequence
from inventory_kernel.store.base import (
    IndexKey,
    LedgerStore,
    check_expected,
    check_put_condition,
)

logger = get_logger("store.sql")


class SqlLedgerStore(LedgerStore):
    """
    Relational ledger store.

    Preconditions:
        ``init_engine_from_url()`` and ``create_tables()`` have run.
    """

    def get(self, partition_key: str, sort_key: str) -> dict[str, Any] | None:
        with session_scope() as session:
            row = self._find(session, partition_key, sort_key)
            return dict(row.record) if row is not None else None

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
        gsi1_pk, gsi1_sk = index_key if index_key is not None else (None, None)
        try:
            with session_scope() as session:
                row = self._find(session, partition_key, sort_key, for_update=True)
                check_put_condition(
                    partition_key,
                    sort_key,
                    row.record if row is not None else None,
                    expected,
                    create_only,
                )
                if row is None:
                    session.add(
                        LedgerRecord(
                            partition_key=partition_key,
                            sort_key=sort_key,
                            gsi1_pk=gsi1_pk,
                            gsi1_sk=gsi1_sk,
                            record=dict(record),
                        )
                    )
                else:
                    row.record = dict(record)
                    row.gsi1_pk = gsi1_pk
                    row.gsi1_sk = gsi1_sk
                session.flush()
        except IntegrityError:
            # A concurrent writer inserted the same key after our read.
            if not create_only:
                raise
            raise OptimisticLockError(partition_key, sort_key, "sort_key") from None

    def update(
        self,
        partition_key: str,
        sort_key: str,
        fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        with session_scope() as session:
            row = self._find(session, partition_key, sort_key, for_update=True)
            if row is None:
                raise RecordNotFoundError(partition_key, sort_key)
            check_expected(partition_key, sort_key, row.record, expected)
            # JSON columns track assignment, not in-place mutation.
            merged = {**row.record, **fields}
            row.record = merged
            session.flush()
            return dict(merged)

    def query_by_prefix(
        self,
        partition_key: str,
        sort_key_prefix: str,
        limit: int | None = None,
        descending: bool = False,
        secondary_index: bool = False,
    ) -> list[dict[str, Any]]:
        if secondary_index:
            stmt = select(LedgerRecord).where(
                LedgerRecord.gsi1_pk == partition_key,
                LedgerRecord.gsi1_sk.startswith(sort_key_prefix, autoescape=True),
            )
            order = [LedgerRecord.gsi1_sk, LedgerRecord.partition_key, LedgerRecord.sort_key]
        else:
            stmt = select(LedgerRecord).where(
                LedgerRecord.partition_key == partition_key,
                LedgerRecord.sort_key.startswith(sort_key_prefix, autoescape=True),
            )
            order = [LedgerRecord.sort_key]

        if descending:
            order = [column.desc() for column in order]
        stmt = stmt.order_by(*order)
        if limit is not None:
            stmt = stmt.limit(limit)

        with session_scope() as session:
            return [dict(row.record) for row in session.execute(stmt).scalars()]

    def next_sequence(self, partition_key: str, name: str) -> int:
        """
        Allocate the next counter value.

        The first allocation for a ``(partition_key, name)`` pair inserts the
        counter row.  If a concurrent writer inserts it first, the unique
        constraint fires and the allocation is retried against the now
        existing row.
        """
        for attempt in range(2):
            try:
                with session_scope() as session:
                    counter = session.execute(
                        select(LedgerSequence)
                        .where(
                            LedgerSequence.partition_key == partition_key,
                            LedgerSequence.name == name,
                        )
                        .with_for_update()
                    ).scalar_one_or_none()
                    if counter is None:
                        counter = LedgerSequence(
                            partition_key=partition_key, name=name, current_value=0
                        )
                        session.add(counter)
                    counter.current_value += 1
                    session.flush()
                    value = counter.current_value
                logger.debug(
                    "sequence_allocated",
                    extra={"partition_key": partition_key, "sequence_name": name, "value": value},
                )
                return value
            except IntegrityError:
                if attempt:
                    raise
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"partition_key": partition_key, "sequence_name": name},
                )
        raise AssertionError("unreachable")

    @staticmethod
    def _find(session, partition_key: str, sort_key: str, for_update: bool = False):
        stmt = select(LedgerRecord).where(
            LedgerRecord.partition_key == partition_key,
            LedgerRecord.sort_key == sort_key,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()
