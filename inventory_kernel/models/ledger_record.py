"""
Module: inventory_kernel.models.ledger_record
Responsibility: ORM persistence for the key-value ledger store.
Architecture position: Kernel > Models.  May import from db/base.py only.

Every ledger record (level, transaction, check, template, catalog entry) is
one ``LedgerRecord`` row addressed by ``(partition_key, sort_key)``.  The
optional ``gsi1_pk``/``gsi1_sk`` pair is the single secondary index; the
transaction log uses it to list a material's movements across locations.

Invariants enforced:
    - (partition_key, sort_key) is unique.
    - Rows whose sort key starts with ``TRANSACTION#`` are append-only
      (see db/immutability.py).
    - ``LedgerSequence.current_value`` only grows; it is incremented under
      ``SELECT ... FOR UPDATE``.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, TrackedBase

TRANSACTION_PREFIX = "TRANSACTION#"


class LedgerRecord(TrackedBase):
    """
    One addressable ledger record.

    Guarantees:
        - ``record`` holds a JSON-safe dict (decimals and timestamps as
          strings).
        - The secondary index columns are NULL for records that are not
          indexed.
    """

    __tablename__ = "ledger_records"

    __table_args__ = (
        UniqueConstraint("partition_key", "sort_key", name="uq_ledger_record_key"),
        Index("idx_ledger_gsi1", "gsi1_pk", "gsi1_sk"),
    )

    partition_key: Mapped[str] = mapped_column(String(200), nullable=False)

    sort_key: Mapped[str] = mapped_column(String(300), nullable=False)

    gsi1_pk: Mapped[str | None] = mapped_column(String(200), nullable=True)

    gsi1_sk: Mapped[str | None] = mapped_column(String(300), nullable=True)

    record: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    @property
    def is_transaction(self) -> bool:
        return self.sort_key.startswith(TRANSACTION_PREFIX)

    def __repr__(self) -> str:
        return f"<LedgerRecord {self.partition_key} {self.sort_key}>"


class LedgerSequence(Base):
    """
    Named counter per partition.

    Each row represents one sequence (e.g. the transaction counter of a
    location) with its current value.
    """

    __tablename__ = "ledger_sequences"

    __table_args__ = (
        UniqueConstraint("partition_key", "name", name="uq_ledger_sequence"),
    )

    partition_key: Mapped[str] = mapped_column(String(200), nullable=False)

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
