"""
Settings schema (``inventory_config.schema``).

Responsibility
--------------
Defines ``LedgerSettings``, the frozen, validated set of knobs used to wire
an ``InventoryLedger``: which store backend, which database, which location
id stands for the warehouse, and how strict transfers are.

Architecture position
---------------------
**Config layer**.  Pure dataclasses, no I/O.  Parsed by
``inventory_config.loader`` and consumed by ``inventory_kernel.ledger``.

Invariants enforced
-------------------
* Every ``LedgerSettings`` instance has passed ``__post_init__`` validation.
* Unknown keys in the source mapping are rejected, not ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

VALID_STORE_BACKENDS = frozenset({"sql", "memory"})
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings of one inventory ledger."""

    company_id: str = "default"
    database_url: str = "sqlite://"
    store_backend: str = "sql"
    warehouse_location_id: str = "WAREHOUSE"
    lock_shards: int = 64
    enforce_transfer_stock_check: bool = True
    log_level: str = "INFO"
    echo_sql: bool = False

    def __post_init__(self):
        if self.store_backend not in VALID_STORE_BACKENDS:
            raise ValueError(
                f"store_backend must be one of {sorted(VALID_STORE_BACKENDS)}, "
                f"got '{self.store_backend}'"
            )
        if not self.company_id:
            raise ValueError("company_id is required")
        if not self.warehouse_location_id:
            raise ValueError("warehouse_location_id is required")
        if self.store_backend == "sql" and not self.database_url:
            raise ValueError("database_url is required for the sql store backend")
        if isinstance(self.lock_shards, bool) or not isinstance(self.lock_shards, int):
            raise ValueError(f"lock_shards must be an integer, got {self.lock_shards!r}")
        if self.lock_shards < 1:
            raise ValueError(f"lock_shards must be >= 1, got {self.lock_shards}")
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got '{self.log_level}'"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerSettings:
        """
        Build settings from a parsed mapping.

        Raises:
            ValueError: unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
