"""
Partition and sort key conventions for ledger records.

    level        (location_id, "INVENTORY#" + material_id)
    transaction  (location_id, "TRANSACTION#" + iso_timestamp + "#" + seq)
                 index: ("MATERIAL#" + material_id, same sort key)
    check        (location_id, "CHECK#" + check_id)
    template     ("COMPANY#" + company_id, "TEMPLATE#" + template_id)
    material     ("CATALOG", "MATERIAL#" + material_id)

Warehouse stock is a company-wide pool.  Its levels, transactions and checks
live in the "COMPANY#" + company_id partition; the configured warehouse
location id is only the public name of that partition (``PartitionResolver``).

The zero-padded sequence keeps transactions written within the same clock
tick in write order under a plain string sort.
"""

from dataclasses import dataclass
from datetime import datetime

from inventory_kernel.exceptions import LocationNotFoundError

LEVEL_PREFIX = "INVENTORY#"
TRANSACTION_PREFIX = "TRANSACTION#"
CHECK_PREFIX = "CHECK#"
TEMPLATE_PREFIX = "TEMPLATE#"
MATERIAL_PREFIX = "MATERIAL#"
COMPANY_PREFIX = "COMPANY#"
CATALOG_PARTITION = "CATALOG"

TRANSACTION_SEQUENCE = "transaction"
DEFAULT_WAREHOUSE_LOCATION_ID = "WAREHOUSE"

_SEQ_WIDTH = 12


def level_sort_key(material_id: str) -> str:
    return f"{LEVEL_PREFIX}{material_id}"


def transaction_sort_key(created_at: datetime, sequence: int) -> str:
    return f"{TRANSACTION_PREFIX}{created_at.isoformat()}#{sequence:0{_SEQ_WIDTH}d}"


def material_index_key(material_id: str) -> str:
    return f"{MATERIAL_PREFIX}{material_id}"


def check_sort_key(check_id: str) -> str:
    return f"{CHECK_PREFIX}{check_id}"


def company_partition(owner_id: str) -> str:
    return f"{COMPANY_PREFIX}{owner_id}"


def template_sort_key(template_id: str) -> str:
    return f"{TEMPLATE_PREFIX}{template_id}"


def catalog_sort_key(material_id: str) -> str:
    return f"{MATERIAL_PREFIX}{material_id}"


@dataclass(frozen=True)
class PartitionResolver:
    """
    Maps a public location id to the partition its records live in.

    The configured warehouse id and the company partition itself both
    resolve to ``COMPANY#<company_id>``; every other id is its own
    partition.  Without a ``company_id`` the mapping is the identity.  A
    blank id resolves nowhere.
    """

    company_id: str | None = None
    warehouse_location_id: str = DEFAULT_WAREHOUSE_LOCATION_ID

    def partition_for(self, location_id: str) -> str:
        """
        Raises:
            LocationNotFoundError: ``location_id`` is blank.
        """
        if not location_id or not location_id.strip():
            raise LocationNotFoundError(location_id)
        if self.company_id is not None and location_id == self.warehouse_location_id:
            return company_partition(self.company_id)
        return location_id
