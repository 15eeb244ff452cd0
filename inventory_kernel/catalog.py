"""
Material Catalog Lookup.

Responsibility:
    Answer "does this material exist, and what is it called?".  The ledger
    uses the answer to reject movements of unknown materials and to enrich
    reports and exports; it never feeds into quantity math.

Architecture position:
    Kernel > Catalog.  A collaborator interface with three implementations:

    InMemoryMaterialCatalog   fixed dict, for tests and scripts
    StoreMaterialCatalog      records under ("CATALOG", "MATERIAL#" + id)
    LazyMaterialCatalog       builds its delegate on first use, once per process
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from inventory_kernel.domain.records import Material
from inventory_kernel.exceptions import MaterialNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import CATALOG_PARTITION, MATERIAL_PREFIX, catalog_sort_key

logger = get_logger("catalog")

UNKNOWN_MATERIAL_NAME = "Unknown Material"


class MaterialCatalog(ABC):
    """Read-only material lookup."""

    @abstractmethod
    def get_material(self, material_id: str) -> Material | None:
        """Return the material or None."""

    def require_material(self, material_id: str) -> Material:
        """
        Return the material.

        Raises:
            MaterialNotFoundError: material is unknown.
        """
        material = self.get_material(material_id)
        if material is None:
            raise MaterialNotFoundError(material_id)
        return material


class InMemoryMaterialCatalog(MaterialCatalog):
    def __init__(self, materials: Iterable[Material] = ()):
        self._materials = {m.material_id: m for m in materials}

    def add(self, material: Material) -> None:
        self._materials[material.material_id] = material

    def get_material(self, material_id: str) -> Material | None:
        return self._materials.get(material_id)


class StoreMaterialCatalog(MaterialCatalog):
    """Catalog kept in the ledger store itself."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def save_material(self, material: Material) -> Material:
        self._store.put(
            CATALOG_PARTITION, catalog_sort_key(material.material_id), material.to_record()
        )
        return material

    def get_material(self, material_id: str) -> Material | None:
        record = self._store.get(CATALOG_PARTITION, catalog_sort_key(material_id))
        return Material.from_record(record) if record is not None else None

    def list_materials(self) -> list[Material]:
        return [
            Material.from_record(record)
            for record in self._store.query_by_prefix(CATALOG_PARTITION, MATERIAL_PREFIX)
        ]


class LazyMaterialCatalog(MaterialCatalog):
    """
    Defers building the real catalog until the first lookup.

    The factory runs at most once per instance, even under concurrent first
    use.  A factory failure propagates and the next lookup retries.
    """

    def __init__(self, factory: Callable[[], MaterialCatalog]):
        self._factory = factory
        self._delegate: MaterialCatalog | None = None
        self._lock = threading.Lock()

    def _resolve(self) -> MaterialCatalog:
        if self._delegate is None:
            with self._lock:
                if self._delegate is None:
                    self._delegate = self._factory()
                    logger.info(
                        "material_catalog_initialized",
                        extra={"catalog_type": type(self._delegate).__name__},
                    )
        return self._delegate

    def get_material(self, material_id: str) -> Material | None:
        return self._resolve().get_material(material_id)
