"""
KeyedLockRegistry -- per-(location, material) serialization.

Responsibility:
    Serialize the read-modify-write of an inventory level so two concurrent
    recorders for the same key cannot lose an update.

Architecture position:
    Kernel > Services.  Shared by the recorder, template applicator,
    check workflow and reconciler.  One registry per process
    (``default_lock_registry()``) unless a caller wires its own.

Invariants enforced:
    - Keys hash onto a fixed pool of ``threading.RLock`` shards.  Two keys may
      share a shard (extra serialization, never less).
    - Locks are re-entrant, so a service holding a key may call another
      service that takes the same key.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

DEFAULT_SHARDS = 64


class KeyedLockRegistry:
    """Fixed pool of re-entrant lock shards."""

    def __init__(self, shards: int = DEFAULT_SHARDS):
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._locks = tuple(threading.RLock() for _ in range(shards))

    @property
    def shards(self) -> int:
        return len(self._locks)

    def lock_for(self, location_id: str, material_id: str) -> threading.RLock:
        return self._locks[hash((location_id, material_id)) % len(self._locks)]

    @contextmanager
    def hold(self, location_id: str, material_id: str) -> Iterator[None]:
        """Hold the shard for ``(location_id, material_id)`` for the block."""
        lock = self.lock_for(location_id, material_id)
        with lock:
            yield


_default_registry: KeyedLockRegistry | None = None
_default_registry_lock = threading.Lock()


def default_lock_registry() -> KeyedLockRegistry:
    """Process-wide registry, created on first use."""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = KeyedLockRegistry()
        return _default_registry
