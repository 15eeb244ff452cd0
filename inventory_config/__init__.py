"""
inventory_config -- single public entrypoint for ledger settings.

Responsibility:
    Provides ``get_active_settings()``, the one way the ledger wiring obtains
    its configuration.  Reads the YAML file named by the
    ``INVENTORY_LEDGER_CONFIG`` environment variable when set, otherwise the
    packaged ``defaults.yaml``, then applies per-field environment overrides.

Architecture position:
    Configuration.  Sits beside ``inventory_kernel``; the kernel's services
    never import it.  Only ``inventory_kernel.ledger`` consumes settings.

Failure modes:
    - ``FileNotFoundError`` -- the configured path does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every call emits an ``INVENTORY_CONFIG_TRACE`` log entry with the
    settings checksum and the source path.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from inventory_config.loader import compute_checksum, load_settings
from inventory_config.schema import LedgerSettings

_logger = logging.getLogger("inventory_kernel.config")

CONFIG_PATH_ENV = "INVENTORY_LEDGER_CONFIG"

__all__ = [
    "CONFIG_PATH_ENV",
    "LedgerSettings",
    "compute_checksum",
    "get_active_settings",
    "load_settings",
]


def get_active_settings(config_path: Path | None = None) -> LedgerSettings:
    """
    Return the settings the ledger should run with.

    Args:
        config_path: Explicit YAML file.  Defaults to the path in
            ``INVENTORY_LEDGER_CONFIG``, or the packaged defaults when that
            variable is unset.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        config_path = Path(env_path) if env_path else None

    settings = load_settings(config_path)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_path": str(config_path) if config_path else "defaults",
            "checksum": compute_checksum(settings),
            "store_backend": settings.store_backend,
            "company_id": settings.company_id,
        },
    )
    return settings
