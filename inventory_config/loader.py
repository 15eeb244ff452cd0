"""
Settings loader (``inventory_config.loader``).

Responsibility
--------------
Reads a YAML settings file, merges it over the packaged defaults, applies
``INVENTORY_LEDGER_*`` environment overrides and returns a validated
``LedgerSettings``.

Architecture position
---------------------
**Config layer**.  Consumed by ``inventory_config.get_active_settings()``.
No dependency on the kernel.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* YAML that is not a mapping, unknown keys, bad values  -> ``ValueError``.

Audit relevance
---------------
``compute_checksum`` identifies the effective settings, so a log line can
tie a running ledger to the exact configuration it was wired with.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import LedgerSettings

ENV_PREFIX = "INVENTORY_LEDGER_"

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def _coerce(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean, got '{raw}'")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            raise ValueError(
                f"{ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'"
            ) from None
    return raw


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Settings fields given as ``INVENTORY_LEDGER_<FIELD>`` variables."""
    environ = os.environ if environ is None else environ
    defaults = LedgerSettings().to_dict()
    overrides: dict[str, Any] = {}
    for name, default in defaults.items():
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            overrides[name] = _coerce(name, raw, default)
    return overrides


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Build settings from defaults, an optional YAML file and the environment.

    Later sources win: packaged defaults, then ``path``, then environment.
    """
    data = load_yaml_file(DEFAULTS_FILE)
    if path is not None:
        data.update(load_yaml_file(Path(path)))
    data.update(env_overrides(environ))
    return LedgerSettings.from_dict(data)


def compute_checksum(settings: LedgerSettings) -> str:
    """
    SHA-256 of the canonical JSON form of ``settings``.

    Identical settings always produce identical checksums.
    """
    canonical = json.dumps(settings.to_dict(), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
