"""
Catalog Loader (``procurement_config.loader``).

Responsibility
--------------
Loads individual YAML fragment files and parses them into the kernel's
frozen catalog value objects.  This is **build/test tooling only** -- no
service calls this directly.  The single public entry point is
``procurement_config.get_active_catalog()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  The loader is consumed by
``procurement_config.assembler``.  It depends on the kernel domain only
(value objects and their dict codec), never on services or models.

Invariants enforced
-------------------
* Unknown keys in a catalog entry are errors, not ignored settings.
* Amounts never pass through float when they are quoted in YAML.
* ``compute_checksum`` produces a deterministic SHA-256 hash for catalog
  identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` (scope) or
  ``InputValidationError`` (catalog entries).
* Invalid date format  -> ``ValueError`` from ``date.fromisoformat``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from procurement_config.schema import CatalogScope
from procurement_kernel.domain.catalog import AmountRange, ContractTypeDefinition
from procurement_kernel.domain.codec import (
    amount_range_from_dict,
    contract_type_from_dict,
    phase_template_from_dict,
)
from procurement_kernel.domain.phase import PhaseTemplate


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_scope(data: dict[str, Any]) -> CatalogScope:
    return CatalogScope(
        jurisdiction=data["jurisdiction"],
        legal_framework=data["legal_framework"],
        currency=data.get("currency", "USD"),
        effective_from=parse_date(data["effective_from"]),
        effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
    )


def parse_contract_type(data: dict[str, Any]) -> ContractTypeDefinition:
    return contract_type_from_dict(data)


def parse_amount_range(data: dict[str, Any]) -> AmountRange:
    return amount_range_from_dict(data)


def parse_phase(data: dict[str, Any]) -> PhaseTemplate:
    """
    Parse a ``PhaseTemplate`` (documents, dependencies, overrides) from a dict.

    Dependencies are referenced by phase code, so a phase may name a phase
    declared later in the same file.
    """
    return phase_template_from_dict(data)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
