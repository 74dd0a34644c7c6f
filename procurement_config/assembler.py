"""
procurement_config.assembler -- composes YAML fragments into one catalog set.

Responsibility:
    Administrators edit small YAML fragments (one per catalog concern).
    This module composes them into a single ``ProcurementCatalogSet``.

Architecture position:
    Configuration -- YAML-driven catalog pipeline.
    Called by ``procurement_config.get_active_catalog()`` and by tests that
    build catalog fixtures.  The assembler reads the filesystem (I/O
    boundary); the resulting set is a pure, frozen data structure.

Fragment structure::

    sets/losncp_2024/
    +-- root.yaml              # Identity, scope, status, predecessor
    +-- contract_types.yaml    # Contract type definitions
    +-- amount_ranges.yaml     # Amount ranges per object category
    +-- phases.yaml            # Phase templates with per-type overrides

Invariants enforced:
    - ``root.yaml`` must exist in every fragment directory.
    - The checksum is computed over the canonical dict form of every
      parsed entry, so formatting-only YAML edits do not change it.

Failure modes:
    - ``AssemblyError`` -- fragment directory or ``root.yaml`` missing, or
      a root field cannot be parsed.
    - ``InputValidationError`` -- a catalog entry is malformed.
    - ``yaml.YAMLError`` (propagated from loader) -- invalid YAML syntax.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from procurement_config.lifecycle import ConfigStatus
from procurement_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_amount_range,
    parse_contract_type,
    parse_phase,
    parse_scope,
)
from procurement_config.schema import ProcurementCatalogSet
from procurement_kernel.domain.codec import (
    amount_range_to_dict,
    contract_type_to_dict,
    phase_template_to_dict,
)
from procurement_kernel.exceptions import ProcurementKernelError


class AssemblyError(ProcurementKernelError):
    """Error during fragment assembly.

    Raised when a fragment directory is missing, ``root.yaml`` is absent,
    or a required root field cannot be parsed.  The first fatal issue
    aborts assembly.
    """

    code: str = "ASSEMBLY_FAILED"


def _load_entries(path: Path, key: str) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    return list(load_yaml_file(path).get(key) or [])


def assemble_from_directory(fragment_dir: Path) -> ProcurementCatalogSet:
    """Compose fragments from a directory into one catalog set.

    Args:
        fragment_dir: Path to the fragment directory (e.g.,
            ``procurement_config/sets/losncp_2024/``).

    Returns:
        Assembled ``ProcurementCatalogSet``.

    Raises:
        AssemblyError: If required fragments are missing or malformed.
    """
    if not fragment_dir.is_dir():
        raise AssemblyError(f"Fragment directory not found: {fragment_dir}")

    root_path = fragment_dir / "root.yaml"
    if not root_path.exists():
        raise AssemblyError(f"root.yaml not found in {fragment_dir}")
    root_data = load_yaml_file(root_path)

    contract_types = tuple(
        parse_contract_type(entry)
        for entry in _load_entries(fragment_dir / "contract_types.yaml", "contract_types")
    )
    amount_ranges = tuple(
        parse_amount_range(entry)
        for entry in _load_entries(fragment_dir / "amount_ranges.yaml", "amount_ranges")
    )
    phases = tuple(
        parse_phase(entry)
        for entry in _load_entries(fragment_dir / "phases.yaml", "phases")
    )

    try:
        config_id = root_data["config_id"]
        scope = parse_scope(root_data["scope"])
        status = ConfigStatus(root_data.get("status", "draft"))
    except (KeyError, ValueError) as exc:
        raise AssemblyError(f"Invalid root.yaml in {fragment_dir}: {exc}") from exc

    checksum = compute_checksum(
        {
            "root": root_data,
            "contract_types": [contract_type_to_dict(t) for t in contract_types],
            "amount_ranges": [amount_range_to_dict(r) for r in amount_ranges],
            "phases": [phase_template_to_dict(p) for p in phases],
        }
    )

    # INVARIANT: checksum must be a non-empty SHA-256 hex digest.
    assert checksum and len(checksum) == 64, (
        f"Checksum must be a 64-char SHA-256 hex digest, got {checksum!r}"
    )

    return ProcurementCatalogSet(
        config_id=config_id,
        version=root_data.get("version", 1),
        checksum=checksum,
        scope=scope,
        status=status,
        contract_types=contract_types,
        amount_ranges=amount_ranges,
        phases=phases,
        predecessor=root_data.get("predecessor"),
        description=root_data.get("description", ""),
    )
