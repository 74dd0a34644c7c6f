"""
procurement_config -- single public entrypoint for the procurement catalog.

Responsibility:
    Provides the ONLY way to obtain a catalog set at runtime through
    ``get_active_catalog()``.  YAML loading is internal build/test tooling.
    The returned ``ProcurementCatalogSet`` is persisted into the database by
    ``procurement_services.catalog_bootstrap``.

Architecture position:
    Configuration -- YAML-driven catalog pipeline, load-time validation.
    This package sits above ``procurement_kernel`` and
    ``procurement_engines`` and below ``procurement_services``.  The kernel
    MUST NEVER import from ``procurement_config``.

Invariants enforced:
    - Single entrypoint: runtime catalog data flows through
      ``get_active_catalog()``.
    - Load-time validation: the set must pass ``validate_catalog`` (code
      uniqueness, integrity check, per-type sequence check).
    - Deterministic assembly: the same YAML always yields the same
      checksum.

Failure modes:
    - ``FileNotFoundError`` -- no catalog set covers the requested date.
    - ``CatalogIntegrityError`` -- validation failed.
    - ``AssemblyError`` -- fragments missing or malformed.

Audit relevance:
    Every successful ``get_active_catalog()`` call emits a
    ``PROCUREMENT_CONFIG_TRACE`` log entry with the config_id, version,
    checksum and entry counts, tying every bootstrapped catalog back to the
    exact YAML it came from.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from procurement_config.assembler import AssemblyError, assemble_from_directory
from procurement_config.lifecycle import ConfigStatus
from procurement_config.schema import CatalogScope, ProcurementCatalogSet
from procurement_config.validator import CatalogValidationResult, validate_catalog
from procurement_kernel.exceptions import CatalogIntegrityError
from procurement_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default catalog sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = [
    "AssemblyError",
    "CatalogScope",
    "CatalogValidationResult",
    "ConfigStatus",
    "ProcurementCatalogSet",
    "assemble_from_directory",
    "get_active_catalog",
    "validate_catalog",
]


def get_active_catalog(
    as_of_date: date,
    config_dir: Path | None = None,
) -> ProcurementCatalogSet:
    """The ONLY public catalog entrypoint.

    Guarantees:
        - The returned set has passed ``validate_catalog``.
        - A ``PROCUREMENT_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - Does NOT cache sets across calls.

    Args:
        as_of_date: Date for effective date filtering.
        config_dir: Override path to the catalog sets directory.
            Defaults to procurement_config/sets/.

    Returns:
        The validated ProcurementCatalogSet.

    Raises:
        FileNotFoundError: If no matching catalog set is found.
        CatalogIntegrityError: If catalog validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    catalog = _find_matching_catalog(sets_dir, as_of_date)

    validation = validate_catalog(catalog)
    if not validation.is_valid:
        _logger.error(
            "procurement_catalog_invalid",
            extra={
                "config_set_id": catalog.config_id,
                "errors": validation.errors,
            },
        )
        raise CatalogIntegrityError(
            [issue.code for issue in validation.issues if issue.is_error]
            or ["CATALOG_VALIDATION"]
        )
    for warning in validation.warnings:
        _logger.warning(
            "procurement_catalog_warning",
            extra={"config_set_id": catalog.config_id, "warning": warning},
        )

    _logger.info(
        "PROCUREMENT_CONFIG_TRACE",
        extra={
            "trace_type": "PROCUREMENT_CONFIG_TRACE",
            "config_set_id": catalog.config_id,
            "config_set_version": catalog.version,
            "checksum": catalog.checksum,
            "status": catalog.status.value,
            "jurisdiction": catalog.scope.jurisdiction,
            "legal_framework": catalog.scope.legal_framework,
            "contract_type_count": len(catalog.contract_types),
            "amount_range_count": len(catalog.amount_ranges),
            "phase_count": len(catalog.phases),
        },
    )
    return catalog


def _find_matching_catalog(sets_dir: Path, as_of_date: date) -> ProcurementCatalogSet:
    """Find the catalog set whose effective range covers *as_of_date*.

    Among several matches, PUBLISHED sets win, then the highest version.

    Raises:
        FileNotFoundError: If ``sets_dir`` does not exist or no catalog set
            covers the date.
    """
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Catalog sets directory not found: {sets_dir}")

    candidates: list[ProcurementCatalogSet] = []
    for subdir in sorted(sets_dir.iterdir()):
        if not subdir.is_dir() or not (subdir / "root.yaml").exists():
            continue
        catalog = assemble_from_directory(subdir)
        if catalog.status != ConfigStatus.SUPERSEDED and catalog.scope.covers(as_of_date):
            candidates.append(catalog)

    if not candidates:
        raise FileNotFoundError(
            f"No catalog set found for as_of_date={as_of_date} in {sets_dir}"
        )

    published = [c for c in candidates if c.status == ConfigStatus.PUBLISHED]
    return max(published or candidates, key=lambda c: c.version)
