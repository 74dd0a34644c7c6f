"""
Catalog Validator (``procurement_config.validator``).

Responsibility
--------------
Validates a ``ProcurementCatalogSet`` before it is persisted or served,
so a broken catalog is rejected as a whole instead of failing one write
at a time during bootstrap.

Architecture position
---------------------
**Config layer** -- load-time validation.  Called by
``procurement_config.get_active_catalog()``.  Reuses the pure integrity
engine (``procurement_engines.catalog_integrity``) so the rules are the
same ones the catalog services enforce on individual writes.

Invariants enforced
-------------------
* Contract type and phase codes are unique within the set.
* Every integrity finding of severity "error" is a validation error
  (range overlaps, dependency cycles, duplicate order/category, orphaned
  dependency references, duplicate document codes, duplicate overrides,
  overrides naming unknown types).
* Every active contract type yields a dependency-consistent phase
  sequence.

Failure modes
-------------
* Validation errors (``CatalogValidationResult.errors``)  -> the set
  MUST NOT be used.
* Validation warnings (``CatalogValidationResult.warnings``)  -> the set
  may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from procurement_config.schema import ProcurementCatalogSet
from procurement_engines.catalog_integrity import check_catalog
from procurement_engines.phase_sequence import find_applicable_phases, validate_sequence
from procurement_kernel.domain.catalog import ConfigurationIssue


@dataclass
class CatalogValidationResult:
    """
    Result of catalog validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * ``issues`` keeps the structured integrity findings behind the
      messages.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    issues: list[ConfigurationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_catalog(catalog: ProcurementCatalogSet) -> CatalogValidationResult:
    """
    Validate a catalog set.

    Returns:
        A ``CatalogValidationResult`` with errors and warnings.  A catalog
        with errors MUST NOT be loaded.
    """
    result = CatalogValidationResult()

    _validate_code_uniqueness("Contract type", (t.code for t in catalog.contract_types), result)
    _validate_code_uniqueness("Phase", (p.code for p in catalog.phases), result)
    _validate_integrity(catalog, result)
    _validate_sequences(catalog, result)
    _validate_range_coverage(catalog, result)

    return result


def _validate_code_uniqueness(
    entity: str, codes: Iterable[str], result: CatalogValidationResult
) -> None:
    seen: set[str] = set()
    for code in codes:
        if code in seen:
            result.add_error(f"Duplicate {entity.lower()} code: {code}")
        seen.add(code)


def _validate_integrity(
    catalog: ProcurementCatalogSet, result: CatalogValidationResult
) -> None:
    issues = check_catalog(catalog.contract_types, catalog.amount_ranges, catalog.phases)
    result.issues.extend(issues)
    for issue in issues:
        if issue.is_error:
            result.add_error(f"[{issue.code}] {issue.message}")
        else:
            result.add_warning(f"[{issue.code}] {issue.message}")


def _validate_sequences(
    catalog: ProcurementCatalogSet, result: CatalogValidationResult
) -> None:
    """Every active contract type must get a valid, non-empty sequence."""
    for contract_type in catalog.contract_types:
        if not contract_type.is_active:
            continue
        ordered = find_applicable_phases(catalog.phases, contract_type.code)
        if not ordered:
            result.add_warning(
                f"Contract type '{contract_type.code}' has no applicable phases"
            )
            continue
        for problem in validate_sequence(ordered):
            result.add_error(f"Sequence of '{contract_type.code}': {problem}")


def _validate_range_coverage(
    catalog: ProcurementCatalogSet, result: CatalogValidationResult
) -> None:
    """Types without ranges can only be chosen explicitly."""
    with_ranges = {r.contract_type_code for r in catalog.amount_ranges if r.is_active}
    for contract_type in catalog.contract_types:
        if contract_type.is_active and contract_type.code not in with_ranges:
            result.add_warning(
                f"Contract type '{contract_type.code}' has no active amount range "
                f"and is never resolved from an amount"
            )
