"""
procurement_engines.catalog_integrity -- Catalog validation passes.

Responsibility:
    Stateless validation of the phase catalog and amount ranges against a
    full catalog snapshot.  Two entry styles:

    * ``check_*`` functions collect every finding as ConfigurationIssue
      values (administrative health check, config-set validation).
    * ``validate_phase_write`` / ``validate_range_write`` raise the first
      typed ConfigurationError for a single pending write (point check run
      by the catalog services before any flush).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - (order, category) unique among active phases.
    - Document codes unique within a phase.
    - At most one override per contract type within a phase.
    - Dependencies reference active phases and form an acyclic graph.
    - Active amount ranges of different types never overlap within an
      object category.

Failure modes:
    - ``validate_*`` raise DuplicateOrderError, DuplicateDocumentCodeError,
      DuplicateTypeOverrideError, UnknownPhaseError, UnknownContractTypeError,
      CyclicDependencyError or AmountRangeOverlapError.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from procurement_engines.amount_range import detect_overlaps, find_all_overlaps
from procurement_engines.dependency_graph import (
    find_dependency_cycle,
    find_orphaned_references,
)
from procurement_kernel.domain.catalog import (
    AmountRange,
    ConfigurationIssue,
    ContractTypeDefinition,
)
from procurement_kernel.domain.phase import PhaseTemplate
from procurement_kernel.exceptions import (
    AmountRangeOverlapError,
    CyclicDependencyError,
    DuplicateCodeError,
    DuplicateDocumentCodeError,
    DuplicateOrderError,
    DuplicateTypeOverrideError,
    UnknownContractTypeError,
    UnknownPhaseError,
)


def _duplicates(values: Iterable[str]) -> list[str]:
    counts = Counter(values)
    return sorted(v for v, n in counts.items() if n > 1)


# ---------------------------------------------------------------------------
# Per-phase checks
# ---------------------------------------------------------------------------


def check_phase_documents(phase: PhaseTemplate) -> list[ConfigurationIssue]:
    base_duplicates = _duplicates(d.code for d in phase.required_documents)
    issues = [
        ConfigurationIssue(
            code=DuplicateDocumentCodeError.code,
            message=f"Document code {doc_code} is repeated in phase {phase.code}",
            subject=phase.code,
            details=(doc_code,),
        )
        for doc_code in base_duplicates
    ]
    for override in phase.type_overrides:
        base_codes = [
            d.code
            for d in phase.required_documents
            if not any(d.matches(ref) for ref in override.excluded_documents)
        ]
        merged = base_codes + [d.code for d in override.additional_documents]
        for doc_code in _duplicates(merged):
            if doc_code in base_duplicates:
                continue
            issues.append(
                ConfigurationIssue(
                    code=DuplicateDocumentCodeError.code,
                    message=(
                        f"Override for {override.contract_type_code} adds document "
                        f"{doc_code} already present in phase {phase.code}"
                    ),
                    subject=phase.code,
                    details=(override.contract_type_code, doc_code),
                )
            )
    return issues


def check_phase_overrides(
    phase: PhaseTemplate,
    known_type_codes: frozenset[str] | None = None,
) -> list[ConfigurationIssue]:
    issues = [
        ConfigurationIssue(
            code=DuplicateTypeOverrideError.code,
            message=f"Phase {phase.code} has more than one override for {type_code}",
            subject=phase.code,
            details=(type_code,),
        )
        for type_code in _duplicates(phase.applicable_type_codes)
    ]
    if known_type_codes is not None:
        for type_code in sorted(set(phase.applicable_type_codes) - known_type_codes):
            issues.append(
                ConfigurationIssue(
                    code=UnknownContractTypeError.code,
                    message=f"Phase {phase.code} overrides unknown contract type {type_code}",
                    subject=phase.code,
                    details=(type_code,),
                )
            )
    return issues


# ---------------------------------------------------------------------------
# Catalog-wide checks
# ---------------------------------------------------------------------------


def check_order_category(phases: Iterable[PhaseTemplate]) -> list[ConfigurationIssue]:
    slots: dict[tuple[int, str], list[str]] = {}
    for p in phases:
        if p.is_active:
            slots.setdefault((p.order, p.category.value), []).append(p.code)
    issues = []
    for (order, category), codes in sorted(slots.items()):
        if len(codes) > 1:
            issues.append(
                ConfigurationIssue(
                    code=DuplicateOrderError.code,
                    message=(
                        f"Order {order} in category {category} is used by "
                        f"{', '.join(sorted(codes))}"
                    ),
                    subject=f"{category}:{order}",
                    details=tuple(sorted(codes)),
                )
            )
    return issues


def check_phase_catalog(
    phases: Iterable[PhaseTemplate],
    known_type_codes: frozenset[str] | None = None,
) -> list[ConfigurationIssue]:
    """Every structural finding across the active phase catalog."""
    active = [p for p in phases if p.is_active]
    issues: list[ConfigurationIssue] = []

    for code in _duplicates(p.code for p in active):
        issues.append(
            ConfigurationIssue(
                code=DuplicateCodeError.code,
                message=f"Phase code {code} is used by more than one active phase",
                subject=code,
            )
        )
    for phase in sorted(active, key=lambda p: p.sort_key):
        issues.extend(check_phase_documents(phase))
        issues.extend(check_phase_overrides(phase, known_type_codes))
        if not phase.type_overrides:
            issues.append(
                ConfigurationIssue(
                    code="PHASE_NOT_APPLICABLE",
                    message=f"Phase {phase.code} applies to no contract type",
                    subject=phase.code,
                    severity="warning",
                )
            )

    issues.extend(check_order_category(active))

    for phase_code, missing in find_orphaned_references(active):
        issues.append(
            ConfigurationIssue(
                code=UnknownPhaseError.code,
                message=f"Phase {phase_code} depends on unknown phase {missing}",
                subject=phase_code,
                details=(missing,),
            )
        )

    cycle = find_dependency_cycle(active)
    if cycle is not None:
        issues.append(
            ConfigurationIssue(
                code=CyclicDependencyError.code,
                message=f"Cyclic phase dependency: {' -> '.join(cycle)}",
                subject=cycle[0],
                details=tuple(cycle),
            )
        )
    return issues


def check_amount_ranges(
    ranges: Iterable[AmountRange],
    contract_types: Iterable[ContractTypeDefinition] | None = None,
) -> list[ConfigurationIssue]:
    """Overlaps between types, and ranges pointing at unusable types."""
    ranges = list(ranges)
    issues = [
        ConfigurationIssue(
            code=AmountRangeOverlapError.code,
            message=(
                f"{first.object_category.value}: range of {first.contract_type_code} "
                f"overlaps range of {second.contract_type_code}"
            ),
            subject=first.object_category.value,
            details=(first.contract_type_code, second.contract_type_code),
        )
        for first, second in find_all_overlaps(ranges)
    ]
    if contract_types is not None:
        types = {t.code: t for t in contract_types}
        for r in ranges:
            if not r.is_active:
                continue
            ct = types.get(r.contract_type_code)
            if ct is None or not ct.is_active:
                issues.append(
                    ConfigurationIssue(
                        code=UnknownContractTypeError.code,
                        message=(
                            f"Active range for {r.object_category.value} references "
                            f"unknown or inactive contract type {r.contract_type_code}"
                        ),
                        subject=r.contract_type_code,
                    )
                )
            elif not ct.applies_to(r.object_category):
                issues.append(
                    ConfigurationIssue(
                        code="OBJECT_NOT_APPLICABLE",
                        message=(
                            f"Contract type {ct.code} does not list "
                            f"{r.object_category.value} among its applicable objects"
                        ),
                        subject=ct.code,
                        severity="warning",
                    )
                )
    return issues


def check_catalog(
    contract_types: Iterable[ContractTypeDefinition],
    ranges: Iterable[AmountRange],
    phases: Iterable[PhaseTemplate],
) -> list[ConfigurationIssue]:
    """Full integrity pass over a catalog snapshot."""
    contract_types = list(contract_types)
    known = frozenset(t.code for t in contract_types)
    return check_amount_ranges(ranges, contract_types) + check_phase_catalog(
        phases, known
    )


# ---------------------------------------------------------------------------
# Point checks for a single write
# ---------------------------------------------------------------------------


def validate_phase_write(
    phase: PhaseTemplate,
    existing: Iterable[PhaseTemplate],
    known_type_codes: frozenset[str] | None = None,
) -> None:
    """Raise if writing ``phase`` would break the catalog.

    Args:
        phase: The phase about to be created or updated.
        existing: Current catalog; an entry with the same code (or id) is
            treated as the previous version of ``phase``.
        known_type_codes: Codes of existing contract types, or None to skip
            the override reference check.
    """
    others = [
        p
        for p in existing
        if p.is_active
        and p.code != phase.code
        and (phase.phase_id is None or p.phase_id != phase.phase_id)
    ]

    document_issues = check_phase_documents(phase)
    if document_issues:
        raise DuplicateDocumentCodeError(phase.code, document_issues[0].details[-1])

    duplicated_types = _duplicates(phase.applicable_type_codes)
    if duplicated_types:
        raise DuplicateTypeOverrideError(phase.code, duplicated_types[0])
    if known_type_codes is not None:
        for type_code in phase.applicable_type_codes:
            if type_code not in known_type_codes:
                raise UnknownContractTypeError(type_code)

    if not phase.is_active:
        return

    for other in others:
        if other.order == phase.order and other.category == phase.category:
            raise DuplicateOrderError(phase.order, phase.category.value, other.code)

    catalog_codes = {p.code for p in others} | {phase.code}
    for ref in phase.dependencies.referenced_codes:
        if ref not in catalog_codes:
            raise UnknownPhaseError(ref)

    cycle = find_dependency_cycle(others + [phase])
    if cycle is not None:
        raise CyclicDependencyError(cycle)


def validate_range_write(
    candidate: AmountRange,
    existing: Iterable[AmountRange],
) -> None:
    """Raise AmountRangeOverlapError if an active ``candidate`` conflicts."""
    if not candidate.is_active:
        return
    conflicts = detect_overlaps(
        existing,
        candidate.object_category,
        candidate.contract_type_code,
        candidate.min_amount,
        candidate.max_amount,
        exclude_id=candidate.range_id,
    )
    if conflicts:
        raise AmountRangeOverlapError(
            candidate.object_category.value,
            candidate.contract_type_code,
            sorted({r.contract_type_code for r in conflicts}),
        )
