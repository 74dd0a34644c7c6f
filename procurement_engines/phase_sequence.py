"""
procurement_engines.phase_sequence -- Phase plan for a contract type.

Responsibility:
    Select the phases that apply to a contract type, order them, attach the
    effective configuration for that type, and check the result against the
    phases' dependency declarations.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Ordering: ascending ``order``; ties broken by PhaseCategory declaration
      order, then by phase code.  Catalog insertion order never matters.
    - Every required or blocking phase is part of the sequence and sits
      strictly before the phase that depends on it.

Failure modes:
    - SequenceConfigurationError listing every violation found.
"""

from __future__ import annotations

from typing import Iterable

from procurement_engines.effective_config import resolve_effective_config
from procurement_kernel.domain.phase import PhaseSequence, PhaseTemplate
from procurement_kernel.exceptions import SequenceConfigurationError


def find_applicable_phases(
    phases: Iterable[PhaseTemplate],
    contract_type_code: str,
) -> tuple[PhaseTemplate, ...]:
    """Active phases with an override for ``contract_type_code``, in sequence order."""
    applicable = [
        p for p in phases if p.is_active and p.applies_to(contract_type_code)
    ]
    return tuple(sorted(applicable, key=lambda p: p.sort_key))


def validate_sequence(ordered: tuple[PhaseTemplate, ...]) -> list[str]:
    """Dependency violations in an already ordered phase list."""
    position = {p.code: i for i, p in enumerate(ordered)}
    issues: list[str] = []
    for i, phase in enumerate(ordered):
        for ref in phase.dependencies.referenced_codes:
            ref_index = position.get(ref)
            if ref_index is None:
                issues.append(
                    f"{phase.code} depends on {ref}, which is not in the sequence"
                )
            elif ref_index >= i:
                issues.append(
                    f"{phase.code} depends on {ref}, which is ordered after it"
                )
    return issues


def build_sequence(
    phases: Iterable[PhaseTemplate],
    contract_type_code: str,
) -> PhaseSequence:
    """Ordered phase plan with effective configuration attached.

    Args:
        phases: Catalog snapshot of phase templates.
        contract_type_code: Contract type to build the plan for.

    Returns:
        PhaseSequence (possibly empty when no phase applies to the type).

    Raises:
        SequenceConfigurationError: if the ordered phases violate their
            dependency declarations.
    """
    ordered = find_applicable_phases(phases, contract_type_code)
    issues = validate_sequence(ordered)
    if issues:
        raise SequenceConfigurationError(contract_type_code, issues)
    return PhaseSequence(
        contract_type_code=contract_type_code,
        phases=tuple(resolve_effective_config(p, contract_type_code) for p in ordered),
    )
