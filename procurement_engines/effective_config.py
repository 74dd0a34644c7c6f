"""
procurement_engines.effective_config -- Pure phase/override merge.

Responsibility:
    Merge a phase template with the override declared for one contract
    type, producing the documents, duration and behaviour flags that apply
    to that (phase, type) pair.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Purity and determinism: identical inputs produce equal outputs and the
      inputs are never mutated.
    - Base documents keep their order; additional documents follow in
      declaration order.
    - An excluded entry removes a base document when it equals the
      document's code or its name.
    - No override for the type means the template applies unmodified.
"""

from __future__ import annotations

from procurement_kernel.domain.phase import (
    DocumentSpec,
    EffectivePhaseConfig,
    PhaseTemplate,
)


def merge_documents(
    base: tuple[DocumentSpec, ...],
    excluded: tuple[str, ...],
    additional: tuple[DocumentSpec, ...],
) -> tuple[DocumentSpec, ...]:
    """``base`` minus ``excluded``, followed by ``additional``."""
    kept = tuple(
        doc for doc in base if not any(doc.matches(ref) for ref in excluded)
    )
    return kept + tuple(additional)


def resolve_effective_config(
    phase: PhaseTemplate,
    contract_type_code: str,
) -> EffectivePhaseConfig:
    """Effective configuration of ``phase`` for ``contract_type_code``.

    Args:
        phase: The catalog phase template.
        contract_type_code: Contract type whose override (if any) applies.

    Returns:
        EffectivePhaseConfig with merged documents, duration and config.

    Raises:
        InputValidationError: if the override config names an unknown field
            or sets an out-of-range value.
    """
    override = phase.override_for(contract_type_code)

    if override is None:
        return EffectivePhaseConfig(
            phase_code=phase.code,
            phase_name=phase.name,
            order=phase.order,
            category=phase.category,
            contract_type_code=contract_type_code,
            documents=phase.required_documents,
            duration_days=phase.phase_config.estimated_days,
            phase_config=phase.phase_config,
            dependencies=phase.dependencies,
            allowed_roles=phase.allowed_roles,
        )

    duration = (
        override.custom_duration
        if override.custom_duration is not None
        else phase.phase_config.estimated_days
    )
    return EffectivePhaseConfig(
        phase_code=phase.code,
        phase_name=phase.name,
        order=phase.order,
        category=phase.category,
        contract_type_code=contract_type_code,
        documents=merge_documents(
            phase.required_documents,
            override.excluded_documents,
            override.additional_documents,
        ),
        duration_days=duration,
        phase_config=phase.phase_config.with_overrides(override.override_phase_config),
        dependencies=phase.dependencies,
        allowed_roles=phase.allowed_roles,
    )
