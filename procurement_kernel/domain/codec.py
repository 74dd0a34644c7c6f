"""
Module: procurement_kernel.domain.codec
Responsibility: Conversion between catalog value objects and plain
    JSON-compatible dicts.  Used by the ORM models (JSON columns, effective
    configuration snapshots) and by the YAML configuration loader.
Architecture position: Kernel > Domain.  ZERO I/O.

Invariants enforced:
    - Decimals are written as strings, never floats.
    - ``*_from_dict`` rejects unknown keys so a typo in a catalog file is an
      error instead of a silently ignored setting.

Failure modes:
    - InputValidationError for unknown keys, missing required keys, or any
      value rejected by the target dataclass.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Mapping

from procurement_kernel.domain.catalog import (
    AmountRange,
    ContractTypeDefinition,
    ProcedureConfig,
    coerce_enum,
)
from procurement_kernel.domain.phase import (
    DEFAULT_MAX_FILE_SIZE,
    DocumentSpec,
    EffectivePhaseConfig,
    PhaseConfig,
    PhaseDependencies,
    PhaseTemplate,
    RequiredPhase,
    TypeOverride,
)
from procurement_kernel.domain.values import PhaseCategory
from procurement_kernel.exceptions import InputValidationError


def _check_keys(
    data: Mapping[str, Any],
    allowed: Iterable[str],
    where: str,
    required: Iterable[str] = (),
) -> None:
    if not isinstance(data, Mapping):
        raise InputValidationError(where, f"expected a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise InputValidationError(where, f"unknown keys: {', '.join(unknown)}")
    missing = sorted(k for k in required if k not in data)
    if missing:
        raise InputValidationError(where, f"missing keys: {', '.join(missing)}")


def _decimal_str(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Contract types and ranges
# ---------------------------------------------------------------------------

_PROCEDURE_KEYS = (
    "requires_publication",
    "publication_days",
    "questions_deadline_days",
    "evaluation_days",
    "requires_insurance",
    "insurance_percentage",
    "estimated_duration",
)


def procedure_config_to_dict(config: ProcedureConfig) -> dict[str, Any]:
    return {
        "requires_publication": config.requires_publication,
        "publication_days": config.publication_days,
        "questions_deadline_days": config.questions_deadline_days,
        "evaluation_days": config.evaluation_days,
        "requires_insurance": config.requires_insurance,
        "insurance_percentage": str(config.insurance_percentage),
        "estimated_duration": config.estimated_duration,
    }


def procedure_config_from_dict(data: Mapping[str, Any] | None) -> ProcedureConfig:
    if not data:
        return ProcedureConfig()
    _check_keys(data, _PROCEDURE_KEYS, "procedure_config")
    return ProcedureConfig(**dict(data))


_CONTRACT_TYPE_KEYS = (
    "code",
    "name",
    "regime",
    "category",
    "applicable_objects",
    "procedure_config",
    "description",
    "legal_reference",
    "display_order",
    "requires_special_authorization",
    "is_active",
)


def contract_type_to_dict(contract_type: ContractTypeDefinition) -> dict[str, Any]:
    return {
        "code": contract_type.code,
        "name": contract_type.name,
        "regime": contract_type.regime.value,
        "category": contract_type.category.value,
        "applicable_objects": [o.value for o in contract_type.applicable_objects],
        "procedure_config": procedure_config_to_dict(contract_type.procedure_config),
        "description": contract_type.description,
        "legal_reference": contract_type.legal_reference,
        "display_order": contract_type.display_order,
        "requires_special_authorization": contract_type.requires_special_authorization,
        "is_active": contract_type.is_active,
    }


def contract_type_from_dict(data: Mapping[str, Any]) -> ContractTypeDefinition:
    _check_keys(
        data,
        _CONTRACT_TYPE_KEYS,
        "contract_type",
        required=("code", "name", "regime", "category", "applicable_objects"),
    )
    values = dict(data)
    values["applicable_objects"] = tuple(values["applicable_objects"] or ())
    values["procedure_config"] = procedure_config_from_dict(
        values.get("procedure_config")
    )
    return ContractTypeDefinition(**values)


_AMOUNT_RANGE_KEYS = (
    "object_category",
    "contract_type_code",
    "min_amount",
    "max_amount",
    "priority",
    "is_active",
    "description",
    "legal_reference",
)


def amount_range_to_dict(amount_range: AmountRange) -> dict[str, Any]:
    return {
        "object_category": amount_range.object_category.value,
        "contract_type_code": amount_range.contract_type_code,
        "min_amount": str(amount_range.min_amount),
        "max_amount": _decimal_str(amount_range.max_amount),
        "priority": amount_range.priority,
        "is_active": amount_range.is_active,
        "description": amount_range.description,
        "legal_reference": amount_range.legal_reference,
    }


def amount_range_from_dict(data: Mapping[str, Any]) -> AmountRange:
    _check_keys(
        data,
        _AMOUNT_RANGE_KEYS,
        "amount_range",
        required=("object_category", "contract_type_code", "min_amount"),
    )
    return AmountRange(**dict(data))


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------

_DOCUMENT_KEYS = (
    "code",
    "name",
    "is_mandatory",
    "allowed_file_types",
    "max_file_size",
    "description",
)


def document_spec_to_dict(doc: DocumentSpec) -> dict[str, Any]:
    return {
        "code": doc.code,
        "name": doc.name,
        "is_mandatory": doc.is_mandatory,
        "allowed_file_types": list(doc.allowed_file_types),
        "max_file_size": doc.max_file_size,
        "description": doc.description,
    }


def document_spec_from_dict(data: Mapping[str, Any]) -> DocumentSpec:
    _check_keys(data, _DOCUMENT_KEYS, "document", required=("code", "name"))
    return DocumentSpec(
        code=data["code"],
        name=data["name"],
        is_mandatory=data.get("is_mandatory", True),
        allowed_file_types=tuple(data.get("allowed_file_types") or ("pdf",)),
        max_file_size=data.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
        description=data.get("description", ""),
    )


def phase_config_to_dict(config: PhaseConfig) -> dict[str, Any]:
    return {
        "is_optional": config.is_optional,
        "allow_parallel": config.allow_parallel,
        "estimated_days": config.estimated_days,
        "requires_approval": config.requires_approval,
        "auto_advance": config.auto_advance,
        "notification_days": config.notification_days,
    }


def phase_config_from_dict(data: Mapping[str, Any] | None) -> PhaseConfig:
    return PhaseConfig().with_overrides(data)


def dependencies_to_dict(deps: PhaseDependencies) -> dict[str, Any]:
    return {
        "required_phases": [
            {"phase_code": r.phase_code, "required_status": r.required_status.value}
            for r in deps.required_phases
        ],
        "blocked_by": list(deps.blocked_by),
    }


def dependencies_from_dict(data: Mapping[str, Any] | None) -> PhaseDependencies:
    if not data:
        return PhaseDependencies()
    _check_keys(data, ("required_phases", "blocked_by"), "dependencies")
    required = []
    for entry in data.get("required_phases") or ():
        _check_keys(
            entry,
            ("phase_code", "required_status"),
            "dependencies.required_phases",
            required=("phase_code",),
        )
        required.append(RequiredPhase(**dict(entry)))
    return PhaseDependencies(
        required_phases=tuple(required),
        blocked_by=tuple(data.get("blocked_by") or ()),
    )


_OVERRIDE_KEYS = (
    "contract_type_code",
    "excluded_documents",
    "additional_documents",
    "custom_duration",
    "override_phase_config",
)


def type_override_to_dict(override: TypeOverride) -> dict[str, Any]:
    return {
        "contract_type_code": override.contract_type_code,
        "excluded_documents": list(override.excluded_documents),
        "additional_documents": [
            document_spec_to_dict(d) for d in override.additional_documents
        ],
        "custom_duration": override.custom_duration,
        "override_phase_config": (
            dict(override.override_phase_config)
            if override.override_phase_config
            else None
        ),
    }


def type_override_from_dict(data: Mapping[str, Any]) -> TypeOverride:
    _check_keys(data, _OVERRIDE_KEYS, "type_override", required=("contract_type_code",))
    return TypeOverride(
        contract_type_code=data["contract_type_code"],
        excluded_documents=tuple(data.get("excluded_documents") or ()),
        additional_documents=tuple(
            document_spec_from_dict(d) for d in data.get("additional_documents") or ()
        ),
        custom_duration=data.get("custom_duration"),
        override_phase_config=data.get("override_phase_config") or None,
    )


_PHASE_KEYS = (
    "code",
    "name",
    "order",
    "category",
    "required_documents",
    "phase_config",
    "dependencies",
    "type_overrides",
    "allowed_roles",
    "description",
    "is_active",
)


def phase_template_to_dict(phase: PhaseTemplate) -> dict[str, Any]:
    return {
        "code": phase.code,
        "name": phase.name,
        "order": phase.order,
        "category": phase.category.value,
        "required_documents": [document_spec_to_dict(d) for d in phase.required_documents],
        "phase_config": phase_config_to_dict(phase.phase_config),
        "dependencies": dependencies_to_dict(phase.dependencies),
        "type_overrides": [type_override_to_dict(o) for o in phase.type_overrides],
        "allowed_roles": list(phase.allowed_roles),
        "description": phase.description,
        "is_active": phase.is_active,
    }


def phase_template_from_dict(data: Mapping[str, Any]) -> PhaseTemplate:
    _check_keys(data, _PHASE_KEYS, "phase", required=("code", "name", "order", "category"))
    return PhaseTemplate(
        code=data["code"],
        name=data["name"],
        order=data["order"],
        category=data["category"],
        required_documents=tuple(
            document_spec_from_dict(d) for d in data.get("required_documents") or ()
        ),
        phase_config=phase_config_from_dict(data.get("phase_config")),
        dependencies=dependencies_from_dict(data.get("dependencies")),
        type_overrides=tuple(
            type_override_from_dict(o) for o in data.get("type_overrides") or ()
        ),
        allowed_roles=tuple(data.get("allowed_roles") or ()),
        description=data.get("description", ""),
        is_active=data.get("is_active", True),
    )


# ---------------------------------------------------------------------------
# Effective configuration snapshot (stored on each contract phase occurrence)
# ---------------------------------------------------------------------------


def effective_config_to_dict(effective: EffectivePhaseConfig) -> dict[str, Any]:
    return {
        "phase_code": effective.phase_code,
        "phase_name": effective.phase_name,
        "order": effective.order,
        "category": effective.category.value,
        "contract_type_code": effective.contract_type_code,
        "documents": [document_spec_to_dict(d) for d in effective.documents],
        "duration_days": effective.duration_days,
        "phase_config": phase_config_to_dict(effective.phase_config),
        "dependencies": dependencies_to_dict(effective.dependencies),
        "allowed_roles": list(effective.allowed_roles),
    }


def effective_config_from_dict(data: Mapping[str, Any]) -> EffectivePhaseConfig:
    return EffectivePhaseConfig(
        phase_code=data["phase_code"],
        phase_name=data["phase_name"],
        order=data["order"],
        category=coerce_enum(PhaseCategory, data["category"], "category"),
        contract_type_code=data["contract_type_code"],
        documents=tuple(document_spec_from_dict(d) for d in data["documents"]),
        duration_days=data["duration_days"],
        phase_config=phase_config_from_dict(data["phase_config"]),
        dependencies=dependencies_from_dict(data["dependencies"]),
        allowed_roles=tuple(data.get("allowed_roles") or ()),
    )
