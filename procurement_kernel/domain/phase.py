"""
Module: procurement_kernel.domain.phase
Responsibility: Frozen value objects for phase templates, their per-type
    overrides, and the effective configuration resolved for a contract type.
Architecture position: Kernel > Domain.  ZERO I/O.

Invariants enforced:
    - Phase codes follow the catalog code pattern; ``order`` >= 1.
    - PhaseConfig durations are in 1..365 days; notification_days in 0..30.
    - TypeOverride.override_phase_config only names PhaseConfig fields, and
      its values satisfy the PhaseConfig ranges and types.

Non-goals:
    - Cross-phase rules (order/category uniqueness, duplicate document codes,
      duplicate overrides, dependency cycles) are catalog rules checked by
      procurement_engines.catalog_integrity, not by these constructors.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping
from uuid import UUID

from procurement_kernel.domain.catalog import (
    check_int_range,
    coerce_enum,
    validate_catalog_code,
)
from procurement_kernel.domain.values import PhaseCategory, RequiredStatus
from procurement_kernel.exceptions import InputValidationError

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
PHASE_CONFIG_FLAGS = (
    "is_optional",
    "allow_parallel",
    "requires_approval",
    "auto_advance",
)


@dataclass(frozen=True)
class DocumentSpec:
    """A document required (or accepted) in a phase.

    ``allowed_file_types`` are lowercase extensions without the dot.
    """

    code: str
    name: str
    is_mandatory: bool = True
    allowed_file_types: tuple[str, ...] = ("pdf",)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    description: str = ""

    def __post_init__(self) -> None:
        if not self.code or not self.code.strip():
            raise InputValidationError("document.code", "must not be empty")
        if not self.name or not self.name.strip():
            raise InputValidationError("document.name", "must not be empty")
        if self.max_file_size <= 0:
            raise InputValidationError("document.max_file_size", "must be positive")
        object.__setattr__(
            self,
            "allowed_file_types",
            tuple(t.lower().lstrip(".") for t in self.allowed_file_types),
        )

    def accepts(self, file_type: str) -> bool:
        return file_type.lower().lstrip(".") in self.allowed_file_types

    def matches(self, reference: str) -> bool:
        """True if ``reference`` names this document by code or by name."""
        return reference == self.code or reference == self.name


@dataclass(frozen=True)
class PhaseConfig:
    """Default behaviour of a phase."""

    is_optional: bool = False
    allow_parallel: bool = False
    estimated_days: int = 15
    requires_approval: bool = False
    auto_advance: bool = False
    notification_days: int = 3

    def __post_init__(self) -> None:
        check_int_range(self.estimated_days, "estimated_days", 1, 365)
        check_int_range(self.notification_days, "notification_days", 0, 30)
        for name in PHASE_CONFIG_FLAGS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise InputValidationError(name, f"{value!r} is not a boolean")

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> PhaseConfig:
        """Shallow-replace the fields present in ``overrides``."""
        if not overrides:
            return self
        check_phase_config_keys(overrides)
        return replace(self, **dict(overrides))


PHASE_CONFIG_FIELDS: frozenset[str] = frozenset(f.name for f in fields(PhaseConfig))


def check_phase_config_keys(overrides: Mapping[str, Any]) -> None:
    unknown = sorted(set(overrides) - PHASE_CONFIG_FIELDS)
    if unknown:
        raise InputValidationError(
            "override_phase_config", f"unknown fields: {', '.join(unknown)}"
        )


@dataclass(frozen=True)
class RequiredPhase:
    phase_code: str
    required_status: RequiredStatus = RequiredStatus.COMPLETED

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "required_status",
            coerce_enum(RequiredStatus, self.required_status, "required_status"),
        )


@dataclass(frozen=True)
class PhaseDependencies:
    """
    Dependencies of a phase on other phases.

    Contract:
        - Every ``required_phases`` entry must satisfy its required status
          before the phase may start.
        - Every ``blocked_by`` phase must be COMPLETED before the phase may
          start.
    """

    required_phases: tuple[RequiredPhase, ...] = ()
    blocked_by: tuple[str, ...] = ()

    @property
    def referenced_codes(self) -> tuple[str, ...]:
        """All phase codes this phase depends on, first occurrence order."""
        seen: dict[str, None] = {}
        for req in self.required_phases:
            seen.setdefault(req.phase_code, None)
        for code in self.blocked_by:
            seen.setdefault(code, None)
        return tuple(seen)


@dataclass(frozen=True)
class TypeOverride:
    """
    Per-contract-type override of a phase template.

    Contract:
        The presence of an override is what makes a phase applicable to a
        contract type.  An override with no excluded/additional documents,
        no custom duration and no config override applies the phase
        unmodified.
    """

    contract_type_code: str
    excluded_documents: tuple[str, ...] = ()
    additional_documents: tuple[DocumentSpec, ...] = ()
    custom_duration: int | None = None
    override_phase_config: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        validate_catalog_code(self.contract_type_code, "contract_type_code")
        if self.custom_duration is not None:
            check_int_range(self.custom_duration, "custom_duration", 1, 365)
        if self.override_phase_config:
            # Values are range-checked against a default config.
            PhaseConfig().with_overrides(self.override_phase_config)
            object.__setattr__(
                self, "override_phase_config", dict(self.override_phase_config)
            )


@dataclass(frozen=True)
class PhaseTemplate:
    """
    A phase of the procurement lifecycle as configured in the catalog.

    Contract:
        ``type_overrides`` is the only association between the phase and
        the contract types it applies to.

    Guarantees:
        - ``code`` matches the catalog code pattern.
        - ``order`` >= 1 and ``category`` is a PhaseCategory member.

    Non-goals:
        - Does not resolve the effective configuration; see
          procurement_engines.effective_config.
    """

    code: str
    name: str
    order: int
    category: PhaseCategory
    required_documents: tuple[DocumentSpec, ...] = ()
    phase_config: PhaseConfig = field(default_factory=PhaseConfig)
    dependencies: PhaseDependencies = field(default_factory=PhaseDependencies)
    type_overrides: tuple[TypeOverride, ...] = ()
    allowed_roles: tuple[str, ...] = ()
    description: str = ""
    is_active: bool = True
    phase_id: UUID | None = None

    def __post_init__(self) -> None:
        validate_catalog_code(self.code)
        if not self.name or not self.name.strip():
            raise InputValidationError("name", "must not be empty")
        check_int_range(self.order, "order", 1, 10_000)
        object.__setattr__(
            self, "category", coerce_enum(PhaseCategory, self.category, "category")
        )

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.order, self.category.sort_index, self.code)

    @property
    def applicable_type_codes(self) -> tuple[str, ...]:
        return tuple(o.contract_type_code for o in self.type_overrides)

    def override_for(self, contract_type_code: str) -> TypeOverride | None:
        for override in self.type_overrides:
            if override.contract_type_code == contract_type_code:
                return override
        return None

    def applies_to(self, contract_type_code: str) -> bool:
        return self.override_for(contract_type_code) is not None

    def document(self, document_code: str) -> DocumentSpec | None:
        for doc in self.required_documents:
            if doc.code == document_code:
                return doc
        return None

    @property
    def mandatory_documents(self) -> tuple[DocumentSpec, ...]:
        return tuple(d for d in self.required_documents if d.is_mandatory)

    @property
    def optional_documents(self) -> tuple[DocumentSpec, ...]:
        return tuple(d for d in self.required_documents if not d.is_mandatory)

    def can_role_act(self, role: str) -> bool:
        """An empty ``allowed_roles`` leaves the phase unrestricted."""
        return not self.allowed_roles or role in self.allowed_roles


@dataclass(frozen=True)
class EffectivePhaseConfig:
    """
    A phase template merged with the override for one contract type.

    Contract:
        Produced only by procurement_engines.effective_config.  Carries
        everything a contract needs to snapshot the phase at creation time.
    """

    phase_code: str
    phase_name: str
    order: int
    category: PhaseCategory
    contract_type_code: str
    documents: tuple[DocumentSpec, ...]
    duration_days: int
    phase_config: PhaseConfig
    dependencies: PhaseDependencies
    allowed_roles: tuple[str, ...] = ()

    @property
    def mandatory_documents(self) -> tuple[DocumentSpec, ...]:
        return tuple(d for d in self.documents if d.is_mandatory)

    @property
    def mandatory_document_codes(self) -> tuple[str, ...]:
        return tuple(d.code for d in self.mandatory_documents)

    def document(self, document_code: str) -> DocumentSpec | None:
        for doc in self.documents:
            if doc.code == document_code:
                return doc
        return None


@dataclass(frozen=True)
class PhaseSequence:
    """Ordered, validated phase plan for one contract type."""

    contract_type_code: str
    phases: tuple[EffectivePhaseConfig, ...]

    @property
    def phase_codes(self) -> tuple[str, ...]:
        return tuple(p.phase_code for p in self.phases)

    @property
    def total_estimated_days(self) -> int:
        return sum(p.duration_days for p in self.phases)

    def __len__(self) -> int:
        return len(self.phases)

    def index_of(self, phase_code: str) -> int | None:
        for i, phase in enumerate(self.phases):
            if phase.phase_code == phase_code:
                return i
        return None


@dataclass(frozen=True)
class DocumentsSummary:
    """Mandatory/optional split of the documents a phase requires."""

    phase_code: str
    phase_name: str
    category: PhaseCategory
    mandatory: tuple[DocumentSpec, ...]
    optional: tuple[DocumentSpec, ...]

    @property
    def total_count(self) -> int:
        return len(self.mandatory) + len(self.optional)

    @property
    def mandatory_count(self) -> int:
        return len(self.mandatory)

    @property
    def optional_count(self) -> int:
        return len(self.optional)
