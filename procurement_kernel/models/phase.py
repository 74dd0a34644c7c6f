"""
Module: procurement_kernel.models.phase
Responsibility: ORM persistence for phase templates and their per-contract-
    type overrides.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - Phase ``code`` is unique (uq_contract_phase_code).
    - At most one override per (phase, contract type)
      (uq_phase_type_override).

Audit relevance:
    The override table is the only association between a phase and the
    contract types it applies to.  Contracts copy the effective
    configuration at creation, so editing these rows never changes a
    contract already in progress.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import TrackedBase, UUIDString
from procurement_kernel.domain.codec import (
    dependencies_from_dict,
    dependencies_to_dict,
    document_spec_from_dict,
    document_spec_to_dict,
    phase_config_from_dict,
    phase_config_to_dict,
)
from procurement_kernel.domain.phase import PhaseTemplate, TypeOverride


class ContractPhaseModel(TrackedBase):
    """
    Persistent phase template.

    Contract:
        Documents, phase config, dependencies and roles are JSON columns.
        Overrides live in phase_type_overrides and load eagerly with the
        phase.

    Guarantees:
        - code is unique.
        - (order, category) uniqueness among active phases is checked by
          PhaseCatalogService, not by the table (inactive phases may share
          a slot).
    """

    __tablename__ = "contract_phases"

    __table_args__ = (
        UniqueConstraint("code", name="uq_contract_phase_code"),
        Index("idx_contract_phase_slot", "phase_order", "category", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # "order" is reserved in SQL
    order: Mapped[int] = mapped_column("phase_order", Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)

    required_documents: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    phase_config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    dependencies: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    allowed_roles: Mapped[list[Any]] = mapped_column(JSON, nullable=False)

    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    type_overrides: Mapped[list[PhaseTypeOverrideModel]] = relationship(
        "PhaseTypeOverrideModel",
        back_populates="phase",
        order_by="PhaseTypeOverrideModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ContractPhase {self.code} order={self.order} {self.category}>"

    def to_dto(self) -> PhaseTemplate:
        """Convert ORM model (with overrides) to a frozen PhaseTemplate."""
        return PhaseTemplate(
            code=self.code,
            name=self.name,
            order=self.order,
            category=self.category,
            required_documents=tuple(
                document_spec_from_dict(d) for d in self.required_documents
            ),
            phase_config=phase_config_from_dict(self.phase_config),
            dependencies=dependencies_from_dict(self.dependencies),
            type_overrides=tuple(o.to_dto() for o in self.type_overrides),
            allowed_roles=tuple(self.allowed_roles),
            description=self.description,
            is_active=self.is_active,
            phase_id=self.id,
        )

    def apply_dto(self, dto: PhaseTemplate, actor_id: UUID) -> None:
        """Copy ``dto`` onto this row, replacing the override rows."""
        self.code = dto.code
        self.name = dto.name
        self.order = dto.order
        self.category = dto.category.value
        self.required_documents = [document_spec_to_dict(d) for d in dto.required_documents]
        self.phase_config = phase_config_to_dict(dto.phase_config)
        self.dependencies = dependencies_to_dict(dto.dependencies)
        self.allowed_roles = list(dto.allowed_roles)
        self.description = dto.description
        self.is_active = dto.is_active

        existing = {o.contract_type_code: o for o in self.type_overrides}
        rows = []
        for position, override in enumerate(dto.type_overrides):
            row = existing.get(override.contract_type_code)
            if row is None:
                row = PhaseTypeOverrideModel(
                    contract_type_code=override.contract_type_code,
                    created_by_id=actor_id,
                )
            else:
                row.updated_by_id = actor_id
            row.position = position
            row.apply_dto(override)
            rows.append(row)
        self.type_overrides = rows

    @classmethod
    def from_dto(cls, dto: PhaseTemplate, actor_id: UUID) -> ContractPhaseModel:
        model = cls(created_by_id=actor_id)
        model.type_overrides = []
        model.apply_dto(dto, actor_id)
        return model


class PhaseTypeOverrideModel(TrackedBase):
    """
    Per-contract-type override of a phase.

    Guarantees:
        - UNIQUE(phase_id, contract_type_code).
        - contract_type_code references contract_types.code.
    """

    __tablename__ = "phase_type_overrides"

    __table_args__ = (
        UniqueConstraint("phase_id", "contract_type_code", name="uq_phase_type_override"),
        Index("idx_phase_override_type", "contract_type_code"),
    )

    phase_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contract_phases.id"),
        nullable=False,
    )
    contract_type_code: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("contract_types.code"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Document codes or names removed from the base list
    excluded_documents: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    additional_documents: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    custom_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    override_phase_config: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
    )

    phase: Mapped[ContractPhaseModel] = relationship(
        "ContractPhaseModel",
        back_populates="type_overrides",
    )

    def __repr__(self) -> str:
        return f"<PhaseTypeOverride phase={self.phase_id} type={self.contract_type_code}>"

    def to_dto(self) -> TypeOverride:
        return TypeOverride(
            contract_type_code=self.contract_type_code,
            excluded_documents=tuple(self.excluded_documents),
            additional_documents=tuple(
                document_spec_from_dict(d) for d in self.additional_documents
            ),
            custom_duration=self.custom_duration,
            override_phase_config=self.override_phase_config or None,
        )

    def apply_dto(self, dto: TypeOverride) -> None:
        self.contract_type_code = dto.contract_type_code
        self.excluded_documents = list(dto.excluded_documents)
        self.additional_documents = [
            document_spec_to_dict(d) for d in dto.additional_documents
        ]
        self.custom_duration = dto.custom_duration
        self.override_phase_config = (
            dict(dto.override_phase_config) if dto.override_phase_config else None
        )
