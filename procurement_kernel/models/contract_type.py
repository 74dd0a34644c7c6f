"""
Module: procurement_kernel.models.contract_type
Responsibility: ORM persistence for the contract-type catalog and the amount
    ranges that select a contract type for an (object category, amount).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - Contract type ``code`` is unique (uq_contract_type_code).
    - Amount ranges reference an existing contract type code (FK).

Failure modes:
    - IntegrityError on duplicate code; the catalog service checks first and
      raises DuplicateCodeError before any flush.

Audit relevance:
    Contract types are soft-deleted only.  A contract keeps the code it was
    created with, so a deactivated type still resolves for history.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import TrackedBase
from procurement_kernel.domain.catalog import AmountRange, ContractTypeDefinition
from procurement_kernel.domain.codec import (
    procedure_config_from_dict,
    procedure_config_to_dict,
)


class ContractTypeModel(TrackedBase):
    """
    Persistent contract type.

    Contract:
        ``applicable_objects`` and ``procedure_config`` are JSON columns
        written from, and read back into, the frozen domain objects.

    Guarantees:
        - code is unique.
        - Rows are never deleted once a contract references them.
    """

    __tablename__ = "contract_types"

    __table_args__ = (
        UniqueConstraint("code", name="uq_contract_type_code"),
        Index("idx_contract_type_active", "is_active", "display_order"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    regime: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)

    # Object categories as their string values, e.g. ["goods", "services"]
    applicable_objects: Mapped[list[Any]] = mapped_column(JSON, nullable=False)

    procedure_config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    legal_reference: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    requires_special_authorization: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ContractType {self.code} active={self.is_active}>"

    def to_dto(self) -> ContractTypeDefinition:
        """Convert ORM model to frozen domain object."""
        return ContractTypeDefinition(
            code=self.code,
            name=self.name,
            regime=self.regime,
            category=self.category,
            applicable_objects=tuple(self.applicable_objects),
            procedure_config=procedure_config_from_dict(self.procedure_config),
            description=self.description,
            legal_reference=self.legal_reference,
            display_order=self.display_order,
            requires_special_authorization=self.requires_special_authorization,
            is_active=self.is_active,
            type_id=self.id,
        )

    def apply_dto(self, dto: ContractTypeDefinition) -> None:
        """Copy every catalog field of ``dto`` onto this row."""
        self.code = dto.code
        self.name = dto.name
        self.regime = dto.regime.value
        self.category = dto.category.value
        self.applicable_objects = [o.value for o in dto.applicable_objects]
        self.procedure_config = procedure_config_to_dict(dto.procedure_config)
        self.description = dto.description
        self.legal_reference = dto.legal_reference
        self.display_order = dto.display_order
        self.requires_special_authorization = dto.requires_special_authorization
        self.is_active = dto.is_active

    @classmethod
    def from_dto(cls, dto: ContractTypeDefinition, actor_id: UUID) -> ContractTypeModel:
        model = cls(created_by_id=actor_id)
        model.apply_dto(dto)
        return model


class AmountRangeModel(TrackedBase):
    """
    Persistent amount range.

    Guarantees:
        - contract_type_code references contract_types.code.
        - Overlap between different types is rejected by AmountRangeService
          before flush; the table itself does not enforce it.
    """

    __tablename__ = "amount_ranges"

    __table_args__ = (
        Index("idx_amount_range_lookup", "object_category", "is_active", "priority"),
    )

    object_category: Mapped[str] = mapped_column(String(20), nullable=False)
    contract_type_code: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("contract_types.code"),
        nullable=False,
    )

    # Both bounds inclusive; NULL max is unbounded
    min_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    max_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    legal_reference: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    def __repr__(self) -> str:
        upper = "inf" if self.max_amount is None else self.max_amount
        return (
            f"<AmountRange {self.object_category} {self.contract_type_code} "
            f"[{self.min_amount}, {upper}]>"
        )

    def to_dto(self) -> AmountRange:
        return AmountRange(
            object_category=self.object_category,
            contract_type_code=self.contract_type_code,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            priority=self.priority,
            is_active=self.is_active,
            description=self.description,
            legal_reference=self.legal_reference,
            range_id=self.id,
        )

    def apply_dto(self, dto: AmountRange) -> None:
        self.object_category = dto.object_category.value
        self.contract_type_code = dto.contract_type_code
        self.min_amount = dto.min_amount
        self.max_amount = dto.max_amount
        self.priority = dto.priority
        self.is_active = dto.is_active
        self.description = dto.description
        self.legal_reference = dto.legal_reference

    @classmethod
    def from_dto(cls, dto: AmountRange, actor_id: UUID) -> AmountRangeModel:
        model = cls(created_by_id=actor_id)
        if dto.range_id is not None:
            model.id = dto.range_id
        model.apply_dto(dto)
        return model
