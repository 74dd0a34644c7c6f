"""
Module: procurement_kernel.models.contract
Responsibility: ORM persistence for procurement contracts (case files), their
    phase occurrences, uploaded document records and the contract history
    audit trail.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - contract_number is unique (uq_contract_number).
    - One occurrence per (contract, phase) (uq_contract_phase_occurrence);
      sequence_index fixes the instantiated order.
    - Optimistic concurrency: every write bumps ``version``; an UPDATE that
      matches no row at the expected version raises StaleDataError, which
      ContractService maps to StaleContractError.

Failure modes:
    - StaleDataError (SQLAlchemy) on a concurrent write.

Audit relevance:
    Each occurrence stores a JSON copy of the effective phase configuration
    taken when the contract was created.  ContractHistoryModel rows are
    append-only: one per creation, phase transition, status change, document
    upload or data modification.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from procurement_kernel.domain.codec import effective_config_from_dict
from procurement_kernel.domain.contract import (
    ContractSnapshot,
    DocumentRecord,
    PhaseOccurrence,
)
from procurement_kernel.domain.values import GeneralStatus, PhaseStatus


class ContractModel(TrackedBase):
    """
    Persistent procurement contract.

    Contract:
        The phase occurrences are instantiated once from the phase sequence
        of ``contract_type_code`` and are never reordered.

    Guarantees:
        - current_phase_code is NULL or names one of the occurrences
          (maintained by ContractService).
        - version increases by one on every write.
    """

    __tablename__ = "contracts"

    __table_args__ = (
        UniqueConstraint("contract_number", name="uq_contract_number"),
        Index("idx_contract_type", "contract_type_code"),
        Index("idx_contract_status", "general_status"),
    )

    contract_number: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    object_category: Mapped[str] = mapped_column(String(20), nullable=False)
    estimated_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    contract_type_code: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("contract_types.code"),
        nullable=False,
    )

    general_status: Mapped[str] = mapped_column(
        String(20),
        default=GeneralStatus.DRAFT.value,
        nullable=False,
    )
    current_phase_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)

    occurrences: Mapped[list[ContractPhaseOccurrenceModel]] = relationship(
        "ContractPhaseOccurrenceModel",
        back_populates="contract",
        order_by="ContractPhaseOccurrenceModel.sequence_index",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # ContractService bumps version on every write
    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    def __repr__(self) -> str:
        return (
            f"<Contract {self.contract_number} type={self.contract_type_code} "
            f"status={self.general_status} phase={self.current_phase_code}>"
        )

    def to_snapshot(self) -> ContractSnapshot:
        """Convert ORM model (with occurrences) to a frozen ContractSnapshot."""
        return ContractSnapshot(
            contract_type_code=self.contract_type_code,
            occurrences=tuple(o.to_dto() for o in self.occurrences),
            current_phase_code=self.current_phase_code,
            general_status=GeneralStatus(self.general_status),
            contract_id=self.id,
            version=self.version,
        )


class ContractPhaseOccurrenceModel(Base):
    """
    Per-contract instance of a catalog phase.

    Guarantees:
        - UNIQUE(contract_id, phase_code).
        - effective_config is written once at instantiation.
    """

    __tablename__ = "contract_phase_occurrences"

    __table_args__ = (
        UniqueConstraint("contract_id", "phase_code", name="uq_contract_phase_occurrence"),
        Index("idx_occurrence_contract_seq", "contract_id", "sequence_index"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )
    sequence_index: Mapped[int] = mapped_column(Integer, nullable=False)
    phase_code: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=PhaseStatus.PENDING.value,
        nullable=False,
    )
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    completion_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        nullable=False,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    effective_config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    contract: Mapped[ContractModel] = relationship(
        "ContractModel",
        back_populates="occurrences",
    )

    def __repr__(self) -> str:
        return f"<PhaseOccurrence {self.phase_code} #{self.sequence_index} {self.status}>"

    def to_dto(self) -> PhaseOccurrence:
        return PhaseOccurrence(
            phase_code=self.phase_code,
            effective=effective_config_from_dict(self.effective_config),
            status=PhaseStatus(self.status),
            start_date=self.start_date,
            end_date=self.end_date,
            completion_percentage=Decimal(self.completion_percentage),
            cancellation_reason=self.cancellation_reason,
        )

    def apply_dto(self, dto: PhaseOccurrence) -> None:
        """Copy the mutable progression fields of ``dto`` onto this row."""
        self.status = dto.status.value
        self.start_date = dto.start_date
        self.end_date = dto.end_date
        self.completion_percentage = dto.completion_percentage
        self.cancellation_reason = dto.cancellation_reason


class ContractDocumentModel(TrackedBase):
    """
    Record of a document uploaded against a contract phase.

    Contract:
        File bytes live in external storage; this row is the registry entry
        the completion gate reads.  Deleting a document sets is_active to
        False.
    """

    __tablename__ = "contract_documents"

    __table_args__ = (
        Index("idx_contract_document_phase", "contract_id", "phase_code", "is_active"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )
    phase_code: Mapped[str] = mapped_column(String(20), nullable=False)
    document_code: Mapped[str] = mapped_column(String(50), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ContractDocument {self.phase_code}/{self.document_code} active={self.is_active}>"

    def to_dto(self) -> DocumentRecord:
        return DocumentRecord(
            document_code=self.document_code,
            is_active=self.is_active,
            file_name=self.file_name,
            file_type=self.file_type,
            file_size=self.file_size,
            uploaded_at=self.uploaded_at,
            record_id=self.id,
        )


class ContractHistoryModel(Base):
    """
    Append-only audit trail of a contract.

    Contract:
        Rows are never updated or deleted.  ``changes`` holds the structured
        detail of the event (transition list, updated fields).
    """

    __tablename__ = "contract_history"

    __table_args__ = (
        UniqueConstraint("contract_id", "sequence_number", name="uq_contract_history_seq"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )
    # 1, 2, 3 ... per contract, in recording order
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    previous_phase_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_phase_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    changes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    event_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<ContractHistory {self.event_type} contract={self.contract_id}>"
