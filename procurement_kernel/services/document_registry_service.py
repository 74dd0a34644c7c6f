"""
DocumentRegistryService -- registry of documents uploaded to contract phases.

Responsibility:
    Records which documents have been uploaded against each phase of a
    contract, and lists them for the phase-completion gate.  File bytes are
    stored elsewhere; only the registry entry lives here.

Architecture position:
    Kernel > Services -- imperative shell.
    Satisfies the DocumentStorage protocol consumed by ContractService.

Invariants enforced:
    - A document can only be registered against a phase of the contract,
      under a document code of that phase's effective configuration.
    - File type and size respect the document spec.
    - Removal is logical (is_active=False); the row is kept for history.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ContractNotFoundError, PhaseNotInContractError,
      DocumentRecordNotFoundError.
    - InputValidationError: unknown document code, disallowed file type,
      file too large.

Audit relevance:
    Uploads write a DOCUMENT_UPLOAD history row; removals write a
    DATA_MODIFICATION row.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.contract import DocumentRecord
from procurement_kernel.domain.values import HistoryEventType
from procurement_kernel.exceptions import (
    ContractNotFoundError,
    DocumentRecordNotFoundError,
    InputValidationError,
    PhaseNotInContractError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.contract import ContractDocumentModel, ContractModel
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.history_service import ContractHistoryService

logger = get_logger("services.document_registry")


class DocumentRegistryService(BaseService[ContractDocumentModel]):
    """
    Service for contract document records.

    Contract:
        ``list_documents`` returns every record of the phase, active or not;
        the completion gate only counts active ones.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._history = ContractHistoryService(session, self._clock)

    def register_document(
        self,
        contract_id: UUID,
        phase_code: str,
        document_code: str,
        actor_id: UUID,
        file_name: str | None = None,
        file_type: str | None = None,
        file_size: int | None = None,
    ) -> DocumentRecord:
        """
        Register an uploaded document against a contract phase.

        Raises:
            ContractNotFoundError: If the contract does not exist.
            PhaseNotInContractError: If the phase is not part of the contract.
            InputValidationError: If the document code, file type or size is
                not accepted by the phase's effective configuration.
        """
        contract = self.session.get(ContractModel, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        occurrence = next(
            (o for o in contract.occurrences if o.phase_code == phase_code), None
        )
        if occurrence is None:
            raise PhaseNotInContractError(str(contract_id), phase_code)

        spec = occurrence.to_dto().effective.document(document_code)
        if spec is None:
            raise InputValidationError(
                "document_code",
                f"{document_code} is not a document of phase {phase_code}",
            )
        if file_type is not None and not spec.accepts(file_type):
            raise InputValidationError(
                "file_type",
                f"{file_type} is not allowed for {document_code} "
                f"(allowed: {', '.join(spec.allowed_file_types)})",
            )
        if file_size is not None and file_size > spec.max_file_size:
            raise InputValidationError(
                "file_size",
                f"{file_size} bytes exceeds the {spec.max_file_size} byte limit",
            )

        row = ContractDocumentModel(
            contract_id=contract_id,
            phase_code=phase_code,
            document_code=document_code,
            file_name=file_name,
            file_type=None if file_type is None else file_type.lower().lstrip("."),
            file_size=file_size,
            uploaded_at=self._clock.now(),
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(row)
        self.session.flush()

        self._history.record(
            contract_id,
            HistoryEventType.DOCUMENT_UPLOAD,
            f"Document {document_code} uploaded to phase {phase_code}",
            actor_id,
            changes={
                "phase_code": phase_code,
                "document_code": document_code,
                "file_name": file_name,
            },
        )
        self.session.flush()

        logger.info(
            "document_registered",
            extra={
                "contract_id": str(contract_id),
                "phase_code": phase_code,
                "document_code": document_code,
                "actor_id": str(actor_id),
            },
        )
        return row.to_dto()

    def deactivate_document(self, record_id: UUID, actor_id: UUID) -> DocumentRecord:
        """Logically delete a document record."""
        row = self.session.get(ContractDocumentModel, record_id)
        if row is None:
            raise DocumentRecordNotFoundError(str(record_id))
        if row.is_active:
            row.is_active = False
            row.updated_by_id = actor_id
            self._history.record(
                row.contract_id,
                HistoryEventType.DATA_MODIFICATION,
                f"Document {row.document_code} removed from phase {row.phase_code}",
                actor_id,
                changes={
                    "phase_code": row.phase_code,
                    "document_code": row.document_code,
                    "is_active": False,
                },
            )
            self.session.flush()
            logger.info(
                "document_deactivated",
                extra={
                    "contract_id": str(row.contract_id),
                    "phase_code": row.phase_code,
                    "document_code": row.document_code,
                    "actor_id": str(actor_id),
                },
            )
        return row.to_dto()

    def list_documents(self, contract_id: UUID, phase_code: str) -> list[DocumentRecord]:
        rows = self.session.execute(
            select(ContractDocumentModel)
            .where(
                ContractDocumentModel.contract_id == contract_id,
                ContractDocumentModel.phase_code == phase_code,
            )
            .order_by(ContractDocumentModel.uploaded_at)
        ).scalars()
        return [row.to_dto() for row in rows]
