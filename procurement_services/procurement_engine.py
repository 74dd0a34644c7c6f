"""
procurement_services.procurement_engine -- Public facade of the configuration engine.

Responsibility:
    Single entry point for the surrounding procurement application: resolve
    the contract type for an amount, expose phase sequences, create
    contracts and drive their phases, and run the catalog integrity check.
    Permission and approval-limit checks are made here, before any kernel
    mutator runs.

Architecture position:
    Services -- orchestration over engines + kernel.
    Constructs every kernel service exactly once and shares the session,
    clock and document storage between them.

Invariants enforced:
    - Every mutator consults the PermissionProvider first; a refusal leaves
      the session untouched.
    - A contract above the department approval limit is never created.
    - Does NOT commit: transaction boundaries belong to the caller
      (``session_scope`` or the web request).

Failure modes:
    - PermissionDeniedError, ApprovalLimitExceededError.
    - Everything raised by the kernel services, unchanged.

Audit relevance:
    Calls run inside a LogContext carrying correlation_id, actor_id and
    contract_id, so every log record of one operation can be joined.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from procurement_engines.catalog_integrity import check_catalog
from procurement_kernel.domain.catalog import (
    ConfigurationIssue,
    ContractTypeDefinition,
    coerce_amount,
    coerce_enum,
)
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.collaborators import (
    AllowAllPermissions,
    DocumentStorage,
    PermissionProvider,
)
from procurement_kernel.domain.contract import ContractSnapshot, DocumentRecord
from procurement_kernel.domain.phase import PhaseSequence
from procurement_kernel.domain.values import GeneralStatus, ObjectCategory, PhaseStatus
from procurement_kernel.exceptions import (
    ApprovalLimitExceededError,
    ExternalDocumentStorageError,
    InputValidationError,
    PermissionDeniedError,
)
from procurement_kernel.logging_config import LogContext, get_logger
from procurement_kernel.services.amount_range_service import AmountRangeService
from procurement_kernel.services.contract_service import ContractService
from procurement_kernel.services.contract_type_service import ContractTypeService
from procurement_kernel.services.document_registry_service import DocumentRegistryService
from procurement_kernel.services.history_service import ContractHistoryService, HistoryEntry
from procurement_kernel.services.phase_catalog_service import PhaseCatalogService

logger = get_logger("procurement_engine")

# Permission categories passed to PermissionProvider.is_permitted
CATEGORY_CONTRACTS = "contracts"
CATEGORY_DOCUMENTS = "documents"


@dataclass(frozen=True)
class ContractProgress:
    """Progress summary of one contract."""

    contract_id: UUID
    percentage: Decimal
    current_phase_code: str | None
    completed_phases: int
    total_phases: int
    estimated_completion: datetime


class ProcurementEngine:
    """Facade over the catalog and contract services.

    Contract:
        Receives a SQLAlchemy Session and optional Clock, DocumentStorage
        and PermissionProvider.  Builds each kernel service once.

    Guarantees:
        - All services share the same Session and Clock.
        - The DocumentStorage used by the completion gate is
          ``document_storage`` when given, else the database registry.
        - register_document writes to the database registry only, so it is
          refused when an external ``document_storage`` is configured.

    Non-goals:
        - Does NOT manage transaction boundaries (no commit/rollback).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        document_storage: DocumentStorage | None = None,
        permissions: PermissionProvider | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._permissions = permissions or AllowAllPermissions()
        self._external_storage = document_storage

        self.contract_types = ContractTypeService(session)
        self.amount_ranges = AmountRangeService(session)
        self.phase_catalog = PhaseCatalogService(session)
        self.history = ContractHistoryService(session, self._clock)
        self.document_registry = DocumentRegistryService(session, self._clock)
        self.contracts = ContractService(
            session,
            self._clock,
            document_storage=document_storage or self.document_registry,
            contract_types=self.contract_types,
            phase_catalog=self.phase_catalog,
            history=self.history,
        )

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def _authorize(
        self,
        actor_id: UUID,
        department_id: UUID | None,
        category: str,
        action: str,
    ) -> None:
        if not self._permissions.is_permitted(actor_id, department_id, category, action):
            logger.warning(
                "permission_denied",
                extra={
                    "actor_id": str(actor_id),
                    "department_id": None if department_id is None else str(department_id),
                    "category": category,
                    "action": action,
                },
            )
            raise PermissionDeniedError(
                str(actor_id),
                action,
                None if department_id is None else str(department_id),
            )

    def _check_approval_limit(self, department_id: UUID | None, amount: Decimal) -> None:
        limit = self._permissions.department_approval_limit(department_id)
        if limit is not None and amount > limit:
            logger.warning(
                "approval_limit_exceeded",
                extra={
                    "department_id": None if department_id is None else str(department_id),
                    "amount": str(amount),
                    "limit": str(limit),
                },
            )
            raise ApprovalLimitExceededError(
                None if department_id is None else str(department_id),
                str(amount),
                str(limit),
            )

    # ------------------------------------------------------------------
    # Catalog queries
    # ------------------------------------------------------------------

    def resolve_contract_type(
        self,
        object_category: ObjectCategory | str,
        amount: Decimal,
        default: str | None = None,
    ) -> ContractTypeDefinition | None:
        """
        Best contract type for ``amount`` in ``object_category``.

        Falls back to the ``default`` type code when no range applies; None
        when there is neither a match nor a default.
        """
        amount = coerce_amount(amount, "amount")
        resolved = self.amount_ranges.resolve_contract_types(object_category, amount)
        if resolved:
            return resolved[0]
        if default is not None:
            logger.info(
                "contract_type_default_used",
                extra={"amount": str(amount), "contract_type_code": default},
            )
            return self.contract_types.get_by_code(default)
        return None

    def get_phase_sequence(self, contract_type_code: str) -> PhaseSequence:
        """Phase plan of a contract type, with effective configuration."""
        self.contract_types.get_by_code(contract_type_code)
        return self.phase_catalog.build_sequence(contract_type_code)

    def validate_catalog_integrity(self) -> list[ConfigurationIssue]:
        """Full integrity pass over the persisted catalog."""
        issues = check_catalog(
            self.contract_types.list_all(),
            self.amount_ranges.list_ranges(),
            self.phase_catalog.list_all(),
        )
        log = logger.warning if any(i.is_error for i in issues) else logger.info
        log(
            "catalog_integrity_checked",
            extra={
                "issue_count": len(issues),
                "error_codes": sorted({i.code for i in issues if i.is_error}),
            },
        )
        return issues

    # ------------------------------------------------------------------
    # Contracts
    # ------------------------------------------------------------------

    def initialize_contract(
        self,
        contract_number: str,
        title: str,
        object_category: ObjectCategory | str,
        estimated_amount: Decimal,
        actor_id: UUID,
        contract_type_code: str | None = None,
        department_id: UUID | None = None,
    ) -> ContractSnapshot:
        """
        Create a contract with its phase sequence.

        Without ``contract_type_code`` the type is resolved from the amount
        ranges.

        Raises:
            PermissionDeniedError: If the actor may not create contracts.
            ApprovalLimitExceededError: If the amount exceeds the
                department approval limit.
            InputValidationError: If no contract type applies.
        """
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=str(actor_id)):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "create")
            amount = coerce_amount(estimated_amount, "estimated_amount")
            self._check_approval_limit(department_id, amount)

            if contract_type_code is None:
                category = coerce_enum(ObjectCategory, object_category, "object_category")
                resolved = self.resolve_contract_type(category, amount)
                if resolved is None:
                    raise InputValidationError(
                        "contract_type_code",
                        f"no contract type applies to {category.value} for {amount}",
                    )
                contract_type_code = resolved.code

            return self.contracts.create_contract(
                contract_number,
                title,
                object_category,
                amount,
                contract_type_code,
                actor_id,
            )

    def get_contract(self, contract_id: UUID) -> ContractSnapshot:
        return self.contracts.get_snapshot(contract_id)

    def start_phase(
        self,
        contract_id: UUID,
        phase_code: str,
        actor_id: UUID,
        department_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
            phase_code=phase_code,
        ):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "start_phase")
            return self.contracts.start_phase(
                contract_id, phase_code, actor_id, expected_version
            )

    def complete_phase(
        self,
        contract_id: UUID,
        phase_code: str,
        actor_id: UUID,
        department_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
            phase_code=phase_code,
        ):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "complete_phase")
            return self.contracts.complete_phase(
                contract_id, phase_code, actor_id, expected_version
            )

    def advance_to_next_phase(
        self,
        contract_id: UUID,
        actor_id: UUID,
        department_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
        ):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "advance_phase")
            return self.contracts.advance_to_next_phase(
                contract_id, actor_id, expected_version
            )

    def cancel_phase(
        self,
        contract_id: UUID,
        phase_code: str,
        reason: str,
        actor_id: UUID,
        department_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
            phase_code=phase_code,
        ):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "cancel_phase")
            return self.contracts.cancel_phase(
                contract_id, phase_code, reason, actor_id, expected_version
            )

    def update_completion(
        self,
        contract_id: UUID,
        phase_code: str,
        percentage: Decimal,
        actor_id: UUID,
        department_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
            phase_code=phase_code,
        ):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "update_phase")
            return self.contracts.update_completion(
                contract_id, phase_code, percentage, actor_id, expected_version
            )

    def change_general_status(
        self,
        contract_id: UUID,
        new_status: GeneralStatus | str,
        actor_id: UUID,
        department_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
        ):
            self._authorize(actor_id, department_id, CATEGORY_CONTRACTS, "change_status")
            return self.contracts.change_general_status(
                contract_id, new_status, actor_id, expected_version
            )

    def register_document(
        self,
        contract_id: UUID,
        phase_code: str,
        document_code: str,
        actor_id: UUID,
        file_name: str | None = None,
        file_type: str | None = None,
        file_size: int | None = None,
        department_id: UUID | None = None,
    ) -> DocumentRecord:
        """Record an uploaded document in the database registry.

        With an external DocumentStorage the completion gate never reads
        the registry; uploads belong in that storage instead.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            contract_id=str(contract_id),
            phase_code=phase_code,
        ):
            if self._external_storage is not None:
                storage_name = type(self._external_storage).__name__
                logger.warning(
                    "document_upload_rejected",
                    extra={"document_code": document_code, "storage": storage_name},
                )
                raise ExternalDocumentStorageError(storage_name)
            self._authorize(actor_id, department_id, CATEGORY_DOCUMENTS, "upload")
            return self.document_registry.register_document(
                contract_id,
                phase_code,
                document_code,
                actor_id,
                file_name=file_name,
                file_type=file_type,
                file_size=file_size,
            )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def contract_progress(self, contract_id: UUID) -> ContractProgress:
        snapshot = self.contracts.get_snapshot(contract_id)
        return ContractProgress(
            contract_id=contract_id,
            percentage=self.contracts.calculate_progress(contract_id),
            current_phase_code=snapshot.current_phase_code,
            completed_phases=sum(
                1 for occ in snapshot.occurrences if occ.status == PhaseStatus.COMPLETED
            ),
            total_phases=len(snapshot.occurrences),
            estimated_completion=self.contracts.estimated_completion(contract_id),
        )

    def get_history(self, contract_id: UUID) -> list[HistoryEntry]:
        return self.history.get_history(contract_id)
