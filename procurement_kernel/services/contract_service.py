"""
ContractService -- persistence side of contract phase progression.

Responsibility:
    Creates contracts (instantiating their phase sequence), loads them as
    frozen ContractSnapshots, runs the pure progression engine and writes
    the resulting occurrences back together with the history trail.

Architecture position:
    Kernel > Services -- imperative shell.
    Every mutator is load -> pure transition -> write.  All decisions are
    made by procurement_engines.progression; this service only persists.

Invariants enforced:
    - Optimistic concurrency: each write bumps ``ContractModel.version`` by
      one and the new version is read back after the flush.  A caller may
      pass ``expected_version`` to refuse writing over a newer state.
    - Occurrence order is fixed at creation (sequence_index).
    - One PHASE_CHANGE history row per transition, in transition order.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ContractNotFoundError: contract id does not resolve.
    - StaleContractError: the contract changed since it was read.
    - Every progression error of procurement_engines.progression,
      propagated unchanged after a WARNING log record.
    - UnknownContractTypeError, InputValidationError, DuplicateCodeError,
      SequenceConfigurationError from ``create_contract``.

Audit relevance:
    Every transition emits a ``phase_transition`` log record and a history
    row.  Rejected transitions are logged at WARNING level with the error
    code.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from procurement_engines import progression
from procurement_kernel.domain.catalog import coerce_amount, coerce_enum
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.codec import effective_config_to_dict
from procurement_kernel.domain.collaborators import DocumentStorage
from procurement_kernel.domain.contract import ContractSnapshot, ProgressionResult
from procurement_kernel.domain.values import (
    GeneralStatus,
    HistoryEventType,
    ObjectCategory,
)
from procurement_kernel.exceptions import (
    ContractNotFoundError,
    DuplicateCodeError,
    InputValidationError,
    NotFoundError,
    PhaseStateError,
    StaleContractError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.contract import (
    ContractModel,
    ContractPhaseOccurrenceModel,
)
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.contract_type_service import ContractTypeService
from procurement_kernel.services.document_registry_service import (
    DocumentRegistryService,
)
from procurement_kernel.services.history_service import ContractHistoryService
from procurement_kernel.services.phase_catalog_service import PhaseCatalogService

logger = get_logger("services.contract")


class ContractService(BaseService[ContractModel]):
    """
    Service for contracts and their phase progression.

    Contract:
        Mutators accept the contract id and return the new ContractSnapshot.
        ``expected_version`` (optional) must equal the stored version.

    Guarantees:
        - A rejected transition leaves the session unchanged.
        - The returned snapshot carries the version written.

    Non-goals:
        - Does NOT check permissions; the ProcurementEngine facade does.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        document_storage: DocumentStorage | None = None,
        contract_types: ContractTypeService | None = None,
        phase_catalog: PhaseCatalogService | None = None,
        history: ContractHistoryService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._documents = document_storage or DocumentRegistryService(
            session, self._clock
        )
        self._history = history or ContractHistoryService(session, self._clock)
        self._types = contract_types or ContractTypeService(session)
        self._phases = phase_catalog or PhaseCatalogService(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_contract(
        self,
        contract_number: str,
        title: str,
        object_category: ObjectCategory | str,
        estimated_amount: Decimal,
        contract_type_code: str,
        actor_id: UUID,
    ) -> ContractSnapshot:
        """
        Create a contract and instantiate its phase sequence.

        Args:
            contract_number: Unique case-file number.
            title: Human readable title.
            object_category: What is being procured.
            estimated_amount: Referential budget.
            contract_type_code: Active contract type applicable to the
                object category.
            actor_id: Who is creating the contract.

        Returns:
            Snapshot of the new contract at version 1.

        Raises:
            UnknownContractTypeError: If the type does not exist.
            InputValidationError: Inactive type, type not applicable to the
                object category, empty number or title.
            DuplicateCodeError: If the contract number is already used.
            SequenceConfigurationError: If no valid sequence can be built.
        """
        if not contract_number or not contract_number.strip():
            raise InputValidationError("contract_number", "must not be empty")
        if not title or not title.strip():
            raise InputValidationError("title", "must not be empty")
        category = coerce_enum(ObjectCategory, object_category, "object_category")
        amount = coerce_amount(estimated_amount, "estimated_amount")

        contract_type = self._types.get_by_code(contract_type_code)
        if not contract_type.is_active:
            raise InputValidationError(
                "contract_type_code", f"contract type {contract_type_code} is inactive"
            )
        if not contract_type.applies_to(category):
            raise InputValidationError(
                "contract_type_code",
                f"contract type {contract_type_code} does not apply to {category.value}",
            )
        existing = self.session.execute(
            select(ContractModel.id).where(ContractModel.contract_number == contract_number)
        ).first()
        if existing is not None:
            raise DuplicateCodeError("contract", contract_number)

        sequence = self._phases.build_sequence(contract_type_code)
        contract_id = uuid4()
        snapshot = progression.instantiate(sequence, self._clock.now(), contract_id)

        model = ContractModel(
            id=contract_id,
            contract_number=contract_number,
            title=title,
            object_category=category.value,
            estimated_amount=amount,
            contract_type_code=contract_type_code,
            general_status=snapshot.general_status.value,
            current_phase_code=snapshot.current_phase_code,
            version=1,
            created_by_id=actor_id,
        )
        model.occurrences = [
            ContractPhaseOccurrenceModel(
                sequence_index=index,
                phase_code=occ.phase_code,
                status=occ.status.value,
                start_date=occ.start_date,
                end_date=occ.end_date,
                completion_percentage=occ.completion_percentage,
                effective_config=effective_config_to_dict(occ.effective),
            )
            for index, occ in enumerate(snapshot.occurrences)
        ]
        self.session.add(model)
        self.session.flush()

        self._history.record_creation(
            contract_id,
            contract_number,
            contract_type_code,
            list(sequence.phase_codes),
            actor_id,
        )
        self.session.flush()

        logger.info(
            "contract_initialized",
            extra={
                "contract_id": str(contract_id),
                "contract_number": contract_number,
                "contract_type_code": contract_type_code,
                "object_category": category.value,
                "phase_codes": list(sequence.phase_codes),
                "current_phase_code": snapshot.current_phase_code,
                "actor_id": str(actor_id),
            },
        )
        return model.to_snapshot()

    # ------------------------------------------------------------------
    # Load / write
    # ------------------------------------------------------------------

    def _load(self, contract_id: UUID, expected_version: int | None = None) -> ContractModel:
        model = self.session.get(ContractModel, contract_id)
        if model is None:
            raise ContractNotFoundError(str(contract_id))
        if expected_version is not None and model.version != expected_version:
            raise StaleContractError(str(contract_id), expected_version)
        return model

    def get_snapshot(self, contract_id: UUID) -> ContractSnapshot:
        return self._load(contract_id).to_snapshot()

    def find_by_number(self, contract_number: str) -> ContractSnapshot | None:
        model = self.session.execute(
            select(ContractModel).where(ContractModel.contract_number == contract_number)
        ).scalar_one_or_none()
        return None if model is None else model.to_snapshot()

    def _write(
        self,
        model: ContractModel,
        snapshot: ContractSnapshot,
        actor_id: UUID,
    ) -> None:
        for row, occ in zip(model.occurrences, snapshot.occurrences):
            row.apply_dto(occ)
        model.current_phase_code = snapshot.current_phase_code
        model.general_status = snapshot.general_status.value

        expected = model.version
        model.version = expected + 1
        model.updated_by_id = actor_id
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise StaleContractError(str(model.id), expected) from exc

        persisted = self.session.execute(
            select(ContractModel.version).where(ContractModel.id == model.id)
        ).scalar_one()
        if persisted != expected + 1:
            raise StaleContractError(str(model.id), expected)

    def _progress(
        self,
        contract_id: UUID,
        action: str,
        phase_code: str | None,
        actor_id: UUID,
        expected_version: int | None,
        transition: Callable[[ContractSnapshot], ProgressionResult],
    ) -> ContractSnapshot:
        model = self._load(contract_id, expected_version)
        before = model.to_snapshot()
        try:
            result = transition(before)
        except (PhaseStateError, NotFoundError, InputValidationError) as exc:
            logger.warning(
                "phase_transition_rejected",
                extra={
                    "contract_id": str(contract_id),
                    "phase_code": phase_code or before.current_phase_code,
                    "action": action,
                    "error_code": exc.code,
                    "actor_id": str(actor_id),
                },
            )
            raise

        self._write(model, result.snapshot, actor_id)
        self._history.record_progression(contract_id, result, actor_id)
        self.session.flush()

        for record in result.transitions:
            logger.info(
                "phase_transition",
                extra={
                    "contract_id": str(contract_id),
                    "phase_code": record.phase_code,
                    "action": record.action,
                    "from_status": record.from_status.value,
                    "to_status": record.to_status.value,
                    "automatic": record.automatic,
                    "current_phase_code": result.current_phase_code,
                    "actor_id": str(actor_id),
                },
            )
        if result.phase_changed:
            logger.info(
                "current_phase_changed",
                extra={
                    "contract_id": str(contract_id),
                    "previous_phase_code": result.previous_phase_code,
                    "current_phase_code": result.current_phase_code,
                },
            )
        return model.to_snapshot()

    # ------------------------------------------------------------------
    # Phase transitions
    # ------------------------------------------------------------------

    def start_phase(
        self,
        contract_id: UUID,
        phase_code: str,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        """PENDING -> IN_PROGRESS, gated on the phase dependencies."""
        return self._progress(
            contract_id,
            progression.ACTION_START,
            phase_code,
            actor_id,
            expected_version,
            lambda s: progression.start_phase(s, phase_code, self._clock.now()),
        )

    def complete_phase(
        self,
        contract_id: UUID,
        phase_code: str,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        """
        IN_PROGRESS -> COMPLETED, gated on mandatory documents.

        Documents are read from the DocumentStorage collaborator.  With an
        effective ``auto_advance`` the next phase may be started too.
        """
        documents = self._documents.list_documents(contract_id, phase_code)
        return self._progress(
            contract_id,
            progression.ACTION_COMPLETE,
            phase_code,
            actor_id,
            expected_version,
            lambda s: progression.complete_phase(
                s, phase_code, documents, self._clock.now()
            ),
        )

    def advance_to_next_phase(
        self,
        contract_id: UUID,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        return self._progress(
            contract_id,
            "advance",
            None,
            actor_id,
            expected_version,
            lambda s: progression.advance_to_next_phase(s, self._clock.now()),
        )

    def cancel_phase(
        self,
        contract_id: UUID,
        phase_code: str,
        reason: str,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        """PENDING or IN_PROGRESS -> CANCELLED.  Other phases are untouched."""
        return self._progress(
            contract_id,
            progression.ACTION_CANCEL,
            phase_code,
            actor_id,
            expected_version,
            lambda s: progression.cancel_phase(s, phase_code, reason, self._clock.now()),
        )

    # ------------------------------------------------------------------
    # Other writes
    # ------------------------------------------------------------------

    def update_completion(
        self,
        contract_id: UUID,
        phase_code: str,
        percentage: Decimal,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        """Record partial progress (0..100) on an IN_PROGRESS phase."""
        model = self._load(contract_id, expected_version)
        before = model.to_snapshot()
        previous = before.occurrence(phase_code)
        updated = progression.update_completion(before, phase_code, percentage)

        self._write(model, updated, actor_id)
        current = updated.occurrence(phase_code)
        self._history.record(
            contract_id,
            HistoryEventType.DATA_MODIFICATION,
            f"Phase {phase_code} completion set to {current.completion_percentage}%",
            actor_id,
            changes={
                "phase_code": phase_code,
                "completion_percentage": str(current.completion_percentage),
                "previous_completion_percentage": str(previous.completion_percentage),
            },
        )
        self.session.flush()
        logger.info(
            "phase_completion_updated",
            extra={
                "contract_id": str(contract_id),
                "phase_code": phase_code,
                "completion_percentage": str(current.completion_percentage),
                "actor_id": str(actor_id),
            },
        )
        return model.to_snapshot()

    def change_general_status(
        self,
        contract_id: UUID,
        new_status: GeneralStatus | str,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> ContractSnapshot:
        """
        Move the contract's general status along GENERAL_STATUS_TRANSITIONS.

        Raises:
            InvalidContractStatusTransitionError: If the move is not allowed.
        """
        status = coerce_enum(GeneralStatus, new_status, "general_status")
        model = self._load(contract_id, expected_version)
        before = model.to_snapshot()
        try:
            updated = progression.change_general_status(before, status)
        except PhaseStateError as exc:
            logger.warning(
                "contract_status_change_rejected",
                extra={
                    "contract_id": str(contract_id),
                    "from_status": before.general_status.value,
                    "to_status": status.value,
                    "error_code": exc.code,
                },
            )
            raise

        self._write(model, updated, actor_id)
        self._history.record(
            contract_id,
            HistoryEventType.STATUS_CHANGE,
            f"Status changed from {before.general_status.value} to {status.value}",
            actor_id,
            previous_status=before.general_status.value,
            new_status=status.value,
        )
        self.session.flush()
        logger.info(
            "contract_status_changed",
            extra={
                "contract_id": str(contract_id),
                "from_status": before.general_status.value,
                "to_status": status.value,
                "actor_id": str(actor_id),
            },
        )
        return model.to_snapshot()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def calculate_progress(self, contract_id: UUID) -> Decimal:
        return progression.calculate_progress(self.get_snapshot(contract_id))

    def estimated_completion(
        self,
        contract_id: UUID,
        from_time: datetime | None = None,
    ) -> datetime:
        """Estimated end date from the remaining open phase durations."""
        return progression.estimated_completion(
            self.get_snapshot(contract_id), from_time or self._clock.now()
        )
