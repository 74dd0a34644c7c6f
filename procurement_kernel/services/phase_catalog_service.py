"""
PhaseCatalogService -- the phase template catalog.

Responsibility:
    Create, update and deactivate phase templates with their per-contract-
    type overrides, answer which phases apply to a contract type, and build
    the phase sequence (with effective configuration) for a type.

Architecture position:
    Kernel > Services -- imperative shell.
    Every write is read-validate-write: the full phase catalog is read,
    procurement_engines.catalog_integrity.validate_phase_write decides, and
    only then is the session flushed.

Invariants enforced:
    - Phase codes are unique.
    - (order, category) unique among active phases.
    - Document codes unique within a phase (base and override additions).
    - At most one override per contract type within a phase, and overrides
      reference existing contract types.
    - Dependencies reference active phases and the graph stays acyclic.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - DuplicateCodeError, DuplicateOrderError, DuplicateDocumentCodeError,
      DuplicateTypeOverrideError, UnknownContractTypeError,
      UnknownPhaseError, CyclicDependencyError (raised before any flush).
    - SequenceConfigurationError from ``build_sequence``.

Audit relevance:
    Phase writes are logged with code, order, category and actor.  Rejected
    writes are logged at WARNING level with the error code.
"""

from dataclasses import replace
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from procurement_engines.catalog_integrity import validate_phase_write
from procurement_engines.dependency_graph import find_dependency_cycle
from procurement_engines.effective_config import resolve_effective_config
from procurement_engines.phase_sequence import build_sequence, find_applicable_phases
from procurement_kernel.domain.phase import (
    DocumentsSummary,
    EffectivePhaseConfig,
    PhaseSequence,
    PhaseTemplate,
)
from procurement_kernel.exceptions import (
    ConfigurationError,
    DuplicateCodeError,
    InputValidationError,
    NotFoundError,
    UnknownPhaseError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.contract_type import ContractTypeModel
from procurement_kernel.models.phase import ContractPhaseModel
from procurement_kernel.services.base import BaseService

logger = get_logger("services.phase_catalog")


class PhaseCatalogService(BaseService[ContractPhaseModel]):
    """
    Service for the phase template catalog.

    Contract:
        Accepts and returns frozen PhaseTemplate objects.  Catalog-wide
        rules are checked against a snapshot of every phase before the
        write is flushed.

    Guarantees:
        - ``find_applicable_phases`` and ``build_sequence`` order phases by
          (order, category declaration order, code).
        - A phase is applicable to a type only through its override entry.

    Non-goals:
        - Does NOT change phases of contracts already created; those carry
          their own effective configuration snapshot.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_orm(self, code: str) -> ContractPhaseModel | None:
        return self.session.execute(
            select(ContractPhaseModel).where(ContractPhaseModel.code == code)
        ).scalar_one_or_none()

    def _require_orm(self, code: str) -> ContractPhaseModel:
        model = self._get_orm(code)
        if model is None:
            raise UnknownPhaseError(code)
        return model

    def find_by_code(self, code: str) -> PhaseTemplate | None:
        model = self._get_orm(code)
        return None if model is None else model.to_dto()

    def get_by_code(self, code: str) -> PhaseTemplate:
        return self._require_orm(code).to_dto()

    def get_by_id(self, phase_id: UUID) -> PhaseTemplate:
        model = self.session.get(ContractPhaseModel, phase_id)
        if model is None:
            raise UnknownPhaseError(str(phase_id))
        return model.to_dto()

    def list_all(self, include_inactive: bool = True) -> list[PhaseTemplate]:
        stmt = select(ContractPhaseModel)
        if not include_inactive:
            stmt = stmt.where(ContractPhaseModel.is_active.is_(True))
        phases = [m.to_dto() for m in self.session.execute(stmt).scalars()]
        return sorted(phases, key=lambda p: p.sort_key)

    def list_active(self) -> list[PhaseTemplate]:
        return self.list_all(include_inactive=False)

    def find_with_document_code(self, document_code: str) -> list[PhaseTemplate]:
        """Active phases whose base documents include ``document_code``."""
        return [p for p in self.list_active() if p.document(document_code) is not None]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _known_type_codes(self) -> frozenset[str]:
        return frozenset(self.session.execute(select(ContractTypeModel.code)).scalars())

    def _validate(self, phase: PhaseTemplate) -> None:
        try:
            validate_phase_write(phase, self.list_all(), self._known_type_codes())
        except (ConfigurationError, NotFoundError) as exc:
            logger.warning(
                "phase_write_rejected",
                extra={"phase_code": phase.code, "error_code": exc.code},
            )
            raise

    def create(self, phase: PhaseTemplate, actor_id: UUID) -> PhaseTemplate:
        """
        Create a phase template with its overrides.

        Args:
            phase: Validated phase template.
            actor_id: Who is creating the phase.

        Returns:
            The persisted phase (with ``phase_id``).

        Raises:
            DuplicateCodeError: If the code already exists.
            ConfigurationError / NotFoundError subclasses: see module doc.
        """
        if self._get_orm(phase.code) is not None:
            raise DuplicateCodeError("phase", phase.code)
        self._validate(phase)

        model = ContractPhaseModel.from_dto(phase, actor_id)
        self.session.add(model)
        self.session.flush()

        logger.info(
            "phase_created",
            extra={
                "phase_code": phase.code,
                "order": phase.order,
                "category": phase.category.value,
                "contract_type_codes": list(phase.applicable_type_codes),
                "actor_id": str(actor_id),
            },
        )
        return model.to_dto()

    def update(self, code: str, phase: PhaseTemplate, actor_id: UUID) -> PhaseTemplate:
        """
        Replace an existing phase template (overrides included).

        Raises:
            UnknownPhaseError: If ``code`` does not resolve.
            InputValidationError: If ``phase.code`` differs from ``code``.
        """
        model = self._require_orm(code)
        if phase.code != code:
            raise InputValidationError("code", "a phase code cannot be changed")
        candidate = replace(phase, phase_id=model.id)
        self._validate(candidate)

        model.apply_dto(candidate, actor_id)
        model.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "phase_updated",
            extra={
                "phase_code": code,
                "order": candidate.order,
                "category": candidate.category.value,
                "actor_id": str(actor_id),
            },
        )
        return model.to_dto()

    def deactivate(self, code: str, actor_id: UUID) -> PhaseTemplate:
        """
        Soft delete a phase.

        Phases that still depend on it are reported by the catalog
        integrity check as orphaned references.
        """
        model = self._require_orm(code)
        if model.is_active:
            model.is_active = False
            model.updated_by_id = actor_id
            self.session.flush()
            dependents = [
                p.code
                for p in self.list_active()
                if code in p.dependencies.referenced_codes
            ]
            log = logger.warning if dependents else logger.info
            log(
                "phase_deactivated",
                extra={
                    "phase_code": code,
                    "dependent_phase_codes": dependents,
                    "actor_id": str(actor_id),
                },
            )
        return model.to_dto()

    def reactivate(self, code: str, actor_id: UUID) -> PhaseTemplate:
        """Reactivate a phase; catalog rules apply as for a new write."""
        model = self._require_orm(code)
        if not model.is_active:
            candidate = replace(model.to_dto(), is_active=True)
            self._validate(candidate)
            model.is_active = True
            model.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "phase_reactivated",
                extra={"phase_code": code, "actor_id": str(actor_id)},
            )
        return model.to_dto()

    # ------------------------------------------------------------------
    # Catalog queries
    # ------------------------------------------------------------------

    def validate_dependency_graph(self) -> list[str] | None:
        """One dependency cycle among active phases as a code path, or None."""
        return find_dependency_cycle(self.list_active())

    def find_applicable_phases(self, contract_type_code: str) -> list[PhaseTemplate]:
        return list(find_applicable_phases(self.list_active(), contract_type_code))

    def build_sequence(self, contract_type_code: str) -> PhaseSequence:
        """
        Phase sequence with effective configuration for a contract type.

        Raises:
            SequenceConfigurationError: If the applicable phases violate
                their dependency declarations.
        """
        return build_sequence(self.list_active(), contract_type_code)

    def effective_config(self, code: str, contract_type_code: str) -> EffectivePhaseConfig:
        return resolve_effective_config(self.get_by_code(code), contract_type_code)

    # ------------------------------------------------------------------
    # Documents and roles
    # ------------------------------------------------------------------

    def documents_summary(
        self,
        code: str,
        contract_type_code: str | None = None,
    ) -> DocumentsSummary:
        """
        Mandatory/optional split of a phase's documents.

        With ``contract_type_code`` the effective documents for that type
        are summarized instead of the base list.
        """
        phase = self.get_by_code(code)
        documents = (
            phase.required_documents
            if contract_type_code is None
            else resolve_effective_config(phase, contract_type_code).documents
        )
        return DocumentsSummary(
            phase_code=phase.code,
            phase_name=phase.name,
            category=phase.category,
            mandatory=tuple(d for d in documents if d.is_mandatory),
            optional=tuple(d for d in documents if not d.is_mandatory),
        )

    def validate_file_type(
        self,
        code: str,
        document_code: str,
        file_type: str,
        contract_type_code: str | None = None,
    ) -> bool:
        """
        True if ``file_type`` is allowed for the document.

        Raises:
            UnknownPhaseError: If the phase does not exist.
            InputValidationError: If the phase has no such document.
        """
        phase = self.get_by_code(code)
        if contract_type_code is None:
            document = phase.document(document_code)
        else:
            document = resolve_effective_config(phase, contract_type_code).document(
                document_code
            )
        if document is None:
            raise InputValidationError(
                "document_code", f"{document_code} is not a document of phase {code}"
            )
        return document.accepts(file_type)

    def can_role_act(self, code: str, role: str) -> bool:
        return self.get_by_code(code).can_role_act(role)
