"""
ContractTypeService -- the contract-type catalog.

Responsibility:
    Create, update, look up and (soft) delete procurement contract types,
    and compute the insurance amount a type requires for a contract value.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by ProcurementEngine, the catalog bootstrap, and the amount
    range / phase catalog services (which validate code references).

Invariants enforced:
    - Codes are unique and well formed (checked before flush).
    - Regime, category and applicable objects are enum members; procedure
      config values are inside their bounds (enforced by the frozen
      ContractTypeDefinition).
    - A type referenced by any contract is never hard-deleted.
    - Returns frozen ContractTypeDefinition objects, never ORM entities.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - DuplicateCodeError: code already exists.
    - UnknownContractTypeError: code or id does not resolve.
    - ContractTypeReferencedError: hard delete of a referenced type.
    - InputValidationError: malformed definition or code change on update.

Audit relevance:
    Creation, update, deactivation and deletion are logged with the code
    and actor_id.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from procurement_kernel.domain.catalog import ContractTypeDefinition
from procurement_kernel.domain.values import Regime
from procurement_kernel.exceptions import (
    ContractTypeReferencedError,
    DuplicateCodeError,
    InputValidationError,
    UnknownContractTypeError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.contract import ContractModel
from procurement_kernel.models.contract_type import AmountRangeModel, ContractTypeModel
from procurement_kernel.models.phase import PhaseTypeOverrideModel
from procurement_kernel.services.base import BaseService

logger = get_logger("services.contract_type")


class ContractTypeService(BaseService[ContractTypeModel]):
    """
    Service for the contract-type catalog.

    Contract:
        Accepts and returns frozen ContractTypeDefinition objects.  Write
        methods flush within the caller's transaction.

    Guarantees:
        - ``list_active`` is ordered by (display_order, code).
        - ``deactivate`` is idempotent.

    Non-goals:
        - Does NOT resolve a type from an amount (see AmountRangeService).
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_orm(self, code: str) -> ContractTypeModel | None:
        return self.session.execute(
            select(ContractTypeModel).where(ContractTypeModel.code == code)
        ).scalar_one_or_none()

    def _require_orm(self, code: str) -> ContractTypeModel:
        model = self._get_orm(code)
        if model is None:
            raise UnknownContractTypeError(code)
        return model

    def find_by_code(self, code: str) -> ContractTypeDefinition | None:
        model = self._get_orm(code)
        return None if model is None else model.to_dto()

    def get_by_code(self, code: str) -> ContractTypeDefinition:
        """
        Get a contract type by code (active or not).

        Raises:
            UnknownContractTypeError: If no type has this code.
        """
        return self._require_orm(code).to_dto()

    def get_by_id(self, type_id: UUID) -> ContractTypeDefinition:
        model = self.session.get(ContractTypeModel, type_id)
        if model is None:
            raise UnknownContractTypeError(str(type_id))
        return model.to_dto()

    def list_all(self, include_inactive: bool = True) -> list[ContractTypeDefinition]:
        stmt = select(ContractTypeModel).order_by(
            ContractTypeModel.display_order, ContractTypeModel.code
        )
        if not include_inactive:
            stmt = stmt.where(ContractTypeModel.is_active.is_(True))
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def list_active(self) -> list[ContractTypeDefinition]:
        return self.list_all(include_inactive=False)

    def list_by_regime(self, regime: Regime | str) -> list[ContractTypeDefinition]:
        """Active types of one regime, in display order."""
        regime = Regime(regime)
        return [t for t in self.list_active() if t.regime == regime]

    def known_codes(self) -> frozenset[str]:
        """Codes of every contract type, active or not."""
        return frozenset(self.session.execute(select(ContractTypeModel.code)).scalars())

    def active_codes(self) -> frozenset[str]:
        return frozenset(
            self.session.execute(
                select(ContractTypeModel.code).where(ContractTypeModel.is_active.is_(True))
            ).scalars()
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        definition: ContractTypeDefinition,
        actor_id: UUID,
    ) -> ContractTypeDefinition:
        """
        Create a new contract type.

        Args:
            definition: Validated type definition.
            actor_id: Who is creating the type.

        Returns:
            The persisted definition (with ``type_id``).

        Raises:
            DuplicateCodeError: If the code already exists.
        """
        if self._get_orm(definition.code) is not None:
            raise DuplicateCodeError("contract_type", definition.code)

        model = ContractTypeModel.from_dto(definition, actor_id)
        self.session.add(model)
        self.session.flush()

        logger.info(
            "contract_type_created",
            extra={
                "contract_type_code": definition.code,
                "regime": definition.regime.value,
                "category": definition.category.value,
                "actor_id": str(actor_id),
            },
        )
        return model.to_dto()

    def update(
        self,
        code: str,
        definition: ContractTypeDefinition,
        actor_id: UUID,
    ) -> ContractTypeDefinition:
        """
        Replace the catalog fields of an existing type.

        Raises:
            UnknownContractTypeError: If ``code`` does not resolve.
            InputValidationError: If ``definition.code`` differs from ``code``
                (codes are referenced by ranges, overrides and contracts).
        """
        model = self._require_orm(code)
        if definition.code != code:
            raise InputValidationError("code", "a contract type code cannot be changed")

        model.apply_dto(definition)
        model.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "contract_type_updated",
            extra={"contract_type_code": code, "actor_id": str(actor_id)},
        )
        return model.to_dto()

    def _set_active(self, code: str, active: bool, actor_id: UUID) -> ContractTypeDefinition:
        model = self._require_orm(code)
        if model.is_active != active:
            model.is_active = active
            model.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "contract_type_activated" if active else "contract_type_deactivated",
                extra={"contract_type_code": code, "actor_id": str(actor_id)},
            )
        return model.to_dto()

    def deactivate(self, code: str, actor_id: UUID) -> ContractTypeDefinition:
        """Soft delete: the type stops resolving but stays referenceable."""
        return self._set_active(code, False, actor_id)

    def reactivate(self, code: str, actor_id: UUID) -> ContractTypeDefinition:
        return self._set_active(code, True, actor_id)

    def count_contracts(self, code: str) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(ContractModel)
            .where(ContractModel.contract_type_code == code)
        ).scalar_one()

    def hard_delete(self, code: str, actor_id: UUID) -> None:
        """
        Physically remove an unreferenced contract type.

        The type's amount ranges and phase overrides are removed with it.

        Raises:
            UnknownContractTypeError: If ``code`` does not resolve.
            ContractTypeReferencedError: If any contract uses the type.
        """
        model = self._require_orm(code)
        contract_count = self.count_contracts(code)
        if contract_count:
            logger.warning(
                "contract_type_delete_refused",
                extra={
                    "contract_type_code": code,
                    "contract_count": contract_count,
                    "actor_id": str(actor_id),
                },
            )
            raise ContractTypeReferencedError(code, contract_count)

        ranges = self.session.execute(
            delete(AmountRangeModel).where(AmountRangeModel.contract_type_code == code)
        ).rowcount
        overrides = self.session.execute(
            select(PhaseTypeOverrideModel).where(
                PhaseTypeOverrideModel.contract_type_code == code
            )
        ).scalars().all()
        for override in overrides:
            override.phase.type_overrides.remove(override)
        self.session.delete(model)
        self.session.flush()

        logger.info(
            "contract_type_deleted",
            extra={
                "contract_type_code": code,
                "amount_ranges_removed": ranges,
                "overrides_removed": len(overrides),
                "actor_id": str(actor_id),
            },
        )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def required_insurance_amount(self, code: str, contract_value: Decimal) -> Decimal:
        """Insurance required by type ``code`` for ``contract_value``."""
        return self.get_by_code(code).required_insurance_amount(contract_value)
