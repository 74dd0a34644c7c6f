"""
AmountRangeService -- amount ranges and contract-type resolution.

Responsibility:
    Maintains the amount ranges that map (object category, amount) to a
    contract type, and resolves the applicable contract types for an amount
    using the pure amount_range engine over the current catalog.

Architecture position:
    Kernel > Services -- imperative shell.
    Reads the full range catalog, delegates every decision to
    procurement_engines.amount_range / catalog_integrity, then flushes.

Invariants enforced:
    - Active ranges of different contract types never overlap within an
      object category (read-check-write before flush).
    - Ranges reference an existing contract type.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - AmountRangeOverlapError: the write would overlap another type.
    - UnknownContractTypeError: range references an unknown type.
    - AmountRangeNotFoundError: range id does not resolve.

Audit relevance:
    Range writes are logged with category, bounds and actor.  Overlap
    rejections are logged at WARNING level.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from procurement_engines.amount_range import (
    detect_overlaps,
    find_applicable_ranges,
    resolve_types_for_amount,
)
from procurement_engines.catalog_integrity import validate_range_write
from procurement_kernel.domain.catalog import (
    AmountRange,
    ContractTypeDefinition,
    coerce_enum,
)
from procurement_kernel.domain.values import ObjectCategory
from procurement_kernel.exceptions import (
    AmountRangeNotFoundError,
    AmountRangeOverlapError,
    UnknownContractTypeError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.contract_type import AmountRangeModel, ContractTypeModel
from procurement_kernel.services.base import BaseService

logger = get_logger("services.amount_range")


class AmountRangeService(BaseService[AmountRangeModel]):
    """
    Service for amount ranges.

    Contract:
        Accepts and returns frozen AmountRange objects.  Resolution is a
        pure function of the current catalog snapshot.

    Guarantees:
        - ``resolve_types`` returns codes ordered by ascending priority,
          each at most once.
        - An empty resolution is returned, not raised.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _get_orm(self, range_id: UUID) -> AmountRangeModel:
        model = self.session.get(AmountRangeModel, range_id)
        if model is None:
            raise AmountRangeNotFoundError(str(range_id))
        return model

    def get(self, range_id: UUID) -> AmountRange:
        return self._get_orm(range_id).to_dto()

    def list_ranges(
        self,
        object_category: ObjectCategory | str | None = None,
        include_inactive: bool = True,
    ) -> list[AmountRange]:
        stmt = select(AmountRangeModel).order_by(
            AmountRangeModel.object_category,
            AmountRangeModel.min_amount,
            AmountRangeModel.priority,
        )
        if object_category is not None:
            category = coerce_enum(ObjectCategory, object_category, "object_category")
            stmt = stmt.where(AmountRangeModel.object_category == category.value)
        if not include_inactive:
            stmt = stmt.where(AmountRangeModel.is_active.is_(True))
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def _check_write(self, candidate: AmountRange) -> None:
        type_exists = self.session.execute(
            select(ContractTypeModel.id).where(
                ContractTypeModel.code == candidate.contract_type_code
            )
        ).first()
        if type_exists is None:
            raise UnknownContractTypeError(candidate.contract_type_code)
        try:
            validate_range_write(
                candidate, self.list_ranges(candidate.object_category)
            )
        except AmountRangeOverlapError as exc:
            logger.warning(
                "amount_range_overlap_rejected",
                extra={
                    "object_category": exc.object_category,
                    "contract_type_code": exc.contract_type_code,
                    "conflicting_type_codes": exc.conflicting_type_codes,
                },
            )
            raise

    def create(self, amount_range: AmountRange, actor_id: UUID) -> AmountRange:
        """
        Create an amount range.

        Raises:
            UnknownContractTypeError: If the contract type does not exist.
            AmountRangeOverlapError: If an active range of another type
                overlaps the candidate interval.
        """
        self._check_write(amount_range)
        model = AmountRangeModel.from_dto(amount_range, actor_id)
        self.session.add(model)
        self.session.flush()

        logger.info(
            "amount_range_created",
            extra={
                "range_id": str(model.id),
                "object_category": amount_range.object_category.value,
                "contract_type_code": amount_range.contract_type_code,
                "min_amount": str(amount_range.min_amount),
                "max_amount": (
                    None if amount_range.max_amount is None else str(amount_range.max_amount)
                ),
                "actor_id": str(actor_id),
            },
        )
        return model.to_dto()

    def update(
        self,
        range_id: UUID,
        amount_range: AmountRange,
        actor_id: UUID,
    ) -> AmountRange:
        """Replace an existing range, re-running the overlap check."""
        model = self._get_orm(range_id)
        candidate = replace(amount_range, range_id=range_id)
        self._check_write(candidate)

        model.apply_dto(candidate)
        model.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "amount_range_updated",
            extra={"range_id": str(range_id), "actor_id": str(actor_id)},
        )
        return model.to_dto()

    def deactivate(self, range_id: UUID, actor_id: UUID) -> AmountRange:
        model = self._get_orm(range_id)
        if model.is_active:
            model.is_active = False
            model.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "amount_range_deactivated",
                extra={"range_id": str(range_id), "actor_id": str(actor_id)},
            )
        return model.to_dto()

    def activate(self, range_id: UUID, actor_id: UUID) -> AmountRange:
        """Reactivate a range; the overlap check applies as for a new range."""
        model = self._get_orm(range_id)
        if not model.is_active:
            candidate = replace(model.to_dto(), is_active=True)
            self._check_write(candidate)
            model.is_active = True
            model.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "amount_range_activated",
                extra={"range_id": str(range_id), "actor_id": str(actor_id)},
            )
        return model.to_dto()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def find_overlaps(
        self,
        object_category: ObjectCategory | str,
        contract_type_code: str,
        min_amount: Decimal,
        max_amount: Decimal | None,
        exclude_id: UUID | None = None,
    ) -> list[AmountRange]:
        category = coerce_enum(ObjectCategory, object_category, "object_category")
        return list(
            detect_overlaps(
                self.list_ranges(category, include_inactive=False),
                category,
                contract_type_code,
                min_amount,
                max_amount,
                exclude_id=exclude_id,
            )
        )

    def applicable_ranges(
        self,
        object_category: ObjectCategory | str,
        amount: Decimal,
    ) -> list[AmountRange]:
        category = coerce_enum(ObjectCategory, object_category, "object_category")
        return list(
            find_applicable_ranges(
                self.list_ranges(category, include_inactive=False), category, amount
            )
        )

    def resolve_types(
        self,
        object_category: ObjectCategory | str,
        amount: Decimal,
    ) -> tuple[str, ...]:
        """
        Contract type codes applicable to ``amount``, best first.

        Ranges pointing at an inactive contract type are skipped.
        """
        category = coerce_enum(ObjectCategory, object_category, "object_category")
        active_types = frozenset(
            self.session.execute(
                select(ContractTypeModel.code).where(ContractTypeModel.is_active.is_(True))
            ).scalars()
        )
        ranges = [
            r
            for r in self.list_ranges(category, include_inactive=False)
            if r.contract_type_code in active_types
        ]
        codes = resolve_types_for_amount(ranges, category, amount)
        logger.debug(
            "contract_types_resolved",
            extra={
                "object_category": category.value,
                "amount": str(amount),
                "contract_type_codes": list(codes),
            },
        )
        return codes

    def resolve_contract_types(
        self,
        object_category: ObjectCategory | str,
        amount: Decimal,
    ) -> list[ContractTypeDefinition]:
        codes = self.resolve_types(object_category, amount)
        if not codes:
            return []
        models = {
            m.code: m
            for m in self.session.execute(
                select(ContractTypeModel).where(ContractTypeModel.code.in_(codes))
            ).scalars()
        }
        return [models[c].to_dto() for c in codes]
