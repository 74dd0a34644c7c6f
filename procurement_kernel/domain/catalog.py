"""
Module: procurement_kernel.domain.catalog
Responsibility: Frozen value objects for the contract-type catalog and the
    amount ranges that map (object category, amount) to a contract type.
Architecture position: Kernel > Domain.  ZERO I/O.  May import from
    domain/values.py and exceptions.py only.

Invariants enforced:
    - Catalog codes are uppercase, 2..20 characters of letters, digits and
      underscore.
    - ProcedureConfig day counts and percentages are inside their legal
      bounds.
    - AmountRange.min_amount >= 0; max_amount is None (unbounded) or
      strictly greater than min_amount; priority is in 1..100.

Failure modes:
    - InputValidationError at construction when any field is malformed.

Audit relevance:
    These objects are snapshots of catalog rows.  The pure engines consume
    them, so a snapshot taken at a point in time fully determines the
    contract type resolved for an amount.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from procurement_kernel.domain.values import (
    ObjectCategory,
    ProcedureCategory,
    Regime,
)
from procurement_kernel.exceptions import InputValidationError

CODE_PATTERN = re.compile(r"^[A-Z0-9_]{2,20}$")

E = TypeVar("E", bound=Enum)


def validate_catalog_code(value: Any, field_name: str = "code") -> str:
    """Return ``value`` if it is a well-formed catalog code.

    Raises:
        InputValidationError: if the code is missing or malformed.
    """
    if not isinstance(value, str) or not CODE_PATTERN.match(value):
        raise InputValidationError(
            field_name,
            f"{value!r} must be 2-20 uppercase letters, digits or underscores",
        )
    return value


def coerce_enum(enum_cls: type[E], value: Any, field_name: str) -> E:
    """Convert a raw value to ``enum_cls`` or raise InputValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InputValidationError(
            field_name, f"{value!r} is not one of: {allowed}"
        ) from None


def coerce_amount(value: Any, field_name: str) -> Decimal:
    """Convert a raw monetary value to Decimal without going through float."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)) and not isinstance(value, bool):
        try:
            amount = Decimal(value)
        except InvalidOperation:
            raise InputValidationError(field_name, f"{value!r} is not a number") from None
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        raise InputValidationError(field_name, f"{value!r} is not a number")
    if not amount.is_finite():
        raise InputValidationError(field_name, f"{value!r} is not finite")
    return amount


def check_int_range(value: Any, field_name: str, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(field_name, f"{value!r} is not an integer")
    if not low <= value <= high:
        raise InputValidationError(field_name, f"{value} is outside {low}..{high}")


@dataclass(frozen=True)
class ProcedureConfig:
    """
    Procedural parameters of a contract type.

    Contract:
        Day counts and the insurance percentage are validated on
        construction.

    Guarantees:
        - publication_days in 0..30, questions_deadline_days in 0..15,
          evaluation_days in 1..30, estimated_duration in 1..365,
          insurance_percentage in 0..100.
    """

    requires_publication: bool = True
    publication_days: int = 15
    questions_deadline_days: int = 5
    evaluation_days: int = 10
    requires_insurance: bool = True
    insurance_percentage: Decimal = Decimal("5")
    estimated_duration: int = 30

    def __post_init__(self) -> None:
        check_int_range(self.publication_days, "publication_days", 0, 30)
        check_int_range(self.questions_deadline_days, "questions_deadline_days", 0, 15)
        check_int_range(self.evaluation_days, "evaluation_days", 1, 30)
        check_int_range(self.estimated_duration, "estimated_duration", 1, 365)
        pct = coerce_amount(self.insurance_percentage, "insurance_percentage")
        if not Decimal("0") <= pct <= Decimal("100"):
            raise InputValidationError(
                "insurance_percentage", f"{pct} is outside 0..100"
            )
        object.__setattr__(self, "insurance_percentage", pct)


@dataclass(frozen=True)
class ContractTypeDefinition:
    """
    A procurement contract type (e.g. INFIMA_CUANTIA, LICITACION).

    Contract:
        Identity is ``code``.  Types are never hard-deleted once referenced;
        deactivation sets ``is_active`` to False.

    Guarantees:
        - ``code`` matches CODE_PATTERN.
        - ``regime`` and ``category`` are enum members.
        - ``applicable_objects`` is non-empty and free of duplicates.
    """

    code: str
    name: str
    regime: Regime
    category: ProcedureCategory
    applicable_objects: tuple[ObjectCategory, ...]
    procedure_config: ProcedureConfig = field(default_factory=ProcedureConfig)
    description: str = ""
    legal_reference: str = ""
    display_order: int = 0
    requires_special_authorization: bool = False
    is_active: bool = True
    type_id: UUID | None = None

    def __post_init__(self) -> None:
        validate_catalog_code(self.code)
        if not self.name or not self.name.strip():
            raise InputValidationError("name", "must not be empty")
        object.__setattr__(self, "regime", coerce_enum(Regime, self.regime, "regime"))
        object.__setattr__(
            self, "category", coerce_enum(ProcedureCategory, self.category, "category")
        )
        objects = tuple(
            coerce_enum(ObjectCategory, o, "applicable_objects")
            for o in self.applicable_objects
        )
        if not objects:
            raise InputValidationError(
                "applicable_objects", "at least one object category is required"
            )
        if len(set(objects)) != len(objects):
            raise InputValidationError(
                "applicable_objects", "object categories must not repeat"
            )
        object.__setattr__(self, "applicable_objects", objects)

    def applies_to(self, object_category: ObjectCategory) -> bool:
        return object_category in self.applicable_objects

    def required_insurance_amount(self, contract_value: Decimal) -> Decimal:
        """Insurance amount required for a contract of ``contract_value``.

        Returns Decimal("0") when the type does not require insurance.
        """
        if not self.procedure_config.requires_insurance:
            return Decimal("0")
        value = coerce_amount(contract_value, "contract_value")
        return value * self.procedure_config.insurance_percentage / Decimal("100")


@dataclass(frozen=True)
class AmountRange:
    """
    One [min_amount, max_amount] interval mapping an object category to a
    contract type.

    Contract:
        Both bounds are inclusive.  ``max_amount=None`` is unbounded above.
        Lower ``priority`` wins when several ranges match.

    Guarantees:
        - min_amount >= 0.
        - max_amount is None or max_amount > min_amount.
        - priority in 1..100.

    Non-goals:
        - Does not check overlap with other ranges; that is a catalog-level
          rule (see procurement_engines.amount_range.detect_overlaps).
    """

    object_category: ObjectCategory
    contract_type_code: str
    min_amount: Decimal
    max_amount: Decimal | None = None
    priority: int = 1
    is_active: bool = True
    description: str = ""
    legal_reference: str = ""
    range_id: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "object_category",
            coerce_enum(ObjectCategory, self.object_category, "object_category"),
        )
        validate_catalog_code(self.contract_type_code, "contract_type_code")
        min_amount = coerce_amount(self.min_amount, "min_amount")
        if min_amount < 0:
            raise InputValidationError("min_amount", "must not be negative")
        object.__setattr__(self, "min_amount", min_amount)
        if self.max_amount is not None:
            max_amount = coerce_amount(self.max_amount, "max_amount")
            if max_amount <= min_amount:
                raise InputValidationError(
                    "max_amount", f"{max_amount} must be greater than {min_amount}"
                )
            object.__setattr__(self, "max_amount", max_amount)
        check_int_range(self.priority, "priority", 1, 100)

    @property
    def is_unbounded(self) -> bool:
        return self.max_amount is None

    def contains(self, amount: Decimal) -> bool:
        """True if ``amount`` lies inside the inclusive interval."""
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount

    def overlaps(self, min_amount: Decimal, max_amount: Decimal | None) -> bool:
        """True unless one interval lies entirely before the other.

        ``None`` upper bounds are treated as +infinity.
        """
        if self.max_amount is not None and self.max_amount < min_amount:
            return False
        if max_amount is not None and max_amount < self.min_amount:
            return False
        return True


@dataclass(frozen=True)
class ConfigurationIssue:
    """
    One finding of a catalog validation pass.

    Contract: ``code`` uses the same vocabulary as the exception codes in
    ``procurement_kernel.exceptions`` (e.g. DUPLICATE_ORDER).
    """

    code: str
    message: str
    subject: str
    details: tuple[str, ...] = ()
    severity: str = "error"

    @property
    def is_error(self) -> bool:
        return self.severity == "error"
