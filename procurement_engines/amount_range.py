"""
procurement_engines.amount_range -- Pure amount-range resolution engine.

Responsibility:
    Decide which contract type(s) apply to an (object category, amount)
    pair, and detect overlapping range definitions before a range is
    activated.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procurement_kernel/domain/ types.

Invariants enforced:
    - Inclusive bounds on both ends; ``max_amount=None`` is +infinity.
    - Deterministic ranking: ascending priority, then ascending min_amount,
      then contract type code.
    - Overlap between ranges of the SAME contract type is permitted;
      overlap across different types is a conflict.

Failure modes:
    - None.  An empty resolution is a valid answer; callers decide whether
      to fall back to a default or report a configuration gap.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from procurement_kernel.domain.catalog import AmountRange, coerce_amount
from procurement_kernel.domain.values import ObjectCategory


def _rank_key(r: AmountRange) -> tuple[int, Decimal, str]:
    return (r.priority, r.min_amount, r.contract_type_code)


def find_applicable_ranges(
    ranges: Iterable[AmountRange],
    object_category: ObjectCategory,
    amount: Decimal,
) -> tuple[AmountRange, ...]:
    """Active ranges of ``object_category`` containing ``amount``, ranked."""
    value = coerce_amount(amount, "amount")
    matches = [
        r
        for r in ranges
        if r.is_active and r.object_category == object_category and r.contains(value)
    ]
    return tuple(sorted(matches, key=_rank_key))


def resolve_types_for_amount(
    ranges: Iterable[AmountRange],
    object_category: ObjectCategory,
    amount: Decimal,
) -> tuple[str, ...]:
    """Contract type codes applicable to ``amount``, best first.

    Args:
        ranges: Catalog snapshot of amount ranges (inactive ones are ignored).
        object_category: What is being procured.
        amount: Estimated contract amount.

    Returns:
        Codes ordered by ascending priority, each code at most once.  Empty
        when no active range covers the amount.
    """
    codes: dict[str, None] = {}
    for r in find_applicable_ranges(ranges, object_category, amount):
        codes.setdefault(r.contract_type_code, None)
    return tuple(codes)


def detect_overlaps(
    ranges: Iterable[AmountRange],
    object_category: ObjectCategory,
    contract_type_code: str,
    min_amount: Decimal,
    max_amount: Decimal | None,
    exclude_id: UUID | None = None,
) -> tuple[AmountRange, ...]:
    """Active ranges of other contract types that overlap a candidate interval.

    Args:
        ranges: Catalog snapshot.
        object_category: Category of the candidate range.
        contract_type_code: Type of the candidate range; ranges of this same
            type are never reported.
        min_amount: Candidate lower bound (inclusive).
        max_amount: Candidate upper bound (inclusive), None for unbounded.
        exclude_id: Id of the range being updated, so it is not compared
            with itself.

    Returns:
        Conflicting ranges, ranked like ``find_applicable_ranges``.
    """
    low = coerce_amount(min_amount, "min_amount")
    high = None if max_amount is None else coerce_amount(max_amount, "max_amount")
    conflicts = [
        r
        for r in ranges
        if r.is_active
        and r.object_category == object_category
        and r.contract_type_code != contract_type_code
        and (exclude_id is None or r.range_id != exclude_id)
        and r.overlaps(low, high)
    ]
    return tuple(sorted(conflicts, key=_rank_key))


def find_all_overlaps(
    ranges: Iterable[AmountRange],
) -> tuple[tuple[AmountRange, AmountRange], ...]:
    """Every conflicting pair of active ranges in the catalog.

    Each pair is reported once, in catalog ranking order.
    """
    active = sorted(
        (r for r in ranges if r.is_active),
        key=lambda r: (r.object_category.value, r.min_amount, r.contract_type_code),
    )
    pairs: list[tuple[AmountRange, AmountRange]] = []
    for i, first in enumerate(active):
        for second in active[i + 1:]:
            if (
                first.object_category == second.object_category
                and first.contract_type_code != second.contract_type_code
                and first.overlaps(second.min_amount, second.max_amount)
            ):
                pairs.append((first, second))
    return tuple(pairs)


def range_description(r: AmountRange) -> str:
    """Human-readable description of a range's bounds."""
    if r.max_amount is None:
        return f"From {r.min_amount:,.2f} onwards"
    return f"From {r.min_amount:,.2f} to {r.max_amount:,.2f}"
