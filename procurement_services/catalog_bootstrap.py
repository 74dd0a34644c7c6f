"""
procurement_services.catalog_bootstrap -- Persist a YAML catalog set.

Responsibility:
    Writes the contract types, amount ranges and phase templates of a
    ``ProcurementCatalogSet`` into the database through the kernel catalog
    services, so every write passes the same validation as an
    administrator's edit.  Entries whose identity already exists are
    skipped, which makes a repeated bootstrap a no-op.

Architecture position:
    Services -- orchestration over kernel services + procurement_config.

Invariants enforced:
    - Write order is contract types, then amount ranges, then phases in
      sequence order, so every reference resolves when it is written.
    - Existing entries are never modified.
    - Does NOT commit.

Failure modes:
    - Any catalog service error propagates; nothing is swallowed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from procurement_config.schema import ProcurementCatalogSet
from procurement_kernel.domain.catalog import AmountRange
from procurement_kernel.logging_config import get_logger
from procurement_kernel.services.amount_range_service import AmountRangeService
from procurement_kernel.services.contract_type_service import ContractTypeService
from procurement_kernel.services.phase_catalog_service import PhaseCatalogService

logger = get_logger("catalog_bootstrap")


@dataclass
class BootstrapResult:
    """What a bootstrap run wrote and what it left alone.

    Entries are ``"<kind>:<identity>"`` strings, e.g. ``"phase:PREP"``.
    """

    config_id: str
    checksum: str
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def _range_key(amount_range: AmountRange) -> tuple:
    return (
        amount_range.object_category,
        amount_range.contract_type_code,
        amount_range.min_amount,
        amount_range.max_amount,
    )


def _range_label(amount_range: AmountRange) -> str:
    return (
        f"amount_range:{amount_range.object_category.value}:"
        f"{amount_range.contract_type_code}:{amount_range.min_amount}"
    )


def load_catalog_into_session(
    session: Session,
    catalog: ProcurementCatalogSet,
    actor_id: UUID,
) -> BootstrapResult:
    """
    Persist ``catalog`` through the catalog services.

    Args:
        session: Session to flush into (the caller commits).
        catalog: Validated catalog set from ``get_active_catalog``.
        actor_id: Recorded as creator of every new row.

    Returns:
        BootstrapResult listing created and skipped entries.
    """
    result = BootstrapResult(config_id=catalog.config_id, checksum=catalog.checksum)
    types = ContractTypeService(session)
    ranges = AmountRangeService(session)
    phases = PhaseCatalogService(session)

    for contract_type in catalog.contract_types:
        label = f"contract_type:{contract_type.code}"
        if types.find_by_code(contract_type.code) is not None:
            result.skipped.append(label)
            continue
        types.create(contract_type, actor_id)
        result.created.append(label)

    existing_ranges = {_range_key(r) for r in ranges.list_ranges()}
    for amount_range in catalog.amount_ranges:
        label = _range_label(amount_range)
        if _range_key(amount_range) in existing_ranges:
            result.skipped.append(label)
            continue
        ranges.create(amount_range, actor_id)
        existing_ranges.add(_range_key(amount_range))
        result.created.append(label)

    for phase in sorted(catalog.phases, key=lambda p: p.sort_key):
        label = f"phase:{phase.code}"
        if phases.find_by_code(phase.code) is not None:
            result.skipped.append(label)
            continue
        phases.create(phase, actor_id)
        result.created.append(label)

    logger.info(
        "catalog_bootstrapped",
        extra={
            "config_set_id": catalog.config_id,
            "checksum": catalog.checksum,
            "created_count": result.created_count,
            "skipped_count": result.skipped_count,
            "actor_id": str(actor_id),
        },
    )
    return result
