"""
Catalog set schema (``procurement_config.schema``).

Frozen dataclasses describing one YAML catalog set.  The catalog entries
themselves are the kernel's own value objects (ContractTypeDefinition,
AmountRange, PhaseTemplate); this module only adds the identity and scope
of the set around them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from procurement_config.lifecycle import ConfigStatus
from procurement_kernel.domain.catalog import AmountRange, ContractTypeDefinition
from procurement_kernel.domain.phase import PhaseTemplate


@dataclass(frozen=True)
class CatalogScope:
    """Where and when a catalog set applies."""

    jurisdiction: str
    legal_framework: str  # e.g. LOSNCP
    currency: str
    effective_from: date
    effective_to: date | None = None

    def covers(self, as_of_date: date) -> bool:
        return self.effective_from <= as_of_date and (
            self.effective_to is None or as_of_date <= self.effective_to
        )


@dataclass(frozen=True)
class ProcurementCatalogSet:
    """Human-authored, reviewable procurement catalog.

    Composed from YAML fragments by the assembler and persisted into the
    database by ``procurement_services.catalog_bootstrap``.

    Attributes:
        config_id: Unique identifier (e.g., "losncp_2024")
        version: Catalog version number
        checksum: SHA-256 of the canonical serialization of every entry
        scope: Applicability scope
        status: Lifecycle status
        contract_types: Contract type definitions
        amount_ranges: Amount ranges mapping amounts to types
        phases: Phase templates with their per-type overrides
        predecessor: Previous config_id (append-only chain)
    """

    config_id: str
    version: int
    checksum: str
    scope: CatalogScope
    status: ConfigStatus
    contract_types: tuple[ContractTypeDefinition, ...]
    amount_ranges: tuple[AmountRange, ...]
    phases: tuple[PhaseTemplate, ...]
    predecessor: str | None = None
    description: str = ""

    @property
    def contract_type_codes(self) -> tuple[str, ...]:
        return tuple(t.code for t in self.contract_types)

    @property
    def phase_codes(self) -> tuple[str, ...]:
        return tuple(p.code for p in self.phases)
