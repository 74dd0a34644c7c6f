"""
Module: procurement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    kernel services and procurement_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procurement_kernel.domain types and exceptions (and
    sibling engine modules).  MUST NOT import procurement_services,
    procurement_config, or any SQLAlchemy module.

Invariants enforced:
    - Purity: engines never read a clock.  Timestamps are explicit
      parameters supplied by the services.
    - Decimal-only arithmetic for amounts and percentages.
    - Determinism: identical inputs always produce identical outputs.
"""

from procurement_engines.amount_range import (
    detect_overlaps,
    find_all_overlaps,
    find_applicable_ranges,
    range_description,
    resolve_types_for_amount,
)
from procurement_engines.catalog_integrity import (
    check_amount_ranges,
    check_catalog,
    check_phase_catalog,
    validate_phase_write,
    validate_range_write,
)
from procurement_engines.dependency_graph import (
    find_dependency_cycle,
    find_orphaned_references,
)
from procurement_engines.effective_config import resolve_effective_config
from procurement_engines.phase_sequence import (
    build_sequence,
    find_applicable_phases,
    validate_sequence,
)
from procurement_engines.progression import (
    PHASE_OCCURRENCE_WORKFLOW,
    advance_to_next_phase,
    calculate_progress,
    cancel_phase,
    complete_phase,
    instantiate,
    start_phase,
)

__all__ = [
    "PHASE_OCCURRENCE_WORKFLOW",
    "advance_to_next_phase",
    "build_sequence",
    "calculate_progress",
    "cancel_phase",
    "check_amount_ranges",
    "check_catalog",
    "check_phase_catalog",
    "complete_phase",
    "detect_overlaps",
    "find_all_overlaps",
    "find_applicable_phases",
    "find_applicable_ranges",
    "find_dependency_cycle",
    "find_orphaned_references",
    "instantiate",
    "range_description",
    "resolve_effective_config",
    "resolve_types_for_amount",
    "start_phase",
    "validate_phase_write",
    "validate_range_write",
    "validate_sequence",
]
