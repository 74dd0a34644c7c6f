"""
Pure domain layer.

Frozen value objects for the contract-type catalog, amount ranges, phase
templates and contract progression snapshots, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock itself)
"""

from procurement_kernel.domain.catalog import (
    AmountRange,
    ConfigurationIssue,
    ContractTypeDefinition,
    ProcedureConfig,
)
from procurement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from procurement_kernel.domain.contract import (
    ContractSnapshot,
    DocumentRecord,
    PhaseOccurrence,
    PhaseTransitionRecord,
    ProgressionResult,
)
from procurement_kernel.domain.phase import (
    DocumentSpec,
    DocumentsSummary,
    EffectivePhaseConfig,
    PhaseConfig,
    PhaseDependencies,
    PhaseSequence,
    PhaseTemplate,
    RequiredPhase,
    TypeOverride,
)
from procurement_kernel.domain.values import (
    GeneralStatus,
    HistoryEventType,
    ObjectCategory,
    PhaseCategory,
    PhaseStatus,
    ProcedureCategory,
    Regime,
    RequiredStatus,
)

__all__ = [
    "AmountRange",
    "Clock",
    "ConfigurationIssue",
    "ContractSnapshot",
    "ContractTypeDefinition",
    "DeterministicClock",
    "DocumentRecord",
    "DocumentSpec",
    "DocumentsSummary",
    "EffectivePhaseConfig",
    "GeneralStatus",
    "HistoryEventType",
    "ObjectCategory",
    "PhaseCategory",
    "PhaseConfig",
    "PhaseDependencies",
    "PhaseOccurrence",
    "PhaseSequence",
    "PhaseStatus",
    "PhaseTemplate",
    "PhaseTransitionRecord",
    "ProcedureCategory",
    "ProcedureConfig",
    "ProgressionResult",
    "Regime",
    "RequiredPhase",
    "RequiredStatus",
    "SystemClock",
    "TypeOverride",
]
