"""
Module: procurement_kernel.domain.contract
Responsibility: Immutable snapshot of one contract's phase progression, as
    consumed and produced by procurement_engines.progression.
Architecture position: Kernel > Domain.  ZERO I/O.

Invariants enforced:
    - ``occurrences`` is the instantiated phase sequence; its order never
      changes after instantiation.
    - ``current_phase_code`` is None or the code of one of ``occurrences``.
    - completion_percentage is in 0..100.

Audit relevance:
    Each occurrence carries a copy of the effective phase configuration taken
    at contract creation, so later catalog edits never change the rules a
    contract in progress is held to.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from procurement_kernel.domain.phase import EffectivePhaseConfig
from procurement_kernel.domain.values import GeneralStatus, PhaseStatus
from procurement_kernel.exceptions import InputValidationError


@dataclass(frozen=True)
class DocumentRecord:
    """A document uploaded against a phase occurrence.

    Only ``document_code`` and ``is_active`` matter to the completion gate.
    """

    document_code: str
    is_active: bool = True
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    uploaded_at: datetime | None = None
    record_id: UUID | None = None


@dataclass(frozen=True)
class PhaseOccurrence:
    """
    Per-contract instance of a catalog phase.

    Contract:
        ``effective`` is the configuration snapshot taken at instantiation.
    """

    phase_code: str
    effective: EffectivePhaseConfig
    status: PhaseStatus = PhaseStatus.PENDING
    start_date: datetime | None = None
    end_date: datetime | None = None
    completion_percentage: Decimal = Decimal("0")
    cancellation_reason: str | None = None

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.completion_percentage <= Decimal("100"):
            raise InputValidationError(
                "completion_percentage",
                f"{self.completion_percentage} is outside 0..100",
            )

    @property
    def progress_value(self) -> Decimal:
        """Contribution of this occurrence to the contract progress."""
        if self.status == PhaseStatus.COMPLETED:
            return Decimal("100")
        if self.status == PhaseStatus.IN_PROGRESS:
            return self.completion_percentage
        return Decimal("0")


@dataclass(frozen=True)
class ContractSnapshot:
    """
    A consistent read of one contract's progression state.

    Contract:
        Produced by ContractService from persistence or by
        ``progression.instantiate``; transitions return a new snapshot and
        never mutate this one.
    """

    contract_type_code: str
    occurrences: tuple[PhaseOccurrence, ...]
    current_phase_code: str | None = None
    general_status: GeneralStatus = GeneralStatus.DRAFT
    contract_id: UUID | None = None
    version: int = 0

    def __post_init__(self) -> None:
        if (
            self.current_phase_code is not None
            and self.index_of(self.current_phase_code) is None
        ):
            raise InputValidationError(
                "current_phase_code",
                f"{self.current_phase_code} is not one of the contract's phases",
            )

    def index_of(self, phase_code: str) -> int | None:
        for i, occ in enumerate(self.occurrences):
            if occ.phase_code == phase_code:
                return i
        return None

    def occurrence(self, phase_code: str) -> PhaseOccurrence | None:
        index = self.index_of(phase_code)
        return None if index is None else self.occurrences[index]

    def status_of(self, phase_code: str) -> PhaseStatus | None:
        occ = self.occurrence(phase_code)
        return None if occ is None else occ.status

    @property
    def current_occurrence(self) -> PhaseOccurrence | None:
        if self.current_phase_code is None:
            return None
        return self.occurrence(self.current_phase_code)

    def with_occurrence(self, updated: PhaseOccurrence) -> ContractSnapshot:
        """Return a copy with the occurrence of the same phase replaced."""
        occurrences = tuple(
            updated if occ.phase_code == updated.phase_code else occ
            for occ in self.occurrences
        )
        return replace(self, occurrences=occurrences)


@dataclass(frozen=True)
class PhaseTransitionRecord:
    """One status change produced by a progression operation."""

    phase_code: str
    action: str
    from_status: PhaseStatus
    to_status: PhaseStatus
    automatic: bool = False


@dataclass(frozen=True)
class ProgressionResult:
    """
    Outcome of a pure progression operation.

    Guarantees:
        - ``transitions`` lists every occurrence status change, in the order
          they were applied (an auto-advance start follows the completion).
    """

    snapshot: ContractSnapshot
    transitions: tuple[PhaseTransitionRecord, ...]
    previous_phase_code: str | None
    current_phase_code: str | None

    @property
    def phase_changed(self) -> bool:
        return self.previous_phase_code != self.current_phase_code
