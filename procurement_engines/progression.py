"""
procurement_engines.progression -- Contract phase progression state machine.

Responsibility:
    Drive one contract's phase occurrences through
    PENDING -> IN_PROGRESS -> COMPLETED (with CANCELLED reachable from
    PENDING or IN_PROGRESS), gate starts on dependencies and completions on
    mandatory documents, and compute contract progress.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Timestamps are passed in by the caller; nothing here reads a clock.

Invariants enforced:
    - Transitions follow PHASE_OCCURRENCE_WORKFLOW; anything else raises
      InvalidPhaseTransitionError.
    - start: every ``blocked_by`` phase is COMPLETED and every required
      phase satisfies its required status.
    - complete: every effective mandatory document has an active record.
    - Occurrence order never changes; ``current_phase_code`` always names
      an occurrence.
    - Every operation returns a new snapshot; inputs are never mutated.

Failure modes:
    - PhaseBlockedError, PhaseDependencyUnmetError,
      MissingMandatoryDocumentsError, PhaseNotCompleteError,
      NoNextPhaseError, InvalidPhaseTransitionError,
      InvalidContractStatusTransitionError, PhaseNotInContractError,
      SequenceConfigurationError (instantiating an empty sequence).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from procurement_kernel.domain.catalog import coerce_amount
from procurement_kernel.domain.contract import (
    ContractSnapshot,
    DocumentRecord,
    PhaseOccurrence,
    PhaseTransitionRecord,
    ProgressionResult,
)
from procurement_kernel.domain.phase import EffectivePhaseConfig, PhaseSequence
from procurement_kernel.domain.values import GeneralStatus, PhaseStatus
from procurement_kernel.domain.workflow import Guard, Transition, Workflow
from procurement_kernel.exceptions import (
    InputValidationError,
    InvalidContractStatusTransitionError,
    InvalidPhaseTransitionError,
    MissingMandatoryDocumentsError,
    NoNextPhaseError,
    PhaseBlockedError,
    PhaseDependencyUnmetError,
    PhaseNotCompleteError,
    PhaseNotInContractError,
    SequenceConfigurationError,
)

ACTION_START = "start"
ACTION_COMPLETE = "complete"
ACTION_CANCEL = "cancel"

GUARD_NOT_BLOCKED = Guard(
    name="not_blocked",
    description="Every blocked_by phase has reached COMPLETED",
)
GUARD_DEPENDENCIES_MET = Guard(
    name="dependencies_met",
    description="Every required phase satisfies its required status",
)
GUARD_MANDATORY_DOCUMENTS = Guard(
    name="mandatory_documents_present",
    description="Every mandatory document has an active document record",
)

PHASE_OCCURRENCE_WORKFLOW = Workflow(
    name="phase_occurrence",
    description="Lifecycle of one phase occurrence on a contract",
    initial_state=PhaseStatus.PENDING.value,
    states=tuple(s.value for s in PhaseStatus),
    transitions=(
        Transition(
            from_state=PhaseStatus.PENDING.value,
            to_state=PhaseStatus.IN_PROGRESS.value,
            action=ACTION_START,
            guards=(GUARD_NOT_BLOCKED, GUARD_DEPENDENCIES_MET),
        ),
        Transition(
            from_state=PhaseStatus.IN_PROGRESS.value,
            to_state=PhaseStatus.COMPLETED.value,
            action=ACTION_COMPLETE,
            guards=(GUARD_MANDATORY_DOCUMENTS,),
        ),
        Transition(
            from_state=PhaseStatus.PENDING.value,
            to_state=PhaseStatus.CANCELLED.value,
            action=ACTION_CANCEL,
        ),
        Transition(
            from_state=PhaseStatus.IN_PROGRESS.value,
            to_state=PhaseStatus.CANCELLED.value,
            action=ACTION_CANCEL,
        ),
    ),
    terminal_states=(PhaseStatus.COMPLETED.value, PhaseStatus.CANCELLED.value),
)

# Contract general status lifecycle; the surrounding service decides when
# to move along it.
_ACTIVE_STAGES = (
    GeneralStatus.PREPARATION,
    GeneralStatus.CALL,
    GeneralStatus.EVALUATION,
    GeneralStatus.AWARD,
    GeneralStatus.CONTRACTING,
    GeneralStatus.EXECUTION,
)

GENERAL_STATUS_TRANSITIONS: dict[GeneralStatus, frozenset[GeneralStatus]] = {
    GeneralStatus.DRAFT: frozenset({GeneralStatus.PREPARATION, GeneralStatus.CANCELLED}),
    GeneralStatus.PREPARATION: frozenset(
        {GeneralStatus.CALL, GeneralStatus.CANCELLED, GeneralStatus.SUSPENDED}
    ),
    GeneralStatus.CALL: frozenset(
        {GeneralStatus.EVALUATION, GeneralStatus.CANCELLED, GeneralStatus.SUSPENDED}
    ),
    GeneralStatus.EVALUATION: frozenset(
        {GeneralStatus.AWARD, GeneralStatus.CANCELLED, GeneralStatus.SUSPENDED}
    ),
    GeneralStatus.AWARD: frozenset(
        {GeneralStatus.CONTRACTING, GeneralStatus.CANCELLED, GeneralStatus.SUSPENDED}
    ),
    GeneralStatus.CONTRACTING: frozenset(
        {GeneralStatus.EXECUTION, GeneralStatus.CANCELLED, GeneralStatus.SUSPENDED}
    ),
    GeneralStatus.EXECUTION: frozenset(
        {GeneralStatus.FINISHED, GeneralStatus.CANCELLED, GeneralStatus.SUSPENDED}
    ),
    GeneralStatus.SUSPENDED: frozenset(_ACTIVE_STAGES) | {GeneralStatus.CANCELLED},
    GeneralStatus.FINISHED: frozenset({GeneralStatus.LIQUIDATED}),
    GeneralStatus.LIQUIDATED: frozenset(),
    GeneralStatus.CANCELLED: frozenset(),
}


# ---------------------------------------------------------------------------
# Instantiation
# ---------------------------------------------------------------------------


def instantiate(
    sequence: PhaseSequence,
    at: datetime,
    contract_id: UUID | None = None,
) -> ContractSnapshot:
    """Create the phase occurrences of a new contract.

    Every occurrence starts PENDING except the first, which starts
    IN_PROGRESS when its effective ``auto_advance`` is set.

    Raises:
        SequenceConfigurationError: if the sequence is empty.
    """
    if not sequence.phases:
        raise SequenceConfigurationError(
            sequence.contract_type_code, ["no active phase applies to this type"]
        )
    occurrences = []
    for i, effective in enumerate(sequence.phases):
        if i == 0 and effective.phase_config.auto_advance:
            occurrences.append(
                PhaseOccurrence(
                    phase_code=effective.phase_code,
                    effective=effective,
                    status=PhaseStatus.IN_PROGRESS,
                    start_date=at,
                )
            )
        else:
            occurrences.append(
                PhaseOccurrence(phase_code=effective.phase_code, effective=effective)
            )
    return ContractSnapshot(
        contract_type_code=sequence.contract_type_code,
        occurrences=tuple(occurrences),
        current_phase_code=sequence.phases[0].phase_code,
        contract_id=contract_id,
    )


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def blocking_phases(
    snapshot: ContractSnapshot,
    effective: EffectivePhaseConfig,
) -> list[str]:
    """Codes in ``blocked_by`` that have not reached COMPLETED."""
    return [
        code
        for code in effective.dependencies.blocked_by
        if snapshot.status_of(code) != PhaseStatus.COMPLETED
    ]


def unmet_dependencies(
    snapshot: ContractSnapshot,
    effective: EffectivePhaseConfig,
) -> list[tuple[str, str]]:
    """``(phase_code, required_status)`` pairs that are not yet satisfied."""
    unmet = []
    for req in effective.dependencies.required_phases:
        status = snapshot.status_of(req.phase_code)
        if status is None or not req.required_status.is_satisfied_by(status):
            unmet.append((req.phase_code, req.required_status.value))
    return unmet


def missing_mandatory_documents(
    effective: EffectivePhaseConfig,
    documents: Iterable[DocumentRecord],
) -> list[str]:
    """Mandatory document codes without an active document record."""
    present = {d.document_code for d in documents if d.is_active}
    return [code for code in effective.mandatory_document_codes if code not in present]


def can_start(snapshot: ContractSnapshot, phase_code: str) -> bool:
    occ = snapshot.occurrence(phase_code)
    return (
        occ is not None
        and occ.status == PhaseStatus.PENDING
        and not blocking_phases(snapshot, occ.effective)
        and not unmet_dependencies(snapshot, occ.effective)
    )


def can_advance(snapshot: ContractSnapshot) -> bool:
    current = snapshot.current_occurrence
    return current is not None and current.status == PhaseStatus.COMPLETED


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _require_occurrence(snapshot: ContractSnapshot, phase_code: str) -> PhaseOccurrence:
    occ = snapshot.occurrence(phase_code)
    if occ is None:
        raise PhaseNotInContractError(str(snapshot.contract_id), phase_code)
    return occ


def _require_transition(occ: PhaseOccurrence, action: str) -> Transition:
    transition = PHASE_OCCURRENCE_WORKFLOW.find_transition(occ.status.value, action)
    if transition is None:
        raise InvalidPhaseTransitionError(occ.phase_code, occ.status.value, action)
    return transition


def _started(occ: PhaseOccurrence, at: datetime) -> PhaseOccurrence:
    return replace(occ, status=PhaseStatus.IN_PROGRESS, start_date=at)


def start_phase(
    snapshot: ContractSnapshot,
    phase_code: str,
    at: datetime,
) -> ProgressionResult:
    """PENDING -> IN_PROGRESS.

    Raises:
        PhaseBlockedError: a ``blocked_by`` phase is not COMPLETED.
        PhaseDependencyUnmetError: a required phase status is not satisfied.
        InvalidPhaseTransitionError: the occurrence is not PENDING.
    """
    occ = _require_occurrence(snapshot, phase_code)
    _require_transition(occ, ACTION_START)

    blocking = blocking_phases(snapshot, occ.effective)
    if blocking:
        raise PhaseBlockedError(phase_code, blocking)
    unmet = unmet_dependencies(snapshot, occ.effective)
    if unmet:
        raise PhaseDependencyUnmetError(phase_code, unmet)

    updated = snapshot.with_occurrence(_started(occ, at))
    return ProgressionResult(
        snapshot=updated,
        transitions=(
            PhaseTransitionRecord(
                phase_code, ACTION_START, occ.status, PhaseStatus.IN_PROGRESS
            ),
        ),
        previous_phase_code=snapshot.current_phase_code,
        current_phase_code=updated.current_phase_code,
    )


def complete_phase(
    snapshot: ContractSnapshot,
    phase_code: str,
    documents: Iterable[DocumentRecord],
    at: datetime,
) -> ProgressionResult:
    """IN_PROGRESS -> COMPLETED, with the auto-advance side effect.

    When the completed phase is the current phase and its effective
    ``auto_advance`` is set, the next occurrence is started and becomes
    current, provided it is PENDING and startable.  Otherwise the current
    phase is left unchanged.

    Raises:
        MissingMandatoryDocumentsError: with the missing document codes.
        InvalidPhaseTransitionError: the occurrence is not IN_PROGRESS.
    """
    occ = _require_occurrence(snapshot, phase_code)
    _require_transition(occ, ACTION_COMPLETE)

    missing = missing_mandatory_documents(occ.effective, documents)
    if missing:
        raise MissingMandatoryDocumentsError(phase_code, missing)

    completed = replace(
        occ,
        status=PhaseStatus.COMPLETED,
        end_date=at,
        completion_percentage=Decimal("100"),
    )
    updated = snapshot.with_occurrence(completed)
    transitions = [
        PhaseTransitionRecord(
            phase_code, ACTION_COMPLETE, occ.status, PhaseStatus.COMPLETED
        )
    ]

    if occ.effective.phase_config.auto_advance and phase_code == snapshot.current_phase_code:
        index = updated.index_of(phase_code)
        if index is not None and index + 1 < len(updated.occurrences):
            nxt = updated.occurrences[index + 1]
            if can_start(updated, nxt.phase_code):
                updated = replace(
                    updated.with_occurrence(_started(nxt, at)),
                    current_phase_code=nxt.phase_code,
                )
                transitions.append(
                    PhaseTransitionRecord(
                        nxt.phase_code,
                        ACTION_START,
                        nxt.status,
                        PhaseStatus.IN_PROGRESS,
                        automatic=True,
                    )
                )

    return ProgressionResult(
        snapshot=updated,
        transitions=tuple(transitions),
        previous_phase_code=snapshot.current_phase_code,
        current_phase_code=updated.current_phase_code,
    )


def advance_to_next_phase(snapshot: ContractSnapshot, at: datetime) -> ProgressionResult:
    """Move ``current_phase_code`` to the next occurrence.

    The next occurrence is also started when it is PENDING and startable;
    otherwise it stays as it is and must be started explicitly.

    Raises:
        PhaseNotCompleteError: the current occurrence is not COMPLETED.
        NoNextPhaseError: the current occurrence is the last one.
    """
    current = snapshot.current_occurrence
    if current is None:
        raise InputValidationError("current_phase_code", "contract has no current phase")
    if current.status != PhaseStatus.COMPLETED:
        raise PhaseNotCompleteError(current.phase_code, current.status.value)

    index = snapshot.index_of(current.phase_code)
    if index is None or index + 1 >= len(snapshot.occurrences):
        raise NoNextPhaseError(current.phase_code)

    nxt = snapshot.occurrences[index + 1]
    updated = replace(snapshot, current_phase_code=nxt.phase_code)
    transitions: tuple[PhaseTransitionRecord, ...] = ()
    if can_start(updated, nxt.phase_code):
        updated = updated.with_occurrence(_started(nxt, at))
        transitions = (
            PhaseTransitionRecord(
                nxt.phase_code, ACTION_START, nxt.status, PhaseStatus.IN_PROGRESS
            ),
        )
    return ProgressionResult(
        snapshot=updated,
        transitions=transitions,
        previous_phase_code=snapshot.current_phase_code,
        current_phase_code=updated.current_phase_code,
    )


def cancel_phase(
    snapshot: ContractSnapshot,
    phase_code: str,
    reason: str,
    at: datetime,
) -> ProgressionResult:
    """PENDING or IN_PROGRESS -> CANCELLED.  Dependent phases are untouched."""
    if not reason or not reason.strip():
        raise InputValidationError("reason", "a cancellation reason is required")
    occ = _require_occurrence(snapshot, phase_code)
    _require_transition(occ, ACTION_CANCEL)

    cancelled = replace(
        occ,
        status=PhaseStatus.CANCELLED,
        end_date=at,
        cancellation_reason=reason.strip(),
    )
    updated = snapshot.with_occurrence(cancelled)
    return ProgressionResult(
        snapshot=updated,
        transitions=(
            PhaseTransitionRecord(
                phase_code, ACTION_CANCEL, occ.status, PhaseStatus.CANCELLED
            ),
        ),
        previous_phase_code=snapshot.current_phase_code,
        current_phase_code=updated.current_phase_code,
    )


def update_completion(
    snapshot: ContractSnapshot,
    phase_code: str,
    percentage: Decimal,
) -> ContractSnapshot:
    """Record partial progress on an IN_PROGRESS occurrence."""
    occ = _require_occurrence(snapshot, phase_code)
    if occ.status != PhaseStatus.IN_PROGRESS:
        raise InvalidPhaseTransitionError(phase_code, occ.status.value, "update")
    return snapshot.with_occurrence(
        replace(occ, completion_percentage=coerce_amount(percentage, "percentage"))
    )


def change_general_status(
    snapshot: ContractSnapshot,
    new_status: GeneralStatus,
) -> ContractSnapshot:
    allowed = GENERAL_STATUS_TRANSITIONS.get(snapshot.general_status, frozenset())
    if new_status not in allowed:
        raise InvalidContractStatusTransitionError(
            snapshot.general_status.value, new_status.value
        )
    return replace(snapshot, general_status=new_status)


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

_CENT = Decimal("0.01")


def calculate_progress(snapshot: ContractSnapshot) -> Decimal:
    """Average over occurrences of 100 / completion% / 0, to two places."""
    if not snapshot.occurrences:
        return Decimal("0.00")
    total = sum((occ.progress_value for occ in snapshot.occurrences), Decimal("0"))
    return (total / len(snapshot.occurrences)).quantize(_CENT, rounding=ROUND_HALF_UP)


def estimated_completion(snapshot: ContractSnapshot, from_time: datetime) -> datetime:
    """``from_time`` plus the effective duration of every open occurrence."""
    remaining = sum(
        occ.effective.duration_days
        for occ in snapshot.occurrences
        if occ.status in (PhaseStatus.PENDING, PhaseStatus.IN_PROGRESS)
    )
    return from_time + timedelta(days=remaining)
