"""
ContractHistoryService -- append-only contract audit trail.

Responsibility:
    Records one ContractHistoryModel row per significant change of a
    contract (creation, phase transition, status change, document upload,
    data modification) and returns the trail as frozen entries.

Architecture position:
    Kernel > Services -- imperative shell, called by ContractService and
    DocumentRegistryService inside their own flush.

Invariants enforced:
    - Append-only: rows are inserted, never updated or deleted.
    - Timestamps come from the injected Clock.

Audit relevance:
    This IS the contract audit trail.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.contract import ProgressionResult
from procurement_kernel.domain.values import HistoryEventType
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.contract import ContractHistoryModel
from procurement_kernel.services.base import BaseService

logger = get_logger("services.history")


@dataclass(frozen=True)
class HistoryEntry:
    """A single entry of a contract's history."""

    event_type: HistoryEventType
    description: str
    event_date: datetime
    actor_id: UUID
    previous_status: str | None
    new_status: str | None
    previous_phase_code: str | None
    new_phase_code: str | None
    changes: dict[str, Any]


class ContractHistoryService(BaseService[ContractHistoryModel]):
    """
    Service for the contract history trail.

    Guarantees:
        - ``get_history`` returns entries in recording order.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        contract_id: UUID,
        event_type: HistoryEventType,
        description: str,
        actor_id: UUID,
        *,
        previous_status: str | None = None,
        new_status: str | None = None,
        previous_phase_code: str | None = None,
        new_phase_code: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> ContractHistoryModel:
        """Add one history row to the session (flushed by the caller)."""
        last = self.session.execute(
            select(func.max(ContractHistoryModel.sequence_number)).where(
                ContractHistoryModel.contract_id == contract_id
            )
        ).scalar_one()
        row = ContractHistoryModel(
            contract_id=contract_id,
            sequence_number=(last or 0) + 1,
            event_type=event_type.value,
            description=description,
            previous_status=previous_status,
            new_status=new_status,
            previous_phase_code=previous_phase_code,
            new_phase_code=new_phase_code,
            changes=changes or {},
            actor_id=actor_id,
            event_date=self._clock.now(),
        )
        self.session.add(row)
        logger.debug(
            "contract_history_recorded",
            extra={
                "contract_id": str(contract_id),
                "event_type": event_type.value,
                "sequence_number": row.sequence_number,
            },
        )
        return row

    def record_creation(
        self,
        contract_id: UUID,
        contract_number: str,
        contract_type_code: str,
        phase_codes: list[str],
        actor_id: UUID,
    ) -> ContractHistoryModel:
        return self.record(
            contract_id,
            HistoryEventType.CREATION,
            f"Contract {contract_number} created as {contract_type_code}",
            actor_id,
            new_phase_code=phase_codes[0] if phase_codes else None,
            changes={"contract_type_code": contract_type_code, "phases": phase_codes},
        )

    def record_progression(
        self,
        contract_id: UUID,
        result: ProgressionResult,
        actor_id: UUID,
    ) -> list[ContractHistoryModel]:
        """One PHASE_CHANGE row per transition in ``result``."""
        rows = []
        for transition in result.transitions:
            rows.append(
                self.record(
                    contract_id,
                    HistoryEventType.PHASE_CHANGE,
                    (
                        f"Phase {transition.phase_code}: {transition.action} "
                        f"({transition.from_status.value} -> {transition.to_status.value})"
                    ),
                    actor_id,
                    previous_status=transition.from_status.value,
                    new_status=transition.to_status.value,
                    previous_phase_code=result.previous_phase_code,
                    new_phase_code=result.current_phase_code,
                    changes={
                        "phase_code": transition.phase_code,
                        "action": transition.action,
                        "automatic": transition.automatic,
                    },
                )
            )
        if not result.transitions and result.phase_changed:
            rows.append(
                self.record(
                    contract_id,
                    HistoryEventType.PHASE_CHANGE,
                    f"Current phase moved to {result.current_phase_code}",
                    actor_id,
                    previous_phase_code=result.previous_phase_code,
                    new_phase_code=result.current_phase_code,
                )
            )
        return rows

    def get_history(self, contract_id: UUID) -> list[HistoryEntry]:
        rows = self.session.execute(
            select(ContractHistoryModel)
            .where(ContractHistoryModel.contract_id == contract_id)
            .order_by(ContractHistoryModel.sequence_number)
        ).scalars()
        return [
            HistoryEntry(
                event_type=HistoryEventType(row.event_type),
                description=row.description,
                event_date=row.event_date,
                actor_id=row.actor_id,
                previous_status=row.previous_status,
                new_status=row.new_status,
                previous_phase_code=row.previous_phase_code,
                new_phase_code=row.new_phase_code,
                changes=row.changes,
            )
            for row in rows
        ]
