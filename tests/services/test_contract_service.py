"""
Tests for ContractService.

Covers:
- Contract creation and phase instantiation
- Phase transitions persisted with history and structured logs
- Auto-advance through the service
- General status lifecycle
- Optimistic concurrency (expected_version and concurrent writers)
- Configuration snapshot isolation from later catalog edits
"""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from procurement_kernel.domain.values import GeneralStatus, HistoryEventType, PhaseStatus
from procurement_kernel.exceptions import (
    ContractNotFoundError,
    DuplicateCodeError,
    InputValidationError,
    InvalidContractStatusTransitionError,
    MissingMandatoryDocumentsError,
    PhaseDependencyUnmetError,
    StaleContractError,
    UnknownContractTypeError,
)
from procurement_kernel.models.contract import ContractModel
from tests.factories import CONSULTING, INFIMA, LICITACION, messages


def _upload(storage, snapshot, phase_code, *codes):
    for code in codes:
        storage.add(snapshot.contract_id, phase_code, code)


class TestCreateContract:
    """Creating contracts from the seeded catalog."""

    def test_creation_instantiates_sequence(self, create_contract):
        """Every applicable phase becomes a PENDING occurrence."""
        snapshot = create_contract(LICITACION)
        assert snapshot.version == 1
        assert snapshot.general_status is GeneralStatus.DRAFT
        assert snapshot.current_phase_code == "PREP"
        assert [o.phase_code for o in snapshot.occurrences] == ["PREP", "CALL", "EXEC"]
        assert {o.status for o in snapshot.occurrences} == {PhaseStatus.PENDING}

    def test_auto_advance_type_starts_first_phase(self, create_contract, deterministic_clock):
        snapshot = create_contract(INFIMA, amount="1500")
        prep = snapshot.occurrence("PREP")
        assert prep.status is PhaseStatus.IN_PROGRESS
        assert prep.start_date == deterministic_clock.now()

    def test_lookup(self, contract_service, create_contract):
        snapshot = create_contract()
        assert contract_service.get_snapshot(snapshot.contract_id) == snapshot
        assert contract_service.find_by_number("CT-0001").contract_id == snapshot.contract_id
        assert contract_service.find_by_number("CT-9999") is None
        with pytest.raises(ContractNotFoundError):
            contract_service.get_snapshot(uuid4())

    def test_duplicate_number(self, contract_service, create_contract, test_actor_id):
        create_contract()
        with pytest.raises(DuplicateCodeError):
            contract_service.create_contract(
                "CT-0001", "Again", "goods", "100", LICITACION, test_actor_id
            )

    def test_type_must_apply_to_object(self, contract_service, test_actor_id):
        with pytest.raises(InputValidationError) as exc_info:
            contract_service.create_contract(
                "CT-C1", "Advisory", CONSULTING, "100", LICITACION, test_actor_id
            )
        assert exc_info.value.field == "contract_type_code"

    def test_inactive_or_unknown_type(
        self, contract_service, contract_type_service, test_actor_id
    ):
        contract_type_service.deactivate(LICITACION, test_actor_id)
        with pytest.raises(InputValidationError):
            contract_service.create_contract(
                "CT-X1", "Desks", "goods", "100", LICITACION, test_actor_id
            )
        with pytest.raises(UnknownContractTypeError):
            contract_service.create_contract(
                "CT-X2", "Desks", "goods", "100", "SUBASTA", test_actor_id
            )

    @pytest.mark.parametrize("number,title", [("", "Desks"), ("CT-1", "  ")])
    def test_number_and_title_required(
        self, contract_service, test_actor_id, number, title
    ):
        with pytest.raises(InputValidationError):
            contract_service.create_contract(
                number, title, "goods", "100", LICITACION, test_actor_id
            )

    def test_creation_history_and_log(self, create_contract, history_service, captured_logs):
        snapshot = create_contract()
        history = history_service.get_history(snapshot.contract_id)
        assert [h.event_type for h in history] == [HistoryEventType.CREATION]
        record = next(r for r in captured_logs() if r["message"] == "contract_initialized")
        assert record["phase_codes"] == ["PREP", "CALL", "EXEC"]


class TestPhaseTransitions:
    """Transitions persisted through the service."""

    def test_start_complete_advance(
        self, contract_service, create_contract, document_storage, test_actor_id
    ):
        snapshot = create_contract()
        cid = snapshot.contract_id

        snapshot = contract_service.start_phase(cid, "PREP", test_actor_id)
        assert snapshot.status_of("PREP") is PhaseStatus.IN_PROGRESS
        assert snapshot.version == 2

        _upload(document_storage, snapshot, "PREP", "CERT", "STUDY")
        snapshot = contract_service.complete_phase(cid, "PREP", test_actor_id)
        assert snapshot.status_of("PREP") is PhaseStatus.COMPLETED
        assert snapshot.current_phase_code == "PREP"

        snapshot = contract_service.advance_to_next_phase(cid, test_actor_id)
        assert snapshot.current_phase_code == "CALL"
        assert snapshot.status_of("CALL") is PhaseStatus.IN_PROGRESS
        assert snapshot.version == 4
        assert contract_service.get_snapshot(cid) == snapshot

    def test_auto_advance(
        self, contract_service, create_contract, document_storage, test_actor_id, captured_logs
    ):
        snapshot = create_contract(INFIMA, amount="900")
        _upload(document_storage, snapshot, "PREP", "CERT")

        snapshot = contract_service.complete_phase(snapshot.contract_id, "PREP", test_actor_id)
        assert snapshot.current_phase_code == "CALL"
        assert snapshot.status_of("CALL") is PhaseStatus.IN_PROGRESS

        transitions = [r for r in captured_logs() if r["message"] == "phase_transition"]
        assert [(t["phase_code"], t["automatic"]) for t in transitions] == [
            ("PREP", False),
            ("CALL", True),
        ]
        assert "current_phase_changed" in messages(captured_logs())

    def test_rejected_transition_is_logged_and_not_written(
        self, contract_service, create_contract, test_actor_id, captured_logs
    ):
        snapshot = create_contract()
        with pytest.raises(PhaseDependencyUnmetError):
            contract_service.start_phase(snapshot.contract_id, "CALL", test_actor_id)
        rejected = next(
            r for r in captured_logs() if r["message"] == "phase_transition_rejected"
        )
        assert rejected["error_code"] == "PHASE_DEPENDENCY_UNMET"
        assert contract_service.get_snapshot(snapshot.contract_id).version == 1

    def test_missing_documents(self, contract_service, create_contract, test_actor_id):
        snapshot = create_contract()
        contract_service.start_phase(snapshot.contract_id, "PREP", test_actor_id)
        with pytest.raises(MissingMandatoryDocumentsError) as exc_info:
            contract_service.complete_phase(snapshot.contract_id, "PREP", test_actor_id)
        assert exc_info.value.missing_document_codes == ["CERT", "STUDY"]

    def test_cancel_and_history(
        self, contract_service, create_contract, history_service, test_actor_id
    ):
        snapshot = create_contract()
        snapshot = contract_service.cancel_phase(
            snapshot.contract_id, "EXEC", "framework agreement", test_actor_id
        )
        assert snapshot.occurrence("EXEC").cancellation_reason == "framework agreement"
        history = history_service.get_history(snapshot.contract_id)
        assert history[-1].event_type is HistoryEventType.PHASE_CHANGE
        assert history[-1].new_status == "CANCELLED"
        assert history[-1].changes["phase_code"] == "EXEC"

    def test_update_completion_and_progress(
        self, contract_service, create_contract, test_actor_id
    ):
        snapshot = create_contract()
        cid = snapshot.contract_id
        contract_service.start_phase(cid, "PREP", test_actor_id)
        snapshot = contract_service.update_completion(cid, "PREP", Decimal("60"), test_actor_id)
        assert snapshot.occurrence("PREP").completion_percentage == Decimal("60")
        assert contract_service.calculate_progress(cid) == Decimal("20.00")

    def test_estimated_completion(
        self, contract_service, create_contract, deterministic_clock
    ):
        snapshot = create_contract()
        assert contract_service.estimated_completion(snapshot.contract_id) == (
            deterministic_clock.now() + timedelta(days=60)
        )


class TestGeneralStatus:
    """Contract-level status changes."""

    def test_allowed_change_recorded(
        self, contract_service, create_contract, history_service, test_actor_id
    ):
        snapshot = create_contract()
        snapshot = contract_service.change_general_status(
            snapshot.contract_id, "PREPARATION", test_actor_id
        )
        assert snapshot.general_status is GeneralStatus.PREPARATION
        entry = history_service.get_history(snapshot.contract_id)[-1]
        assert (entry.previous_status, entry.new_status) == ("DRAFT", "PREPARATION")

    def test_rejected_change_logged(
        self, contract_service, create_contract, test_actor_id, captured_logs
    ):
        snapshot = create_contract()
        with pytest.raises(InvalidContractStatusTransitionError):
            contract_service.change_general_status(
                snapshot.contract_id, GeneralStatus.FINISHED, test_actor_id
            )
        assert "contract_status_change_rejected" in messages(captured_logs())

    def test_unknown_status_value(self, contract_service, create_contract, test_actor_id):
        snapshot = create_contract()
        with pytest.raises(InputValidationError):
            contract_service.change_general_status(
                snapshot.contract_id, "ARCHIVED", test_actor_id
            )


class TestConcurrency:
    """Optimistic locking on the contract version."""

    def test_expected_version_mismatch(self, contract_service, create_contract, test_actor_id):
        snapshot = create_contract()
        with pytest.raises(StaleContractError) as exc_info:
            contract_service.start_phase(
                snapshot.contract_id, "PREP", test_actor_id, expected_version=7
            )
        assert exc_info.value.expected_version == 7

    def test_expected_version_match(self, contract_service, create_contract, test_actor_id):
        snapshot = create_contract()
        updated = contract_service.start_phase(
            snapshot.contract_id, "PREP", test_actor_id, expected_version=snapshot.version
        )
        assert updated.version == snapshot.version + 1

    def test_concurrent_writer_detected(
        self, session, contract_service, create_contract, test_actor_id
    ):
        """A version bumped behind the session's back fails the write."""
        snapshot = create_contract()
        table = ContractModel.__table__
        session.execute(
            update(table).where(table.c.id == snapshot.contract_id).values(version=5)
        )
        with pytest.raises(StaleContractError):
            contract_service.start_phase(snapshot.contract_id, "PREP", test_actor_id)


class TestConfigurationSnapshot:
    """Contracts keep the configuration they were created with."""

    def test_catalog_edit_does_not_change_existing_contract(
        self,
        contract_service,
        create_contract,
        phase_catalog_service,
        document_storage,
        test_actor_id,
    ):
        snapshot = create_contract()
        cid = snapshot.contract_id

        prep = phase_catalog_service.get_by_code("PREP")
        phase_catalog_service.update(
            "PREP",
            replace(prep, required_documents=prep.required_documents[:1]),
            test_actor_id,
        )

        contract_service.start_phase(cid, "PREP", test_actor_id)
        _upload(document_storage, snapshot, "PREP", "CERT")
        with pytest.raises(MissingMandatoryDocumentsError) as exc_info:
            contract_service.complete_phase(cid, "PREP", test_actor_id)
        assert exc_info.value.missing_document_codes == ["STUDY"]

        newer = create_contract()
        assert newer.occurrence("PREP").effective.mandatory_document_codes == ("CERT",)
