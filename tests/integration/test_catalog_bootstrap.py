"""
Tests for load_catalog_into_session.

Bootstraps the shipped LOSNCP catalog set into the test database and
drives contracts through the facade against it.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from procurement_config import get_active_catalog
from procurement_kernel.domain.values import PhaseStatus
from procurement_services import ProcurementEngine, load_catalog_into_session
from tests.factories import messages


@pytest.fixture(scope="module")
def losncp_catalog():
    return get_active_catalog(date(2024, 6, 1))


@pytest.fixture
def bootstrapped(session, losncp_catalog, test_actor_id):
    return load_catalog_into_session(session, losncp_catalog, test_actor_id)


@pytest.fixture
def engine(session, deterministic_clock, document_storage, bootstrapped):
    return ProcurementEngine(session, deterministic_clock, document_storage=document_storage)


class TestBootstrap:
    def test_first_run_creates_everything(self, bootstrapped, losncp_catalog):
        assert bootstrapped.config_id == "losncp_2024"
        assert bootstrapped.checksum == losncp_catalog.checksum
        assert bootstrapped.created_count == 9 + 14 + 5
        assert bootstrapped.skipped == []
        assert bootstrapped.created[0] == "contract_type:SUBASTA_INVERSA"
        assert "amount_range:goods:INFIMA_CUANTIA:0" in bootstrapped.created
        assert bootstrapped.created[-5:] == [
            "phase:PREP",
            "phase:PREC",
            "phase:EJEC",
            "phase:PAGO",
            "phase:RECEP",
        ]

    def test_second_run_is_a_no_op(
        self, session, bootstrapped, losncp_catalog, test_actor_id, captured_logs
    ):
        again = load_catalog_into_session(session, losncp_catalog, test_actor_id)
        assert again.created == []
        assert again.skipped == bootstrapped.created
        record = next(r for r in captured_logs() if r["message"] == "catalog_bootstrapped")
        assert record["skipped_count"] == 28

    def test_existing_entries_are_left_alone(
        self, session, losncp_catalog, contract_type_service, test_actor_id
    ):
        """A type already in the database keeps its administrator edits."""
        infima = next(t for t in losncp_catalog.contract_types if t.code == "INFIMA_CUANTIA")
        contract_type_service.create(infima, test_actor_id)
        contract_type_service.update(
            "INFIMA_CUANTIA",
            replace(infima, legal_reference="Local edit"),
            test_actor_id,
        )
        result = load_catalog_into_session(session, losncp_catalog, test_actor_id)
        assert "contract_type:INFIMA_CUANTIA" in result.skipped
        assert contract_type_service.get_by_code("INFIMA_CUANTIA").legal_reference == "Local edit"

    def test_persisted_catalog_passes_integrity(self, engine):
        assert [i for i in engine.validate_catalog_integrity() if i.is_error] == []


class TestContractsOnLosncp:
    @pytest.mark.parametrize(
        "category,amount,expected",
        [
            ("goods", "5000", "INFIMA_CUANTIA"),
            ("services", "7212.61", "MENOR_CUANTIA"),
            ("works", "300000", "COTIZACION"),
            ("goods", "10000000", "LICITACION"),
        ],
    )
    def test_resolution_from_database(self, engine, category, amount, expected):
        assert engine.resolve_contract_type(category, Decimal(amount)).code == expected

    def test_infima_purchase(self, engine, document_storage, test_actor_id, captured_logs):
        """An infima cuantia purchase auto-advances out of its first two phases."""
        snapshot = engine.initialize_contract(
            "EC-2024-001", "Cleaning supplies", "goods", Decimal("1200"), test_actor_id
        )
        cid = snapshot.contract_id
        assert snapshot.contract_type_code == "INFIMA_CUANTIA"
        assert snapshot.status_of("PREP") is PhaseStatus.IN_PROGRESS
        assert snapshot.occurrence("PREP").effective.mandatory_document_codes == (
            "CERT_PRES",
            "EST_MERC",
            "TDR_ESPTEC",
            "INF_NECESIDAD",
        )

        for code in ("CERT_PRES", "EST_MERC", "TDR_ESPTEC", "INF_NECESIDAD"):
            document_storage.add(cid, "PREP", code)
        snapshot = engine.complete_phase(cid, "PREP", test_actor_id)
        assert snapshot.current_phase_code == "PREC"

        for code in ("OFERTAS", "RES_ADJUD", "PROFORMAS"):
            document_storage.add(cid, "PREC", code)
        snapshot = engine.complete_phase(cid, "PREC", test_actor_id)
        assert snapshot.current_phase_code == "EJEC"
        assert snapshot.status_of("EJEC") is PhaseStatus.IN_PROGRESS
        assert engine.contract_progress(cid).percentage == Decimal("40.00")
        assert "current_phase_changed" in messages(captured_logs())

    def test_payment_may_run_alongside_execution(self, engine, document_storage, test_actor_id):
        """PAGO only needs EJEC to be in progress."""
        snapshot = engine.initialize_contract(
            "EC-2024-002",
            "Road repair",
            "works",
            Decimal("300000"),
            test_actor_id,
        )
        cid = snapshot.contract_id
        for phase_code in ("PREP", "PREC"):
            engine.start_phase(cid, phase_code, test_actor_id)
            effective = engine.get_contract(cid).occurrence(phase_code).effective
            for code in effective.mandatory_document_codes:
                document_storage.add(cid, phase_code, code)
            engine.complete_phase(cid, phase_code, test_actor_id)
        engine.start_phase(cid, "EJEC", test_actor_id)
        snapshot = engine.start_phase(cid, "PAGO", test_actor_id)
        assert snapshot.status_of("EJEC") is PhaseStatus.IN_PROGRESS
        assert snapshot.status_of("PAGO") is PhaseStatus.IN_PROGRESS
