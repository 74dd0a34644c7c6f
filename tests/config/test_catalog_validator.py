"""
Tests for procurement_config.validator.

The shipped LOSNCP set is the baseline; each test breaks one rule in a
copy of it and checks the finding.
"""

from dataclasses import replace

import pytest

from procurement_config.assembler import assemble_from_directory
from procurement_config.validator import CatalogValidationResult, validate_catalog
from tests.factories import GOODS, WORKS, make_range


@pytest.fixture
def catalog(set_dir):
    return assemble_from_directory(set_dir)


def _phase(catalog, code):
    return next(p for p in catalog.phases if p.code == code)


def _with_phase(catalog, updated):
    return replace(
        catalog,
        phases=tuple(updated if p.code == updated.code else p for p in catalog.phases),
    )


class TestShippedSet:
    def test_is_valid(self, catalog):
        result = validate_catalog(catalog)
        assert result.is_valid, result.errors

    def test_types_without_ranges_are_warnings(self, catalog):
        """Types chosen explicitly (no amount range) are reported, not rejected."""
        result = validate_catalog(catalog)
        unranged = [w for w in result.warnings if "no active amount range" in w]
        assert len(unranged) == 3
        for code in ("SUBASTA_INVERSA", "EMERGENCIA", "REGIMEN_ESPECIAL"):
            assert any(code in w for w in unranged)


class TestErrors:
    def test_duplicate_contract_type_code(self, catalog):
        broken = replace(catalog, contract_types=catalog.contract_types + catalog.contract_types[:1])
        result = validate_catalog(broken)
        assert not result.is_valid
        assert "Duplicate contract type code: SUBASTA_INVERSA" in result.errors

    def test_overlapping_ranges(self, catalog):
        broken = replace(
            catalog,
            amount_ranges=catalog.amount_ranges
            + (make_range(GOODS, "COTIZACION", "7000", "8000", priority=9),),
        )
        result = validate_catalog(broken)
        assert not result.is_valid
        assert {i.code for i in result.issues if i.is_error} == {"AMOUNT_RANGE_OVERLAP"}

    def test_dependency_cycle(self, catalog):
        prep = _phase(catalog, "PREP")
        recep = _phase(catalog, "RECEP")
        broken = _with_phase(catalog, replace(prep, dependencies=recep.dependencies))
        result = validate_catalog(broken)
        assert "CYCLIC_DEPENDENCY" in {i.code for i in result.issues}

    def test_dependency_outside_sequence(self, catalog):
        """Dropping INFIMA_CUANTIA from EJEC strands the phases that need it."""
        ejec = _phase(catalog, "EJEC")
        broken = _with_phase(
            catalog,
            replace(
                ejec,
                type_overrides=tuple(
                    o for o in ejec.type_overrides if o.contract_type_code != "INFIMA_CUANTIA"
                ),
            ),
        )
        result = validate_catalog(broken)
        assert not result.is_valid
        assert (
            "Sequence of 'INFIMA_CUANTIA': PAGO depends on EJEC, which is not in the sequence"
            in result.errors
        )

    def test_override_for_unknown_type(self, catalog):
        broken = replace(
            catalog,
            contract_types=tuple(
                t for t in catalog.contract_types if t.code != "REGIMEN_ESPECIAL"
            ),
        )
        result = validate_catalog(broken)
        assert not result.is_valid
        assert {i.subject for i in result.issues if i.code == "UNKNOWN_CONTRACT_TYPE"} == {
            "PREP",
            "PREC",
            "EJEC",
            "PAGO",
            "RECEP",
        }


class TestWarnings:
    def test_phase_without_overrides(self, catalog):
        """A phase that applies to no type is reported, not rejected."""
        pago = _phase(catalog, "PAGO")
        result = validate_catalog(_with_phase(catalog, replace(pago, type_overrides=())))
        assert result.is_valid
        assert any("PHASE_NOT_APPLICABLE" in w for w in result.warnings)

    def test_range_for_type_not_covering_object(self, catalog):
        consulting_only = next(
            t for t in catalog.contract_types if t.code == "CONSULTORIA_DIRECTA"
        )
        result = validate_catalog(
            replace(
                catalog,
                amount_ranges=tuple(
                    r
                    for r in catalog.amount_ranges
                    if r.object_category.value != "works"
                )
                + (make_range(WORKS, consulting_only.code, "0"),),
            )
        )
        assert result.is_valid
        assert any("OBJECT_NOT_APPLICABLE" in w for w in result.warnings)


class TestResult:
    def test_is_valid_tracks_errors_only(self):
        result = CatalogValidationResult()
        result.add_warning("review me")
        assert result.is_valid
        result.add_error("broken")
        assert not result.is_valid

