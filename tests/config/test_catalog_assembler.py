"""Tests for procurement_config.assembler."""

from decimal import Decimal

import pytest

from procurement_config.assembler import AssemblyError, assemble_from_directory
from procurement_config.lifecycle import ConfigStatus
from procurement_kernel.exceptions import InputValidationError


class TestAssembleShippedSet:
    """The LOSNCP fragments compose into one catalog set."""

    def test_identity_and_scope(self, set_dir):
        catalog = assemble_from_directory(set_dir)
        assert catalog.config_id == "losncp_2024"
        assert catalog.version == 1
        assert catalog.status is ConfigStatus.PUBLISHED
        assert catalog.scope.legal_framework == "LOSNCP"
        assert catalog.predecessor is None
        assert len(catalog.checksum) == 64

    def test_entries(self, set_dir):
        catalog = assemble_from_directory(set_dir)
        assert len(catalog.contract_types) == 9
        assert len(catalog.amount_ranges) == 14
        assert catalog.phase_codes == ("PREP", "PREC", "EJEC", "PAGO", "RECEP")
        assert "INFIMA_CUANTIA" in catalog.contract_type_codes

    def test_open_range_and_quoted_amounts(self, set_dir):
        catalog = assemble_from_directory(set_dir)
        top = [r for r in catalog.amount_ranges if r.max_amount is None]
        assert {r.contract_type_code for r in top} == {"LICITACION", "LISTA_CORTA"}
        infima_goods = next(
            r
            for r in catalog.amount_ranges
            if r.contract_type_code == "INFIMA_CUANTIA" and r.object_category.value == "goods"
        )
        assert infima_goods.max_amount == Decimal("7212.60")


class TestChecksum:
    def test_deterministic(self, set_dir):
        assert (
            assemble_from_directory(set_dir).checksum
            == assemble_from_directory(set_dir).checksum
        )

    def test_formatting_only_edit_keeps_checksum(self, set_dir):
        """Comments and blank lines are not part of the catalog identity."""
        before = assemble_from_directory(set_dir).checksum
        path = set_dir / "amount_ranges.yaml"
        path.write_text(
            "# reformatted\n\n" + path.read_text(encoding="utf-8"), encoding="utf-8"
        )
        assert assemble_from_directory(set_dir).checksum == before

    def test_content_edit_changes_checksum(self, set_dir, edit_fragment):
        before = assemble_from_directory(set_dir).checksum

        def _raise_threshold(data):
            data["amount_ranges"][0]["max_amount"] = "7500.00"

        edit_fragment(set_dir / "amount_ranges.yaml", _raise_threshold)
        assert assemble_from_directory(set_dir).checksum != before


class TestFailures:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(AssemblyError):
            assemble_from_directory(tmp_path / "nowhere")

    def test_missing_root(self, set_dir):
        (set_dir / "root.yaml").unlink()
        with pytest.raises(AssemblyError) as exc_info:
            assemble_from_directory(set_dir)
        assert exc_info.value.code == "ASSEMBLY_FAILED"

    def test_root_without_scope(self, set_dir, edit_fragment):
        edit_fragment(set_dir / "root.yaml", lambda data: data.pop("scope"))
        with pytest.raises(AssemblyError):
            assemble_from_directory(set_dir)

    def test_unknown_status(self, set_dir, edit_fragment):
        edit_fragment(set_dir / "root.yaml", lambda data: data.update(status="retired"))
        with pytest.raises(AssemblyError):
            assemble_from_directory(set_dir)

    def test_malformed_entry(self, set_dir, edit_fragment):
        def _bad_priority(data):
            data["amount_ranges"][0]["priority"] = 0

        edit_fragment(set_dir / "amount_ranges.yaml", _bad_priority)
        with pytest.raises(InputValidationError):
            assemble_from_directory(set_dir)

    def test_optional_fragments(self, set_dir):
        """A set may ship without phases; its entries are simply empty."""
        (set_dir / "phases.yaml").unlink()
        catalog = assemble_from_directory(set_dir)
        assert catalog.phases == ()
        assert len(catalog.contract_types) == 9
