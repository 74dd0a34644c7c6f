"""Tests for procurement_config.loader."""

from datetime import date
from decimal import Decimal

import pytest
import yaml

from procurement_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_amount_range,
    parse_contract_type,
    parse_date,
    parse_phase,
    parse_scope,
)
from procurement_kernel.domain.values import ObjectCategory
from procurement_kernel.exceptions import InputValidationError


class TestLoadYamlFile:
    def test_empty_file_is_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("phases: [unclosed", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)


class TestParseScope:
    def test_dates_from_strings_and_objects(self):
        assert parse_date("2024-01-01") == date(2024, 1, 1)
        assert parse_date(date(2024, 6, 30)) == date(2024, 6, 30)
        with pytest.raises(ValueError):
            parse_date(20240101)

    def test_open_ended_scope(self):
        scope = parse_scope(
            {
                "jurisdiction": "EC",
                "legal_framework": "LOSNCP",
                "effective_from": "2024-01-01",
            }
        )
        assert scope.currency == "USD"
        assert scope.effective_to is None
        assert scope.covers(date(2030, 1, 1))
        assert not scope.covers(date(2023, 12, 31))

    def test_bounded_scope(self):
        scope = parse_scope(
            {
                "jurisdiction": "EC",
                "legal_framework": "LOSNCP",
                "effective_from": "2024-01-01",
                "effective_to": "2024-12-31",
            }
        )
        assert scope.covers(date(2024, 12, 31))
        assert not scope.covers(date(2025, 1, 1))

    def test_missing_jurisdiction(self):
        with pytest.raises(KeyError):
            parse_scope({"legal_framework": "LOSNCP", "effective_from": "2024-01-01"})


class TestParseEntries:
    """Catalog entries go through the kernel dict codec."""

    def test_contract_type(self):
        parsed = parse_contract_type(
            {
                "code": "MENOR_CUANTIA",
                "name": "Menor Cuantia",
                "regime": "COMMON",
                "category": "QUOTATION",
                "applicable_objects": ["goods", "works"],
                "procedure_config": {"estimated_duration": 15},
            }
        )
        assert parsed.applicable_objects == (ObjectCategory.GOODS, ObjectCategory.WORKS)
        assert parsed.procedure_config.estimated_duration == 15

    def test_unknown_key_is_an_error(self):
        with pytest.raises(InputValidationError) as exc_info:
            parse_contract_type(
                {
                    "code": "MENOR_CUANTIA",
                    "name": "Menor Cuantia",
                    "regime": "COMMON",
                    "category": "QUOTATION",
                    "applicable_objects": ["goods"],
                    "threshold": 10,
                }
            )
        assert "threshold" in exc_info.value.reason

    def test_amount_range_keeps_quoted_decimals(self):
        parsed = parse_amount_range(
            {
                "object_category": "goods",
                "contract_type_code": "INFIMA_CUANTIA",
                "min_amount": "0",
                "max_amount": "7212.60",
            }
        )
        assert parsed.max_amount == Decimal("7212.60")

    def test_phase_with_forward_dependency(self):
        """A dependency may name a phase that is not parsed yet."""
        parsed = parse_phase(
            {
                "code": "PAGO",
                "name": "Fase de Pago",
                "order": 4,
                "category": "EXECUTION",
                "dependencies": {
                    "required_phases": [
                        {"phase_code": "EJEC", "required_status": "IN_PROGRESS"}
                    ]
                },
                "required_documents": [{"code": "FACTURAS", "name": "Facturas"}],
            }
        )
        assert parsed.dependencies.referenced_codes == ("EJEC",)
        assert parsed.mandatory_documents[0].code == "FACTURAS"


class TestComputeChecksum:
    def test_key_order_does_not_matter(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum(
            {"b": [1, 2], "a": 1}
        )

    def test_content_changes_checksum(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
        assert len(compute_checksum({})) == 64
