"""
Tests for AmountRangeService.

Covers:
- Creation with type reference and overlap checks
- Update and reactivation re-running the overlap check
- Resolution skipping inactive ranges and inactive types
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from procurement_kernel.exceptions import (
    AmountRangeNotFoundError,
    AmountRangeOverlapError,
    UnknownContractTypeError,
)
from tests.factories import (
    CONSULTING,
    GOODS,
    INFIMA,
    LICITACION,
    WORKS,
    make_contract_type,
    make_range,
    messages,
)


def _range_of(service, category, type_code):
    return next(
        r for r in service.list_ranges(category) if r.contract_type_code == type_code
    )


class TestCreate:
    """Writing new ranges."""

    def test_unknown_contract_type(self, amount_range_service, test_actor_id):
        """A range must reference an existing type."""
        with pytest.raises(UnknownContractTypeError):
            amount_range_service.create(make_range(GOODS, "SUBASTA", "0"), test_actor_id)

    def test_overlap_rejected_and_logged(
        self, amount_range_service, contract_type_service, seeded_catalog, test_actor_id, captured_logs
    ):
        """An overlapping range of another type is refused."""
        contract_type_service.create(make_contract_type("MENOR_CUANTIA"), test_actor_id)
        with pytest.raises(AmountRangeOverlapError) as exc_info:
            amount_range_service.create(
                make_range(GOODS, "MENOR_CUANTIA", "7000", "9000"), test_actor_id
            )
        assert exc_info.value.conflicting_type_codes == [INFIMA, LICITACION]
        assert "amount_range_overlap_rejected" in messages(captured_logs())

    def test_same_type_overlap_allowed(self, amount_range_service, seeded_catalog, test_actor_id):
        """Ranges of one type may overlap each other."""
        created = amount_range_service.create(
            make_range(GOODS, INFIMA, "100", "200", priority=5), test_actor_id
        )
        assert created.priority == 5

    def test_other_category_is_independent(
        self, amount_range_service, seeded_catalog, contract_type_service, test_actor_id
    ):
        """Consulting ranges do not collide with goods ranges."""
        contract_type_service.create(
            make_contract_type("CONSULTORIA", applicable_objects=(CONSULTING,)), test_actor_id
        )
        amount_range_service.create(make_range(CONSULTING, "CONSULTORIA", "0"), test_actor_id)
        assert amount_range_service.resolve_types(CONSULTING, Decimal("5")) == ("CONSULTORIA",)


class TestLookupAndUpdate:
    """Reading, editing and toggling ranges."""

    def test_get_unknown(self, amount_range_service):
        with pytest.raises(AmountRangeNotFoundError):
            amount_range_service.get(uuid4())

    def test_list_ranges_by_category(self, amount_range_service, seeded_catalog):
        ranges = amount_range_service.list_ranges(WORKS)
        assert [r.contract_type_code for r in ranges] == [INFIMA, LICITACION]
        assert len(amount_range_service.list_ranges()) == 6

    def test_update_excludes_itself_from_overlap_check(
        self, amount_range_service, seeded_catalog, test_actor_id
    ):
        """Moving a range's own bounds does not conflict with itself."""
        infima = _range_of(amount_range_service, GOODS, INFIMA)
        updated = amount_range_service.update(
            infima.range_id, make_range(GOODS, INFIMA, "0", "7000"), test_actor_id
        )
        assert updated.max_amount == Decimal("7000")
        assert updated.range_id == infima.range_id

    def test_update_into_other_type(self, amount_range_service, seeded_catalog, test_actor_id):
        infima = _range_of(amount_range_service, GOODS, INFIMA)
        with pytest.raises(AmountRangeOverlapError):
            amount_range_service.update(
                infima.range_id, make_range(GOODS, INFIMA, "0", "8000"), test_actor_id
            )

    def test_reactivation_rechecks_overlap(
        self, amount_range_service, seeded_catalog, test_actor_id
    ):
        """A deactivated range cannot come back over another type's band."""
        infima = _range_of(amount_range_service, GOODS, INFIMA)
        amount_range_service.deactivate(infima.range_id, test_actor_id)
        licitacion = _range_of(amount_range_service, GOODS, LICITACION)
        amount_range_service.update(
            licitacion.range_id,
            make_range(GOODS, LICITACION, "0", None, priority=2),
            test_actor_id,
        )
        with pytest.raises(AmountRangeOverlapError):
            amount_range_service.activate(infima.range_id, test_actor_id)
        assert not amount_range_service.get(infima.range_id).is_active


class TestResolution:
    """Resolving contract types for an amount."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("0", (INFIMA,)),
            ("7212.60", (INFIMA,)),
            ("7212.61", (LICITACION,)),
            ("10000000", (LICITACION,)),
        ],
    )
    def test_boundaries(self, amount_range_service, seeded_catalog, amount, expected):
        assert amount_range_service.resolve_types("goods", Decimal(amount)) == expected

    def test_inactive_range_skipped(self, amount_range_service, seeded_catalog, test_actor_id):
        infima = _range_of(amount_range_service, GOODS, INFIMA)
        amount_range_service.deactivate(infima.range_id, test_actor_id)
        assert amount_range_service.resolve_types(GOODS, Decimal("10")) == ()
        assert len(amount_range_service.list_ranges(GOODS, include_inactive=False)) == 1

    def test_inactive_type_skipped(
        self, amount_range_service, contract_type_service, seeded_catalog, test_actor_id
    ):
        contract_type_service.deactivate(INFIMA, test_actor_id)
        assert amount_range_service.resolve_types(GOODS, Decimal("10")) == ()

    def test_resolve_contract_types_returns_definitions(
        self, amount_range_service, seeded_catalog
    ):
        types = amount_range_service.resolve_contract_types(GOODS, Decimal("50000"))
        assert [t.code for t in types] == [LICITACION]

    def test_applicable_ranges_and_overlaps(self, amount_range_service, seeded_catalog):
        assert len(amount_range_service.applicable_ranges(GOODS, Decimal("1"))) == 1
        overlaps = amount_range_service.find_overlaps(
            GOODS, "MENOR_CUANTIA", Decimal("7000"), Decimal("7500")
        )
        assert {r.contract_type_code for r in overlaps} == {INFIMA, LICITACION}
