"""
Tests for the amount-range resolution engine (procurement_engines/amount_range.py).

Covers:
- Inclusive boundaries and unbounded ranges
- Priority ranking and tie-breaks
- Inactive ranges
- Overlap detection between contract types
"""

from decimal import Decimal
from uuid import uuid4

from procurement_engines.amount_range import (
    detect_overlaps,
    find_all_overlaps,
    find_applicable_ranges,
    range_description,
    resolve_types_for_amount,
)
from tests.factories import (
    CONSULTING,
    GOODS,
    INFIMA,
    INFIMA_MAX,
    LICITACION,
    LICITACION_MIN,
    WORKS,
    make_range,
    standard_ranges,
)


class TestResolveTypesForAmount:
    def test_lower_band(self):
        assert resolve_types_for_amount(standard_ranges(), GOODS, Decimal("5000")) == (INFIMA,)

    def test_upper_bound_is_inclusive(self):
        assert resolve_types_for_amount(standard_ranges(), GOODS, INFIMA_MAX) == (INFIMA,)

    def test_next_band_starts_one_cent_later(self):
        assert resolve_types_for_amount(standard_ranges(), GOODS, LICITACION_MIN) == (LICITACION,)

    def test_unbounded_upper_band(self):
        result = resolve_types_for_amount(standard_ranges(), GOODS, Decimal("10000000"))
        assert result == (LICITACION,)

    def test_gap_resolves_to_nothing(self):
        assert resolve_types_for_amount(standard_ranges(), GOODS, Decimal("7212.605")) == ()

    def test_other_category_is_ignored(self):
        assert resolve_types_for_amount(standard_ranges(), CONSULTING, Decimal("100")) == ()

    def test_amount_given_as_string(self):
        assert resolve_types_for_amount(standard_ranges(), WORKS, "0") == (INFIMA,)

    def test_inactive_range_ignored(self):
        ranges = [make_range(GOODS, INFIMA, "0", "100", is_active=False)]
        assert resolve_types_for_amount(ranges, GOODS, Decimal("50")) == ()

    def test_priority_orders_overlapping_types(self):
        ranges = [
            make_range(GOODS, "COTIZACION", "0", "1000", priority=3),
            make_range(GOODS, "SUBASTA_INVERSA", "500", "5000", priority=1),
        ]
        assert resolve_types_for_amount(ranges, GOODS, Decimal("700")) == (
            "SUBASTA_INVERSA",
            "COTIZACION",
        )

    def test_same_type_listed_once(self):
        ranges = [
            make_range(GOODS, "COTIZACION", "0", "1000", priority=2),
            make_range(GOODS, "COTIZACION", "500", "2000", priority=1),
        ]
        assert resolve_types_for_amount(ranges, GOODS, Decimal("700")) == ("COTIZACION",)


class TestFindApplicableRanges:
    def test_tie_broken_by_min_amount_then_code(self):
        ranges = [
            make_range(GOODS, "ZETA", "100", "1000"),
            make_range(GOODS, "ALFA", "100", "1000"),
            make_range(GOODS, "BETA", "50", "1000"),
        ]
        result = find_applicable_ranges(ranges, GOODS, Decimal("500"))
        assert [r.contract_type_code for r in result] == ["BETA", "ALFA", "ZETA"]

    def test_insertion_order_does_not_matter(self):
        ranges = list(standard_ranges())
        forward = find_applicable_ranges(ranges, GOODS, Decimal("100"))
        backward = find_applicable_ranges(list(reversed(ranges)), GOODS, Decimal("100"))
        assert forward == backward


class TestDetectOverlaps:
    def test_overlap_with_other_type(self):
        conflicts = detect_overlaps(
            standard_ranges(), GOODS, "MENOR_CUANTIA", Decimal("7000"), Decimal("8000")
        )
        assert {r.contract_type_code for r in conflicts} == {INFIMA, LICITACION}

    def test_same_type_never_conflicts(self):
        conflicts = detect_overlaps(
            standard_ranges(), GOODS, INFIMA, Decimal("0"), Decimal("100")
        )
        assert conflicts == ()

    def test_adjacent_ranges_do_not_overlap(self):
        ranges = [make_range(GOODS, INFIMA, "0", "7212.60")]
        assert detect_overlaps(ranges, GOODS, "MENOR_CUANTIA", Decimal("7212.61"), None) == ()

    def test_shared_boundary_overlaps(self):
        ranges = [make_range(GOODS, INFIMA, "0", "7212.60")]
        conflicts = detect_overlaps(ranges, GOODS, "MENOR_CUANTIA", Decimal("7212.60"), None)
        assert len(conflicts) == 1

    def test_exclude_id_skips_the_range_being_updated(self):
        range_id = uuid4()
        ranges = [make_range(GOODS, INFIMA, "0", "100", range_id=range_id)]
        assert detect_overlaps(
            ranges, GOODS, "MENOR_CUANTIA", Decimal("50"), None, exclude_id=range_id
        ) == ()

    def test_inactive_ranges_never_conflict(self):
        ranges = [make_range(GOODS, INFIMA, "0", "100", is_active=False)]
        assert detect_overlaps(ranges, GOODS, "MENOR_CUANTIA", Decimal("50"), None) == ()

    def test_find_all_overlaps_reports_each_pair_once(self):
        ranges = [
            make_range(GOODS, "AAA", "0", "100"),
            make_range(GOODS, "BBB", "50", "150"),
            make_range(WORKS, "CCC", "0", "100"),
        ]
        pairs = find_all_overlaps(ranges)
        assert len(pairs) == 1
        assert {pairs[0][0].contract_type_code, pairs[0][1].contract_type_code} == {"AAA", "BBB"}

    def test_standard_catalog_has_no_overlaps(self):
        assert find_all_overlaps(standard_ranges()) == ()


class TestRangeDescription:
    def test_bounded(self):
        assert range_description(make_range(GOODS, INFIMA, "0", "7212.60")) == (
            "From 0.00 to 7,212.60"
        )

    def test_unbounded(self):
        assert range_description(make_range(GOODS, LICITACION, "540945.01")) == (
            "From 540,945.01 onwards"
        )
