"""
Property-based tests for the pure engines.

Properties:
- Range resolution over a partition of [0, +inf) yields exactly one type
- Resolution and sequencing do not depend on catalog insertion order
- Effective documents never include an excluded document
- Contract progress always lies in 0..100
- Dependency graphs ordered by ``order`` are acyclic; one back edge closes a cycle
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from procurement_engines.amount_range import resolve_types_for_amount
from procurement_engines.dependency_graph import find_dependency_cycle
from procurement_engines.effective_config import resolve_effective_config
from procurement_engines.phase_sequence import build_sequence
from procurement_engines.progression import (
    calculate_progress,
    instantiate,
    start_phase,
    update_completion,
)
from procurement_kernel.domain.values import ObjectCategory
from tests.factories import (
    GOODS,
    INFIMA,
    INFIMA_MAX,
    LICITACION,
    doc,
    make_phase,
    make_range,
    standard_phases,
    standard_ranges,
)

AT = datetime(2024, 1, 1, tzinfo=timezone.utc)

amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
percentages = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestRangeResolutionProperties:
    @given(amount=amounts, category=st.sampled_from([GOODS, ObjectCategory.SERVICES]))
    @settings(max_examples=200)
    def test_partition_resolves_exactly_one_type(self, amount, category):
        result = resolve_types_for_amount(standard_ranges(), category, amount)
        assert len(result) == 1
        assert result[0] == (INFIMA if amount <= INFIMA_MAX else LICITACION)

    @given(ranges=st.permutations(standard_ranges()), amount=amounts)
    @settings(max_examples=100)
    def test_insertion_order_irrelevant(self, ranges, amount):
        assert resolve_types_for_amount(ranges, GOODS, amount) == resolve_types_for_amount(
            standard_ranges(), GOODS, amount
        )

    @given(
        boundaries=st.lists(
            st.integers(min_value=1, max_value=10_000), min_size=1, max_size=6, unique=True
        ),
        amount=st.integers(min_value=0, max_value=20_000),
    )
    def test_adjacent_bands_cover_every_whole_amount(self, boundaries, amount):
        edges = [0] + sorted(boundaries)
        ranges = []
        for i, low in enumerate(edges):
            high = Decimal(edges[i + 1]) - Decimal("0.01") if i + 1 < len(edges) else None
            ranges.append(make_range(GOODS, f"BAND_{i}", Decimal(low), high))
        expected = max(i for i, low in enumerate(edges) if low <= amount)
        assert resolve_types_for_amount(ranges, GOODS, Decimal(amount)) == (f"BAND_{expected}",)


class TestSequenceProperties:
    @given(phases=st.permutations(standard_phases()), type_code=st.sampled_from([INFIMA, LICITACION]))
    def test_sequence_independent_of_insertion_order(self, phases, type_code):
        assert build_sequence(phases, type_code) == build_sequence(standard_phases(), type_code)

    @given(
        excluded=st.lists(st.sampled_from(["A", "B", "C", "Document B"]), max_size=3),
        extra=st.lists(st.sampled_from(["D", "E"]), max_size=2, unique=True),
    )
    def test_excluded_documents_never_effective(self, excluded, extra):
        phase = make_phase(
            "PREP",
            1,
            documents=(doc("A"), doc("B"), doc("C")),
            overrides={
                LICITACION: {
                    "excluded_documents": tuple(excluded),
                    "additional_documents": tuple(doc(c) for c in extra),
                }
            },
        )
        effective = resolve_effective_config(phase, LICITACION)
        codes = [d.code for d in effective.documents]
        for ref in excluded:
            assert all(not d.matches(ref) for d in effective.documents)
        assert codes[len(codes) - len(extra):] == list(extra)

    @given(pcts=st.lists(percentages, min_size=1, max_size=3))
    def test_progress_bounded(self, pcts):
        snapshot = instantiate(build_sequence(standard_phases(), LICITACION), AT)
        snapshot = start_phase(snapshot, "PREP", AT).snapshot
        for pct in pcts:
            snapshot = update_completion(snapshot, "PREP", pct)
        progress = calculate_progress(snapshot)
        assert Decimal("0") <= progress <= Decimal("100")
        assert progress == (pcts[-1] / 3).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@st.composite
def forward_dependency_catalog(draw):
    """Phases P01..Pn where each phase may depend on any earlier one."""
    size = draw(st.integers(min_value=2, max_value=8))
    codes = [f"P{i:02d}" for i in range(1, size + 1)]
    phases = []
    for i, code in enumerate(codes):
        requires = draw(st.lists(st.sampled_from(codes[:i]), unique=True)) if i else []
        phases.append(make_phase(code, i + 1, requires=tuple(requires)))
    return phases


class TestDependencyGraphProperties:
    @given(phases=forward_dependency_catalog())
    def test_forward_dependencies_are_acyclic(self, phases):
        assert find_dependency_cycle(phases) is None
        build_sequence(phases, LICITACION)

    @given(phases=forward_dependency_catalog())
    @settings(max_examples=50)
    def test_back_edge_closes_a_cycle(self, phases):
        first, last = phases[0], phases[-1]
        chained = [
            make_phase(p.code, p.order, requires=(phases[i - 1].code,) if i else ())
            for i, p in enumerate(phases)
        ]
        chained[0] = make_phase(first.code, first.order, requires=(last.code,))
        cycle = find_dependency_cycle(chained)
        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {p.code for p in phases}
