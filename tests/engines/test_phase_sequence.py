"""
Tests for phase sequencing and dependency analysis
(procurement_engines/phase_sequence.py, dependency_graph.py).
"""

import pytest

from procurement_engines.dependency_graph import (
    find_dependency_cycle,
    find_orphaned_references,
)
from procurement_engines.phase_sequence import (
    build_sequence,
    find_applicable_phases,
    validate_sequence,
)
from procurement_kernel.domain.values import PhaseCategory, RequiredStatus
from procurement_kernel.exceptions import SequenceConfigurationError
from tests.factories import INFIMA, LICITACION, make_phase, standard_phases


class TestFindApplicablePhases:
    def test_order_then_category_then_code(self):
        phases = [
            make_phase("ZZZ", 2, PhaseCategory.CALL),
            make_phase("EXEC", 3, PhaseCategory.EXECUTION),
            make_phase("AAA", 2, PhaseCategory.CALL),
            make_phase("PREP", 2, PhaseCategory.PREPARATION),
        ]
        ordered = find_applicable_phases(phases, LICITACION)
        assert [p.code for p in ordered] == ["PREP", "AAA", "ZZZ", "EXEC"]

    def test_inactive_and_unrelated_phases_excluded(self):
        phases = [
            make_phase("PREP", 1),
            make_phase("OLD", 2, is_active=False),
            make_phase("SPEC", 3, type_codes=(INFIMA,)),
        ]
        assert [p.code for p in find_applicable_phases(phases, LICITACION)] == ["PREP"]


class TestBuildSequence:
    def test_standard_sequence(self):
        sequence = build_sequence(standard_phases(), INFIMA)
        assert sequence.phase_codes == ("PREP", "CALL", "EXEC")
        assert sequence.contract_type_code == INFIMA
        assert sequence.total_estimated_days == 2 + 20 + 5
        assert len(sequence) == 3
        assert sequence.index_of("EXEC") == 2

    def test_insertion_order_does_not_matter(self):
        phases = standard_phases()
        assert build_sequence(phases, LICITACION) == build_sequence(
            tuple(reversed(phases)), LICITACION
        )

    def test_empty_when_no_phase_applies(self):
        sequence = build_sequence(standard_phases(), "EMERGENCIA")
        assert sequence.phases == ()

    def test_required_phase_missing_from_sequence(self):
        phases = [
            make_phase("PREP", 1, type_codes=(INFIMA,)),
            make_phase("CALL", 2, PhaseCategory.CALL, requires=("PREP",)),
        ]
        with pytest.raises(SequenceConfigurationError) as exc_info:
            build_sequence(phases, LICITACION)
        assert exc_info.value.contract_type_code == LICITACION
        assert "not in the sequence" in exc_info.value.issues[0]

    def test_dependency_ordered_after_dependent(self):
        phases = [
            make_phase("PREP", 2, requires=("CALL",)),
            make_phase("CALL", 1, PhaseCategory.CALL),
        ]
        with pytest.raises(SequenceConfigurationError) as exc_info:
            build_sequence(phases, LICITACION)
        assert "ordered after" in exc_info.value.issues[0]

    def test_blocked_by_counts_as_dependency(self):
        phases = [make_phase("PAGO", 1, blocked_by=("EJEC",)), make_phase("EJEC", 2)]
        issues = validate_sequence(find_applicable_phases(phases, LICITACION))
        assert issues == ["PAGO depends on EJEC, which is ordered after it"]


class TestDependencyGraph:
    def test_acyclic(self):
        assert find_dependency_cycle(standard_phases()) is None

    def test_two_phase_cycle(self):
        phases = [make_phase("AAA", 1, requires=("BBB",)), make_phase("BBB", 2, requires=("AAA",))]
        assert find_dependency_cycle(phases) == ["AAA", "BBB", "AAA"]

    def test_self_dependency(self):
        assert find_dependency_cycle([make_phase("AAA", 1, blocked_by=("AAA",))]) == [
            "AAA",
            "AAA",
        ]

    def test_longer_cycle_found_deterministically(self):
        phases = [
            make_phase("CCC", 3, requires=("AAA",)),
            make_phase("AAA", 1, requires=("BBB",)),
            make_phase("BBB", 2, requires=(("CCC", RequiredStatus.IN_PROGRESS),)),
        ]
        first = find_dependency_cycle(phases)
        assert first == find_dependency_cycle(list(reversed(phases)))
        assert first[0] == first[-1]
        assert set(first) == {"AAA", "BBB", "CCC"}

    def test_inactive_phase_breaks_cycle(self):
        phases = [
            make_phase("AAA", 1, requires=("BBB",)),
            make_phase("BBB", 2, requires=("AAA",), is_active=False),
        ]
        assert find_dependency_cycle(phases) is None

    def test_orphaned_references(self):
        phases = [
            make_phase("AAA", 1, requires=("GONE",)),
            make_phase("BBB", 2, blocked_by=("OFF",)),
            make_phase("OFF", 3, is_active=False),
        ]
        assert find_orphaned_references(phases) == [("AAA", "GONE"), ("BBB", "OFF")]
