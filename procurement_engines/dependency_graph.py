"""
procurement_engines.dependency_graph -- Phase dependency graph analysis.

Responsibility:
    Build the directed graph formed by ``required_phases`` and ``blocked_by``
    edges across phase templates and find cycles and dangling references.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Deterministic traversal (phase codes visited in sorted order), so the
      same catalog always reports the same cycle path.
    - A cycle path starts and ends with the same code, e.g. [A, B, A].
"""

from __future__ import annotations

from typing import Iterable

from procurement_kernel.domain.phase import PhaseTemplate

_WHITE, _GREY, _BLACK = 0, 1, 2


def build_dependency_graph(
    phases: Iterable[PhaseTemplate],
) -> dict[str, tuple[str, ...]]:
    """Adjacency map ``phase_code -> codes it depends on`` for active phases."""
    return {
        p.code: p.dependencies.referenced_codes
        for p in phases
        if p.is_active
    }


def find_dependency_cycle(phases: Iterable[PhaseTemplate]) -> list[str] | None:
    """Return one dependency cycle as a code path, or None if acyclic.

    Edges pointing at codes that are not active phases are ignored here;
    they are reported by ``find_orphaned_references``.
    """
    graph = build_dependency_graph(phases)
    color = {code: _WHITE for code in graph}

    for root in sorted(graph):
        if color[root] != _WHITE:
            continue
        path: list[str] = [root]
        color[root] = _GREY
        stack = [iter(sorted(graph[root]))]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                color[path.pop()] = _BLACK
                continue
            if child not in graph:
                continue
            if color[child] == _GREY:
                start = path.index(child)
                return path[start:] + [child]
            if color[child] == _WHITE:
                color[child] = _GREY
                path.append(child)
                stack.append(iter(sorted(graph[child])))
    return None


def find_orphaned_references(
    phases: Iterable[PhaseTemplate],
) -> list[tuple[str, str]]:
    """``(phase_code, missing_code)`` for each dependency on a non-active phase."""
    graph = build_dependency_graph(phases)
    orphans: list[tuple[str, str]] = []
    for code in sorted(graph):
        for ref in graph[code]:
            if ref not in graph:
                orphans.append((code, ref))
    return orphans
