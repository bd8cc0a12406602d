"""
Dependency graph over units.

An edge (unit, dependency) means `dependency` must be built before `unit`.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from distbuild.metadata.index import RepoMetadata

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed graph of "must be built before" relations."""

    def __init__(self):
        self._deps: Dict[str, Set[str]] = {}

    def __contains__(self, unit: str) -> bool:
        return unit in self._deps

    def __len__(self) -> int:
        return len(self._deps)

    def add_vertex(self, unit: str) -> None:
        self._deps.setdefault(unit, set())

    def add_edge(self, unit: str, dependency: str) -> bool:
        """
        Record that `unit` depends on `dependency`.

        Returns False for self-edges, which are never added.
        """
        if unit == dependency:
            return False
        self.add_vertex(unit)
        self.add_vertex(dependency)
        self._deps[unit].add(dependency)
        return True

    @property
    def vertices(self) -> List[str]:
        return sorted(self._deps)

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return sorted(
            (unit, dep) for unit, deps in self._deps.items() for dep in deps
        )

    def dependencies_of(self, unit: str) -> List[str]:
        return sorted(self._deps.get(unit, ()))


def _tier_of(unit: str, tiers: Sequence[Sequence[str]]) -> Optional[int]:
    for index, tier in enumerate(tiers):
        if unit in tier:
            return index
    return None


def add_implicit_base_edges(
    graph: DependencyGraph,
    implicit_base: Sequence[Sequence[str]],
) -> None:
    """
    Make every unit depend on the foundational units of earlier tiers.

    Units outside every tier depend on all foundational units present in
    the graph. Tier 0 units get no implicit edges.
    """
    present = [[unit for unit in tier if unit in graph] for tier in implicit_base]

    for unit in graph.vertices:
        tier = _tier_of(unit, implicit_base)
        earlier = present if tier is None else present[:tier]
        for base_tier in earlier:
            for base in base_tier:
                graph.add_edge(unit, base)


def build_dependency_graph(
    metadata: RepoMetadata,
    implicit_base: Iterable[Sequence[str]] = (),
) -> DependencyGraph:
    """
    Construct the dependency graph for every unit with parsed metadata.

    Build-time requirements that no unit produces are external to the
    corpus and are dropped.
    """
    graph = DependencyGraph()

    for unit in sorted(metadata.control_files):
        graph.add_vertex(unit)

    for unit, control in sorted(metadata.control_files.items()):
        for relation in control.build_depends:
            for name in relation:
                owner = metadata.owner_of(name)
                if owner is None:
                    continue
                graph.add_edge(unit, owner)

    add_implicit_base_edges(graph, list(implicit_base))

    logger.debug(f"Dependency graph: {len(graph)} units, {len(graph.edges)} edges")
    return graph
