"""
Topological build-order resolution.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from distbuild.errors import CycleError
from distbuild.metadata.index import RepoMetadata
from distbuild.pipeline.graph import DependencyGraph, build_dependency_graph

logger = logging.getLogger(__name__)


def topological_sort(graph: DependencyGraph) -> List[str]:
    """
    Topologically sort units so dependencies come first.

    Returns list of unit names in build order.

    Raises:
        CycleError: if the graph contains a cycle
    """
    dependents: Dict[str, List[str]] = defaultdict(list)
    in_degree: Dict[str, int] = {unit: 0 for unit in graph.vertices}

    for unit, dep in graph.edges:
        dependents[dep].append(unit)
        in_degree[unit] += 1

    # Kahn's algorithm
    queue = [unit for unit, degree in in_degree.items() if degree == 0]
    result = []

    while queue:
        # Sort to ensure deterministic order
        queue.sort()
        unit = queue.pop(0)
        result.append(unit)

        for dependent in dependents[unit]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(result) != len(in_degree):
        raise CycleError(unit for unit, degree in in_degree.items() if degree > 0)

    return result


def determine_build_order(
    metadata: RepoMetadata,
    implicit_base: Iterable[Sequence[str]] = (),
) -> List[str]:
    """
    Compute the full build order.

    Units whose metadata could not be parsed are appended last, in the
    order they were discovered.
    """
    graph = build_dependency_graph(metadata, implicit_base)
    order = topological_sort(graph)
    return order + list(metadata.unparseable)
