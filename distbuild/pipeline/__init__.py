"""
Build Pipeline Module

Provides dependency-aware building of a source corpus:
- Dependency graph from packaging metadata
- Topological build order
- Sequential build execution with per-unit logs
"""

from distbuild.pipeline.builder import PackageBuilder
from distbuild.pipeline.executor import BuildExecutor, BuildOutcome, ExecutorState
from distbuild.pipeline.graph import DependencyGraph, build_dependency_graph
from distbuild.pipeline.resolver import determine_build_order, topological_sort

__all__ = [
    "PackageBuilder",
    "BuildExecutor",
    "BuildOutcome",
    "ExecutorState",
    "DependencyGraph",
    "build_dependency_graph",
    "determine_build_order",
    "topological_sort",
]
