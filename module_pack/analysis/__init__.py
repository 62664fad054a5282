"""Dependency analysis: file edges, module graph, closure."""

from module_pack.analysis.dependency_graph import DependencyExtractor, extract_dependencies
from module_pack.analysis.graph_models import DependencyClosure, DependencyEdge, FileGraph, ModuleGraph
from module_pack.analysis.module_resolver import (
    build_module_graph,
    detect_cycles,
    module_of,
    resolve_closure,
    resolve_dependencies,
)

__all__ = [
    "DependencyClosure",
    "DependencyEdge",
    "DependencyExtractor",
    "FileGraph",
    "ModuleGraph",
    "build_module_graph",
    "detect_cycles",
    "extract_dependencies",
    "module_of",
    "resolve_closure",
    "resolve_dependencies",
]
