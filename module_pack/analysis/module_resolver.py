"""Module dependency resolver: fold file edges into module edges, expand a selection by BFS."""

from __future__ import annotations

import logging
from collections import deque

from module_pack.analysis.graph_models import DependencyClosure, DependencyEdge, ModuleGraph

logger = logging.getLogger(__name__)


def module_of(path: str, modules_dir: str) -> str | None:
    """Module owning a project-relative file, or None outside any module.

    Files directly inside the modules root (``modules/__init__.py``) belong
    to no module.
    """
    prefix = modules_dir.strip("/") + "/"
    if not path.startswith(prefix):
        return None
    rest = path[len(prefix):]
    if "/" not in rest:
        return None
    return rest.split("/", 1)[0]


def build_module_graph(
    edges: list[DependencyEdge],
    modules: list[str],
    modules_dir: str,
) -> ModuleGraph:
    known = set(modules)
    graph = ModuleGraph(modules=list(modules), forward={m: set() for m in modules})
    for edge in edges:
        src = module_of(edge.source, modules_dir)
        dst = module_of(edge.target, modules_dir)
        if src is None or dst is None or src == dst:
            continue
        if src not in known or dst not in known:
            continue
        graph.forward[src].add(dst)
    return graph


def resolve_closure(
    selected: list[str],
    graph: ModuleGraph,
) -> DependencyClosure:
    """Expand *selected* to every module it transitively depends on.

    Neighbours are enqueued in ``graph.modules`` order, so the result does not
    depend on set iteration order. Selected names that are not existing
    modules are kept in the closure and reported as missing.
    """
    existing = set(graph.modules)
    order = {m: i for i, m in enumerate(graph.modules)}

    # de-duplicate, caller order
    seeds: list[str] = []
    for name in selected:
        if name not in seeds:
            seeds.append(name)

    visited: set[str] = set(seeds)
    queue = deque(seeds)
    result: list[str] = []
    auto_added: list[str] = []

    while queue:
        current = queue.popleft()
        result.append(current)
        for dep in sorted(graph.dependencies_of(current), key=order.__getitem__):
            if dep in visited:
                continue
            visited.add(dep)
            auto_added.append(dep)
            queue.append(dep)

    missing = [m for m in seeds if m not in existing]
    if auto_added:
        logger.info("Auto-added dependent modules: %s", ", ".join(auto_added))
    if missing:
        logger.warning("Selected modules not found: %s", ", ".join(missing))

    return DependencyClosure(
        modules=tuple(result),
        selected=tuple(seeds),
        auto_added=tuple(auto_added),
        missing=tuple(missing),
    )


def resolve_dependencies(
    selected: list[str],
    all_modules: list[str],
    edges: list[DependencyEdge],
    modules_dir: str,
) -> DependencyClosure:
    return resolve_closure(selected, build_module_graph(edges, all_modules, modules_dir))


def detect_cycles(graph: ModuleGraph) -> list[list[str]]:
    """Detect module-level cycles using DFS. Each cycle ends with its first module repeated."""
    cycles: list[list[str]] = []
    visited: set[str] = set()
    rec_stack: set[str] = set()
    path: list[str] = []
    order = {m: i for i, m in enumerate(graph.modules)}

    def dfs(module: str) -> None:
        visited.add(module)
        rec_stack.add(module)
        path.append(module)

        for neighbor in sorted(graph.dependencies_of(module), key=order.__getitem__):
            if neighbor not in visited:
                dfs(neighbor)
            elif neighbor in rec_stack:
                idx = path.index(neighbor)
                cycles.append(path[idx:] + [neighbor])

        path.pop()
        rec_stack.discard(module)

    for module in graph.modules:
        if module not in visited:
            dfs(module)

    return cycles
