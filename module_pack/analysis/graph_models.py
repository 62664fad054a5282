"""Data models for file- and module-level dependency graphs."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DependencyEdge:
    source: str  # importing file, project-relative
    target: str  # resolved imported file, always present in the file index
    line_number: int = 0


@dataclass
class ModuleGraph:
    modules: list[str] = field(default_factory=list)
    forward: dict[str, set[str]] = field(default_factory=dict)  # module -> {depended-on modules}

    def dependencies_of(self, module: str) -> set[str]:
        return self.forward.get(module, set())

    def to_dict(self) -> dict:
        return {
            "modules": list(self.modules),
            "edges": {
                m: sorted(deps) for m, deps in self.forward.items() if deps
            },
        }


@dataclass(frozen=True)
class DependencyClosure:
    """A selection expanded over the module graph.

    ``modules`` is in breadth-first visit order and still contains any
    selected names that have no directory; ``missing`` flags those.
    """
    modules: tuple[str, ...] = ()
    selected: tuple[str, ...] = ()
    auto_added: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()

    @property
    def included(self) -> list[str]:
        missing = set(self.missing)
        return [m for m in self.modules if m not in missing]

    def is_auto_added(self, module: str) -> bool:
        return module in self.auto_added

    def to_dict(self) -> dict:
        return {
            "modules": list(self.modules),
            "selected": list(self.selected),
            "auto_added": list(self.auto_added),
            "missing": list(self.missing),
            "included": self.included,
        }


@dataclass
class FileGraph:
    """File-level dependency graph of a whole project."""
    files: list[str] = field(default_factory=list)
    edges: list[DependencyEdge] = field(default_factory=list)
    unreadable: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "files": list(self.files),
            "edges": [
                {"source": e.source, "target": e.target, "line": e.line_number}
                for e in self.edges
            ],
            "unreadable": list(self.unreadable),
        }
