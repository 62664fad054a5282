"""List the feature modules (first-level subdirectories) of a modules root."""

from __future__ import annotations

from pathlib import Path

from module_pack.errors import ScanError
from module_pack.models import ModuleInfo

_IGNORED = {"__pycache__", ".git", ".DS_Store", "node_modules"}


def scan_modules_dir(path: Path) -> list[ModuleInfo]:
    path = Path(path)
    if not path.is_dir():
        raise ScanError(f"Modules directory not found: {path}")
    try:
        children = sorted(path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise ScanError(f"Cannot read modules directory {path}: {e}") from e
    return [
        ModuleInfo(name=child.name, path=child)
        for child in children
        if child.is_dir() and child.name not in _IGNORED
    ]


def list_module_names(path: Path) -> list[str]:
    return [m.name for m in scan_modules_dir(path)]
