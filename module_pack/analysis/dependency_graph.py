"""File-level dependency extraction: pattern-match imports and resolve them against the file index."""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path

from module_pack.analysis.graph_models import DependencyEdge
from module_pack.models import FileEntry

logger = logging.getLogger(__name__)

PYTHON_EXTENSIONS = (".py",)
SCRIPT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".vue", ".svelte")

# Appended to an extensionless script specifier, in lookup order
_SCRIPT_LOOKUP_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".vue", ".mjs", ".cjs", ".svelte")
_SCRIPT_INDEX_FILES = ("index.ts", "index.tsx", "index.js", "index.jsx", "index.vue")

DEFAULT_PATH_ALIASES: dict[str, str] = {"@/": "src/"}

_COMMENT_PREFIXES = ("#", "//", "/*", "*")

_PY_FROM = re.compile(r"^from\s+(\.*)([\w][\w.]*)?\s+import\s+(.*)$")
_PY_IMPORT = re.compile(r"^import\s+(.+)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")
_DOTTED = re.compile(r"^[A-Za-z_][\w.]*$")

# Alternatives in priority order; every occurrence on a line is a candidate
_SCRIPT_IMPORT = re.compile(
    r"""\bfrom\s*(['"])(?P<from>[^'"]+)\1"""
    r"""|^import\s*(['"])(?P<bare>[^'"]+)\3"""
    r"""|\brequire\s*\(\s*(['"])(?P<require>[^'"]+)\5\s*\)"""
    r"""|\bimport\s*\(\s*(['"])(?P<dynamic>[^'"]+)\7\s*\)"""
)


def source_family(path: str) -> str | None:
    """Return ``"python"``, ``"script"`` or None for a project-relative path."""
    if path.endswith(PYTHON_EXTENSIONS):
        return "python"
    if path.endswith(SCRIPT_EXTENSIONS):
        return "script"
    return None


def is_comment_line(stripped: str) -> bool:
    return stripped.startswith(_COMMENT_PREFIXES)


def _join(base: str, tail: str) -> str:
    if not base:
        return tail
    if not tail:
        return base
    return f"{base}/{tail}"


def _normalize(path: str) -> str:
    """Collapse ``.`` and ``..`` segments; ``..`` above the root stays at the root."""
    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


def _split_names(names_part: str) -> list[str]:
    """Imported names of a ``from ... import`` clause, without ``as`` aliases."""
    cleaned = names_part.split("#", 1)[0].replace("(", " ").replace(")", " ")
    names: list[str] = []
    for item in cleaned.split(","):
        name = item.strip().split(" as ", 1)[0].strip()
        if _IDENTIFIER.match(name):
            names.append(name)
    return names


class DependencyExtractor:
    """Extract file-to-file edges from Python and JS/TS/Vue sources.

    Resolution only ever yields paths present in the supplied file list;
    anything that does not resolve (third-party packages, typos, generated
    files) produces no edge.
    """

    def __init__(self, path_aliases: dict[str, str] | None = None):
        self.path_aliases = dict(DEFAULT_PATH_ALIASES if path_aliases is None else path_aliases)
        self.skipped_files: list[str] = []

    def extract(
        self,
        root: Path,
        files: list[str] | list[FileEntry],
    ) -> list[DependencyEdge]:
        paths = [f.relative_path if isinstance(f, FileEntry) else f for f in files]
        known = set(paths)
        edges: list[DependencyEdge] = []
        self.skipped_files = []

        for rel in paths:
            if source_family(rel) is None:
                continue
            try:
                text = (Path(root) / rel).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning("Cannot read %s, skipping: %s", rel, e)
                self.skipped_files.append(rel)
                continue
            edges.extend(self.extract_file(rel, text, known))

        logger.debug("Extracted %d edges from %d files", len(edges), len(paths))
        return edges

    def extract_file(self, source: str, text: str, known: set[str]) -> list[DependencyEdge]:
        family = source_family(source)
        if family is None:
            return []

        lines = text.splitlines()
        edges: list[DependencyEdge] = []
        i = 0
        while i < len(lines):
            line_number = i + 1
            stripped = lines[i].strip()
            i += 1
            if not stripped or is_comment_line(stripped):
                continue

            if family == "python":
                # Gather a parenthesised multi-line import into one statement
                if stripped.startswith("from ") and "(" in stripped and ")" not in stripped:
                    parts = [stripped]
                    while i < len(lines):
                        parts.append(lines[i].strip())
                        i += 1
                        if ")" in parts[-1]:
                            break
                    stripped = " ".join(parts)
                targets = self._python_targets(source, stripped, known)
            else:
                targets = self._script_targets(source, stripped, known)

            seen: set[str] = set()
            for target in targets:
                if target == source or target in seen:
                    continue
                seen.add(target)
                edges.append(DependencyEdge(source=source, target=target, line_number=line_number))

        return edges

    # ── Python ──────────────────────────────────────────────

    def _python_targets(self, source: str, line: str, known: set[str]) -> list[str]:
        m = _PY_FROM.match(line)
        if m:
            dots, module_path, names_part = m.group(1), m.group(2) or "", m.group(3)
            names = _split_names(names_part)
            if dots:
                return self._resolve_relative_from(source, len(dots), module_path, names, known)
            if module_path:
                return self._resolve_absolute_from(module_path, names, known)
            return []

        m = _PY_IMPORT.match(line)
        if m:
            targets: list[str] = []
            for item in m.group(1).split("#", 1)[0].split(","):
                dotted = item.strip().split(" as ", 1)[0].strip()
                if not _DOTTED.match(dotted):
                    continue
                hit = self._resolve_absolute(dotted.split("."), known)
                if hit:
                    targets.append(hit)
            return targets
        return []

    @staticmethod
    def _find_python(base: str, known: set[str]) -> str | None:
        if base:
            candidate = f"{base}.py"
            if candidate in known:
                return candidate
        candidate = _join(base, "__init__.py")
        if candidate in known:
            return candidate
        return None

    def _submodules(self, package_dir: str, names: list[str], known: set[str]) -> list[str]:
        hits: list[str] = []
        for name in names:
            hit = self._find_python(_join(package_dir, name), known)
            if hit:
                hits.append(hit)
        return hits

    def _resolve_relative_from(
        self,
        source: str,
        level: int,
        module_path: str,
        names: list[str],
        known: set[str],
    ) -> list[str]:
        base_parts = source.split("/")[:-1]
        up = level - 1
        if up > len(base_parts):
            return []
        base_dir = "/".join(base_parts[: len(base_parts) - up])

        if module_path:
            module_base = _join(base_dir, module_path.replace(".", "/"))
            hit = self._find_python(module_base, known)
            if hit is None:
                return []
            targets = [hit]
            if hit.endswith("__init__.py"):
                targets.extend(self._submodules(module_base, names, known))
            return targets

        # from . import a, b
        targets = self._submodules(base_dir, names, known)
        if len(targets) < len(names):
            init = self._find_python(base_dir, known)
            if init:
                targets.append(init)
        return targets

    def _resolve_absolute(self, segments: list[str], known: set[str]) -> str | None:
        """Try ``a/b/c.py`` then ``a/b/c/__init__.py``; on a miss, drop the first segment once."""
        hit = self._find_python("/".join(segments), known)
        if hit is None and len(segments) > 1:
            hit = self._find_python("/".join(segments[1:]), known)
        return hit

    def _resolve_absolute_from(
        self,
        module_path: str,
        names: list[str],
        known: set[str],
    ) -> list[str]:
        segments = module_path.split(".")
        hit = self._resolve_absolute(segments, known)
        if hit is not None:
            targets = [hit]
            if hit.endswith("__init__.py"):
                targets.extend(self._submodules(hit[: -len("/__init__.py")], names, known))
            return targets

        # Namespace package: the names themselves may be modules
        targets = []
        for name in names:
            sub = self._resolve_absolute(segments + [name], known)
            if sub:
                targets.append(sub)
        return targets

    # ── JS / TS / Vue ───────────────────────────────────────

    def _script_targets(self, source: str, line: str, known: set[str]) -> list[str]:
        targets: list[str] = []
        for m in _SCRIPT_IMPORT.finditer(line):
            specifier = m.group("from") or m.group("bare") or m.group("require") or m.group("dynamic")
            hit = self.resolve_specifier(source, specifier, known)
            if hit:
                targets.append(hit)
        return targets

    def resolve_specifier(self, source: str, specifier: str, known: set[str]) -> str | None:
        specifier = specifier.split("?", 1)[0]
        if specifier.startswith("./") or specifier.startswith("../") or specifier in (".", ".."):
            base = _normalize(posixpath.join(posixpath.dirname(source), specifier))
        else:
            for alias, target in self.path_aliases.items():
                if specifier.startswith(alias):
                    base = _normalize(target + specifier[len(alias):])
                    break
            else:
                return None

        if base in known:
            return base
        for ext in _SCRIPT_LOOKUP_EXTENSIONS:
            if base + ext in known:
                return base + ext
        for index in _SCRIPT_INDEX_FILES:
            candidate = _join(base, index)
            if candidate in known:
                return candidate
        return None


def extract_dependencies(
    root: Path,
    files: list[str] | list[FileEntry],
    path_aliases: dict[str, str] | None = None,
) -> list[DependencyEdge]:
    return DependencyExtractor(path_aliases).extract(root, files)
