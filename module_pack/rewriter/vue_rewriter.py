"""Vue 3 router rewriter: filters view imports and route objects in ``src/router/index.ts``."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable

from module_pack.rewriter.base import ImportRewriter, join_lines, split_lines, unique

_STATIC_IMPORT = re.compile(r"""^import\s+(?:type\s+)?(.+?)\s+from\s+(['"])(.+?)\2\s*;?\s*$""")
_LAZY_CONST = re.compile(
    r"""^(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?=.*?\bimport\s*\(\s*(['"])(.+?)\2\s*\)"""
)
_IMPORT_CALL = re.compile(r"""\bimport\s*\(\s*(['"])(.+?)\1\s*\)""")
_IDENT_AFTER_COLON = re.compile(r":\s*([A-Za-z_$][\w$]*)")
_MULTILINE_IMPORT_START = re.compile(r"^import\s+(?:type\s+)?(?:[A-Za-z_$][\w$]*\s*,\s*)?\{[^}]*$")
_FROM_CLAUSE = re.compile(r"""\bfrom\s+['"]""")
_ROUTE_KEYS = ("path", "name", "component", "components", "redirect", "children", "meta")
_COMMENT_PREFIXES = ("//", "/*", "*")


def import_prefixes(modules_dir: str, entry_file: str) -> list[str]:
    """Specifier prefixes that point into the modules dir from the entry file.

    ``src/views`` seen from ``src/router/index.ts`` gives ``@/views`` and
    ``../views``.
    """
    modules_dir = modules_dir.strip("/")
    stripped = modules_dir[len("src/"):] if modules_dir.startswith("src/") else modules_dir
    prefixes = [f"@/{stripped}"]
    relative = posixpath.relpath(modules_dir, posixpath.dirname(entry_file) or ".")
    if not relative.startswith(".."):
        relative = f"./{relative}"
    prefixes.append(relative)
    return prefixes


def module_from_specifier(specifier: str, prefixes: list[str]) -> str | None:
    for prefix in prefixes:
        if not specifier.startswith(prefix + "/"):
            continue
        rest = specifier[len(prefix) + 1:]
        if "/" in rest:
            name = rest.split("/", 1)[0]
        elif "." in rest:
            # a file sitting directly in the modules dir, not a module
            return None
        else:
            name = rest
        return name or None
    return None


def _import_names(clause: str) -> list[str]:
    """Local names bound by an import clause: ``A``, ``{ B, C as D }``, ``A, { B }``, ``* as E``."""
    names: list[str] = []
    default, _, rest = clause.partition("{")
    for part in default.split(","):
        part = part.strip()
        if part.startswith("* as "):
            part = part[len("* as "):].strip()
        if part:
            names.append(part)
    if rest:
        for part in rest.split("}", 1)[0].split(","):
            part = part.strip()
            if part.startswith("type "):
                part = part[len("type "):].strip()
            if " as " in part:
                part = part.split(" as ", 1)[1].strip()
            if part:
                names.append(part)
    return names


def _brace_delta(line: str, state: list[str]) -> int:
    """Net ``{`` minus ``}`` outside string literals; *state* carries an open quote across lines."""
    delta = 0
    quote = state[0] if state else ""
    escaped = False
    for ch in line:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
            continue
        if ch in ("'", '"', "`"):
            quote = ch
        elif ch == "{":
            delta += 1
        elif ch == "}":
            delta -= 1
    # only template literals may span lines
    state[:] = [quote] if quote == "`" else []
    return delta


def _collect_block(lines: list[str], start: int) -> int | None:
    """Index of the line closing the brace block opened at *start*, or None if it never closes."""
    depth = 0
    state: list[str] = []
    for idx in range(start, len(lines)):
        depth += _brace_delta(lines[idx], state)
        if depth <= 0:
            return idx
    return None


def _import_statement_end(lines: list[str], start: int) -> int | None:
    """Index of the line closing a multi-line ``import { ... } from '...'`` opened at *start*."""
    if not _MULTILINE_IMPORT_START.match(lines[start].strip()):
        return None
    closed = False
    for idx in range(start + 1, len(lines)):
        stripped = lines[idx].strip()
        if "}" in stripped:
            closed = True
        if closed and _FROM_CLAUSE.search(stripped):
            return idx
    return None


def _joined(lines: list[str]) -> str:
    return " ".join(line.strip() for line in lines)


def _statements(lines: list[str]):
    """Yield stripped statement texts; a multi-line named import is joined into one."""
    i = 0
    while i < len(lines):
        end = _import_statement_end(lines, i)
        if end is None:
            yield lines[i].strip()
            i += 1
        else:
            yield _joined(lines[i:end + 1])
            i = end + 1


def _is_comment(stripped: str) -> bool:
    return stripped.startswith(_COMMENT_PREFIXES)


def is_route_object_start(stripped: str) -> bool:
    if not stripped.startswith("{"):
        return False
    rest = stripped[1:].lstrip()
    if not rest or rest.startswith("}"):
        return True
    for key in _ROUTE_KEYS:
        if rest.startswith(key):
            after = rest[len(key):].lstrip()
            if after.startswith(":"):
                return True
    return False


class Vue3ImportRewriter(ImportRewriter):
    """Rewrites a Vue Router entry file.

    Handles static view imports, ``const X = () => import(...)`` lazy
    bindings, and route objects whose component is referenced either by an
    imported identifier or an inline ``import()``. Route blocks are dropped
    only when every module they reference is excluded; kept blocks are
    filtered recursively so nested ``children`` of excluded modules go too.
    """

    name = "vue3"
    entry_file = "src/router/index.ts"

    def _parse_import(self, stripped: str, prefixes: list[str]) -> tuple[list[str], str] | None:
        m = _STATIC_IMPORT.match(stripped)
        if m:
            module = module_from_specifier(m.group(3), prefixes)
            if module:
                return _import_names(m.group(1)), module
            return None
        m = _LAZY_CONST.match(stripped)
        if m:
            module = module_from_specifier(m.group(3), prefixes)
            if module:
                return [m.group(1)], module
        return None

    def collect_aliases(self, content: str, modules_dir: str) -> dict[str, str]:
        prefixes = import_prefixes(modules_dir, self.entry_file)
        aliases: dict[str, str] = {}
        for stripped in _statements(content.splitlines()):
            if not stripped or _is_comment(stripped):
                continue
            parsed = self._parse_import(stripped, prefixes)
            if parsed:
                names, module = parsed
                for name in names:
                    aliases[name] = module
        return aliases

    def _block_modules(
        self,
        block: list[str],
        aliases: dict[str, str],
        prefixes: list[str],
    ) -> list[str]:
        found: list[str] = []
        for line in block:
            stripped = line.strip()
            if _is_comment(stripped):
                continue
            for m in _IMPORT_CALL.finditer(stripped):
                module = module_from_specifier(m.group(2), prefixes)
                if module:
                    found.append(module)
            for m in _IDENT_AFTER_COLON.finditer(stripped):
                if m.group(1) in aliases:
                    found.append(aliases[m.group(1)])
        return found

    def _filter(
        self,
        lines: list[str],
        keep: set[str],
        aliases: dict[str, str],
        prefixes: list[str],
    ) -> list[str]:
        output: list[str] = []
        i = 0
        while i < len(lines):
            line = lines[i]
            stripped = line.strip()

            if not stripped or _is_comment(stripped):
                output.append(line)
                i += 1
                continue

            end = _import_statement_end(lines, i)
            if end is not None:
                parsed = self._parse_import(_joined(lines[i:end + 1]), prefixes)
                if not parsed or parsed[1] in keep:
                    output.extend(lines[i:end + 1])
                i = end + 1
                continue

            parsed = self._parse_import(stripped, prefixes)
            if parsed:
                if parsed[1] in keep:
                    output.append(line)
                i += 1
                continue

            if is_route_object_start(stripped):
                end = _collect_block(lines, i)
                if end is None:
                    output.extend(lines[i:])
                    break
                block = lines[i:end + 1]
                referenced = self._block_modules(block, aliases, prefixes)
                if referenced and not any(m in keep for m in referenced):
                    i = end + 1
                    continue
                if end - i >= 2:
                    output.append(block[0])
                    output.extend(self._filter(block[1:-1], keep, aliases, prefixes))
                    output.append(block[-1])
                else:
                    output.extend(block)
                i = end + 1
                continue

            output.append(line)
            i += 1
        return output

    def rewrite(self, content: str, modules: Iterable[str], modules_dir: str) -> str:
        keep = set(modules)
        prefixes = import_prefixes(modules_dir, self.entry_file)
        lines, newline, trailing = split_lines(content)
        aliases = self.collect_aliases(content, modules_dir)
        return join_lines(self._filter(lines, keep, aliases, prefixes), newline, trailing)

    def referenced_modules(self, content: str, modules_dir: str) -> list[str]:
        prefixes = import_prefixes(modules_dir, self.entry_file)
        found: list[str] = []
        for stripped in _statements(content.splitlines()):
            if not stripped or _is_comment(stripped):
                continue
            parsed = self._parse_import(stripped, prefixes)
            if parsed:
                found.append(parsed[1])
                continue
            for m in _IMPORT_CALL.finditer(stripped):
                module = module_from_specifier(m.group(2), prefixes)
                if module:
                    found.append(module)
        return unique(found)
