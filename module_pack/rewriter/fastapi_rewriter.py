"""FastAPI entry-file rewriter: filters module imports and ``include_router`` calls in ``main.py``."""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Iterable

from module_pack.rewriter.base import ImportRewriter, join_lines, leading_ws, split_lines, unique

_ROUTER_CALL = "include_router("
_ROUTER_SUFFIXES = ("_router", "_routes")

_IMPORT_HEAD = re.compile(r"^(\s*(?:from\s+[\w.]+\s+)?import\s+)(.*)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")


@functools.lru_cache(maxsize=32)
def _patterns(prefix: str) -> tuple[re.Pattern, re.Pattern, re.Pattern]:
    p = re.escape(prefix)
    from_module = re.compile(rf"^from\s+{p}\.(\w+)[\w.]*\s+import\s+(.+)$")
    bulk = re.compile(rf"^from\s+{p}\s+import\s+(.+)$")
    plain_item = re.compile(rf"^{p}\.(\w+)[\w.]*(?:\s+as\s+(\w+))?$")
    return from_module, bulk, plain_item


def import_prefix(modules_dir: str) -> str:
    """``modules`` -> ``modules``, ``app/modules`` -> ``app.modules``."""
    return modules_dir.strip("/").replace("/", ".")


def _split_comment(line: str) -> tuple[str, str]:
    idx = line.find("#")
    if idx < 0:
        return line, ""
    return line[:idx], line[idx:]


def _paren_depth(line: str) -> int:
    code, _ = _split_comment(line)
    return code.count("(") - code.count(")")


def _item_name(item: str) -> str:
    return item.split(" as ", 1)[0].strip()


def _item_alias(item: str) -> str | None:
    if " as " not in item:
        return None
    return item.split(" as ", 1)[1].strip()


def _split_items(names_part: str) -> list[str]:
    cleaned = names_part.replace("(", " ").replace(")", " ")
    return [" ".join(p.split()) for p in cleaned.split(",") if p.strip()]


def _logical_units(lines: list[str]) -> list[tuple[int, int]]:
    """Group lines into statements: parenthesised imports and multi-line calls span several lines."""
    units: list[tuple[int, int]] = []
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()
        end = i
        if not stripped.startswith("#"):
            code = _split_comment(stripped)[0]
            if code.startswith("from ") and "(" in code and ")" not in code:
                while end + 1 < len(lines):
                    end += 1
                    if ")" in _split_comment(lines[end])[0]:
                        break
            elif _ROUTER_CALL in code and _paren_depth(code) > 0:
                depth = _paren_depth(code)
                while depth > 0 and end + 1 < len(lines):
                    end += 1
                    depth += _paren_depth(lines[end])
        units.append((i, end))
        i = end + 1
    return units


def _logical_text(unit: list[str]) -> str:
    return " ".join(_split_comment(line)[0].strip() for line in unit).strip()


class _ItemLine:
    """One physical line of an import statement split around its comma-separated items.

    Each item keeps its raw text, so survivors are re-emitted with their
    original spacing.
    """

    def __init__(self, line: str):
        code, self.comment = _split_comment(line)
        stripped = code.rstrip()
        self.gap = code[len(stripped):]
        m = _IMPORT_HEAD.match(stripped)
        if m:
            self.head, body = m.group(1), m.group(2)
        else:
            self.head, body = leading_ws(stripped), stripped.strip()
        self.has_head = m is not None
        self.open = "(" if body.startswith("(") else ""
        body = body[len(self.open):]
        self.close = ")" if body.endswith(")") else ""
        body = body[: len(body) - len(self.close)]
        pieces = body.split(",")
        # trailing comma plus anything after it
        self.tail = ""
        if len(pieces) > 1 and not pieces[-1].strip():
            self.tail = "," + pieces.pop()
        self.pieces = [p for p in pieces if p.strip()]
        self.items = [" ".join(p.split()) for p in self.pieces]
        self.original = line

    def render(self, keep_item: Callable[[str], bool]) -> str | None:
        if not self.items:
            return self.original
        kept = [piece for piece, item in zip(self.pieces, self.items) if keep_item(item)]
        if len(kept) == len(self.items):
            return self.original
        if not kept and not (self.has_head or self.open or self.close):
            return None
        if kept:
            kept[0] = leading_ws(self.pieces[0]) + kept[0].lstrip()
        text = ",".join(kept)
        if kept:
            text += self.tail
        rendered = f"{self.head}{self.open}{text}{self.close}"
        if self.comment:
            rendered += self.gap + self.comment
        return rendered


def _filter_items(unit: list[str], keep_item: Callable[[str], bool]) -> list[str]:
    parsed = [_ItemLine(line) for line in unit]
    items = [item for p in parsed for item in p.items]
    kept = [item for item in items if keep_item(item)]
    if not kept:
        return []
    if len(kept) == len(items):
        return list(unit)
    output: list[str] = []
    for p in parsed:
        rendered = p.render(keep_item)
        if rendered is not None:
            output.append(rendered)
    return output


class FastApiImportRewriter(ImportRewriter):
    """Rewrites ``main.py`` of a FastAPI project.

    Recognised constructs, with ``modules`` as the modules directory:

    - ``from modules.auth.routes import router as auth_router``
    - ``from modules import auth, billing`` (partially kept item by item)
    - ``import modules.auth.routes as auth_routes``
    - ``app.include_router(auth_router)`` resolved through the alias map
    """

    name = "fastapi"
    entry_file = "main.py"

    def _classify(self, text: str, prefix: str):
        from_module, bulk, plain_item = _patterns(prefix)

        m = from_module.match(text)
        if m:
            return "from", m.group(1), _split_items(m.group(2))

        m = bulk.match(text)
        if m:
            items = _split_items(m.group(1))
            if items:
                return "bulk", None, items

        if text.startswith("import "):
            items = _split_items(text[len("import "):])
            if any(plain_item.match(item) for item in items):
                return "plain", None, items

        if _ROUTER_CALL in text:
            return "router", None, [text]
        return None

    def _plain_module(self, item: str, prefix: str) -> str | None:
        m = _patterns(prefix)[2].match(item)
        return m.group(1) if m else None

    def _statements(self, lines: list[str], prefix: str):
        for start, end in _logical_units(lines):
            unit = lines[start:end + 1]
            if lines[start].strip().startswith("#"):
                yield unit, None
                continue
            yield unit, self._classify(_logical_text(unit), prefix)

    def collect_aliases(self, content: str, modules_dir: str) -> dict[str, str]:
        """Pass 1: local identifier -> module name, later bindings overwriting earlier ones."""
        prefix = import_prefix(modules_dir)
        aliases: dict[str, str] = {}
        for _, kind in self._statements(content.splitlines(), prefix):
            if kind is None:
                continue
            tag, module, items = kind
            if tag == "from":
                aliases[module] = module
                for item in items:
                    local = _item_alias(item) or _item_name(item)
                    if _IDENTIFIER.match(local):
                        aliases[local] = module
            elif tag == "bulk":
                for item in items:
                    name = _item_name(item)
                    aliases[name] = name
                    alias = _item_alias(item)
                    if alias:
                        aliases[alias] = name
            elif tag == "plain":
                for item in items:
                    found = self._plain_module(item, prefix)
                    alias = _item_alias(item)
                    if found and alias:
                        aliases[alias] = found
        return aliases

    def resolve_router_ref(self, ref: str, aliases: dict[str, str], prefix: str) -> str | None:
        if "=" in ref:
            ref = ref.split("=", 1)[1].strip()
        if ref in aliases:
            return aliases[ref]
        for suffix in _ROUTER_SUFFIXES:
            if ref.endswith(suffix):
                base = ref[: -len(suffix)]
                if base in aliases:
                    return aliases[base]
        if "." in ref:
            if ref.startswith(prefix + "."):
                return ref[len(prefix) + 1:].split(".", 1)[0] or None
            head = ref.split(".", 1)[0]
            if head in aliases:
                return aliases[head]
        return None

    @staticmethod
    def router_ref(text: str) -> str | None:
        rest = text.split(_ROUTER_CALL, 1)[1]
        end = len(rest)
        for stop in (",", ")"):
            pos = rest.find(stop)
            if pos >= 0:
                end = min(end, pos)
        ref = rest[:end].strip()
        return ref or None

    def rewrite(self, content: str, modules: Iterable[str], modules_dir: str) -> str:
        keep = set(modules)
        prefix = import_prefix(modules_dir)
        lines, newline, trailing = split_lines(content)
        aliases = self.collect_aliases(content, modules_dir)

        def keep_bulk(item: str) -> bool:
            return _item_name(item) in keep

        def keep_plain(item: str) -> bool:
            found = self._plain_module(item, prefix)
            return found is None or found in keep

        output: list[str] = []
        for unit, kind in self._statements(lines, prefix):
            if kind is None:
                output.extend(unit)
                continue
            tag, module, items = kind
            if tag == "from":
                if module in keep:
                    output.extend(unit)
            elif tag == "bulk":
                output.extend(_filter_items(unit, keep_bulk))
            elif tag == "plain":
                output.extend(_filter_items(unit, keep_plain))
            else:
                ref = self.router_ref(items[0])
                target = self.resolve_router_ref(ref, aliases, prefix) if ref else None
                if target is None or target in keep:
                    output.extend(unit)

        return join_lines(output, newline, trailing)

    def referenced_modules(self, content: str, modules_dir: str) -> list[str]:
        prefix = import_prefix(modules_dir)
        found: list[str] = []
        for _, kind in self._statements(content.splitlines(), prefix):
            if kind is None:
                continue
            tag, module, items = kind
            if tag == "from":
                found.append(module)
            elif tag == "bulk":
                found.extend(_item_name(item) for item in items)
            elif tag == "plain":
                found.extend(
                    m for m in (self._plain_module(item, prefix) for item in items) if m
                )
        return unique(found)
