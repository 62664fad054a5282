"""Pattern-driven rewriter for technologies configured through templates."""

from __future__ import annotations

import re
from collections.abc import Iterable

from module_pack.analysis.dependency_graph import is_comment_line
from module_pack.errors import UnsupportedConfigurationError
from module_pack.rewriter.base import ImportRewriter, join_lines, split_lines, unique

PLACEHOLDER = "{modules_dir}"


class GenericImportRewriter(ImportRewriter):
    """Line filter driven by one regex whose first group captures the module name.

    ``{modules_dir}`` in the pattern is replaced by the escaped modules
    directory before matching. There is no block awareness: a construct
    spanning several lines is only filtered on the line the pattern hits.
    """

    name = "generic"

    def __init__(self, entry_file: str, import_pattern: str):
        self.entry_file = entry_file
        self.import_pattern = import_pattern
        try:
            compiled = re.compile(import_pattern.replace(PLACEHOLDER, "modules"))
        except re.error as e:
            raise UnsupportedConfigurationError(
                f"Invalid import pattern {import_pattern!r}: {e}"
            ) from e
        if compiled.groups < 1:
            raise UnsupportedConfigurationError(
                f"Import pattern {import_pattern!r} needs a capture group for the module name"
            )

    def _compile(self, modules_dir: str) -> re.Pattern:
        return re.compile(self.import_pattern.replace(PLACEHOLDER, re.escape(modules_dir.strip("/"))))

    def _module(self, pattern: re.Pattern, line: str) -> str | None:
        stripped = line.strip()
        if not stripped or is_comment_line(stripped):
            return None
        m = pattern.search(line)
        if not m:
            return None
        return m.group(1) or None

    def rewrite(self, content: str, modules: Iterable[str], modules_dir: str) -> str:
        keep = set(modules)
        pattern = self._compile(modules_dir)
        lines, newline, trailing = split_lines(content)
        output = []
        for line in lines:
            module = self._module(pattern, line)
            if module is not None and module not in keep:
                continue
            output.append(line)
        return join_lines(output, newline, trailing)

    def referenced_modules(self, content: str, modules_dir: str) -> list[str]:
        pattern = self._compile(modules_dir)
        found = (self._module(pattern, line) for line in content.splitlines())
        return unique(m for m in found if m)
