"""Abstract base for entry-file import rewriters."""

from __future__ import annotations

import abc
from collections.abc import Iterable
from pathlib import Path


class ImportRewriter(abc.ABC):
    """Rewrites one technology's entry file so it only wires in shipped modules.

    Subclasses run two passes over the entry file's lines: the first
    collects aliases (local identifier -> module), the second filters each
    recognised import or registration construct against the kept modules.
    Anything not recognised passes through untouched.
    """

    name: str = ""
    entry_file: str = ""

    @abc.abstractmethod
    def referenced_modules(self, content: str, modules_dir: str) -> list[str]:
        """Module names referenced by import constructs, in first-seen order."""

    @abc.abstractmethod
    def rewrite(self, content: str, modules: Iterable[str], modules_dir: str) -> str:
        """Return *content* with constructs for modules outside *modules* removed."""

    def validate(self, content: str, build_dir: Path, modules_dir: str) -> list[str]:
        """Module names referenced by *content* that have no directory under *build_dir*."""
        root = Path(build_dir) / modules_dir
        return [
            name for name in self.referenced_modules(content, modules_dir)
            if not (root / name).is_dir()
        ]


def split_lines(content: str) -> tuple[list[str], str, bool]:
    """Split text into lines, remembering the newline style and trailing newline."""
    newline = "\r\n" if "\r\n" in content else "\n"
    return content.splitlines(), newline, content.endswith(("\n", "\r"))


def join_lines(lines: list[str], newline: str, trailing: bool) -> str:
    text = newline.join(lines)
    if trailing and lines:
        text += newline
    return text


def leading_ws(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def unique(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result
