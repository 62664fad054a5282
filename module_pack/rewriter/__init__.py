"""Entry-file rewriter registry, rewrite step and post-rewrite validator."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from module_pack.rewriter.base import ImportRewriter
from module_pack.rewriter.fastapi_rewriter import FastApiImportRewriter
from module_pack.rewriter.generic_rewriter import GenericImportRewriter
from module_pack.rewriter.vue_rewriter import Vue3ImportRewriter

logger = logging.getLogger(__name__)

_REWRITERS: dict[str, type[ImportRewriter]] = {
    "fastapi": FastApiImportRewriter,
    "vue3": Vue3ImportRewriter,
}


def get_rewriter(tech_stack: str) -> ImportRewriter | None:
    cls = _REWRITERS.get(tech_stack.lower())
    return cls() if cls else None


def get_generic_rewriter(entry_file: str, import_pattern: str) -> ImportRewriter | None:
    """Rewriter for a template; None when the template does not configure rewriting."""
    if not entry_file or not import_pattern:
        return None
    return GenericImportRewriter(entry_file, import_pattern)


def process_entry_file(
    rewriter: ImportRewriter,
    build_dir: Path,
    modules: Iterable[str],
    modules_dir: str,
) -> bool:
    """Rewrite the entry file inside *build_dir* in place. Returns False if it does not exist."""
    entry = Path(build_dir) / rewriter.entry_file
    if not entry.is_file():
        logger.warning("Entry file %s not found, skipping rewrite", rewriter.entry_file)
        return False
    with open(entry, encoding="utf-8", newline="") as fh:
        content = fh.read()
    rewritten = rewriter.rewrite(content, modules, modules_dir)
    if rewritten != content:
        with open(entry, "w", encoding="utf-8", newline="") as fh:
            fh.write(rewritten)
        logger.info("Rewrote %s", rewriter.entry_file)
    return True


def validate_entry_file(
    rewriter: ImportRewriter,
    build_dir: Path,
    modules_dir: str,
) -> list[str]:
    """Module names the rewritten entry file references but *build_dir* does not contain."""
    entry = Path(build_dir) / rewriter.entry_file
    if not entry.is_file():
        return []
    content = entry.read_text(encoding="utf-8")
    return rewriter.validate(content, build_dir, modules_dir)


__all__ = [
    "FastApiImportRewriter",
    "GenericImportRewriter",
    "ImportRewriter",
    "Vue3ImportRewriter",
    "get_generic_rewriter",
    "get_rewriter",
    "process_entry_file",
    "validate_entry_file",
]
