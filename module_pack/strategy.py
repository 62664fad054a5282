"""Per-technology build strategies: modules dir, extra skeleton excludes, rewriter."""

from __future__ import annotations

from dataclasses import dataclass, field

from module_pack.errors import UnsupportedConfigurationError
from module_pack.rewriter import (
    FastApiImportRewriter,
    ImportRewriter,
    Vue3ImportRewriter,
    get_generic_rewriter,
)
from module_pack.settings import TemplateStore


@dataclass
class TechStrategy:
    name: str
    modules_dir: str
    exclude_dirs: list[str] = field(default_factory=list)
    rewriter: ImportRewriter | None = None
    builtin: bool = True

    @property
    def entry_file(self) -> str | None:
        return self.rewriter.entry_file if self.rewriter else None


def _fastapi() -> TechStrategy:
    return TechStrategy(
        name="fastapi",
        modules_dir="modules",
        exclude_dirs=[".pytest_cache", ".mypy_cache", ".ruff_cache", "*.egg-info", ".env", "*.log"],
        rewriter=FastApiImportRewriter(),
    )


def _vue3() -> TechStrategy:
    return TechStrategy(
        name="vue3",
        modules_dir="src/views",
        exclude_dirs=["coverage", ".output", ".env.local"],
        rewriter=Vue3ImportRewriter(),
    )


_BUILTINS = {
    "fastapi": _fastapi,
    "vue3": _vue3,
}


def builtin_tech_stacks() -> list[str]:
    return list(_BUILTINS)


def get_strategy(tech_stack: str, store: TemplateStore | None = None) -> TechStrategy:
    """Built-in strategy for *tech_stack*, else one built from a stored template."""
    key = tech_stack.strip().lower()
    factory = _BUILTINS.get(key)
    if factory:
        return factory()

    store = store or TemplateStore()
    template = store.get(key)
    if template is None:
        raise UnsupportedConfigurationError(
            f"Unsupported tech stack {tech_stack!r}: no built-in strategy and no template configured"
        )
    return TechStrategy(
        name=template.name,
        modules_dir=template.modules_dir,
        exclude_dirs=list(template.exclude_dirs),
        rewriter=get_generic_rewriter(template.entry_file, template.import_pattern),
        builtin=False,
    )


def available_tech_stacks(store: TemplateStore | None = None) -> list[str]:
    store = store or TemplateStore()
    return builtin_tech_stacks() + [t.name for t in store.list_templates() if t.name.lower() not in _BUILTINS]
