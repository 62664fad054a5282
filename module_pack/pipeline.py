"""Build pipeline: validate -> workspace -> skeleton -> closure -> modules -> rewrite -> validate -> archive."""

from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Callable

from module_pack.analysis import (
    DependencyClosure,
    DependencyExtractor,
    FileGraph,
    ModuleGraph,
    build_module_graph,
    resolve_closure,
)
from module_pack.errors import (
    BuildCancelledError,
    BuildError,
    BuildValidationError,
    MissingModulesError,
    ScanError,
)
from module_pack.exporter import (
    BuildWorkspace,
    copy_dir_excluding,
    copy_modules,
    copy_root_files,
    create_archive,
)
from module_pack.models import NOISE_FILES, BuildRequest, BuildResult, ModuleInfo
from module_pack.rewriter import process_entry_file, validate_entry_file
from module_pack.scanner import scan_modules_dir, scan_project_files
from module_pack.settings import TemplateStore
from module_pack.strategy import TechStrategy, get_strategy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]

_TOTAL_STAGES = 6


def validate_build_params(label: str, selected_modules: list[str]) -> None:
    """Fail fast on an empty label or an empty selection, reporting both together."""
    problems: list[str] = []
    if not label or not label.strip():
        problems.append("Build label must not be empty")
    if not selected_modules:
        problems.append("At least one module must be selected")
    if problems:
        raise BuildValidationError(problems)


def _clean_selection(selected: list[str]) -> list[str]:
    return [name.strip() for name in selected if name and name.strip()]


def _emit(progress: ProgressCallback | None, message: str, step: int) -> None:
    logger.info("[%d/%d] %s", step, _TOTAL_STAGES, message)
    if progress is None:
        return
    try:
        progress(message, step, _TOTAL_STAGES)
    except Exception:
        logger.warning("Progress callback failed on %r", message, exc_info=True)


def _check_cancelled(cancel_event: threading.Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise BuildCancelledError(stage)


def resolve_modules_dir(project_dir: Path, strategy: TechStrategy, override: str | None) -> str:
    """Project-relative, forward-slash modules directory."""
    if not override:
        return strategy.modules_dir.strip("/")
    candidate = Path(override)
    if candidate.is_absolute():
        try:
            candidate = candidate.resolve().relative_to(project_dir)
        except ValueError:
            raise BuildValidationError(
                [f"Modules directory {override} is not inside {project_dir}"]
            ) from None
    relative = PurePosixPath(candidate.as_posix()).as_posix().strip("/")
    if not relative or relative == "." or ".." in PurePosixPath(relative).parts:
        raise BuildValidationError([f"Invalid modules directory: {override!r}"])
    return relative


def _prepare(
    project_dir: Path,
    tech_stack: str,
    modules_dir: str | None,
    store: TemplateStore | None,
) -> tuple[Path, TechStrategy, str]:
    strategy = get_strategy(tech_stack, store)
    project_dir = Path(project_dir).expanduser().resolve()
    if not project_dir.is_dir():
        raise ScanError(f"Project directory not found: {project_dir}")
    relative = resolve_modules_dir(project_dir, strategy, modules_dir)
    if not (project_dir / relative).is_dir():
        raise ScanError(f"Modules directory not found: {project_dir / relative}")
    return project_dir, strategy, relative


# ── Read-only entry points ─────────────────────────────────


def list_modules(
    project_dir: Path,
    tech_stack: str = "fastapi",
    modules_dir: str | None = None,
    store: TemplateStore | None = None,
) -> list[ModuleInfo]:
    project_dir, _, relative = _prepare(project_dir, tech_stack, modules_dir, store)
    return scan_modules_dir(project_dir / relative)


def analyze_dependencies(
    project_dir: Path,
    skip_dirs: list[str] | None = None,
) -> FileGraph:
    """File-level dependency graph of the whole project."""
    project_dir = Path(project_dir).expanduser().resolve()
    files = scan_project_files(project_dir, skip_dirs)
    extractor = DependencyExtractor()
    edges = extractor.extract(project_dir, files)
    return FileGraph(
        files=[f.relative_path for f in files],
        edges=edges,
        unreadable=list(extractor.skipped_files),
    )


def module_dependency_graph(
    project_dir: Path,
    tech_stack: str = "fastapi",
    modules_dir: str | None = None,
    store: TemplateStore | None = None,
    skip_dirs: list[str] | None = None,
) -> ModuleGraph:
    project_dir, _, relative = _prepare(project_dir, tech_stack, modules_dir, store)
    modules = [m.name for m in scan_modules_dir(project_dir / relative)]
    file_graph = analyze_dependencies(project_dir, skip_dirs)
    return build_module_graph(file_graph.edges, modules, relative)


def resolve_selection(
    project_dir: Path,
    selected_modules: list[str],
    tech_stack: str = "fastapi",
    modules_dir: str | None = None,
    store: TemplateStore | None = None,
) -> DependencyClosure:
    """Preview the closure a build of *selected_modules* would ship."""
    graph = module_dependency_graph(project_dir, tech_stack, modules_dir, store)
    return resolve_closure(_clean_selection(selected_modules), graph)


# ── Build ──────────────────────────────────────────────────


def run_build(
    request: BuildRequest,
    progress: ProgressCallback | None = None,
    store: TemplateStore | None = None,
    cancel_event: threading.Event | None = None,
) -> BuildResult:
    """Run a full build and return what was shipped.

    Everything that can be checked without touching the filesystem is
    checked first. Once the workspace exists, any failure removes it before
    the error propagates; the archive is only left behind on success.
    """
    selected = _clean_selection(request.selected_modules)
    validate_build_params(request.label, selected)
    project_dir, strategy, modules_dir = _prepare(
        request.project_dir, request.tech_stack, request.modules_dir, store,
    )
    modules_root = project_dir / modules_dir
    output_dir = Path(request.output_dir).expanduser().resolve() if request.output_dir else project_dir

    skip_dirs = list(request.skip_dirs)
    if "dist_*" not in skip_dirs:
        skip_dirs.append("dist_*")
    # matched against files and directories alike
    exclude_names = list(strategy.exclude_dirs) + NOISE_FILES

    workspace = BuildWorkspace(output_dir, request.label)
    logger.info(
        "Building %r from %s (%s, modules in %s)",
        request.label, project_dir, strategy.name, modules_dir,
    )

    with workspace:
        build_dir = workspace.path
        try:
            # Stage 1: skeleton
            _check_cancelled(cancel_event, "copy skeleton")
            _emit(progress, "Copying project skeleton", 1)
            copied_files = copy_dir_excluding(project_dir, build_dir, skip_dirs, exclude_names, [modules_dir])
            logger.debug("Copied %d skeleton files", copied_files)

            # Stage 2: closure
            _check_cancelled(cancel_event, "resolve dependencies")
            _emit(progress, "Resolving module dependencies", 2)
            all_modules = [m.name for m in scan_modules_dir(modules_root)]
            files = scan_project_files(project_dir, skip_dirs)
            extractor = DependencyExtractor()
            edges = extractor.extract(project_dir, files)
            closure = resolve_closure(selected, build_module_graph(edges, all_modules, modules_dir))
            if closure.auto_added:
                _emit(progress, f"Auto-added dependencies: {', '.join(closure.auto_added)}", 2)

            # Stage 3: modules
            _check_cancelled(cancel_event, "copy modules")
            _emit(progress, f"Copying {len(closure.modules)} module(s)", 3)
            shipped, missing = copy_modules(
                modules_root, build_dir / modules_dir, list(closure.modules), skip_dirs, exclude_names,
            )
            if not shipped:
                raise BuildError(
                    f"None of the selected modules exist in {modules_dir}: {', '.join(missing)}"
                )
            copy_root_files(modules_root, build_dir / modules_dir, exclude_names)
            if missing:
                _emit(progress, f"Skipped missing modules: {', '.join(missing)}", 3)

            # Stage 4 + 5: rewrite and validate the entry file
            if strategy.rewriter is not None:
                _check_cancelled(cancel_event, "rewrite entry file")
                _emit(progress, f"Rewriting {strategy.rewriter.entry_file}", 4)
                process_entry_file(strategy.rewriter, build_dir, shipped, modules_dir)

                _emit(progress, f"Validating {strategy.rewriter.entry_file}", 5)
                unresolved = validate_entry_file(strategy.rewriter, build_dir, modules_dir)
                if unresolved:
                    raise MissingModulesError(modules_dir, unresolved)
            else:
                _emit(progress, "No entry-file rewriter configured, skipping rewrite", 4)

            # Stage 6: archive
            _check_cancelled(cancel_event, "archive")
            _emit(progress, "Creating archive", 6)
            archive_path = create_archive(build_dir, workspace.archive_path)
        except OSError as e:
            raise BuildError(f"Build failed: {e}") from e

    _emit(progress, f"Build complete: {archive_path.name}", _TOTAL_STAGES)
    return BuildResult(
        archive_path=archive_path,
        label=request.label.strip(),
        module_count=len(shipped),
        modules=shipped,
        selected=list(closure.selected),
        auto_added=list(closure.auto_added),
        missing=missing,
        unreadable_files=list(extractor.skipped_files),
    )
