"""Click CLI: inspect modules and dependencies, build archives, manage templates, serve the API."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from module_pack import __version__
from module_pack.analysis import detect_cycles
from module_pack.errors import ModulePackError
from module_pack.models import BuildRequest, TechTemplate
from module_pack.pipeline import (
    analyze_dependencies,
    list_modules,
    module_dependency_graph,
    resolve_selection,
    run_build,
)
from module_pack.settings import TemplateStore
from module_pack.strategy import builtin_tech_stacks

_PROJECT_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


def _tech_option(f):
    return click.option(
        "--tech", "-t", "tech_stack", default="fastapi", show_default=True,
        help=f"Technology: {', '.join(builtin_tech_stacks())} or a template name",
    )(f)


def _modules_dir_option(f):
    return click.option(
        "--modules-dir", "-m", default=None,
        help="Modules directory relative to the project (defaults to the technology's)",
    )(f)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log each pipeline step")
def cli(verbose: bool):
    """module-pack: ship selected feature modules of a project as a runnable archive."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("project_dir", type=_PROJECT_DIR, default=".")
@_tech_option
@_modules_dir_option
def modules(project_dir: Path, tech_stack: str, modules_dir: str | None):
    """List the modules available for selection."""
    try:
        found = list_modules(project_dir, tech_stack, modules_dir)
    except ModulePackError as e:
        raise click.ClickException(str(e))

    if not found:
        click.echo("No modules found.")
        return
    click.echo(f"\nFound {len(found)} module(s):\n")
    for info in found:
        click.echo(f"  {click.style(info.name, fg='cyan')}")


@cli.command()
@click.argument("project_dir", type=_PROJECT_DIR, default=".")
@click.option("--modules", "by_module", is_flag=True, help="Show module-level dependencies and cycles")
@_tech_option
@_modules_dir_option
def deps(project_dir: Path, by_module: bool, tech_stack: str, modules_dir: str | None):
    """Show extracted dependencies."""
    try:
        if by_module:
            graph = module_dependency_graph(project_dir, tech_stack, modules_dir)
        else:
            file_graph = analyze_dependencies(project_dir)
    except ModulePackError as e:
        raise click.ClickException(str(e))

    if not by_module:
        click.echo(f"\n{len(file_graph.edges)} edge(s) across {len(file_graph.files)} file(s):\n")
        for edge in file_graph.edges:
            click.echo(f"  {edge.source} -> {click.style(edge.target, fg='green')}")
        for path in file_graph.unreadable:
            click.echo(click.style(f"  unreadable: {path}", fg="yellow"))
        return

    for module in graph.modules:
        targets = sorted(graph.dependencies_of(module))
        label = ", ".join(targets) if targets else click.style("(none)", dim=True)
        click.echo(f"  {click.style(module, fg='cyan')} -> {label}")

    cycles = detect_cycles(graph)
    if cycles:
        click.echo("\nCycles:")
        for cycle in cycles:
            click.echo(click.style("  " + " -> ".join(cycle), fg="yellow"))


@cli.command()
@click.argument("project_dir", type=_PROJECT_DIR)
@click.argument("selected", nargs=-1, required=True)
@_tech_option
@_modules_dir_option
def closure(project_dir: Path, selected: tuple[str, ...], tech_stack: str, modules_dir: str | None):
    """Preview which modules a build of SELECTED would ship."""
    try:
        result = resolve_selection(project_dir, list(selected), tech_stack, modules_dir)
    except ModulePackError as e:
        raise click.ClickException(str(e))

    for name in result.modules:
        if name in result.missing:
            tag = click.style("missing", fg="red")
        elif result.is_auto_added(name):
            tag = click.style("auto", fg="yellow")
        else:
            tag = click.style("selected", fg="green")
        click.echo(f"  {name:<24} {tag}")


@cli.command()
@click.argument("project_dir", type=_PROJECT_DIR)
@click.argument("selected", nargs=-1, required=True)
@click.option("--label", "-l", required=True, help="Name of the delivery (used in the archive name)")
@_tech_option
@_modules_dir_option
@click.option("-o", "--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Where to write the archive")
def build(
    project_dir: Path,
    selected: tuple[str, ...],
    label: str,
    tech_stack: str,
    modules_dir: str | None,
    output_dir: Path | None,
):
    """Build an archive containing SELECTED modules and everything they need."""
    request = BuildRequest(
        project_dir=project_dir,
        label=label,
        selected_modules=list(selected),
        tech_stack=tech_stack,
        modules_dir=modules_dir,
        output_dir=output_dir,
    )

    def progress(message: str, step: int, total: int):
        click.echo(f"  [{step}/{total}] {message}")

    click.echo(f"Building {label!r} from {project_dir}\n")
    try:
        result = run_build(request, progress=progress)
    except ModulePackError as e:
        raise click.ClickException(str(e))

    click.echo(f"\nDone! {result.module_count} module(s) in {result.archive_path}")
    for name in result.modules:
        suffix = click.style(" (auto)", fg="yellow") if name in result.auto_added else ""
        click.echo(f"  {name}{suffix}")
    if result.missing:
        click.echo(click.style(f"Skipped missing: {', '.join(result.missing)}", fg="red"))


@cli.group()
def templates():
    """Manage technology templates for the generic rewriter."""


@templates.command("list")
def templates_list():
    store = TemplateStore()
    items = store.list_templates()
    if not items:
        click.echo("No templates configured.")
        return
    for t in items:
        click.echo(f"  {click.style(t.name, fg='cyan')}  modules={t.modules_dir}  entry={t.entry_file or '-'}")
        if t.import_pattern:
            click.echo(f"      pattern: {t.import_pattern}")


@templates.command("add")
@click.argument("name")
@click.option("--modules-dir", required=True, help="Modules directory relative to the project")
@click.option("--entry-file", default="", help="Entry file to rewrite")
@click.option("--pattern", "import_pattern", default="", help="Regex with {modules_dir}; group 1 is the module name")
@click.option("--exclude", "exclude_dirs", multiple=True, help="Extra names to leave out of the skeleton")
def templates_add(name: str, modules_dir: str, entry_file: str, import_pattern: str, exclude_dirs: tuple[str, ...]):
    if name.strip().lower() in builtin_tech_stacks():
        raise click.ClickException(f"{name!r} is a built-in technology")
    template = TechTemplate(
        name=name,
        modules_dir=modules_dir,
        entry_file=entry_file,
        import_pattern=import_pattern,
        exclude_dirs=list(exclude_dirs),
    )
    try:
        TemplateStore().save(template)
    except ModulePackError as e:
        raise click.ClickException(str(e))
    click.echo(f"Saved template {name}")


@templates.command("remove")
@click.argument("name")
def templates_remove(name: str):
    if not TemplateStore().delete(name):
        raise click.ClickException(f"No template named {name!r}")
    click.echo(f"Removed template {name}")


@cli.command()
@click.option("--port", "-p", default=8421, help="Port number")
@click.option("--host", default="127.0.0.1", help="Host address")
def serve(port: int, host: str):
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError:
        raise click.ClickException(
            "uvicorn is required for the HTTP API. "
            "Install with: pip install 'module-pack[web]'"
        )

    from module_pack.web import create_app

    click.echo(f"Starting module-pack API at http://{host}:{port}")
    level = logging.getLevelName(logging.getLogger().getEffectiveLevel()).lower()
    uvicorn.run(create_app(), host=host, port=port, log_level=level)


if __name__ == "__main__":
    cli()
