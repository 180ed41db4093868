"""af -- Artifactor CLI.

Reconciles recorded generation runs against a workspace kept in a JSON file.

Usage:
    af [--workspace FILE] [--verbose] COMMAND [OPTIONS]
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from artifactor.config import get_config
from artifactor.engine.diagnostics import DiagnosticLog
from artifactor.engine.scheduler import ReconciliationScheduler, RunRecord
from artifactor.lib.artifacts.errors import TransformationError, WorkspaceError
from artifactor.lib.artifacts.paths import full_path, relative_path
from artifactor.lib.manifest.store import ManifestStore, parse_manifest
from artifactor.lib.runs.loader import load_run_file, run_from_file
from artifactor.lib.runs.models import RunFile
from artifactor.lib.workspace.checkout import WritableFileCheckout
from artifactor.lib.workspace.memory import InMemoryWorkspace
from artifactor.lib.workspace.persistence import load_workspace, save_workspace

logger = logging.getLogger("cli")

console = Console()


class WorkspaceFile:
    """The workspace snapshot the CLI operates on."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self, *, create: bool = False) -> InMemoryWorkspace:
        """Load the workspace.

        Raises:
            click.ClickException: If the file is missing (and *create* is
                False) or cannot be parsed.
        """
        if create and not self.path.exists():
            return InMemoryWorkspace()
        try:
            return load_workspace(self.path)
        except WorkspaceError as e:
            raise click.ClickException(f"{e}. Run: af workspace init PROJECT_FILE")

    def save(self, workspace: InMemoryWorkspace) -> None:
        save_workspace(workspace, self.path)


pass_workspace_file = click.make_pass_decorator(WorkspaceFile)


@click.group()
@click.option(
    "--workspace",
    "workspace_file",
    default=None,
    envvar="ARTIFACTOR_WORKSPACE_FILE",
    help="Workspace snapshot file.  [default: .artifactor/workspace.json]",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, workspace_file: str | None, verbose: bool) -> None:
    """af -- multi-file code generation output manager."""
    config = get_config()
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ctx.obj = WorkspaceFile(Path(workspace_file or config.workspace_file))


# ── workspace ─────────────────────────────────────────────────────────────


@cli.group()
def workspace() -> None:
    """Manage the projects and files of the workspace."""


@workspace.command("init")
@click.argument("project_file", type=click.Path(dir_okay=False))
@click.option(
    "--item-type",
    "item_types",
    multiple=True,
    help="Extra item type the project recognizes (repeatable).",
)
@click.option("--no-references", is_flag=True, help="The project does not accept references.")
@pass_workspace_file
def workspace_init(
    ws_file: WorkspaceFile, project_file: str, item_types: tuple[str, ...], no_references: bool
) -> None:
    """Add the project PROJECT_FILE to the workspace, creating it if needed."""
    ws = ws_file.load(create=True)
    try:
        project = ws.add_project(
            Path(project_file), set(item_types), supports_references=not no_references
        )
    except WorkspaceError as e:
        raise click.ClickException(str(e))
    ws_file.save(ws)
    click.echo(f"Added project {project.name} ({project.path})")


@workspace.command("add")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--project", "project_file", default=None, help="Project file to add the input to.")
@pass_workspace_file
def workspace_add(ws_file: WorkspaceFile, input_file: str, project_file: str | None) -> None:
    """Add INPUT_FILE to a project of the workspace."""
    ws = ws_file.load()
    item = _include_input(ws, full_path(Path.cwd(), input_file), project_file)
    ws_file.save(ws)
    click.echo(f"Added {item.path}")


@workspace.command("show")
@pass_workspace_file
def workspace_show(ws_file: WorkspaceFile) -> None:
    """List the projects and files of the workspace."""
    ws = ws_file.load()
    table = Table(title=f"Workspace {ws_file.path}")
    table.add_column("Project")
    table.add_column("Item")
    table.add_column("Kind")
    table.add_column("Item Type")
    for project in ws.list_projects():
        items = [i for i in ws.items() if i.project_path == project.path]
        if not items:
            table.add_row(project.name, "", "", "")
        for item in sorted(items, key=lambda i: str(i.path).casefold()):
            relative = relative_path(project.path, item.path)
            table.add_row(project.name, relative, item.kind, item.item_type)
    console.print(table)


def _include_input(ws: InMemoryWorkspace, input_path: Path, project_file: str | None):
    item = ws.find_item(input_path)
    if item is not None:
        return item
    if project_file:
        project = ws.resolve_project(full_path(Path.cwd(), project_file))
        if project is None:
            raise click.ClickException(f"Project {project_file} is not part of the workspace")
    else:
        project = ws.project_for(input_path)
        if project is None:
            raise click.ClickException(f"No project of the workspace contains {input_path}")
    try:
        return ws.add_existing_file(project, input_path)
    except WorkspaceError as e:
        raise click.ClickException(str(e))


# ── reconcile ─────────────────────────────────────────────────────────────


async def _reconcile(
    ws: InMemoryWorkspace, run_file: RunFile, base_dir: Path
) -> tuple[RunRecord, DiagnosticLog]:
    scheduler = ReconciliationScheduler(ws, WritableFileCheckout())
    try:
        record = await run_from_file(run_file, base_dir, scheduler)
    finally:
        await scheduler.shutdown()
    return record, scheduler.diagnostics


@cli.command()
@click.argument("run_file", type=click.Path(exists=True, dir_okay=False))
@pass_workspace_file
def reconcile(ws_file: WorkspaceFile, run_file: str) -> None:
    """Reconcile the outputs recorded in RUN_FILE."""
    ws = ws_file.load()
    path = full_path(Path.cwd(), run_file)
    try:
        run = load_run_file(path)
    except ValueError as e:
        raise click.ClickException(str(e))

    _include_input(ws, full_path(path.parent, run.input), None)
    record, diagnostics = asyncio.run(_reconcile(ws, run, path.parent))
    # Partial progress is kept even when the run failed.
    ws_file.save(ws)

    for diagnostic in diagnostics:
        style = "yellow" if diagnostic.is_warning else "red"
        console.print(str(diagnostic), style=style, markup=False, soft_wrap=True)
        if diagnostic.detail:
            logger.debug("%s", diagnostic.detail)

    result = record.result
    if result is not None:
        table = Table(title=f"Run {record.run_id}: {record.status}")
        table.add_column("Action")
        table.add_column("File")
        for action, paths in (
            ("written", result.written),
            ("unchanged", result.skipped),
            ("deleted", result.deleted),
            ("moved", result.moved),
        ):
            for p in paths:
                table.add_row(action, str(p))
        console.print(table)

    if record.status != "completed":
        raise click.ClickException(f"Reconciliation of {record.input_path} failed")
    click.echo(f"Reconciled {record.input_path}")


# ── manifest ──────────────────────────────────────────────────────────────


@cli.group()
def manifest() -> None:
    """Inspect the outputs recorded for input files."""


@manifest.command("show")
@click.argument("input_file", type=click.Path(dir_okay=False))
@pass_workspace_file
def manifest_show(ws_file: WorkspaceFile, input_file: str) -> None:
    """Show the outputs recorded for INPUT_FILE."""
    ws = ws_file.load()
    try:
        text = ManifestStore(ws).load_text(full_path(Path.cwd(), input_file))
    except TransformationError as e:
        raise click.ClickException(str(e))
    paths = parse_manifest(text)
    if not paths:
        click.echo("No outputs recorded.")
        return
    table = Table(title=f"Outputs of {Path(input_file).name}")
    table.add_column("Path")
    for p in paths:
        table.add_row(p)
    console.print(table)


@manifest.command("clear")
@click.argument("input_file", type=click.Path(dir_okay=False))
@pass_workspace_file
def manifest_clear(ws_file: WorkspaceFile, input_file: str) -> None:
    """Forget the outputs recorded for INPUT_FILE (files are kept)."""
    ws = ws_file.load()
    try:
        ManifestStore(ws).clear(full_path(Path.cwd(), input_file))
    except TransformationError as e:
        raise click.ClickException(str(e))
    ws_file.save(ws)
    click.echo(f"Cleared recorded outputs of {input_file}")


if __name__ == "__main__":
    cli()
