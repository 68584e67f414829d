"""Typer app: global layer options, root commands (status) and command groups."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from dotagents import __version__
from dotagents.cli._shared import FORMAT_OPTION, WRITE_LAYER_OPTION, CliState, get_state, single_layer
from dotagents.core.layer import COLLECTION_DIRS, backup_scope
from dotagents.core.memories import MemoryRepository
from dotagents.core.modular_config import layer_has_any_agents_config
from dotagents.core.profiles import AgentProfileRepository
from dotagents.core.safe_file import list_backups
from dotagents.core.skills import SkillRepository
from dotagents.core.tasks import TaskRepository
from dotagents.utils.config import resolve_global_agents_dir, resolve_max_backups
from dotagents.utils.output import configure_logging, console, info, output, output_table
from dotagents.utils.paths import find_agents_dir_upward

app = typer.Typer(
    name="dotagents",
    help="dotagents: inspect and maintain layered .agents stores.",
    no_args_is_help=True,
)

_REPOSITORIES = {
    "memories": MemoryRepository,
    "skills": SkillRepository,
    "tasks": TaskRepository,
    "agents": AgentProfileRepository,
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dotagents {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    global_dir: Optional[Path] = typer.Option(
        None, "--global-dir", "-g", help="Global .agents directory (default: ~/.agents)"
    ),
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", "-w", help="Workspace .agents directory (default: search upward)"
    ),
    no_workspace: bool = typer.Option(False, "--no-workspace", help="Ignore any workspace layer"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log recovery and writes to stderr"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    configure_logging(verbose)
    resolved_global = resolve_global_agents_dir(global_dir)
    workspace_dir: Optional[Path] = None
    if not no_workspace:
        workspace_dir = workspace if workspace is not None else find_agents_dir_upward()
        if workspace_dir is not None and workspace_dir.resolve() == resolved_global.resolve():
            workspace_dir = None
    ctx.obj = CliState(
        global_dir=resolved_global,
        workspace_dir=workspace_dir,
        max_backups=resolve_max_backups(),
    )


@app.command()
def status(ctx: typer.Context, fmt: Optional[str] = FORMAT_OPTION) -> None:
    """Show both layers, their config files and collection counts."""
    state = get_state(ctx)
    layers = [("global", state.global_layer)]
    if state.workspace_layer is not None:
        layers.append(("workspace", state.workspace_layer))

    summary = []
    for name, layer in layers:
        entry = {
            "layer": name,
            "path": str(layer.agents_dir),
            "exists": layer.agents_dir.is_dir(),
            "has_config": layer_has_any_agents_config(layer),
            "failures": 0,
        }
        for collection, repo_cls in _REPOSITORIES.items():
            loaded = repo_cls(layer).load()
            entry[collection] = len(loaded.entities)
            entry["failures"] += len(loaded.failures)
        summary.append(entry)

    if fmt == "json":
        output(summary, fmt="json")
        return
    for entry in summary:
        console.print(f"[bold]{entry['layer']}[/bold]: {entry['path']}")
        if not entry["exists"]:
            console.print("  [dim](missing)[/dim]")
            continue
        console.print(f"  Config files: {'yes' if entry['has_config'] else 'no'}")
        for collection in COLLECTION_DIRS:
            console.print(f"  {collection.capitalize()}: {entry[collection]}")
        if entry["failures"]:
            console.print(f"  [yellow]Unreadable files: {entry['failures']}[/yellow]")
    if state.workspace_layer is None:
        info("No workspace layer.")


backups_app = typer.Typer(no_args_is_help=True)


@backups_app.command("list")
def backups_list(
    ctx: typer.Context,
    target: Path = typer.Argument(..., help="Live file, relative to the layer root"),
    layer: str = WRITE_LAYER_OPTION,
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """List the backups kept for one file, oldest first."""
    layer_paths = single_layer(get_state(ctx), layer)
    path = target if target.is_absolute() else layer_paths.agents_dir / target
    backup_dir, backup_root = backup_scope(layer_paths, path)
    backups = list_backups(path, backup_dir=backup_dir, backup_root=backup_root)
    if fmt != "json" and not backups:
        info(f"No backups for {path}")
        return
    rows = [{"backup": str(p), "size": p.stat().st_size} for p in backups]
    output_table(rows, columns=["backup", "size"], fmt=fmt)


# Register subcommand groups
from dotagents.cli.agent_cmd import agent_app
from dotagents.cli.config_cmd import config_app
from dotagents.cli.memory_cmd import memory_app
from dotagents.cli.skill_cmd import skill_app
from dotagents.cli.task_cmd import task_app

app.add_typer(config_app, name="config", help="Inspect layered config and tool settings")
app.add_typer(memory_app, name="memory", help="Manage memories")
app.add_typer(skill_app, name="skill", help="Manage skills")
app.add_typer(task_app, name="task", help="Manage repeat tasks")
app.add_typer(agent_app, name="agent", help="Manage agent profiles")
app.add_typer(backups_app, name="backups", help="Inspect backup rings")
