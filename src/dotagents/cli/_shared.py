"""Shared CLI utilities to avoid circular imports."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from dotagents.core.layer import AgentsLayerPaths, get_agents_layer_paths
from dotagents.utils.output import error

FORMAT_OPTION = typer.Option(None, "--format", "-F", help="Output format: json or text")
LAYER_OPTION = typer.Option(
    "merged", "--layer", "-l", help="Layer to read: global, workspace or merged"
)
WRITE_LAYER_OPTION = typer.Option(
    "global", "--layer", "-l", help="Layer to modify: global or workspace"
)


@dataclass
class CliState:
    global_dir: Path
    workspace_dir: Optional[Path]
    max_backups: int

    @property
    def global_layer(self) -> AgentsLayerPaths:
        return get_agents_layer_paths(self.global_dir)

    @property
    def workspace_layer(self) -> Optional[AgentsLayerPaths]:
        if self.workspace_dir is None:
            return None
        return get_agents_layer_paths(self.workspace_dir)


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_root().obj
    if not isinstance(state, CliState):
        error("CLI state not initialized")
        raise typer.Exit(1)
    return state


def single_layer(state: CliState, name: str) -> AgentsLayerPaths:
    """Resolve --layer for commands that act on exactly one layer."""
    if name == "global":
        return state.global_layer
    if name == "workspace":
        if state.workspace_layer is None:
            error("No workspace .agents directory found (use --workspace)")
            raise typer.Exit(1)
        return state.workspace_layer
    error(f"Unknown layer: {name}. Use global or workspace.")
    raise typer.Exit(1)
