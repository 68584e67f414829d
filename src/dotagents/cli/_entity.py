"""list / show / rm command builders shared by the collection groups.

Memories, skills, tasks and agent profiles differ only in their repository
and table columns, so each ``*_cmd`` module registers these builders on its
own typer app.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import typer

from dotagents.cli._shared import (
    FORMAT_OPTION,
    LAYER_OPTION,
    WRITE_LAYER_OPTION,
    CliState,
    get_state,
    single_layer,
)
from dotagents.core.errors import StoreError
from dotagents.core.repository import LayerRepository, LoadedLayer
from dotagents.utils.output import error, info, output, output_table, success, warn_failures

RowFn = Callable[[Any], dict[str, Any]]


def load_for_layer(repo_cls: type[LayerRepository], state: CliState, layer: str) -> LoadedLayer:
    if layer == "merged":
        return repo_cls.load_merged(state.global_layer, state.workspace_layer)
    return repo_cls(single_layer(state, layer)).load()


def _with_origin(entity: Any, loaded: LoadedLayer) -> dict[str, Any]:
    data = entity.model_dump(by_alias=True, mode="json", exclude_none=True)
    data["origin"] = str(loaded.origin_by_id[entity.id].file_path)
    return data


def add_list_command(
    app: typer.Typer,
    repo_cls: type[LayerRepository],
    plural: str,
    row_fn: RowFn,
    columns: list[str],
) -> None:
    @app.command("list")
    def list_entities(
        ctx: typer.Context,
        layer: str = LAYER_OPTION,
        fmt: Optional[str] = FORMAT_OPTION,
    ) -> None:
        """List entries, workspace overriding global by id."""
        state = get_state(ctx)
        loaded = load_for_layer(repo_cls, state, layer)
        warn_failures(loaded.failures)
        if fmt == "json":
            output([_with_origin(e, loaded) for e in loaded.entities], fmt="json")
            return
        if not loaded.entities:
            info(f"No {plural} found.")
            return
        output_table([row_fn(e) for e in loaded.entities], columns=columns, fmt=fmt)


def add_show_command(app: typer.Typer, repo_cls: type[LayerRepository], noun: str) -> None:
    @app.command("show")
    def show_entity(
        ctx: typer.Context,
        entity_id: str = typer.Argument(..., help="Entry id"),
        layer: str = LAYER_OPTION,
        fmt: Optional[str] = FORMAT_OPTION,
    ) -> None:
        """Show one entry with the file it was loaded from."""
        state = get_state(ctx)
        loaded = load_for_layer(repo_cls, state, layer)
        entity = loaded.get(entity_id)
        if entity is None:
            error(f"{noun.capitalize()} '{entity_id}' not found")
            raise typer.Exit(1)
        output(_with_origin(entity, loaded), fmt=fmt)


def add_rm_command(app: typer.Typer, repo_cls: type[LayerRepository], noun: str) -> None:
    @app.command("rm")
    def remove_entity(
        ctx: typer.Context,
        entity_id: str = typer.Argument(..., help="Entry id"),
        layer: str = WRITE_LAYER_OPTION,
    ) -> None:
        """Delete an entry from one layer."""
        state = get_state(ctx)
        repo = repo_cls(single_layer(state, layer), max_backups=state.max_backups)
        try:
            removed = repo.delete(entity_id)
        except (StoreError, OSError) as e:
            error(str(e))
            raise typer.Exit(1)
        if not removed:
            error(f"{noun.capitalize()} '{entity_id}' not found in {layer} layer")
            raise typer.Exit(1)
        success(f"Removed {noun} '{entity_id}'")
