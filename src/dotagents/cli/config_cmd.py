"""Config subcommands: inspect the layered app config and the tool's own settings."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer

from dotagents.cli._shared import FORMAT_OPTION, WRITE_LAYER_OPTION, get_state, single_layer
from dotagents.core.modular_config import (
    classify_config_key,
    load_merged_agents_config,
    split_config_into_agents_files,
    write_agents_layer_from_config,
)
from dotagents.utils.config import VALID_KEYS, load_global_config, save_global_config
from dotagents.utils.output import error, info, output, output_table, success

config_app = typer.Typer(no_args_is_help=True)

DEFAULT_PROMPT_OPTION = typer.Option(
    None,
    "--default-prompt",
    help="File holding the built-in system prompt; a layer prompt equal to it counts as unset",
)


def _read_default_prompt(path: Optional[Path]) -> str:
    if path is None:
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        error(f"Cannot read default prompt: {e}")
        raise typer.Exit(1)


def _preview(value: object, width: int = 60) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    text = " ".join(text.split())
    return text[:width] + "..." if len(text) > width else text


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Show a single key"),
    default_prompt: Optional[Path] = DEFAULT_PROMPT_OPTION,
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Show the merged config and which layer each key came from."""
    state = get_state(ctx)
    merged = load_merged_agents_config(
        state.global_dir, state.workspace_dir, _read_default_prompt(default_prompt)
    )

    if key is not None:
        if key not in merged.merged:
            error(f"Key '{key}' is not set in any layer")
            raise typer.Exit(1)
        output(
            {
                "key": key,
                "value": merged.merged[key],
                "layer": merged.provenance[key],
                "bucket": classify_config_key(key).value,
            },
            fmt=fmt,
        )
        return

    if fmt == "json":
        output(
            {
                "merged": merged.merged,
                "provenance": merged.provenance,
                "hasAnyAgentsFiles": merged.has_any_agents_files,
            },
            fmt="json",
        )
        return
    if not merged.has_any_agents_files:
        info("No config files in either layer.")
        return
    rows = [
        {
            "key": k,
            "bucket": classify_config_key(k).value,
            "layer": merged.provenance[k],
            "value": _preview(v),
        }
        for k, v in sorted(merged.merged.items())
    ]
    output_table(rows, columns=["key", "bucket", "layer", "value"], fmt=fmt)


@config_app.command("split")
def config_split(
    ctx: typer.Context,
    default_prompt: Optional[Path] = DEFAULT_PROMPT_OPTION,
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Show how the merged config would be split across bucket files."""
    state = get_state(ctx)
    merged = load_merged_agents_config(
        state.global_dir, state.workspace_dir, _read_default_prompt(default_prompt)
    )
    output(asdict(split_config_into_agents_files(merged.merged)), fmt=fmt)


@config_app.command("import")
def config_import(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Flat JSON config file to split into the layer"),
    layer: str = WRITE_LAYER_OPTION,
    only_if_missing: bool = typer.Option(
        False, "--only-if-missing", help="Leave existing bucket and prompt files untouched"
    ),
    default_prompt: Optional[Path] = DEFAULT_PROMPT_OPTION,
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Write a flat JSON config into a layer's bucket and prompt files."""
    state = get_state(ctx)
    try:
        config = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        error(f"Cannot read {source}: {e}")
        raise typer.Exit(1)
    if not isinstance(config, dict):
        error(f"{source} must contain a JSON object")
        raise typer.Exit(1)

    try:
        written = write_agents_layer_from_config(
            single_layer(state, layer),
            config,
            _read_default_prompt(default_prompt),
            only_if_missing=only_if_missing,
            max_backups=state.max_backups,
        )
    except OSError as e:
        error(str(e))
        raise typer.Exit(1)

    if fmt == "json":
        output({"written": [str(p) for p in written]}, fmt="json")
    elif written:
        success(f"Wrote {len(written)} file(s) to the {layer} layer")
    else:
        info("Nothing written; all files already exist.")


@config_app.command("get")
def config_get(
    key: str = typer.Argument(..., help="Tool setting key"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Get a dotagents tool setting."""
    if key not in VALID_KEYS:
        error(f"Unknown key: {key}. Valid keys: {', '.join(VALID_KEYS)}")
        raise typer.Exit(1)
    value = load_global_config().get(key)
    if fmt == "json":
        output({"key": key, "value": value}, fmt="json")
    else:
        info(f"{key}: {value if value is not None else '(not set)'}")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Tool setting key"),
    value: str = typer.Argument(..., help="Value to set"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Set a dotagents tool setting."""
    if key not in VALID_KEYS:
        error(f"Unknown key: {key}. Valid keys: {', '.join(VALID_KEYS)}")
        raise typer.Exit(1)

    stored: object = value
    if key == "max_backups":
        if not value.isdigit():
            error(f"max_backups must be a non-negative integer, got {value!r}")
            raise typer.Exit(1)
        stored = int(value)

    config = load_global_config()
    config[key] = stored
    save_global_config(config)

    if fmt == "json":
        output({"key": key, "value": stored}, fmt="json")
    else:
        success(f"{key} = {stored}")
