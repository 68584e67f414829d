"""Flat app configuration split across the JSON buckets of .agents layers.

A layer stores one flat configuration dict in four JSON buckets (settings,
mcp, models, layout) plus two markdown prompt documents. Loading reads each
bucket independently (recovering corrupt ones from backups) and spreads them
into one dict; merging two layers lets workspace keys override global ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from dotagents.core.frontmatter import build_frontmatter, parse_frontmatter
from dotagents.core.layer import AgentsLayerPaths, get_agents_layer_paths
from dotagents.core.safe_file import (
    DEFAULT_MAX_BACKUPS,
    read_text_if_exists,
    safe_read_json,
    safe_write_file,
    safe_write_json,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_KEY = "mcpCustomSystemPrompt"
AGENTS_GUIDELINES_KEY = "mcpToolsSystemPrompt"

LAYOUT_KEYS = frozenset(
    {
        "themePreference",
        "panelPosition",
        "panelCustomPosition",
        "panelDragEnabled",
        "panelCustomSize",
        "panelProgressSize",
        "floatingPanelAutoShow",
        "hidePanelWhenMainFocused",
    }
)

MODELS_EXACT_KEYS = frozenset({"modelPresets", "currentModelPresetId"})
MODELS_KEY_SUFFIXES = ("ApiKey", "BaseUrl")
MODELS_KEY_PREFIXES = (
    "openai",
    "groq",
    "gemini",
    "stt",
    "tts",
    "parakeet",
    "kitten",
    "supertonic",
    "transcript",
)

LayerName = Literal["global", "workspace"]


class ConfigBucket(str, Enum):
    settings = "settings"
    mcp = "mcp"
    models = "models"
    layout = "layout"
    prompts = "prompts"


def classify_config_key(key: str) -> ConfigBucket:
    """Decide which bucket file a configuration key is persisted in.

    Checked in order: prompt keys, layout keys, ``mcp`` prefix, model and
    provider keys. Anything else belongs to settings.
    """
    if key in (SYSTEM_PROMPT_KEY, AGENTS_GUIDELINES_KEY):
        return ConfigBucket.prompts
    if key in LAYOUT_KEYS:
        return ConfigBucket.layout
    if key.startswith("mcp"):
        return ConfigBucket.mcp
    if (
        key in MODELS_EXACT_KEYS
        or key.endswith(MODELS_KEY_SUFFIXES)
        or key.startswith(MODELS_KEY_PREFIXES)
    ):
        return ConfigBucket.models
    return ConfigBucket.settings


@dataclass
class SplitAgentsConfig:
    settings: dict[str, Any] = field(default_factory=dict)
    mcp: dict[str, Any] = field(default_factory=dict)
    models: dict[str, Any] = field(default_factory=dict)
    layout: dict[str, Any] = field(default_factory=dict)
    system_prompt: str = ""
    agents_guidelines: str = ""


@dataclass
class MergedAgentsConfig:
    merged: dict[str, Any]
    has_any_agents_files: bool
    provenance: dict[str, LayerName] = field(default_factory=dict)


def layer_has_any_agents_config(layer: AgentsLayerPaths) -> bool:
    return any(path.is_file() for path in (*layer.bucket_json_paths, *layer.prompt_md_paths))


def _read_bucket(path: Path, layer: AgentsLayerPaths) -> dict[str, Any]:
    value = safe_read_json(
        path, backup_dir=layer.backups_dir, backup_root=layer.agents_dir, default={}
    )
    if not isinstance(value, dict):
        logger.warning("Ignoring %s: expected a JSON object, got %s", path, type(value).__name__)
        return {}
    return value


def _read_markdown_body(path: Path) -> Optional[str]:
    raw = read_text_if_exists(path)
    if raw is None:
        return None
    _meta, body = parse_frontmatter(raw)
    return body


def normalize_prompt_for_config(prompt_body: str, default_system_prompt: str) -> str:
    """Map a prompt equal to the built-in default back to "" (no override)."""
    trimmed = prompt_body.strip()
    if not trimmed or trimmed == default_system_prompt.strip():
        return ""
    return prompt_body


def load_agents_layer_config(layer: AgentsLayerPaths, default_system_prompt: str) -> dict[str, Any]:
    settings = _read_bucket(layer.settings_json_path, layer)
    mcp = _read_bucket(layer.mcp_json_path, layer)
    models = _read_bucket(layer.models_json_path, layer)
    layout = _read_bucket(layer.layout_json_path, layer)

    prompts: dict[str, Any] = {}
    system_prompt = _read_markdown_body(layer.system_prompt_md_path)
    if system_prompt is not None:
        prompts[SYSTEM_PROMPT_KEY] = normalize_prompt_for_config(system_prompt, default_system_prompt)
    guidelines = _read_markdown_body(layer.agents_md_path)
    if guidelines is not None:
        prompts[AGENTS_GUIDELINES_KEY] = guidelines

    return {**settings, **models, **mcp, **layout, **prompts}


def load_merged_agents_config(
    global_agents_dir: Path,
    workspace_agents_dir: Path | None,
    default_system_prompt: str,
) -> MergedAgentsConfig:
    """Load the global layer and let a workspace layer override it key by key."""
    global_layer = get_agents_layer_paths(global_agents_dir)
    workspace_layer = get_agents_layer_paths(workspace_agents_dir) if workspace_agents_dir else None

    global_has = layer_has_any_agents_config(global_layer)
    workspace_has = workspace_layer is not None and layer_has_any_agents_config(workspace_layer)

    global_config = load_agents_layer_config(global_layer, default_system_prompt) if global_has else {}
    workspace_config = (
        load_agents_layer_config(workspace_layer, default_system_prompt) if workspace_has else {}
    )

    provenance: dict[str, LayerName] = {key: "global" for key in global_config}
    provenance.update({key: "workspace" for key in workspace_config})
    return MergedAgentsConfig(
        merged={**global_config, **workspace_config},
        has_any_agents_files=global_has or workspace_has,
        provenance=provenance,
    )


def _prompt_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def split_config_into_agents_files(config: dict[str, Any]) -> SplitAgentsConfig:
    split = SplitAgentsConfig(
        system_prompt=_prompt_text(config.get(SYSTEM_PROMPT_KEY)),
        agents_guidelines=_prompt_text(config.get(AGENTS_GUIDELINES_KEY)),
    )
    for key, value in config.items():
        bucket = classify_config_key(key)
        if bucket is ConfigBucket.prompts:
            continue
        getattr(split, bucket.value)[key] = value
    return split


def write_agents_layer_from_config(
    layer: AgentsLayerPaths,
    config: dict[str, Any],
    default_system_prompt: str,
    *,
    only_if_missing: bool = False,
    max_backups: int = DEFAULT_MAX_BACKUPS,
) -> list[Path]:
    """Persist a flat configuration into the layer's buckets and prompts.

    Returns the paths that were written. With ``only_if_missing`` existing
    files are left untouched.
    """
    split = split_config_into_agents_files(config)
    options = {
        "backup_dir": layer.backups_dir,
        "backup_root": layer.agents_dir,
        "max_backups": max_backups,
    }
    written: list[Path] = []

    def should_write(path: Path) -> bool:
        return not (only_if_missing and path.exists())

    for path, bucket in (
        (layer.settings_json_path, split.settings),
        (layer.mcp_json_path, split.mcp),
        (layer.models_json_path, split.models),
        (layer.layout_json_path, split.layout),
    ):
        if should_write(path):
            safe_write_json(path, bucket, pretty=True, **options)
            written.append(path)

    system_prompt = split.system_prompt if split.system_prompt.strip() else default_system_prompt
    documents = (
        (layer.system_prompt_md_path, "system-prompt", system_prompt),
        (layer.agents_md_path, "agents", split.agents_guidelines),
    )
    for path, kind, body in documents:
        if should_write(path):
            safe_write_file(path, build_frontmatter({"kind": kind}, body), **options)
            written.append(path)

    return written
