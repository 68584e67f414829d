"""Canonical paths inside one .agents layer root.

A layer is either the global root (``~/.agents``) or a workspace root found
next to a project. Every file the store touches is the layer root plus one of
the fixed suffixes below; backups mirror the same structure under
``<root>/.backups``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

AGENTS_BACKUPS_DIR_NAME = ".backups"

AGENTS_SETTINGS_JSON = "speakmcp-settings.json"
AGENTS_MCP_JSON = "mcp.json"
AGENTS_MODELS_JSON = "models.json"
AGENTS_LAYOUTS_DIR = "layouts"
AGENTS_DEFAULT_LAYOUT_JSON = "ui.json"

AGENTS_SYSTEM_PROMPT_MD = "system-prompt.md"
AGENTS_AGENTS_MD = "agents.md"

AGENTS_MEMORIES_DIR = "memories"
AGENTS_SKILLS_DIR = "skills"
AGENTS_TASKS_DIR = "tasks"
AGENTS_AGENT_PROFILES_DIR = "agents"


@dataclass(frozen=True)
class AgentsLayerPaths:
    agents_dir: Path
    backups_dir: Path
    settings_json_path: Path
    mcp_json_path: Path
    models_json_path: Path
    layouts_dir: Path
    layout_json_path: Path
    system_prompt_md_path: Path
    agents_md_path: Path

    def collection_dir(self, name: str) -> Path:
        return self.agents_dir / name

    def collection_backup_dir(self, name: str) -> Path:
        return self.backups_dir / name

    @property
    def bucket_json_paths(self) -> tuple[Path, ...]:
        return (
            self.settings_json_path,
            self.mcp_json_path,
            self.models_json_path,
            self.layout_json_path,
        )

    @property
    def prompt_md_paths(self) -> tuple[Path, ...]:
        return (self.system_prompt_md_path, self.agents_md_path)


def get_agents_layer_paths(agents_dir: Path | str) -> AgentsLayerPaths:
    root = Path(agents_dir)
    return AgentsLayerPaths(
        agents_dir=root,
        backups_dir=root / AGENTS_BACKUPS_DIR_NAME,
        settings_json_path=root / AGENTS_SETTINGS_JSON,
        mcp_json_path=root / AGENTS_MCP_JSON,
        models_json_path=root / AGENTS_MODELS_JSON,
        layouts_dir=root / AGENTS_LAYOUTS_DIR,
        layout_json_path=root / AGENTS_LAYOUTS_DIR / AGENTS_DEFAULT_LAYOUT_JSON,
        system_prompt_md_path=root / AGENTS_SYSTEM_PROMPT_MD,
        agents_md_path=root / AGENTS_AGENTS_MD,
    )


COLLECTION_DIRS = (
    AGENTS_MEMORIES_DIR,
    AGENTS_SKILLS_DIR,
    AGENTS_TASKS_DIR,
    AGENTS_AGENT_PROFILES_DIR,
)


def backup_scope(layer: AgentsLayerPaths, path: Path) -> tuple[Path, Path]:
    """Return ``(backup_dir, backup_root)`` used when writing ``path``.

    Collection files back up under ``.backups/<collection>`` mirrored from
    the collection directory; everything else mirrors the layer root.
    """
    try:
        relative = Path(path).relative_to(layer.agents_dir)
    except ValueError:
        return layer.backups_dir, layer.agents_dir
    if len(relative.parts) > 1 and relative.parts[0] in COLLECTION_DIRS:
        name = relative.parts[0]
        return layer.collection_backup_dir(name), layer.collection_dir(name)
    return layer.backups_dir, layer.agents_dir
