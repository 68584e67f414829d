"""Tool configuration: where the global layer lives and how many backups to keep."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from dotagents.core.safe_file import DEFAULT_MAX_BACKUPS
from dotagents.utils.paths import default_global_agents_dir

logger = logging.getLogger(__name__)

GLOBAL_DIR_ENV = "DOTAGENTS_GLOBAL_DIR"

VALID_KEYS = ("global_agents_dir", "max_backups")


def global_config_dir() -> Path:
    return Path.home() / ".config" / "dotagents"


def load_global_config() -> dict:
    path = global_config_dir() / "config.json"
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_global_config(config: dict) -> None:
    config_dir = global_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.json").write_text(json.dumps(config, indent=2) + "\n")


def resolve_global_agents_dir(explicit: Path | None = None) -> Path:
    """Global layer root: explicit argument, then env var, then config, then ~/.agents."""
    if explicit is not None:
        return explicit.expanduser()
    from_env = os.environ.get(GLOBAL_DIR_ENV)
    if from_env:
        return Path(from_env).expanduser()
    configured = load_global_config().get("global_agents_dir")
    if configured:
        return Path(configured).expanduser()
    return default_global_agents_dir()


def resolve_max_backups() -> int:
    value = load_global_config().get("max_backups")
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return DEFAULT_MAX_BACKUPS
