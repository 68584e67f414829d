"""Path utilities for locating .agents layers and naming files inside them."""

from __future__ import annotations

import os
import re
from pathlib import Path

AGENTS_DIR_NAME = ".agents"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def find_agents_dir_upward(start: Path | None = None, max_depth: int = 25) -> Path | None:
    """Walk up from start to find a directory containing .agents/.

    Returns the .agents directory itself, not the project root.
    """
    current = (start or Path.cwd()).resolve()
    for _ in range(max_depth):
        candidate = current / AGENTS_DIR_NAME
        if candidate.is_dir():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def default_global_agents_dir() -> Path:
    """Return ~/.agents, the conventional global layer root."""
    return Path.home() / AGENTS_DIR_NAME


def sanitize_file_component(name: str) -> str:
    """Map an entity ID to a portable file name component.

    Every character outside ``[A-Za-z0-9._-]`` becomes ``_``, so IDs such as
    ``skill:1`` or ``team/reviewer`` never escape their collection directory.
    """
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def to_posix(path: str) -> str:
    return path.replace(os.sep, "/")


def is_hidden(name: str) -> bool:
    return name.startswith(".")
