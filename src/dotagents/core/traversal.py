"""Depth-bounded directory walk.

``walk_bounded`` yields one outcome per visited entry instead of silently
dropping what lies beyond the limit, so callers can log or report it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

from dotagents.utils.paths import is_hidden


@dataclass(frozen=True)
class FileEntry:
    path: Path
    depth: int


@dataclass(frozen=True)
class DirectoryEntry:
    path: Path
    depth: int


@dataclass(frozen=True)
class DepthExceeded:
    path: Path
    depth: int


WalkOutcome = Union[FileEntry, DirectoryEntry, DepthExceeded]


def walk_bounded(
    root: Path, max_depth: int, *, include_hidden: bool = False
) -> Iterator[WalkOutcome]:
    """Walk ``root`` depth-first in sorted order.

    Files directly in ``root`` have depth 0. A directory whose contents would
    sit deeper than ``max_depth`` is reported as ``DepthExceeded`` and not
    entered. Hidden entries are skipped unless ``include_hidden`` is set.
    """
    if not root.is_dir():
        return
    yield from _walk(root, 0, max_depth, include_hidden)


def _walk(directory: Path, depth: int, max_depth: int, include_hidden: bool) -> Iterator[WalkOutcome]:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if not include_hidden and is_hidden(entry.name):
            continue
        if entry.is_dir():
            if depth + 1 > max_depth:
                yield DepthExceeded(entry, depth + 1)
                continue
            yield DirectoryEntry(entry, depth + 1)
            yield from _walk(entry, depth + 1, max_depth, include_hidden)
        elif entry.is_file():
            yield FileEntry(entry, depth)
