"""Crash-safe file writes with rotating backups and JSON corruption recovery.

Every write to a live .agents file goes through this module:

1. If the target already exists, its bytes are copied to the backup
   directory as ``<name>.<suffix>.bak`` (mirroring the target's position
   under ``backup_root`` when given).
2. The new content is staged in a temporary file next to the target,
   fsynced and moved into place with ``os.replace``, so readers only ever
   see the old or the new content.
3. Backups for that target are pruned to ``max_backups``, oldest first.

Suffixes are 20-digit nanosecond stamps, bumped past any existing suffix
for the same target so that lexical order is write order.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_BACKUPS = 10

_SUFFIX_WIDTH = 20


def read_text_if_exists(path: Path, encoding: str = "utf-8") -> str | None:
    """Return file contents, or None when the file does not exist."""
    try:
        return Path(path).read_text(encoding=encoding)
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
        return None


def _backup_location(path: Path, backup_dir: Path, backup_root: Path | None) -> Path:
    """Directory that holds the backups of ``path``."""
    if backup_root is not None:
        try:
            relative = path.parent.resolve().relative_to(Path(backup_root).resolve())
        except ValueError:
            return backup_dir
        return backup_dir / relative
    return backup_dir


def _backup_pattern(name: str) -> re.Pattern[str]:
    return re.compile(re.escape(name) + r"\.(\d{%d})\.bak$" % _SUFFIX_WIDTH)


def list_backups(
    path: Path, *, backup_dir: Path, backup_root: Path | None = None
) -> list[Path]:
    """Return the backups of ``path``, oldest first."""
    path = Path(path)
    location = _backup_location(path, Path(backup_dir), backup_root)
    if not location.is_dir():
        return []
    pattern = _backup_pattern(path.name)
    found = []
    for candidate in location.iterdir():
        match = pattern.match(candidate.name)
        if match and candidate.is_file():
            found.append((match.group(1), candidate))
    return [candidate for _, candidate in sorted(found)]


def _next_suffix(existing: list[Path], name: str) -> str:
    stamp = time.time_ns()
    if existing:
        match = _backup_pattern(name).match(existing[-1].name)
        if match:
            stamp = max(stamp, int(match.group(1)) + 1)
    return f"{stamp:0{_SUFFIX_WIDTH}d}"


def _rotate_backup(path: Path, backup_dir: Path, backup_root: Path | None) -> None:
    location = _backup_location(path, backup_dir, backup_root)
    location.mkdir(parents=True, exist_ok=True)
    existing = list_backups(path, backup_dir=backup_dir, backup_root=backup_root)
    target = location / f"{path.name}.{_next_suffix(existing, path.name)}.bak"
    shutil.copyfile(path, target)
    logger.debug("Backed up %s -> %s", path, target)


def _prune_backups(
    path: Path, backup_dir: Path, backup_root: Path | None, max_backups: int
) -> None:
    backups = list_backups(path, backup_dir=backup_dir, backup_root=backup_root)
    excess = len(backups) - max(max_backups, 0)
    for stale in backups[: max(excess, 0)]:
        stale.unlink()
        logger.debug("Pruned backup %s", stale)


def _atomic_replace(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def safe_write_file(
    path: Path,
    content: str,
    *,
    backup_dir: Path | None = None,
    backup_root: Path | None = None,
    max_backups: int = DEFAULT_MAX_BACKUPS,
    encoding: str = "utf-8",
) -> None:
    """Atomically write ``content`` to ``path``, rotating the previous version.

    Raises ``OSError`` when the filesystem rejects the backup, the write,
    the rename or the prune; the live file is left untouched in the first
    three cases.
    """
    path = Path(path)
    rotated = False
    if backup_dir is not None and path.is_file():
        _rotate_backup(path, Path(backup_dir), backup_root)
        rotated = True

    _atomic_replace(path, content.encode(encoding))
    logger.debug("Wrote %s (%d chars)", path, len(content))

    if rotated:
        _prune_backups(path, Path(backup_dir), backup_root, max_backups)


def dump_json(value: Any, pretty: bool = True) -> str:
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False) + "\n"
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def safe_write_json(
    path: Path,
    value: Any,
    *,
    pretty: bool = True,
    backup_dir: Path | None = None,
    backup_root: Path | None = None,
    max_backups: int = DEFAULT_MAX_BACKUPS,
) -> None:
    """Serialize ``value`` and write it with ``safe_write_file``."""
    safe_write_file(
        path,
        dump_json(value, pretty=pretty),
        backup_dir=backup_dir,
        backup_root=backup_root,
        max_backups=max_backups,
    )


def _load_json(path: Path) -> Any:
    return json.loads(path.read_bytes().decode("utf-8"))


def safe_read_json(
    path: Path,
    *,
    backup_dir: Path | None = None,
    backup_root: Path | None = None,
    default: Any = None,
) -> Any:
    """Read JSON from ``path``, recovering from the newest parseable backup.

    A missing file yields ``default``. A corrupt file is replaced by the
    newest backup that parses (and that value is returned); if no backup
    parses, ``default`` is returned and nothing is deleted.
    """
    path = Path(path)
    try:
        return _load_json(path)
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
        return default
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Corrupt JSON in %s: %s", path, exc)

    if backup_dir is None:
        return default

    backups = list_backups(path, backup_dir=Path(backup_dir), backup_root=backup_root)
    for backup in reversed(backups):
        try:
            recovered = _load_json(backup)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Backup %s is not usable", backup)
            continue
        try:
            _atomic_replace(path, backup.read_bytes())
        except OSError as exc:
            logger.warning("Recovered %s from %s but could not restore it: %s", path, backup, exc)
        else:
            logger.warning("Recovered %s from backup %s", path, backup.name)
        return recovered

    logger.warning("No usable backup for %s; using default", path)
    return default
