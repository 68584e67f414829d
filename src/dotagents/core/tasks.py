"""Scheduled loop tasks: ``tasks/<id>/task.md``, the prompt being the body."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from dotagents.core.errors import StoreError
from dotagents.core.frontmatter import build_frontmatter, parse_frontmatter
from dotagents.core.layer import AGENTS_TASKS_DIR
from dotagents.core.repository import (
    EntityOrigin,
    InvalidEntityError,
    LayerRepository,
    LoadedLayer,
    read_entity_text,
    stable_now_ms,
)
from dotagents.core.safe_file import safe_write_file
from dotagents.core.schema import LoopTask
from dotagents.utils.coerce import normalize_single_line, parse_bool, parse_number

TASK_CANONICAL_FILENAME = "task.md"
DEFAULT_INTERVAL_MINUTES = 60


def stringify_task_markdown(task: LoopTask) -> str:
    frontmatter = {
        "kind": "task",
        "id": task.id,
        "name": normalize_single_line(task.name),
        "intervalMinutes": task.interval_minutes,
        "enabled": task.enabled,
    }
    if task.profile_id:
        frontmatter["profileId"] = task.profile_id
    if task.run_on_startup:
        frontmatter["runOnStartup"] = True
    if task.last_run_at:
        frontmatter["lastRunAt"] = task.last_run_at
    return build_frontmatter(frontmatter, task.prompt)


def _parse_task(markdown: str, fallback_id: str | None) -> LoopTask:
    fm, body = parse_frontmatter(markdown)

    task_id = fm.get("id", "").strip() or (fallback_id or "").strip() or fm.get("name", "").strip()
    if not task_id:
        raise InvalidEntityError("no entity id")

    interval = parse_number(fm.get("intervalMinutes"), DEFAULT_INTERVAL_MINUTES)
    return LoopTask(
        id=task_id,
        name=fm.get("name", "").strip() or task_id,
        prompt=body.strip(),
        interval_minutes=max(1, interval),
        enabled=parse_bool(fm.get("enabled"), True),
        profile_id=fm.get("profileId", "").strip() or None,
        run_on_startup=parse_bool(fm.get("runOnStartup"), False) or None,
        last_run_at=parse_number(fm.get("lastRunAt"), None) or None,
    )


def parse_task_markdown(markdown: str, fallback_id: str | None = None) -> Optional[LoopTask]:
    try:
        return _parse_task(markdown, fallback_id)
    except InvalidEntityError:
        return None


class TaskRepository(LayerRepository[LoopTask]):
    collection = AGENTS_TASKS_DIR

    def dir_for(self, task_id: str) -> Path:
        return self.directory / self._safe_component(task_id)

    def id_to_path(self, task_id: str) -> Path:
        return self.dir_for(task_id) / TASK_CANONICAL_FILENAME

    def stringify(self, task: LoopTask) -> str:
        return stringify_task_markdown(task)

    def parse(
        self, markdown: str, fallback_id: str | None = None, file_path: Path | None = None
    ) -> Optional[LoopTask]:
        # file_path unused: tasks carry no timestamps.
        return parse_task_markdown(markdown, fallback_id=fallback_id)

    def load(self) -> LoadedLayer[LoopTask]:
        loaded: LoadedLayer[LoopTask] = LoadedLayer()
        if not self.directory.is_dir():
            return loaded

        for task_dir in sorted(self.directory.iterdir(), key=lambda p: p.name):
            if task_dir.name.startswith(".") or not task_dir.is_dir():
                continue
            path = task_dir / TASK_CANONICAL_FILENAME
            raw = read_entity_text(path, loaded)
            if raw is None:
                continue
            try:
                task = _parse_task(raw, task_dir.name)
            except InvalidEntityError as exc:
                loaded.fail(path, str(exc))
                continue
            # Tasks carry no updatedAt; the file's mtime decides duplicates.
            loaded.offer(task, EntityOrigin(path), stable_now_ms(path))
        return loaded

    def write(self, task: LoopTask, *, max_backups: int | None = None) -> Path:
        if task.interval_minutes < 1:
            raise StoreError(f"Task {task.id!r} needs an interval of at least 1 minute")
        path = self.id_to_path(task.id)
        safe_write_file(path, self.stringify(task), **self._backup_options(max_backups))
        return path

    def write_all(
        self, tasks: list[LoopTask], *, only_if_missing: bool = False, max_backups: int | None = None
    ) -> list[Path]:
        written = []
        for task in tasks:
            if only_if_missing and self.id_to_path(task.id).exists():
                continue
            written.append(self.write(task, max_backups=max_backups))
        return written

    def delete(self, task_id: str) -> bool:
        task_dir = self.dir_for(task_id)
        if not task_dir.is_dir():
            origin = self.load().origin_by_id.get(task_id)
            if origin is None:
                return False
            task_dir = origin.file_path.parent
        shutil.rmtree(task_dir)
        return True
