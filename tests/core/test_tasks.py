"""Tests for loop task markdown and TaskRepository."""

from __future__ import annotations

import os

import pytest

from dotagents.core.errors import StoreError
from dotagents.core.schema import LoopTask
from dotagents.core.tasks import TaskRepository, parse_task_markdown, stringify_task_markdown


@pytest.fixture
def task() -> LoopTask:
    return LoopTask(
        id="daily-summary",
        name="Daily summary",
        prompt="Summarize yesterday's commits.",
        interval_minutes=1440,
        enabled=True,
        profile_id="main-agent",
        run_on_startup=True,
        last_run_at=1700000000000,
    )


class TestMarkdown:
    def test_roundtrip(self, task):
        assert parse_task_markdown(stringify_task_markdown(task)) == task

    def test_minimal_roundtrip(self):
        task = LoopTask(id="t", name="T")
        text = stringify_task_markdown(task)
        assert "runOnStartup" not in text
        assert "profileId" not in text
        assert parse_task_markdown(text) == task

    def test_defaults(self):
        parsed = parse_task_markdown("---\nid: t\n---\nDo it")
        assert parsed.name == "t"
        assert parsed.interval_minutes == 60
        assert parsed.enabled is True
        assert parsed.prompt == "Do it"

    def test_interval_clamped_to_one(self):
        parsed = parse_task_markdown("---\nid: t\nintervalMinutes: 0\n---\n")
        assert parsed.interval_minutes == 1

    def test_fallback_id(self):
        assert parse_task_markdown("---\nname: \n---\n", fallback_id="folder").id == "folder"

    def test_no_id(self):
        assert parse_task_markdown("no frontmatter") is None


class TestRepository:
    def test_write_and_load(self, layer, task):
        repo = TaskRepository(layer)
        path = repo.write(task)
        assert path == layer.agents_dir / "tasks" / "daily-summary" / "task.md"
        assert repo.load().entities == [task]

    def test_invalid_interval_rejected(self, layer):
        task = LoopTask.model_construct(id="t", name="T", prompt="", interval_minutes=0, enabled=True)
        with pytest.raises(StoreError):
            TaskRepository(layer).write(task)

    def test_write_all_only_if_missing(self, layer, task):
        repo = TaskRepository(layer)
        repo.write(task)
        changed = task.model_copy(update={"prompt": "changed"})
        other = LoopTask(id="other", name="Other")

        written = repo.write_all([changed, other], only_if_missing=True)
        assert written == [repo.id_to_path("other")]
        assert repo.load().get("daily-summary").prompt == task.prompt

    def test_duplicates_resolved_by_mtime(self, layer):
        tasks = layer.agents_dir / "tasks"
        for folder, prompt, mtime in (("a", "older", 1_000), ("b", "newer", 2_000)):
            path = tasks / folder / "task.md"
            path.parent.mkdir(parents=True)
            path.write_text(f"---\nid: same\n---\n{prompt}")
            os.utime(path, (mtime, mtime))

        loaded = TaskRepository(layer).load()
        assert loaded.get("same").prompt == "newer"

    def test_folders_without_task_file_skipped(self, layer):
        (layer.agents_dir / "tasks" / "empty").mkdir(parents=True)
        loaded = TaskRepository(layer).load()
        assert loaded.entities == [] and loaded.failures == []

    def test_delete_removes_folder(self, layer, task):
        repo = TaskRepository(layer)
        path = repo.write(task)
        assert repo.delete(task.id) is True
        assert not path.parent.exists()
        assert repo.delete(task.id) is False

    def test_repository_parse_matches_module_parse(self, layer, task):
        repo = TaskRepository(layer)
        text = repo.stringify(task)
        assert repo.parse(text, file_path=repo.id_to_path(task.id)) == task
