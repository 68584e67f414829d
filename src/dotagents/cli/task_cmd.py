"""Repeat-task subcommands: list, rm."""

from __future__ import annotations

import typer

from dotagents.cli._entity import add_list_command, add_rm_command
from dotagents.core.schema import LoopTask
from dotagents.core.tasks import TaskRepository

task_app = typer.Typer(no_args_is_help=True)


def _row(task: LoopTask) -> dict:
    return {
        "id": task.id,
        "name": task.name,
        "interval_minutes": task.interval_minutes,
        "enabled": task.enabled,
        "profile": task.profile_id or "",
    }


add_list_command(
    task_app, TaskRepository, "tasks", _row, ["id", "name", "interval_minutes", "enabled", "profile"]
)
add_rm_command(task_app, TaskRepository, "task")
