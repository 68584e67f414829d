"""Memory subcommands: list, show, rm."""

from __future__ import annotations

import typer

from dotagents.cli._entity import add_list_command, add_rm_command, add_show_command
from dotagents.core.memories import MemoryRepository
from dotagents.core.schema import AgentMemory

memory_app = typer.Typer(no_args_is_help=True)


def _row(memory: AgentMemory) -> dict:
    return {
        "id": memory.id,
        "title": memory.title[:60],
        "importance": memory.importance.value,
        "tags": ", ".join(memory.tags),
    }


add_list_command(memory_app, MemoryRepository, "memories", _row, ["id", "title", "importance", "tags"])
add_show_command(memory_app, MemoryRepository, "memory")
add_rm_command(memory_app, MemoryRepository, "memory")
