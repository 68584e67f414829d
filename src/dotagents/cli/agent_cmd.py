"""Agent profile subcommands: list, show, rm."""

from __future__ import annotations

import typer

from dotagents.cli._entity import add_list_command, add_rm_command, add_show_command
from dotagents.core.profiles import AgentProfileRepository
from dotagents.core.schema import AgentProfile

agent_app = typer.Typer(no_args_is_help=True)


def _row(profile: AgentProfile) -> dict:
    return {
        "id": profile.id,
        "display_name": profile.display_name,
        "connection": profile.connection.type.value,
        "role": profile.role.value if profile.role else "",
        "enabled": profile.enabled,
    }


add_list_command(
    agent_app,
    AgentProfileRepository,
    "agent profiles",
    _row,
    ["id", "display_name", "connection", "role", "enabled"],
)
add_show_command(agent_app, AgentProfileRepository, "agent profile")
add_rm_command(agent_app, AgentProfileRepository, "agent profile")
