"""Skill subcommands: list, show, rm."""

from __future__ import annotations

import typer

from dotagents.cli._entity import add_list_command, add_rm_command, add_show_command
from dotagents.core.schema import AgentSkill
from dotagents.core.skills import SkillRepository

skill_app = typer.Typer(no_args_is_help=True)


def _row(skill: AgentSkill) -> dict:
    desc = skill.description
    return {
        "id": skill.id,
        "name": skill.name,
        "enabled": skill.enabled,
        "description": desc[:60] + "..." if len(desc) > 60 else desc,
    }


add_list_command(skill_app, SkillRepository, "skills", _row, ["id", "name", "enabled", "description"])
add_show_command(skill_app, SkillRepository, "skill")
add_rm_command(skill_app, SkillRepository, "skill")
