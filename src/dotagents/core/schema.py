"""Pydantic v2 models for every artifact stored in an .agents layer.

Attributes are snake_case; ``model_dump(by_alias=True)`` yields the
camelCase keys used on disk and by external callers.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class _AgentsModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Memories --


class MemoryImportance(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class AgentMemory(_AgentsModel):
    id: str
    title: str
    content: str
    created_at: int = Field(default_factory=_now_ms)
    updated_at: int = Field(default_factory=_now_ms)
    tags: list[str] = Field(default_factory=list)
    key_findings: list[str] = Field(default_factory=list)
    importance: MemoryImportance = MemoryImportance.medium
    profile_id: Optional[str] = None
    session_id: Optional[str] = None
    conversation_id: Optional[str] = None
    conversation_title: Optional[str] = None
    user_notes: Optional[str] = None


# -- Skills --


class SkillSource(str, Enum):
    local = "local"
    imported = "imported"


class AgentSkill(_AgentsModel):
    id: str
    name: str
    description: str = ""
    instructions: str = ""
    enabled: bool = True
    created_at: int = Field(default_factory=_now_ms)
    updated_at: int = Field(default_factory=_now_ms)
    source: Optional[SkillSource] = None
    # Path (or external reference such as ``github:owner/repo``) of what
    # actually runs; defaults to the skill's own markdown file.
    file_path: Optional[str] = None


# -- Tasks --


class LoopTask(_AgentsModel):
    """A prompt the agent runtime re-runs every ``interval_minutes``."""

    id: str
    name: str
    prompt: str = ""
    interval_minutes: int = Field(default=60, ge=1)
    enabled: bool = True
    profile_id: Optional[str] = None
    run_on_startup: Optional[bool] = None
    last_run_at: Optional[int] = None


# -- Agent profiles --


class AgentProfileConnectionType(str, Enum):
    internal = "internal"
    acp = "acp"
    stdio = "stdio"
    remote = "remote"


class AgentProfileRole(str, Enum):
    user_profile = "user-profile"
    delegation_target = "delegation-target"
    external_agent = "external-agent"


class AgentProfileConnection(_AgentsModel):
    """Transport settings; fields beyond ``type`` live in config.json."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: AgentProfileConnectionType = AgentProfileConnectionType.internal
    command: Optional[str] = None
    args: Optional[list[str]] = None
    env: Optional[dict[str, str]] = None
    cwd: Optional[str] = None
    base_url: Optional[str] = None

    def extra_fields(self) -> dict[str, Any]:
        """Everything except ``type``, camelCased, without unset values."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        data.pop("type", None)
        return data


class AgentProfile(_AgentsModel):
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    guidelines: Optional[str] = None
    system_prompt: Optional[str] = None
    connection: AgentProfileConnection = Field(default_factory=AgentProfileConnection)
    role: Optional[AgentProfileRole] = None
    enabled: bool = True
    is_built_in: bool = False
    is_default: bool = False
    is_stateful: bool = False
    auto_spawn: bool = False
    created_at: int = Field(default_factory=_now_ms)
    updated_at: int = Field(default_factory=_now_ms)
    tool_config: Optional[dict[str, Any]] = None
    profile_model_config: Optional[dict[str, Any]] = Field(default=None, alias="modelConfig")
    skills_config: Optional[dict[str, Any]] = None

    @property
    def is_agent_target(self) -> bool:
        return self.role in (AgentProfileRole.delegation_target, AgentProfileRole.external_agent)
