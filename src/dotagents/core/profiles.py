"""Agent profiles: ``agents/<id>/agent.md`` plus an optional ``config.json``.

``agent.md`` carries the flat fields in frontmatter and the system prompt as
its body. Nested settings that do not fit frontmatter (tool, model and skill
configuration, transport details beyond the connection type) go to
``config.json``, which only exists while it has something to hold.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from dotagents.core.frontmatter import build_frontmatter, parse_frontmatter
from dotagents.core.layer import AGENTS_AGENT_PROFILES_DIR
from dotagents.core.repository import (
    EntityOrigin,
    InvalidEntityError,
    LayerRepository,
    LoadedLayer,
    read_entity_text,
    stable_now_ms,
)
from dotagents.core.safe_file import safe_read_json, safe_write_file, safe_write_json
from dotagents.core.schema import (
    AgentProfile,
    AgentProfileConnection,
    AgentProfileConnectionType,
    AgentProfileRole,
)
from dotagents.utils.coerce import normalize_single_line, parse_bool, parse_number

logger = logging.getLogger(__name__)

PROFILE_CANONICAL_FILENAME = "agent.md"
PROFILE_CONFIG_FILENAME = "config.json"

_FLAG_FIELDS = {
    "isBuiltIn": "is_built_in",
    "isDefault": "is_default",
    "isStateful": "is_stateful",
    "autoSpawn": "auto_spawn",
}


def stringify_profile_markdown(profile: AgentProfile) -> str:
    frontmatter: dict[str, Any] = {
        "kind": "agent",
        "id": profile.id,
        "name": normalize_single_line(profile.name),
        "displayName": normalize_single_line(profile.display_name),
        "enabled": profile.enabled,
        "createdAt": profile.created_at,
        "updatedAt": profile.updated_at,
        "connection-type": profile.connection.type.value,
    }
    if profile.description:
        frontmatter["description"] = normalize_single_line(profile.description)
    if profile.guidelines:
        frontmatter["guidelines"] = normalize_single_line(profile.guidelines)
    if profile.role is not None:
        frontmatter["role"] = profile.role.value
    for key, attr in _FLAG_FIELDS.items():
        if getattr(profile, attr):
            frontmatter[key] = True
    return build_frontmatter(frontmatter, profile.system_prompt or "")


def profile_config_json(profile: AgentProfile) -> dict[str, Any]:
    """The nested part of a profile, as stored in config.json."""
    config: dict[str, Any] = {}
    if profile.tool_config:
        config["toolConfig"] = profile.tool_config
    if profile.profile_model_config:
        config["modelConfig"] = profile.profile_model_config
    if profile.skills_config:
        config["skillsConfig"] = profile.skills_config
    connection_extra = profile.connection.extra_fields()
    if connection_extra:
        config["connection"] = connection_extra
    return config


def _parse_profile(
    markdown: str,
    config: dict[str, Any] | None,
    fallback_id: str | None,
    file_path: Path | None,
) -> AgentProfile:
    fm, body = parse_frontmatter(markdown)
    config = config if isinstance(config, dict) else {}

    profile_id = fm.get("id", "").strip() or (fallback_id or "").strip() or fm.get("name", "").strip()
    if not profile_id:
        raise InvalidEntityError("no entity id")
    name = fm.get("name", "").strip() or profile_id

    created_at = parse_number(fm.get("createdAt"), None)
    if created_at is None:
        created_at = stable_now_ms(file_path)

    try:
        connection_type = AgentProfileConnectionType(fm.get("connection-type", "").strip())
    except ValueError:
        connection_type = AgentProfileConnectionType.internal
    try:
        role = AgentProfileRole(fm.get("role", "").strip())
    except ValueError:
        role = None

    connection_extra = config.get("connection")
    if not isinstance(connection_extra, dict):
        connection_extra = {}
    connection_extra = {k: v for k, v in connection_extra.items() if k != "type"}
    try:
        connection = AgentProfileConnection.model_validate(
            {**connection_extra, "type": connection_type}
        )
    except ValidationError as exc:
        raise InvalidEntityError(f"invalid connection in config.json: {_first_error(exc)}") from exc

    flags = {attr: parse_bool(fm.get(key), False) for key, attr in _FLAG_FIELDS.items()}

    return AgentProfile(
        id=profile_id,
        name=name,
        display_name=fm.get("displayName", "").strip() or name,
        description=fm.get("description", "").strip() or None,
        guidelines=fm.get("guidelines", "").strip() or None,
        system_prompt=body.strip() or None,
        connection=connection,
        role=role,
        enabled=parse_bool(fm.get("enabled"), True),
        created_at=created_at,
        updated_at=parse_number(fm.get("updatedAt"), created_at),
        tool_config=_dict_or_none(config.get("toolConfig")),
        profile_model_config=_dict_or_none(config.get("modelConfig")),
        skills_config=_dict_or_none(config.get("skillsConfig")),
        **flags,
    )


def _first_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def _dict_or_none(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def parse_profile_markdown(
    markdown: str,
    config: dict[str, Any] | None = None,
    fallback_id: str | None = None,
    file_path: Path | None = None,
) -> Optional[AgentProfile]:
    """Assemble a profile from agent.md text and the parsed config.json."""
    try:
        return _parse_profile(markdown, config, fallback_id, file_path)
    except InvalidEntityError:
        return None


class AgentProfileRepository(LayerRepository[AgentProfile]):
    collection = AGENTS_AGENT_PROFILES_DIR

    def dir_for(self, profile_id: str) -> Path:
        return self.directory / self._safe_component(profile_id)

    def id_to_path(self, profile_id: str) -> Path:
        return self.dir_for(profile_id) / PROFILE_CANONICAL_FILENAME

    def id_to_config_json_path(self, profile_id: str) -> Path:
        return self.dir_for(profile_id) / PROFILE_CONFIG_FILENAME

    def stringify(self, profile: AgentProfile) -> str:
        return stringify_profile_markdown(profile)

    def parse(
        self,
        markdown: str,
        config: dict[str, Any] | None = None,
        fallback_id: str | None = None,
        file_path: Path | None = None,
    ) -> Optional[AgentProfile]:
        return parse_profile_markdown(markdown, config, fallback_id=fallback_id, file_path=file_path)

    def _read_config_json(self, path: Path) -> dict[str, Any]:
        return safe_read_json(
            path, backup_dir=self.backup_dir, backup_root=self.directory, default={}
        )

    def load(self) -> LoadedLayer[AgentProfile]:
        loaded: LoadedLayer[AgentProfile] = LoadedLayer()
        if not self.directory.is_dir():
            return loaded

        for profile_dir in sorted(self.directory.iterdir(), key=lambda p: p.name):
            if profile_dir.name.startswith(".") or not profile_dir.is_dir():
                continue
            md_path = profile_dir / PROFILE_CANONICAL_FILENAME
            raw = read_entity_text(md_path, loaded)
            if raw is None:
                continue
            config_path = profile_dir / PROFILE_CONFIG_FILENAME
            config = self._read_config_json(config_path)
            try:
                profile = _parse_profile(raw, config, profile_dir.name, md_path)
            except InvalidEntityError as exc:
                loaded.fail(md_path, str(exc))
                continue
            origin = EntityOrigin(md_path, config_path if config_path.is_file() else None)
            loaded.offer(profile, origin, profile.updated_at)
        return loaded

    def write(self, profile: AgentProfile, *, max_backups: int | None = None) -> Path:
        """Write agent.md and keep config.json in step with the nested fields."""
        options = self._backup_options(max_backups)
        md_path = self.id_to_path(profile.id)
        safe_write_file(md_path, self.stringify(profile), **options)

        config_path = self.id_to_config_json_path(profile.id)
        config = profile_config_json(profile)
        if config:
            safe_write_json(config_path, config, pretty=True, **options)
        elif config_path.is_file():
            config_path.unlink()
            logger.debug("Removed empty %s", config_path)
        return md_path

    def write_all(
        self,
        profiles: list[AgentProfile],
        *,
        only_if_missing: bool = False,
        max_backups: int | None = None,
    ) -> list[Path]:
        written = []
        for profile in profiles:
            if only_if_missing and self.id_to_path(profile.id).exists():
                continue
            written.append(self.write(profile, max_backups=max_backups))
        return written

    def delete(self, profile_id: str) -> bool:
        profile_dir = self.dir_for(profile_id)
        if not profile_dir.is_dir():
            origin = self.load().origin_by_id.get(profile_id)
            if origin is None:
                return False
            profile_dir = origin.file_path.parent
        shutil.rmtree(profile_dir)
        return True
