"""Skills: ``skill.md`` / ``SKILL.md`` files anywhere under ``skills/``.

Skills are addressed by directory: a skill without an explicit ``id`` takes
the POSIX path of its folder relative to the skills root, e.g.
``group/nested``. A skill may point at a different file to execute through
its ``filePath`` field, stored relative to the skill file so the layer can
be moved or shared.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotagents.core.frontmatter import build_frontmatter, parse_frontmatter
from dotagents.core.layer import AGENTS_SKILLS_DIR
from dotagents.core.repository import (
    EntityOrigin,
    InvalidEntityError,
    LayerRepository,
    LoadedLayer,
    read_entity_text,
    stable_now_ms,
)
from dotagents.core.safe_file import safe_write_file
from dotagents.core.schema import AgentSkill, SkillSource
from dotagents.core.traversal import DepthExceeded, FileEntry, walk_bounded
from dotagents.utils.coerce import normalize_single_line, parse_bool, parse_number
from dotagents.utils.paths import to_posix

logger = logging.getLogger(__name__)

SKILL_CANONICAL_FILENAME = "skill.md"
SKILL_FILENAMES = frozenset({"skill.md", "SKILL.md"})
DEFAULT_MAX_SKILL_DEPTH = 8

# Values with these prefixes are opaque references, never filesystem paths.
EXTERNAL_REFERENCE_PREFIXES = ("github:", "http://", "https://")


def _is_external_reference(value: str) -> bool:
    return value.startswith(EXTERNAL_REFERENCE_PREFIXES)


def resolve_skill_file_path(raw: str | None, origin_file_path: Path | str | None) -> str | None:
    """Turn a stored ``filePath`` into the path the runtime should execute."""
    value = (raw or "").strip()
    if not value:
        return None
    if _is_external_reference(value) or os.path.isabs(value):
        return value
    if origin_file_path is None:
        return value
    return os.path.normpath(os.path.join(os.path.dirname(os.path.abspath(origin_file_path)), value))


def portable_skill_file_path(
    execution_path: str | None, origin_file_path: Path | str | None
) -> str | None:
    """Inverse of ``resolve_skill_file_path`` for writing frontmatter.

    Returns None when the field should be omitted because it names the
    skill file itself.
    """
    value = (execution_path or "").strip()
    if not value:
        return None
    if _is_external_reference(value) or origin_file_path is None:
        return value

    origin = os.path.normpath(os.path.abspath(origin_file_path))
    origin_dir = os.path.dirname(origin)
    if os.path.isabs(value):
        target = os.path.normpath(value)
    else:
        target = os.path.normpath(os.path.join(origin_dir, value))
    if target == origin:
        return None

    if os.path.splitdrive(origin_dir)[0].lower() != os.path.splitdrive(target)[0].lower():
        return target
    try:
        relative = os.path.relpath(target, origin_dir)
    except ValueError:
        return target
    return to_posix(relative)


def stringify_skill_markdown(skill: AgentSkill, origin_file_path: Path | str | None = None) -> str:
    frontmatter = {
        "kind": "skill",
        "id": skill.id,
        "name": normalize_single_line(skill.name),
        "description": normalize_single_line(skill.description),
        "enabled": skill.enabled,
        "createdAt": skill.created_at,
        "updatedAt": skill.updated_at,
    }
    if skill.source is not None:
        frontmatter["source"] = skill.source.value
    file_path = portable_skill_file_path(skill.file_path, origin_file_path)
    if file_path:
        frontmatter["filePath"] = file_path
    return build_frontmatter(frontmatter, skill.instructions)


def _parse_skill(markdown: str, fallback_id: str | None, file_path: Path | None) -> AgentSkill:
    fm, body = parse_frontmatter(markdown)

    skill_id = fm.get("id", "").strip() or (fallback_id or "").strip() or fm.get("name", "").strip()
    if not skill_id:
        raise InvalidEntityError("no entity id")

    created_at = parse_number(fm.get("createdAt"), None)
    if created_at is None:
        created_at = stable_now_ms(file_path)

    try:
        source = SkillSource(fm.get("source", "").strip())
    except ValueError:
        source = None

    execution_path = resolve_skill_file_path(fm.get("filePath"), file_path)
    if execution_path is None and file_path is not None:
        execution_path = str(file_path)

    return AgentSkill(
        id=skill_id,
        name=fm.get("name", "").strip() or skill_id,
        description=fm.get("description", "").strip(),
        instructions=body.strip(),
        enabled=parse_bool(fm.get("enabled"), True),
        created_at=created_at,
        updated_at=parse_number(fm.get("updatedAt"), created_at),
        source=source,
        file_path=execution_path,
    )


def parse_skill_markdown(
    markdown: str, fallback_id: str | None = None, file_path: Path | None = None
) -> Optional[AgentSkill]:
    """Parse a skill document. Returns None when no id can be derived."""
    try:
        return _parse_skill(markdown, fallback_id, file_path)
    except InvalidEntityError:
        return None


class SkillRepository(LayerRepository[AgentSkill]):
    collection = AGENTS_SKILLS_DIR

    def dir_for(self, skill_id: str) -> Path:
        return self.directory / self._safe_component(skill_id)

    def id_to_path(self, skill_id: str) -> Path:
        return self.dir_for(skill_id) / SKILL_CANONICAL_FILENAME

    def stringify(self, skill: AgentSkill, origin_file_path: Path | None = None) -> str:
        return stringify_skill_markdown(skill, origin_file_path)

    def parse(
        self, markdown: str, fallback_id: str | None = None, file_path: Path | None = None
    ) -> Optional[AgentSkill]:
        return parse_skill_markdown(markdown, fallback_id=fallback_id, file_path=file_path)

    def load(self, max_depth: int = DEFAULT_MAX_SKILL_DEPTH) -> LoadedLayer[AgentSkill]:
        loaded: LoadedLayer[AgentSkill] = LoadedLayer()
        for outcome in walk_bounded(self.directory, max_depth):
            if isinstance(outcome, DepthExceeded):
                loaded.fail(outcome.path, f"depth limit {max_depth} exceeded")
                continue
            if not isinstance(outcome, FileEntry) or outcome.path.name not in SKILL_FILENAMES:
                continue

            path = outcome.path
            raw = read_entity_text(path, loaded)
            if raw is None:
                continue
            relative_dir = to_posix(os.path.relpath(path.parent, self.directory))
            fallback_id = "" if relative_dir == "." else relative_dir
            try:
                skill = _parse_skill(raw, fallback_id, path)
            except InvalidEntityError as exc:
                loaded.fail(path, str(exc))
                continue
            loaded.offer(skill, EntityOrigin(path), skill.updated_at)
        return loaded

    def write(
        self,
        skill: AgentSkill,
        *,
        file_path_override: Path | None = None,
        max_backups: int | None = None,
    ) -> Path:
        path = Path(file_path_override) if file_path_override else self.id_to_path(skill.id)
        markdown = self.stringify(skill, origin_file_path=path)
        safe_write_file(path, markdown, **self._backup_options(max_backups))
        return path

    def delete(self, skill_id: str) -> bool:
        """Remove a skill's markdown file, and its folder once it is empty.

        Companion files (scripts, nested skills) are left in place.
        """
        path = self.id_to_path(skill_id)
        if not path.is_file():
            origin = self.load().origin_by_id.get(skill_id)
            if origin is None:
                return False
            path = origin.file_path
        path.unlink()
        folder = path.parent
        if folder != self.directory and not any(folder.iterdir()):
            folder.rmdir()
            logger.debug("Removed empty skill folder %s", folder)
        return True
