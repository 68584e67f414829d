"""Memories: one markdown file per memory under ``memories/``.

Everything but the user's free-form notes lives in single-line frontmatter
fields; the notes are the document body.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotagents.core.frontmatter import build_frontmatter, parse_frontmatter
from dotagents.core.layer import AGENTS_MEMORIES_DIR
from dotagents.core.repository import (
    EntityOrigin,
    InvalidEntityError,
    LayerRepository,
    LoadedLayer,
    read_entity_text,
    stable_now_ms,
)
from dotagents.core.safe_file import safe_write_file
from dotagents.core.schema import AgentMemory, MemoryImportance
from dotagents.utils.coerce import format_list, normalize_single_line, parse_list, parse_number

TITLE_FALLBACK_LENGTH = 80


def stringify_memory_markdown(memory: AgentMemory) -> str:
    frontmatter = {
        "kind": "memory",
        "id": memory.id,
        "createdAt": memory.created_at,
        "updatedAt": memory.updated_at,
        "title": normalize_single_line(memory.title),
        "content": normalize_single_line(memory.content),
        "importance": memory.importance.value,
    }
    optional = {
        "profileId": memory.profile_id,
        "sessionId": memory.session_id,
        "conversationId": memory.conversation_id,
        "conversationTitle": normalize_single_line(memory.conversation_title),
        "tags": format_list(memory.tags),
        "keyFindings": format_list(memory.key_findings),
    }
    frontmatter.update({key: value for key, value in optional.items() if value})
    return build_frontmatter(frontmatter, (memory.user_notes or "").strip())


def _parse_memory(
    markdown: str, fallback_id: str | None, file_path: Path | None
) -> AgentMemory:
    fm, body = parse_frontmatter(markdown)

    memory_id = (
        fm.get("id", "").strip() or (fallback_id or "").strip() or fm.get("name", "").strip()
    )
    if not memory_id:
        raise InvalidEntityError("no entity id")
    content = normalize_single_line(fm.get("content"))
    if not content:
        raise InvalidEntityError("missing content")

    created_at = parse_number(fm.get("createdAt"), None)
    if created_at is None:
        created_at = stable_now_ms(file_path)
    updated_at = parse_number(fm.get("updatedAt"), created_at)

    importance_raw = fm.get("importance", "").strip()
    try:
        importance = MemoryImportance(importance_raw)
    except ValueError:
        importance = MemoryImportance.medium

    title = normalize_single_line(fm.get("title")) or content[:TITLE_FALLBACK_LENGTH]

    return AgentMemory(
        id=memory_id,
        created_at=created_at,
        updated_at=updated_at,
        title=title,
        content=content,
        tags=parse_list(fm.get("tags")),
        key_findings=parse_list(fm.get("keyFindings")),
        importance=importance,
        profile_id=fm.get("profileId", "").strip() or None,
        session_id=fm.get("sessionId", "").strip() or None,
        conversation_id=fm.get("conversationId", "").strip() or None,
        conversation_title=fm.get("conversationTitle", "").strip() or None,
        user_notes=body.strip() or None,
    )


def parse_memory_markdown(
    markdown: str, fallback_id: str | None = None, file_path: Path | None = None
) -> Optional[AgentMemory]:
    """Parse a memory document. Returns None when it holds no usable memory."""
    try:
        return _parse_memory(markdown, fallback_id, file_path)
    except InvalidEntityError:
        return None


class MemoryRepository(LayerRepository[AgentMemory]):
    collection = AGENTS_MEMORIES_DIR

    def id_to_path(self, memory_id: str) -> Path:
        return self.directory / f"{self._safe_component(memory_id)}.md"

    def stringify(self, memory: AgentMemory) -> str:
        return stringify_memory_markdown(memory)

    def parse(
        self, markdown: str, fallback_id: str | None = None, file_path: Path | None = None
    ) -> Optional[AgentMemory]:
        return parse_memory_markdown(markdown, fallback_id=fallback_id, file_path=file_path)

    def load(self) -> LoadedLayer[AgentMemory]:
        loaded: LoadedLayer[AgentMemory] = LoadedLayer()
        if not self.directory.is_dir():
            return loaded

        for path in sorted(self.directory.iterdir(), key=lambda p: p.name):
            if path.name.startswith(".") or path.suffix.lower() != ".md" or not path.is_file():
                continue
            raw = read_entity_text(path, loaded)
            if raw is None:
                continue
            try:
                memory = _parse_memory(raw, path.stem, path)
            except InvalidEntityError as exc:
                loaded.fail(path, str(exc))
                continue
            loaded.offer(memory, EntityOrigin(path), memory.updated_at)
        return loaded

    def write(
        self,
        memory: AgentMemory,
        *,
        file_path_override: Path | None = None,
        max_backups: int | None = None,
    ) -> Path:
        """Write one memory file, backing up the previous version."""
        path = Path(file_path_override) if file_path_override else self.id_to_path(memory.id)
        safe_write_file(path, self.stringify(memory), **self._backup_options(max_backups))
        return path

    def delete(self, memory_id: str) -> bool:
        """Remove a memory's file. Falls back to wherever it was loaded from."""
        path = self.id_to_path(memory_id)
        if not path.is_file():
            origin = self.load().origin_by_id.get(memory_id)
            if origin is None:
                return False
            path = origin.file_path
        path.unlink()
        return True
