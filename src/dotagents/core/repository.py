"""Shared machinery for the per-entity repositories.

A repository maps one kind of entity to files under a collection directory
of an .agents layer. Loading is best-effort: files that cannot be turned
into an entity are reported in ``LoadedLayer.failures`` rather than raised.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from dotagents.core.errors import StoreError
from dotagents.core.layer import AgentsLayerPaths
from dotagents.core.safe_file import DEFAULT_MAX_BACKUPS, read_text_if_exists
from dotagents.utils.paths import sanitize_file_component

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)


class InvalidEntityError(ValueError):
    """Raised by internal parsers when a document holds no usable entity."""


@dataclass(frozen=True)
class EntityOrigin:
    file_path: Path
    config_json_path: Optional[Path] = None


@dataclass(frozen=True)
class LoadFailure:
    path: Path
    reason: str


@dataclass
class LoadedLayer(Generic[EntityT]):
    entities: list[EntityT] = field(default_factory=list)
    origin_by_id: dict[str, EntityOrigin] = field(default_factory=dict)
    failures: list[LoadFailure] = field(default_factory=list)
    _ranks: dict[str, tuple[int, str]] = field(default_factory=dict, repr=False)

    def get(self, entity_id: str) -> EntityT | None:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def fail(self, path: Path, reason: str) -> None:
        logger.warning("Skipping %s: %s", path, reason)
        self.failures.append(LoadFailure(path, reason))

    def offer(self, entity: EntityT, origin: EntityOrigin, updated_at: int) -> bool:
        """Accept ``entity`` unless an already accepted duplicate is newer.

        The newest ``updated_at`` wins; ties go to the lexically smaller file
        path, so the outcome never depends on scan order. Returns True if the
        entity was accepted.
        """
        rank = (updated_at, str(origin.file_path))
        current = self._ranks.get(entity.id)
        if current is not None:
            newer = rank[0] > current[0] or (rank[0] == current[0] and rank[1] < current[1])
            if not newer:
                logger.debug("Duplicate %r in %s lost to %s", entity.id, rank[1], current[1])
                return False
            logger.debug("Duplicate %r in %s replaces %s", entity.id, rank[1], current[1])
            self.entities = [entity if e.id == entity.id else e for e in self.entities]
        else:
            self.entities.append(entity)
        self._ranks[entity.id] = rank
        self.origin_by_id[entity.id] = origin
        return True


def merge_loaded_layers(
    global_layer: LoadedLayer[EntityT], workspace_layer: LoadedLayer[EntityT] | None
) -> LoadedLayer[EntityT]:
    """Combine two layers by ID; workspace entities and origins win."""
    if workspace_layer is None:
        return global_layer
    merged: LoadedLayer[EntityT] = LoadedLayer()
    by_id: dict[str, EntityT] = {}
    for loaded in (global_layer, workspace_layer):
        for entity in loaded.entities:
            by_id[entity.id] = entity
            origin = loaded.origin_by_id.get(entity.id)
            if origin is not None:
                merged.origin_by_id[entity.id] = origin
        merged.failures.extend(loaded.failures)
    merged.entities = list(by_id.values())
    return merged


def read_entity_text(path: Path, loaded: LoadedLayer) -> str | None:
    """Read an entity file, recording unreadable files as load failures."""
    try:
        return read_text_if_exists(path)
    except UnicodeDecodeError:
        loaded.fail(path, "not valid UTF-8 text")
    except OSError as exc:
        loaded.fail(path, f"unreadable: {exc.strerror or exc}")
    return None


def file_mtime_ms(path: Path | None) -> int | None:
    """Whole-millisecond mtime of ``path``, or None if it cannot be read."""
    if path is None:
        return None
    try:
        return Path(path).stat().st_mtime_ns // 1_000_000
    except OSError:
        return None


def stable_now_ms(path: Path | None) -> int:
    """Default timestamp for a file lacking one: its mtime, else now."""
    mtime = file_mtime_ms(path)
    if mtime is not None:
        return mtime
    return time.time_ns() // 1_000_000


class LayerRepository(Generic[EntityT]):
    """Base class binding an entity collection to one layer."""

    collection: str = ""

    def __init__(self, layer: AgentsLayerPaths, max_backups: int = DEFAULT_MAX_BACKUPS) -> None:
        self.layer = layer
        self.max_backups = max_backups

    @property
    def directory(self) -> Path:
        return self.layer.collection_dir(self.collection)

    @property
    def backup_dir(self) -> Path:
        return self.layer.collection_backup_dir(self.collection)

    def _safe_component(self, entity_id: str) -> str:
        safe = sanitize_file_component(entity_id.strip())
        if not safe or safe in (".", ".."):
            raise StoreError(f"Invalid {self.collection} id: {entity_id!r}")
        return safe

    def _backup_options(self, max_backups: int | None) -> dict:
        return {
            "backup_dir": self.backup_dir,
            "backup_root": self.directory,
            "max_backups": self.max_backups if max_backups is None else max_backups,
        }

    def load(self) -> LoadedLayer[EntityT]:
        raise NotImplementedError

    @classmethod
    def load_merged(
        cls, global_layer: AgentsLayerPaths, workspace_layer: AgentsLayerPaths | None = None
    ) -> LoadedLayer[EntityT]:
        """Load both layers; workspace entities override global ones by ID."""
        loaded = cls(global_layer).load()
        if workspace_layer is None:
            return loaded
        return merge_loaded_layers(loaded, cls(workspace_layer).load())
