"""Tests for skill markdown, filePath portability and SkillRepository."""

from __future__ import annotations

import os

from dotagents.core.safe_file import list_backups
from dotagents.core.schema import AgentSkill, SkillSource
from dotagents.core.skills import (
    SkillRepository,
    parse_skill_markdown,
    portable_skill_file_path,
    resolve_skill_file_path,
    stringify_skill_markdown,
)


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


class TestFilePath:
    def test_resolve_relative(self, tmp_path):
        origin = tmp_path / "skills" / "deploy" / "skill.md"
        resolved = resolve_skill_file_path("scripts/run.sh", origin)
        assert resolved == str(tmp_path / "skills" / "deploy" / "scripts" / "run.sh")

    def test_resolve_external_and_absolute_unchanged(self, tmp_path):
        origin = tmp_path / "skill.md"
        assert resolve_skill_file_path("github:owner/repo", origin) == "github:owner/repo"
        assert resolve_skill_file_path("https://x.test/s.md", origin) == "https://x.test/s.md"
        absolute = str(tmp_path / "elsewhere.sh")
        assert resolve_skill_file_path(absolute, origin) == absolute

    def test_resolve_empty(self, tmp_path):
        assert resolve_skill_file_path("  ", tmp_path / "skill.md") is None
        assert resolve_skill_file_path(None, None) is None

    def test_portable_inverts_resolve(self, tmp_path):
        origin = tmp_path / "skills" / "deploy" / "skill.md"
        resolved = resolve_skill_file_path("scripts/run.sh", origin)
        assert portable_skill_file_path(resolved, origin) == "scripts/run.sh"

    def test_portable_parent_directory(self, tmp_path):
        origin = tmp_path / "skills" / "deploy" / "skill.md"
        target = str(tmp_path / "shared" / "tool.py")
        assert portable_skill_file_path(target, origin) == "../../shared/tool.py"

    def test_portable_omits_self_reference(self, tmp_path):
        origin = tmp_path / "skills" / "deploy" / "skill.md"
        assert portable_skill_file_path(str(origin), origin) is None

    def test_portable_external(self, tmp_path):
        assert portable_skill_file_path("github:a/b", tmp_path / "skill.md") == "github:a/b"

    def test_portable_without_origin(self):
        assert portable_skill_file_path("/abs/run.sh", None) == "/abs/run.sh"


class TestMarkdown:
    def test_roundtrip(self, tmp_path):
        origin = tmp_path / "skills" / "deploy" / "skill.md"
        skill = AgentSkill(
            id="deploy",
            name="Deploy",
            description="Ship it",
            instructions="1. Build\n2. Push",
            enabled=False,
            created_at=10,
            updated_at=20,
            source=SkillSource.imported,
            file_path=str(tmp_path / "skills" / "deploy" / "run.sh"),
        )
        text = stringify_skill_markdown(skill, origin)
        assert "filePath: run.sh\n" in text
        assert "enabled: false\n" in text
        assert parse_skill_markdown(text, file_path=origin) == skill

    def test_file_path_defaults_to_skill_file(self, tmp_path):
        origin = tmp_path / "skill.md"
        parsed = parse_skill_markdown("---\nid: s\n---\nDo it", file_path=origin)
        assert parsed.file_path == str(origin)
        assert "filePath" not in stringify_skill_markdown(parsed, origin)

    def test_name_defaults_to_id(self):
        parsed = parse_skill_markdown("---\nid: s\n---\n")
        assert parsed.name == "s"
        assert parsed.enabled is True
        assert parsed.source is None

    def test_no_frontmatter_uses_fallback(self):
        parsed = parse_skill_markdown("Just instructions.", fallback_id="plain")
        assert parsed.id == "plain"
        assert parsed.instructions == "Just instructions."

    def test_no_id(self):
        assert parse_skill_markdown("no frontmatter") is None


class TestRepository:
    def test_write_layout(self, layer):
        repo = SkillRepository(layer)
        path = repo.write(AgentSkill(id="review:code", name="Review"))
        assert path == layer.agents_dir / "skills" / "review_code" / "skill.md"

    def test_load_nested_fallback_ids(self, layer):
        skills = layer.agents_dir / "skills"
        _write(skills / "top" / "skill.md", "---\nname: Top\n---\nA")
        _write(skills / "group" / "nested" / "SKILL.md", "---\nname: Nested\n---\nB")
        _write(skills / "group" / "notes.md", "ignored")

        loaded = SkillRepository(layer).load()
        assert sorted(s.id for s in loaded.entities) == ["group/nested", "top"]

    def test_root_skill_file_without_id_fails(self, layer):
        _write(layer.agents_dir / "skills" / "skill.md", "no frontmatter")
        loaded = SkillRepository(layer).load()
        assert loaded.entities == []
        assert loaded.failures[0].reason == "no entity id"

    def test_relative_file_path_resolves_under_skill_dir(self, layer):
        skills = layer.agents_dir / "skills"
        _write(skills / "deploy" / "skill.md", "---\nid: deploy\nfilePath: scripts/run.sh\n---\n")

        repo = SkillRepository(layer)
        skill = repo.load().get("deploy")
        assert skill.file_path == os.path.normpath(
            os.path.abspath(skills / "deploy" / "scripts" / "run.sh")
        )

        repo.write(skill)
        assert "filePath: scripts/run.sh\n" in (skills / "deploy" / "skill.md").read_text()

    def test_mtime_default_for_timestamps(self, layer):
        path = layer.agents_dir / "skills" / "s" / "skill.md"
        _write(path, "---\nid: s\n---\n")
        skill = SkillRepository(layer).load().get("s")
        assert skill.created_at == path.stat().st_mtime_ns // 1_000_000

    def test_depth_limit_recorded(self, layer):
        _write(layer.agents_dir / "skills" / "a" / "b" / "c" / "skill.md", "---\nid: deep\n---\n")
        loaded = SkillRepository(layer).load(max_depth=2)
        assert loaded.entities == []
        assert loaded.failures[0].path == layer.agents_dir / "skills" / "a" / "b" / "c"
        assert "depth limit" in loaded.failures[0].reason

    def test_duplicates_resolved_by_updated_at(self, layer):
        skills = layer.agents_dir / "skills"
        _write(skills / "one" / "skill.md", "---\nid: same\nupdatedAt: 100\n---\nold")
        _write(skills / "two" / "skill.md", "---\nid: same\nupdatedAt: 200\n---\nnew")

        loaded = SkillRepository(layer).load()
        assert loaded.get("same").instructions == "new"
        assert loaded.origin_by_id["same"].file_path == skills / "two" / "skill.md"

    def test_backups_mirror_skill_folder(self, layer):
        repo = SkillRepository(layer)
        skill = AgentSkill(id="s", name="S", instructions="v1")
        path = repo.write(skill)
        repo.write(skill.model_copy(update={"instructions": "v2"}))

        backups = list_backups(path, backup_dir=repo.backup_dir, backup_root=repo.directory)
        assert len(backups) == 1
        assert backups[0].parent == layer.agents_dir / ".backups" / "skills" / "s"

    def test_delete_keeps_companion_files(self, layer):
        repo = SkillRepository(layer)
        path = repo.write(AgentSkill(id="s", name="S"))
        (path.parent / "run.sh").write_text("echo")

        assert repo.delete("s") is True
        assert not path.exists()
        assert (path.parent / "run.sh").exists()

    def test_delete_removes_empty_folder(self, layer):
        repo = SkillRepository(layer)
        path = repo.write(AgentSkill(id="s", name="S"))
        assert repo.delete("s") is True
        assert not path.parent.exists()
        assert repo.delete("s") is False
