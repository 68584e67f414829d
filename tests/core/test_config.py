"""Tests for tool configuration resolution."""

from pathlib import Path

from dotagents.core.safe_file import DEFAULT_MAX_BACKUPS
from dotagents.utils.config import (
    load_global_config,
    resolve_global_agents_dir,
    resolve_max_backups,
    save_global_config,
)


def test_missing_config_is_empty(clean_config):
    assert load_global_config() == {}


def test_save_and_load(clean_config):
    save_global_config({"max_backups": 4})
    assert load_global_config() == {"max_backups": 4}


def test_unreadable_config_ignored(clean_config):
    clean_config.mkdir()
    (clean_config / "config.json").write_text("{nope")
    assert load_global_config() == {}


class TestGlobalDir:
    def test_explicit_wins(self, clean_config, monkeypatch, tmp_path):
        monkeypatch.setenv("DOTAGENTS_GLOBAL_DIR", str(tmp_path / "env"))
        assert resolve_global_agents_dir(tmp_path / "cli") == tmp_path / "cli"

    def test_env_over_config(self, clean_config, monkeypatch, tmp_path):
        save_global_config({"global_agents_dir": str(tmp_path / "cfg")})
        monkeypatch.setenv("DOTAGENTS_GLOBAL_DIR", str(tmp_path / "env"))
        assert resolve_global_agents_dir() == tmp_path / "env"

    def test_config_over_default(self, clean_config, tmp_path):
        save_global_config({"global_agents_dir": str(tmp_path / "cfg")})
        assert resolve_global_agents_dir() == tmp_path / "cfg"

    def test_default_home(self, clean_config):
        assert resolve_global_agents_dir() == Path.home() / ".agents"


class TestMaxBackups:
    def test_default(self, clean_config):
        assert resolve_max_backups() == DEFAULT_MAX_BACKUPS

    def test_configured(self, clean_config):
        save_global_config({"max_backups": 2})
        assert resolve_max_backups() == 2

    def test_invalid_ignored(self, clean_config):
        save_global_config({"max_backups": -1})
        assert resolve_max_backups() == DEFAULT_MAX_BACKUPS
        save_global_config({"max_backups": True})
        assert resolve_max_backups() == DEFAULT_MAX_BACKUPS
