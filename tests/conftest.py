"""Shared fixtures: temporary .agents layers."""

from __future__ import annotations

from pathlib import Path

import pytest

from dotagents.core.layer import AgentsLayerPaths, get_agents_layer_paths


@pytest.fixture
def agents_dir(tmp_path: Path) -> Path:
    """An empty global .agents directory."""
    root = tmp_path / "global" / ".agents"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    """An empty workspace .agents directory inside a project."""
    root = tmp_path / "project" / ".agents"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def layer(agents_dir: Path) -> AgentsLayerPaths:
    return get_agents_layer_paths(agents_dir)


@pytest.fixture
def workspace_layer(workspace_dir: Path) -> AgentsLayerPaths:
    return get_agents_layer_paths(workspace_dir)


@pytest.fixture
def clean_config(monkeypatch, tmp_path):
    """Redirect the tool config dir and clear the global dir override."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr("dotagents.utils.config.global_config_dir", lambda: config_dir)
    monkeypatch.delenv("DOTAGENTS_GLOBAL_DIR", raising=False)
    return config_dir
