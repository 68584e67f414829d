"""Tests for bucket classification, layer loading and layered merging."""

from __future__ import annotations

import json

import pytest

from dotagents.core.frontmatter import parse_frontmatter
from dotagents.core.modular_config import (
    AGENTS_GUIDELINES_KEY,
    SYSTEM_PROMPT_KEY,
    ConfigBucket,
    classify_config_key,
    layer_has_any_agents_config,
    load_agents_layer_config,
    load_merged_agents_config,
    normalize_prompt_for_config,
    split_config_into_agents_files,
    write_agents_layer_from_config,
)
from dotagents.core.safe_file import list_backups

DEFAULT_PROMPT = "You are a helpful assistant."


@pytest.mark.parametrize(
    "key,bucket",
    [
        (SYSTEM_PROMPT_KEY, ConfigBucket.prompts),
        (AGENTS_GUIDELINES_KEY, ConfigBucket.prompts),
        ("themePreference", ConfigBucket.layout),
        ("panelCustomSize", ConfigBucket.layout),
        ("mcpConfig", ConfigBucket.mcp),
        ("mcpMaxIterations", ConfigBucket.mcp),
        ("modelPresets", ConfigBucket.models),
        ("currentModelPresetId", ConfigBucket.models),
        ("anthropicApiKey", ConfigBucket.models),
        ("ollamaBaseUrl", ConfigBucket.models),
        ("openaiModel", ConfigBucket.models),
        ("sttProviderId", ConfigBucket.models),
        ("launchAtLogin", ConfigBucket.settings),
        ("somethingNew", ConfigBucket.settings),
    ],
)
def test_classify_config_key(key, bucket):
    assert classify_config_key(key) is bucket


def test_split_config():
    split = split_config_into_agents_files(
        {
            "launchAtLogin": True,
            "mcpConfig": {"servers": []},
            "groqApiKey": "k",
            "themePreference": "dark",
            SYSTEM_PROMPT_KEY: "Custom",
            AGENTS_GUIDELINES_KEY: None,
        }
    )
    assert split.settings == {"launchAtLogin": True}
    assert split.mcp == {"mcpConfig": {"servers": []}}
    assert split.models == {"groqApiKey": "k"}
    assert split.layout == {"themePreference": "dark"}
    assert split.system_prompt == "Custom"
    assert split.agents_guidelines == ""


class TestNormalizePrompt:
    def test_default_maps_to_empty(self):
        assert normalize_prompt_for_config(f"  {DEFAULT_PROMPT}\n", DEFAULT_PROMPT) == ""

    def test_blank_maps_to_empty(self):
        assert normalize_prompt_for_config("   ", DEFAULT_PROMPT) == ""

    def test_custom_kept(self):
        assert normalize_prompt_for_config("Be terse.", DEFAULT_PROMPT) == "Be terse."


class TestWriteLayer:
    def test_writes_every_file(self, layer):
        written = write_agents_layer_from_config(
            layer,
            {"launchAtLogin": True, "mcpConfig": {}, AGENTS_GUIDELINES_KEY: "Use tests."},
            DEFAULT_PROMPT,
        )
        assert set(written) == {*layer.bucket_json_paths, *layer.prompt_md_paths}
        assert json.loads(layer.settings_json_path.read_text()) == {"launchAtLogin": True}
        assert json.loads(layer.models_json_path.read_text()) == {}

        meta, body = parse_frontmatter(layer.system_prompt_md_path.read_text())
        assert meta == {"kind": "system-prompt"}
        assert body == DEFAULT_PROMPT
        meta, body = parse_frontmatter(layer.agents_md_path.read_text())
        assert meta == {"kind": "agents"}
        assert body == "Use tests."

    def test_only_if_missing(self, layer):
        layer.settings_json_path.write_text('{"keep": 1}')
        written = write_agents_layer_from_config(
            layer, {"launchAtLogin": False}, DEFAULT_PROMPT, only_if_missing=True
        )
        assert layer.settings_json_path not in written
        assert json.loads(layer.settings_json_path.read_text()) == {"keep": 1}

    def test_rewrite_creates_backups_under_layer(self, layer):
        write_agents_layer_from_config(layer, {"a": 1}, DEFAULT_PROMPT)
        write_agents_layer_from_config(layer, {"a": 2}, DEFAULT_PROMPT)

        layout_backups = list_backups(
            layer.layout_json_path, backup_dir=layer.backups_dir, backup_root=layer.agents_dir
        )
        assert len(layout_backups) == 1
        assert layout_backups[0].parent == layer.backups_dir / "layouts"


class TestLoadLayer:
    def test_roundtrip_through_buckets(self, layer):
        config = {
            "launchAtLogin": True,
            "mcpMaxIterations": 10,
            "openaiApiKey": "sk",
            "panelPosition": "top",
            SYSTEM_PROMPT_KEY: "Custom prompt",
            AGENTS_GUIDELINES_KEY: "Guidelines",
        }
        write_agents_layer_from_config(layer, config, DEFAULT_PROMPT)
        assert load_agents_layer_config(layer, DEFAULT_PROMPT) == config

    def test_default_prompt_loads_as_empty(self, layer):
        write_agents_layer_from_config(layer, {}, DEFAULT_PROMPT)
        loaded = load_agents_layer_config(layer, DEFAULT_PROMPT)
        assert loaded[SYSTEM_PROMPT_KEY] == ""

    def test_missing_prompt_files_leave_keys_absent(self, layer):
        layer.settings_json_path.write_text('{"x": 1}')
        assert load_agents_layer_config(layer, DEFAULT_PROMPT) == {"x": 1}

    def test_non_object_bucket_ignored(self, layer):
        layer.mcp_json_path.write_text("[1, 2]")
        layer.settings_json_path.write_text('{"x": 1}')
        assert load_agents_layer_config(layer, DEFAULT_PROMPT) == {"x": 1}

    def test_corrupt_bucket_recovered(self, layer):
        write_agents_layer_from_config(layer, {"x": 1}, DEFAULT_PROMPT)
        write_agents_layer_from_config(layer, {"x": 2}, DEFAULT_PROMPT)
        layer.settings_json_path.write_text("{truncated")

        assert load_agents_layer_config(layer, DEFAULT_PROMPT)["x"] == 1
        assert json.loads(layer.settings_json_path.read_text()) == {"x": 1}


class TestMerge:
    def test_workspace_overrides_global(self, layer, workspace_layer):
        layer.settings_json_path.write_text('{"launchAtLogin": false, "onlyGlobal": 1}')
        workspace_layer.settings_json_path.write_text('{"launchAtLogin": true}')

        merged = load_merged_agents_config(
            layer.agents_dir, workspace_layer.agents_dir, DEFAULT_PROMPT
        )
        assert merged.merged == {"launchAtLogin": True, "onlyGlobal": 1}
        assert merged.has_any_agents_files is True
        assert merged.provenance == {"launchAtLogin": "workspace", "onlyGlobal": "global"}

    def test_no_files_anywhere(self, layer, workspace_layer):
        merged = load_merged_agents_config(
            layer.agents_dir, workspace_layer.agents_dir, DEFAULT_PROMPT
        )
        assert merged.merged == {}
        assert merged.has_any_agents_files is False

    def test_without_workspace(self, layer):
        layer.mcp_json_path.write_text('{"mcpConfig": {}}')
        merged = load_merged_agents_config(layer.agents_dir, None, DEFAULT_PROMPT)
        assert merged.merged == {"mcpConfig": {}}
        assert merged.provenance == {"mcpConfig": "global"}

    def test_layer_has_any_agents_config(self, layer):
        assert layer_has_any_agents_config(layer) is False
        layer.agents_md_path.write_text("guidelines")
        assert layer_has_any_agents_config(layer) is True


def test_split_coerces_non_string_prompts():
    split = split_config_into_agents_files({SYSTEM_PROMPT_KEY: 42, AGENTS_GUIDELINES_KEY: None})
    assert split.system_prompt == "42"
    assert split.agents_guidelines == ""


def test_write_layer_with_numeric_prompt(layer):
    write_agents_layer_from_config(layer, {AGENTS_GUIDELINES_KEY: 7}, DEFAULT_PROMPT)
    _, body = parse_frontmatter(layer.agents_md_path.read_text())
    assert body == "7"


def test_directory_in_place_of_bucket_is_not_config(layer):
    layer.layout_json_path.mkdir(parents=True)
    assert layer_has_any_agents_config(layer) is False
    assert load_agents_layer_config(layer, DEFAULT_PROMPT) == {}
