"""Tests for layered configuration."""

import json
import logging
from pathlib import Path

import pytest

from ghostgate.config import (
    DEFAULT_CONFIG,
    SCHEMA_URL,
    GhostGateConfig,
    PruningConfig,
    find_config_paths,
    find_project_dir,
    load_config_file,
    merge_config,
    resolve_config,
    resolve_registry_path,
)
from ghostgate.errors import ConfigParseError


def write_global(environ: dict[str, str], text: str, name: str = "ghostgate.jsonc") -> Path:
    directory = Path(environ["XDG_CONFIG_HOME"]) / "opencode"
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(text)
    return path


def write_project(project: Path, text: str, name: str = "ghostgate.jsonc") -> Path:
    path = project / ".opencode" / name
    path.write_text(text)
    return path


class TestDefaults:
    """Tests for built-in defaults."""

    def test_default_values(self):
        config = GhostGateConfig()
        assert config.enabled is True
        assert config.debug is False
        assert config.registry.enabled is True
        assert config.registry.path == "./.opencode/ghostgate/registry"
        assert config.pruning == PruningConfig(enabled=True, max_tokens=2000, min_tokens=100)
        assert config.metrics.enabled is True
        assert config.metrics.show_in_status is True
        assert config.commands.enabled is True

    def test_resolve_without_files_returns_defaults(self, tmp_path, environ):
        config = resolve_config(tmp_path, environ)
        assert config == DEFAULT_CONFIG
        assert config.sources == ()

    def test_to_dict_uses_file_keys(self):
        data = DEFAULT_CONFIG.to_dict()
        assert data["pruning"] == {"enabled": True, "maxTokens": 2000, "minTokens": 100}
        assert data["metrics"] == {"enabled": True, "showInStatus": True}


class TestMergeConfig:
    """Tests for field-level merging."""

    def test_none_override_returns_base(self):
        assert merge_config(DEFAULT_CONFIG, None) is DEFAULT_CONFIG

    def test_single_field_leaves_siblings(self):
        merged = merge_config(DEFAULT_CONFIG, {"pruning": {"maxTokens": 500}})
        assert merged.pruning.max_tokens == 500
        assert merged.pruning.min_tokens == 100
        assert merged.pruning.enabled is True
        assert merged.registry == DEFAULT_CONFIG.registry

    def test_null_does_not_override(self):
        merged = merge_config(DEFAULT_CONFIG, {"debug": None, "pruning": {"minTokens": None}})
        assert merged.debug is False
        assert merged.pruning.min_tokens == 100

    def test_wrong_types_are_dropped(self):
        merged = merge_config(
            DEFAULT_CONFIG,
            {
                "enabled": "no",
                "pruning": {"maxTokens": "lots", "minTokens": True, "enabled": False},
                "registry": {"path": ""},
            },
        )
        assert merged.enabled is True
        assert merged.pruning.max_tokens == 2000
        assert merged.pruning.min_tokens == 100
        assert merged.pruning.enabled is False
        assert merged.registry.path == DEFAULT_CONFIG.registry.path

    def test_non_positive_max_tokens_dropped(self):
        merged = merge_config(DEFAULT_CONFIG, {"pruning": {"maxTokens": 0, "minTokens": 0}})
        assert merged.pruning.max_tokens == 2000
        assert merged.pruning.min_tokens == 0

    def test_non_object_section_ignored(self):
        merged = merge_config(DEFAULT_CONFIG, {"pruning": 5, "metrics": ["x"]})
        assert merged == DEFAULT_CONFIG

    def test_unknown_keys_ignored(self):
        merged = merge_config(DEFAULT_CONFIG, {"$schema": SCHEMA_URL, "extra": {"a": 1}})
        assert merged == DEFAULT_CONFIG


class TestLoadConfigFile:
    """Tests for single-file parsing."""

    def test_jsonc_allows_comments_and_trailing_commas(self, tmp_path):
        path = tmp_path / "ghostgate.jsonc"
        path.write_text('{\n  // comment\n  "debug": true,\n}\n')
        assert load_config_file(path) == {"debug": True}

    def test_strict_json_rejects_comments(self, tmp_path):
        path = tmp_path / "ghostgate.json"
        path.write_text('{\n  // comment\n  "debug": true\n}\n')
        with pytest.raises(ConfigParseError):
            load_config_file(path)

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "ghostgate.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigParseError):
            load_config_file(path)

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(ConfigParseError):
            load_config_file(tmp_path / "missing.json")


class TestLayerDiscovery:
    """Tests for locating layer files."""

    def test_find_project_dir_from_nested_directory(self, project):
        nested = project / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_project_dir(nested) == (project / ".opencode").resolve()

    def test_relaxed_file_preferred(self, project, environ):
        write_project(project, '{"debug": true}', name="ghostgate.jsonc")
        write_project(project, '{"debug": false}', name="ghostgate.json")
        paths = find_config_paths(project, environ)
        assert paths.project_path is not None
        assert paths.project_path.name == "ghostgate.jsonc"

    def test_config_dir_from_environment(self, tmp_path, environ):
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "ghostgate.json").write_text("{}")
        environ["OPENCODE_CONFIG_DIR"] = str(config_dir)
        paths = find_config_paths(tmp_path, environ)
        assert paths.config_dir_path == config_dir / "ghostgate.json"


class TestResolveConfig:
    """Tests for full resolution."""

    def test_project_overrides_global(self, project, environ):
        write_global(environ, '{"debug": true, "pruning": {"maxTokens": 500, "minTokens": 50}}')
        write_project(project, '{"pruning": {"maxTokens": 900}}')

        config = resolve_config(project, environ)
        assert config.pruning.max_tokens == 900
        assert config.pruning.min_tokens == 50
        assert config.debug is True
        assert len(config.sources) == 2

    def test_debug_override(self, project, environ, caplog):
        write_project(project, '{"debug": false, "pruning": ')
        with caplog.at_level(logging.WARNING):
            config = resolve_config(project, environ, debug=True)
        assert config.debug is True
        assert "Layer skipped" in caplog.text

    def test_precedence_order(self, project, tmp_path, environ):
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "ghostgate.json").write_text(
            json.dumps({"registry": {"path": "/from/config-dir"}, "metrics": {"enabled": False}})
        )
        environ["OPENCODE_CONFIG_DIR"] = str(config_dir)
        write_global(environ, '{"registry": {"path": "/from/global"}, "commands": {"enabled": false}}')
        write_project(project, '{"metrics": {"enabled": true}}')

        config = resolve_config(project, environ)
        assert config.registry.path == "/from/config-dir"
        assert config.metrics.enabled is True
        assert config.commands.enabled is False

    def test_broken_layer_degrades_to_lower_layer(self, project, environ):
        write_global(environ, '{"pruning": {"maxTokens": 700}}')
        write_project(project, '{"pruning": {"maxTokens": ')

        config = resolve_config(project, environ)
        assert config.pruning.max_tokens == 700
        assert len(config.errors) == 1
        assert "ghostgate.jsonc" in config.errors[0]

    def test_global_file_created_when_missing(self, tmp_path, environ):
        resolve_config(tmp_path, environ)
        created = Path(environ["XDG_CONFIG_HOME"]) / "opencode" / "ghostgate.jsonc"
        assert created.exists()
        assert SCHEMA_URL in created.read_text()

    def test_existing_global_file_untouched(self, tmp_path, environ):
        path = write_global(environ, '{"debug": false}')
        resolve_config(tmp_path, environ)
        assert path.read_text() == '{"debug": false}'

    def test_global_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        config = resolve_config(tmp_path, {"XDG_CONFIG_HOME": str(blocker)})
        assert config == DEFAULT_CONFIG
        assert any("Failed to write" in e for e in config.errors)

    def test_env_vars_expanded(self, project, environ):
        environ["GG_REGISTRY"] = "/srv/registry"
        write_project(project, '{"registry": {"path": "${GG_REGISTRY}/tools"}}')
        config = resolve_config(project, environ)
        assert config.registry.path == "/srv/registry/tools"

    def test_debug_logs_layer_errors(self, project, environ, caplog):
        write_global(environ, '{"debug": true}')
        write_project(project, "not json at all {")
        with caplog.at_level(logging.WARNING):
            resolve_config(project, environ)
        assert "Layer skipped" in caplog.text

    def test_errors_silent_without_debug(self, project, environ, caplog):
        write_project(project, "not json at all {")
        with caplog.at_level(logging.WARNING):
            resolve_config(project, environ)
        assert "Layer skipped" not in caplog.text


class TestResolveRegistryPath:
    """Tests for registry path resolution."""

    def test_relative_path_joined_to_working_directory(self):
        path = resolve_registry_path(DEFAULT_CONFIG, "/work/project")
        assert path == Path("/work/project/.opencode/ghostgate/registry")

    def test_absolute_path_used_verbatim(self):
        config = merge_config(DEFAULT_CONFIG, {"registry": {"path": "/opt/registry"}})
        assert resolve_registry_path(config, "/work/project") == Path("/opt/registry")
