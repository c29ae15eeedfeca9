"""Configuration management for GhostGate.

Config files are looked up in three locations, lowest precedence first:

1. Global: $XDG_CONFIG_HOME/opencode/ghostgate.jsonc|json
   (the platform user config dir when XDG_CONFIG_HOME is unset)
2. Config dir: $OPENCODE_CONFIG_DIR/ghostgate.jsonc|json
3. Project: <nearest ancestor with .opencode/>/.opencode/ghostgate.jsonc|json

Each layer overrides only the fields it sets; a missing or null field keeps
the value of the layer below. A broken layer contributes nothing.

Example ghostgate.jsonc:

    {
      // keep pruned tool output short
      "pruning": { "maxTokens": 1000 },
      "registry": { "path": "${HOME}/ghost-registry" },
    }
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Optional, Union

import json5
from platformdirs import user_config_dir

from .errors import BootstrapWriteFailure, ConfigParseError

HOST_APP_NAME = "opencode"
CONFIG_DIR_ENV = "OPENCODE_CONFIG_DIR"
PROJECT_MARKER = ".opencode"
CONFIG_BASENAME = "ghostgate"
RELAXED_SUFFIX = ".jsonc"
STRICT_SUFFIX = ".json"
SCHEMA_URL = "https://raw.githubusercontent.com/opencode-ai/ghostgate/main/ghostgate.schema.json"


@dataclass(frozen=True)
class RegistryConfig:
    """Tool registry settings.

    Attributes:
        enabled: Enable the registry and the model-facing ghost tools
        path: Registry directory, absolute or relative to the working directory
    """

    enabled: bool = True
    path: str = "./.opencode/ghostgate/registry"


@dataclass(frozen=True)
class PruningConfig:
    """Tool result pruning settings.

    Attributes:
        enabled: Prune large tool results
        max_tokens: Token budget for a pruned result
        min_tokens: Results estimated below this are left alone
    """

    enabled: bool = True
    max_tokens: int = 2000
    min_tokens: int = 100


@dataclass(frozen=True)
class MetricsConfig:
    """Metrics settings.

    Attributes:
        enabled: Surface token metrics (tool, subcommand, compaction summary)
        show_in_status: Include the metrics block in the status report
    """

    enabled: bool = True
    show_in_status: bool = True


@dataclass(frozen=True)
class CommandsConfig:
    """Reserved /ghostgate command settings."""

    enabled: bool = True


@dataclass(frozen=True)
class GhostGateConfig:
    """Effective configuration for one session.

    ``sources`` and ``errors`` are diagnostics (which layer files were
    applied, which layers failed) and take no part in equality.
    """

    enabled: bool = True
    debug: bool = False
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    pruning: PruningConfig = field(default_factory=PruningConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    sources: tuple[str, ...] = field(default=(), compare=False)
    errors: tuple[str, ...] = field(default=(), compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Render in the on-disk (camelCase) shape."""
        return {
            "enabled": self.enabled,
            "debug": self.debug,
            "registry": {"enabled": self.registry.enabled, "path": self.registry.path},
            "pruning": {
                "enabled": self.pruning.enabled,
                "maxTokens": self.pruning.max_tokens,
                "minTokens": self.pruning.min_tokens,
            },
            "metrics": {
                "enabled": self.metrics.enabled,
                "showInStatus": self.metrics.show_in_status,
            },
            "commands": {"enabled": self.commands.enabled},
        }


DEFAULT_CONFIG = GhostGateConfig()


@dataclass(frozen=True)
class ConfigPaths:
    """The config file chosen at each location (None when absent)."""

    global_path: Optional[Path] = None
    config_dir_path: Optional[Path] = None
    project_path: Optional[Path] = None

    def layers(self) -> list[Path]:
        """Existing layer files, lowest precedence first."""
        return [p for p in (self.global_path, self.config_dir_path, self.project_path) if p]


# ============================================================================
# Field validation
# ============================================================================


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return _is_int(value) and value > 0


def _is_non_negative_int(value: Any) -> bool:
    return _is_int(value) and value >= 0


def _is_path(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


FieldSpec = dict[str, tuple[str, Callable[[Any], bool]]]

# on-disk key -> (dataclass attribute, validator)
_TOP_LEVEL_FIELDS: FieldSpec = {
    "enabled": ("enabled", _is_bool),
    "debug": ("debug", _is_bool),
}

_SECTION_FIELDS: dict[str, FieldSpec] = {
    "registry": {
        "enabled": ("enabled", _is_bool),
        "path": ("path", _is_path),
    },
    "pruning": {
        "enabled": ("enabled", _is_bool),
        "maxTokens": ("max_tokens", _is_positive_int),
        "minTokens": ("min_tokens", _is_non_negative_int),
    },
    "metrics": {
        "enabled": ("enabled", _is_bool),
        "showInStatus": ("show_in_status", _is_bool),
    },
    "commands": {
        "enabled": ("enabled", _is_bool),
    },
}


def _pick_fields(data: Mapping[str, Any], spec: FieldSpec) -> dict[str, Any]:
    """Collect the valid, non-null fields of one object."""
    picked = {}
    for key, (attr, is_valid) in spec.items():
        value = data.get(key)
        if value is not None and is_valid(value):
            picked[attr] = value
    return picked


def merge_config(base: GhostGateConfig, override: Optional[Mapping[str, Any]]) -> GhostGateConfig:
    """Overlay one layer onto ``base``, field by field.

    Fields that are absent, null, or of the wrong type keep the base value.
    Sections that are not objects are ignored entirely.
    """
    if not override:
        return base

    updates: dict[str, Any] = _pick_fields(override, _TOP_LEVEL_FIELDS)
    for section, spec in _SECTION_FIELDS.items():
        data = override.get(section)
        if not isinstance(data, Mapping):
            continue
        section_updates = _pick_fields(data, spec)
        if section_updates:
            updates[section] = replace(getattr(base, section), **section_updates)

    return replace(base, **updates) if updates else base


# ============================================================================
# Layer discovery and loading
# ============================================================================


def _expand_env_vars(value: Any, environ: Mapping[str, str]) -> Any:
    """Recursively expand ${VAR} and $VAR references in string values."""
    if isinstance(value, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            return environ.get(var_name, match.group(0))

        pattern = r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)"
        return re.sub(pattern, replace_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v, environ) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item, environ) for item in value]
    else:
        return value


def global_config_dir(environ: Mapping[str, str]) -> Path:
    """Directory holding the per-user config file."""
    xdg = environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / HOST_APP_NAME
    return Path(user_config_dir(HOST_APP_NAME, appauthor=False))


def _first_config_file(directory: Path) -> Optional[Path]:
    """Return the relaxed file if present, else the strict one, else None."""
    for suffix in (RELAXED_SUFFIX, STRICT_SUFFIX):
        candidate = directory / f"{CONFIG_BASENAME}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def find_project_dir(start_dir: Union[str, Path]) -> Optional[Path]:
    """Find the nearest ancestor marker directory (.opencode/) of ``start_dir``."""
    current = Path(start_dir).resolve()
    while True:
        candidate = current / PROJECT_MARKER
        if candidate.is_dir():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def find_config_paths(
    working_directory: Optional[Union[str, Path]],
    environ: Mapping[str, str],
) -> ConfigPaths:
    """Locate the config file for each of the three locations."""
    global_path = _first_config_file(global_config_dir(environ))

    config_dir_path = None
    config_dir = environ.get(CONFIG_DIR_ENV)
    if config_dir:
        config_dir_path = _first_config_file(Path(config_dir))

    project_path = None
    if working_directory:
        project_dir = find_project_dir(working_directory)
        if project_dir:
            project_path = _first_config_file(project_dir)

    return ConfigPaths(
        global_path=global_path,
        config_dir_path=config_dir_path,
        project_path=project_path,
    )


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse one config file.

    ``.jsonc`` files are read with json5 (comments and trailing commas are
    allowed), anything else with strict JSON.

    Raises:
        ConfigParseError: The file is unreadable, malformed, or not an object
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(str(path), str(e)) from e

    loads = json5.loads if path.suffix == RELAXED_SUFFIX else json.loads
    try:
        data = loads(text)
    except ValueError as e:
        raise ConfigParseError(str(path), str(e)) from e

    if not isinstance(data, dict):
        raise ConfigParseError(str(path), "config must be a JSON object")
    return data


def write_default_global_config(directory: Path) -> Path:
    """Write a global config holding only the schema reference.

    Raises:
        BootstrapWriteFailure: The directory or file could not be written
    """
    target = directory / f"{CONFIG_BASENAME}{RELAXED_SUFFIX}"
    content = "{\n" f'  "$schema": "{SCHEMA_URL}"\n' "}\n"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        raise BootstrapWriteFailure(f"Failed to write {target}: {e}") from e
    return target


def resolve_config(
    working_directory: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    debug: bool = False,
) -> GhostGateConfig:
    """Build the effective configuration for a session.

    Merge order: defaults < global < config dir < project. Never raises for
    missing or broken files; those layers are skipped and recorded in
    ``GhostGateConfig.errors``.

    Args:
        working_directory: Project directory (default: current directory)
        environ: Environment used for lookup and ${VAR} expansion
        debug: Force debug mode on regardless of the config files
    """
    environ = os.environ if environ is None else environ
    working_directory = working_directory or Path.cwd()
    paths = find_config_paths(working_directory, environ)

    config = DEFAULT_CONFIG
    sources: list[str] = []
    errors: list[str] = []

    if paths.global_path is None:
        try:
            write_default_global_config(global_config_dir(environ))
        except BootstrapWriteFailure as e:
            errors.append(str(e))

    for path in paths.layers():
        try:
            data = load_config_file(path)
        except ConfigParseError as e:
            errors.append(str(e))
            continue
        config = merge_config(config, _expand_env_vars(data, environ))
        sources.append(str(path))

    config = replace(config, sources=tuple(sources), errors=tuple(errors))
    if debug:
        config = replace(config, debug=True)

    if config.debug:
        for error in config.errors:
            logging.warning("[ghostgate.config] Layer skipped: %s", error)

    return config


def resolve_registry_path(config: GhostGateConfig, working_directory: Union[str, Path]) -> Path:
    """Absolute registry path: used verbatim if absolute, else under ``working_directory``."""
    registry_path = Path(config.registry.path)
    if registry_path.is_absolute():
        return registry_path
    return Path(os.path.normpath(Path(working_directory) / registry_path))


__all__ = [
    "RegistryConfig",
    "PruningConfig",
    "MetricsConfig",
    "CommandsConfig",
    "GhostGateConfig",
    "ConfigPaths",
    "DEFAULT_CONFIG",
    "merge_config",
    "global_config_dir",
    "find_project_dir",
    "find_config_paths",
    "load_config_file",
    "write_default_global_config",
    "resolve_config",
    "resolve_registry_path",
]
