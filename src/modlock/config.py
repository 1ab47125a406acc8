"""
modlock.config — Configuration.

~/.modlock/config.yaml:

    app_name: powerpipe          # used in "run '<app> mod install'"
    data_dir: .powerpipe         # <workspace>/<data_dir>/<mod_dir>
    mod_dir: mods
    lock_file_name: .mod.cache.json
    mod_file_names:
      - mod.yaml
      - mod.yml
    resources:
      include: ["**/*.yaml", "**/*.yml"]
      exclude: ["**/.*/**"]
    log_level: WARNING

Config is always passed explicitly (ModlockConfig / WorkspacePaths);
there is no process-wide state, so concurrent loads of different
workspaces stay isolated.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from modlock.errors import ConfigError


def modlock_home() -> Path:
    env_home = os.environ.get("MODLOCK_HOME", "").strip()
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / ".modlock"


@dataclass
class ModlockConfig:
    """modlock settings."""
    app_name: str = "modlock"
    data_dir: str = ".modlock"
    mod_dir: str = "mods"
    lock_file_name: str = ".mod.cache.json"
    mod_file_names: list[str] = field(
        default_factory=lambda: ["mod.yaml", "mod.yml"]
    )
    resource_include: list[str] = field(
        default_factory=lambda: ["**/*.yaml", "**/*.yml"]
    )
    resource_exclude: list[str] = field(
        default_factory=lambda: ["**/.*/**"]
    )
    log_level: str = "WARNING"

    @property
    def mod_file_name(self) -> str:
        """Canonical mod file name."""
        return self.mod_file_names[0]

    @property
    def install_command(self) -> str:
        return f"{self.app_name} mod install"


@dataclass(frozen=True)
class WorkspacePaths:
    """Paths derived from a workspace directory and a config."""
    workspace_path: Path
    config: ModlockConfig

    @classmethod
    def for_workspace(
        cls, workspace_path: str | Path, config: ModlockConfig | None = None,
    ) -> WorkspacePaths:
        return cls(Path(workspace_path).resolve(), config or ModlockConfig())

    @property
    def mod_install_path(self) -> Path:
        return self.workspace_path / self.config.data_dir / self.config.mod_dir

    @property
    def lock_path(self) -> Path:
        return self.workspace_path / self.config.lock_file_name

    @property
    def mod_file_path(self) -> Path:
        return self.workspace_path / self.config.mod_file_name


def config_path() -> Path:
    return modlock_home() / "config.yaml"


def load_config(path: str | Path | None = None) -> ModlockConfig:
    """Read the config file; defaults when it does not exist."""
    cp = Path(path) if path else config_path()
    cfg = ModlockConfig()

    if cp.exists():
        try:
            with open(cp) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config file {cp}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must be a YAML mapping: {cp}")

        _apply(cfg, data, cp)

    env_level = os.environ.get("MODLOCK_LOG_LEVEL", "").strip()
    if env_level:
        cfg.log_level = env_level.upper()

    return cfg


def _apply(cfg: ModlockConfig, data: dict[str, Any], source: Path) -> None:
    for key in ("app_name", "data_dir", "mod_dir", "lock_file_name", "log_level"):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value:
                raise ConfigError(f"{source}: '{key}' must be a non-empty string")
            setattr(cfg, key, value)

    if "mod_file_names" in data:
        cfg.mod_file_names = _string_list(data["mod_file_names"], "mod_file_names", source)
        if not cfg.mod_file_names:
            raise ConfigError(f"{source}: 'mod_file_names' must not be empty")

    resources = data.get("resources", {})
    if not isinstance(resources, dict):
        raise ConfigError(f"{source}: 'resources' must be a mapping")
    if "include" in resources:
        cfg.resource_include = _string_list(resources["include"], "resources.include", source)
    if "exclude" in resources:
        cfg.resource_exclude = _string_list(resources["exclude"], "resources.exclude", source)

    cfg.log_level = cfg.log_level.upper()


def _string_list(value: Any, key: str, source: Path) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{source}: '{key}' must be a list of strings")
    return list(value)


def save_config(cfg: ModlockConfig, path: str | Path | None = None) -> None:
    """Write the config file (only non-default keys)."""
    cp = Path(path) if path else config_path()
    cp.parent.mkdir(parents=True, exist_ok=True)

    defaults = ModlockConfig()
    data: dict[str, Any] = {}

    for key in ("app_name", "data_dir", "mod_dir", "lock_file_name",
                "mod_file_names", "log_level"):
        value = getattr(cfg, key)
        if value != getattr(defaults, key):
            data[key] = value

    resources: dict[str, Any] = {}
    if cfg.resource_include != defaults.resource_include:
        resources["include"] = cfg.resource_include
    if cfg.resource_exclude != defaults.resource_exclude:
        resources["exclude"] = cfg.resource_exclude
    if resources:
        data["resources"] = resources

    with open(cp, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
