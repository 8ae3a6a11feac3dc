"""Configuration loader for chatmix-installer.

Values are resolved from several sources, later ones winning:

1. Built-in defaults.
2. ``~/.config/chatmix-installer/config.yml`` (or an override path).
3. Environment variables prefixed with ``CHATMIX_``.
4. Explicit overrides supplied programmatically.

Environment keys use double underscores to express nesting, e.g.::

    export CHATMIX_PATHS__SYSTEM_BIN_DIR=/opt/bin
    export CHATMIX_DEFAULTS__UDEV=false

Values are coerced via PyYAML's ``safe_load`` so that booleans and numbers are
parsed naturally. The resulting configuration is exposed as immutable
``dataclasses``.
"""
from __future__ import annotations

import os
import shlex
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import cast

import yaml

ENV_PREFIX = "CHATMIX_"
CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG_FILE"
RESERVED_ENV_KEYS = {CONFIG_ENV_VAR}

ALLOWED_MODES = {"user", "system"}


class ConfigError(RuntimeError):
    """Raised when configuration parsing fails."""


@dataclass(frozen=True)
class PathsConfig:
    """Install destinations for both deployment scopes."""

    user_bin_dir: Path
    user_unit_dir: Path
    system_bin_dir: Path = Path("/usr/local/bin")
    system_unit_dir: Path = Path("/etc/systemd/system")
    udev_rule_path: Path = Path("/etc/udev/rules.d/99-arctis.rules")

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "user_bin_dir": str(self.user_bin_dir),
            "user_unit_dir": str(self.user_unit_dir),
            "system_bin_dir": str(self.system_bin_dir),
            "system_unit_dir": str(self.system_unit_dir),
            "udev_rule_path": str(self.udev_rule_path),
        }


@dataclass(frozen=True)
class CommandsConfig:
    """Host tools invoked by the installer."""

    systemctl_bin: str = "systemctl"
    udevadm_bin: str = "udevadm"
    loginctl_bin: str = "loginctl"
    elevation: tuple[str, ...] = ("sudo",)

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "systemctl_bin": self.systemctl_bin,
            "udevadm_bin": self.udevadm_bin,
            "loginctl_bin": self.loginctl_bin,
            "elevation": list(self.elevation),
        }


@dataclass(frozen=True)
class DefaultsConfig:
    """Seed values used when a flag is omitted."""

    binary: Path = Path("./arctis_chatmix")
    mode: str = "user"
    udev: bool = True
    enable_service: bool = True
    enable_linger: bool = False

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "binary": str(self.binary),
            "mode": self.mode,
            "udev": self.udev,
            "enable_service": self.enable_service,
            "enable_linger": self.enable_linger,
        }


@dataclass(frozen=True)
class AppConfig:
    """Resolved configuration values for chatmix-installer."""

    config_file: Path
    logs_dir: Path
    templates_dir: Path | None
    paths: PathsConfig
    commands: CommandsConfig
    defaults: DefaultsConfig

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation of the config."""
        return {
            "config_file": str(self.config_file),
            "logs_dir": str(self.logs_dir),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "paths": self.paths.to_dict(),
            "commands": self.commands.to_dict(),
            "defaults": self.defaults.to_dict(),
        }


DEFAULTS: dict[str, object] = {
    "config_file": "~/.config/chatmix-installer/config.yml",
    "logs_dir": "~/.local/state/chatmix-installer/logs",
    "templates_dir": None,
    "paths": {
        "user_bin_dir": "~/.local/bin",
        "user_unit_dir": "~/.config/systemd/user",
        "system_bin_dir": "/usr/local/bin",
        "system_unit_dir": "/etc/systemd/system",
        "udev_rule_path": "/etc/udev/rules.d/99-arctis.rules",
    },
    "commands": {
        "systemctl_bin": "systemctl",
        "udevadm_bin": "udevadm",
        "loginctl_bin": "loginctl",
        "elevation": "sudo",
    },
    "defaults": {
        "binary": "./arctis_chatmix",
        "mode": "user",
        "udev": True,
        "enable_service": True,
        "enable_linger": False,
    },
}

ALLOWED_TOP_LEVEL_KEYS = set(DEFAULTS.keys())
_SECTION_KEYS: dict[str, set[str]] = {
    "paths": set(cast(Mapping[str, object], DEFAULTS["paths"]).keys()),
    "commands": set(cast(Mapping[str, object], DEFAULTS["commands"]).keys()),
    "defaults": set(cast(Mapping[str, object], DEFAULTS["defaults"]).keys()),
}


def load_config(
    config_file: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> AppConfig:
    """Load and merge configuration sources into an :class:`AppConfig`."""
    merged: dict[str, object] = _deep_copy(DEFAULTS)
    resolved_env = dict(os.environ if env is None else env)

    config_default = _expect_str(merged["config_file"], "config_file")
    config_path = _determine_config_path(config_default, config_file, resolved_env)

    file_values = _load_yaml_file(config_path)
    if file_values:
        _deep_merge(merged, file_values)

    env_values = _build_env_overrides(resolved_env)
    if env_values:
        _deep_merge(merged, env_values)

    if overrides:
        _deep_merge(merged, dict(overrides))

    merged["config_file"] = str(config_path)

    _validate_structure(merged)

    return _build_app_config(merged)


def _determine_config_path(
    default_path: str,
    cli_override: str | os.PathLike[str] | None,
    env: Mapping[str, str],
) -> Path:
    if cli_override:
        return Path(cli_override).expanduser()
    if CONFIG_ENV_VAR in env:
        return Path(env[CONFIG_ENV_VAR]).expanduser()
    return Path(default_path).expanduser()


def _load_yaml_file(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - PyYAML owns detailed error
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level.")
    return _as_dict(data, f"file:{path}")


def _validate_structure(raw: Mapping[str, object]) -> None:
    unknown_keys = set(raw.keys()) - ALLOWED_TOP_LEVEL_KEYS
    if unknown_keys:
        joined = ", ".join(sorted(unknown_keys))
        raise ConfigError(f"Unknown configuration keys: {joined}.")

    for section, allowed in _SECTION_KEYS.items():
        mapping = _as_dict(raw.get(section), section)
        unknown = set(mapping.keys()) - allowed
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigError(f"Unknown {section} configuration keys: {joined}.")

    defaults_map = _as_dict(raw.get("defaults"), "defaults")
    mode = defaults_map.get("mode")
    if mode is not None and str(mode) not in ALLOWED_MODES:
        allowed_modes = ", ".join(sorted(ALLOWED_MODES))
        raise ConfigError(f"Unsupported default mode '{mode}'. Allowed: {allowed_modes}.")


def _build_app_config(raw: Mapping[str, object]) -> AppConfig:
    config_file = _to_path(raw.get("config_file"))
    logs_dir = _to_path(raw.get("logs_dir"))
    templates_value = raw.get("templates_dir")
    templates_dir: Path | None = None
    if isinstance(templates_value, (str, Path)):
        if str(templates_value).strip():
            templates_dir = _to_path(templates_value)
    elif templates_value is not None:
        raise ConfigError("templates_dir must be a string, Path, or null.")

    paths_mapping = _as_dict(raw.get("paths"), "paths")
    paths = PathsConfig(
        user_bin_dir=_to_path(paths_mapping.get("user_bin_dir")),
        user_unit_dir=_to_path(paths_mapping.get("user_unit_dir")),
        system_bin_dir=_to_path(paths_mapping.get("system_bin_dir")),
        system_unit_dir=_to_path(paths_mapping.get("system_unit_dir")),
        udev_rule_path=_to_path(paths_mapping.get("udev_rule_path")),
    )

    commands_mapping = _as_dict(raw.get("commands"), "commands")
    commands = CommandsConfig(
        systemctl_bin=_expect_str(commands_mapping.get("systemctl_bin"), "commands.systemctl_bin"),
        udevadm_bin=_expect_str(commands_mapping.get("udevadm_bin"), "commands.udevadm_bin"),
        loginctl_bin=_expect_str(commands_mapping.get("loginctl_bin"), "commands.loginctl_bin"),
        elevation=_parse_command(commands_mapping.get("elevation"), "commands.elevation"),
    )

    defaults_mapping = _as_dict(raw.get("defaults"), "defaults")
    defaults = DefaultsConfig(
        binary=Path(_expect_str(defaults_mapping.get("binary"), "defaults.binary")),
        mode=_expect_str(defaults_mapping.get("mode"), "defaults.mode"),
        udev=_expect_bool(defaults_mapping.get("udev"), "defaults.udev"),
        enable_service=_expect_bool(
            defaults_mapping.get("enable_service"), "defaults.enable_service"
        ),
        enable_linger=_expect_bool(
            defaults_mapping.get("enable_linger"), "defaults.enable_linger"
        ),
    )

    return AppConfig(
        config_file=config_file,
        logs_dir=logs_dir,
        templates_dir=templates_dir,
        paths=paths,
        commands=commands,
        defaults=defaults,
    )


def _build_env_overrides(env: Mapping[str, str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for key, value in env.items():
        if key in RESERVED_ENV_KEYS:
            continue
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX) :]
        path_segments = [segment.lower() for segment in suffix.split("__") if segment]
        if not path_segments:
            continue
        _assign_nested(overrides, path_segments, _coerce_value(value))
    return overrides


def _assign_nested(tree: MutableMapping[str, object], path: list[str], value: object) -> None:
    current: MutableMapping[str, object] = tree
    for segment in path[:-1]:
        existing = current.get(segment)
        if existing is None:
            new_child: MutableMapping[str, object] = {}
            current[segment] = new_child
            current = new_child
            continue
        if isinstance(existing, MutableMapping):
            current = cast(MutableMapping[str, object], existing)
            continue
        raise ConfigError(
            "Environment overrides conflict with existing scalar value at "
            f"{'.'.join(path)}"
        )
    current[path[-1]] = value


def _deep_merge(target: MutableMapping[str, object], overrides: Mapping[str, object]) -> None:
    for key, value in overrides.items():
        existing = target.get(key)
        if isinstance(existing, MutableMapping) and isinstance(value, Mapping):
            _deep_merge(existing, _as_dict(value, f"merge.{key}"))
            continue
        target[key] = value


def _deep_copy(source: Mapping[str, object]) -> dict[str, object]:
    result: dict[str, object] = {}
    for key, value in source.items():
        if isinstance(value, Mapping):
            result[key] = _deep_copy(_as_dict(value, f"copy.{key}"))
        else:
            result[key] = value
    return result


def _coerce_value(raw: str) -> object:
    raw = raw.strip()
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:  # pragma: no cover - treat as string if parsing fails
        return raw
    return parsed


def _parse_command(value: object, label: str) -> tuple[str, ...]:
    if isinstance(value, str):
        parts = shlex.split(value)
    elif isinstance(value, Sequence) and not isinstance(value, bytes):
        parts = [str(item) for item in value]
    else:
        raise ConfigError(f"Expected {label} to be a command string or list. Got {value!r}.")
    if not parts:
        raise ConfigError(f"{label} must not be empty.")
    return tuple(parts)


def _to_path(value: object) -> Path:
    if value is None:
        raise ConfigError("Expected a filesystem path, received None.")
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise ConfigError(f"Cannot convert value {value!r} to Path.")


def _expect_bool(value: object, label: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"yes", "no"}:
        return value.strip().lower() == "yes"
    raise ConfigError(f"Expected {label} to be a boolean. Got {value!r}.")


def _expect_str(value: object, key: str) -> str:
    if isinstance(value, str):
        return value
    raise ConfigError(f"Expected {key} to resolve to a string. Got {value!r}.")


def _as_dict(value: object | None, label: str) -> dict[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Expected {label} to be a mapping. Got {type(value).__name__}.")
    result: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise ConfigError(f"Mapping {label} must use string keys. Got {key!r}.")
        result[key] = item
    return result


__all__ = [
    "AppConfig",
    "CommandsConfig",
    "ConfigError",
    "DefaultsConfig",
    "PathsConfig",
    "load_config",
]
