"""Engine settings from `harvestbin.toml` and `HARVESTBIN_*` variables.

Precedence, lowest first: built-in defaults, the config file, environment.

    [timeouts]
    default_seconds = 30
    kill_grace_seconds = 1

    [signals]
    grace_seconds = 2
    fallback_delay_seconds = 1

    [elevation]
    tool = "sudo"
    scratch_paths = ["/var/folders"]

Every setting is also accepted as a top-level key under its field name.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Literal, TypeAlias, cast

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "harvestbin.toml"
CONFIG_PATH_ENV = "HARVESTBIN_CONFIG"
ENV_PREFIX = "HARVESTBIN_"

ConfigSource: TypeAlias = Literal["builtin", "file", "env var"]


@dataclass(frozen=True, slots=True)
class HarvestConfig:
    default_timeout_seconds: float = 30.0
    kill_grace_seconds: float = 1.0
    signal_grace_seconds: float = 2.0
    kill_fallback_delay_seconds: float = 1.0
    elevation_tool: str = "sudo"
    scratch_paths: tuple[str, ...] = ("/var/folders",)


def _invalid(where: str, expected: str, raw: object) -> ValueError:
    return ValueError(
        f"Invalid value for {where}: expected {expected}, got {type(raw).__name__} ({raw!r})."
    )


def _parse_seconds(raw: object, where: str, from_env: bool) -> float:
    if from_env:
        try:
            raw = float(cast("str", raw).strip())
        except ValueError:
            raise _invalid(where, "float", raw) from None
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise _invalid(where, "float", raw)
    if raw < 0:
        raise ValueError(f"Invalid value for {where}: expected a non-negative number.")
    return float(raw)


def _parse_text(raw: object, where: str, from_env: bool) -> str:
    _ = from_env
    if not isinstance(raw, str):
        raise _invalid(where, "str", raw)
    text = raw.strip()
    if not text:
        raise ValueError(f"Invalid value for {where}: expected non-empty string.")
    return text


def _parse_path_list(raw: object, where: str, from_env: bool) -> tuple[str, ...]:
    if from_env:
        # Colon-separated, like PATH.
        return tuple(part.strip() for part in cast("str", raw).split(":") if part.strip())
    if not isinstance(raw, list):
        raise _invalid(where, "array[str]", raw)
    entries: list[str] = []
    for item in cast("list[object]", raw):
        if not isinstance(item, str) or not item.strip():
            raise ValueError(
                f"Invalid value for {where}: expected non-empty path entries, got {item!r}."
            )
        entries.append(item.strip())
    return tuple(entries)


@dataclass(frozen=True, slots=True)
class _Setting:
    field: str
    section: str
    alias: str | None
    parse: Callable[[object, str, bool], Any]

    @property
    def env_var(self) -> str:
        return f"{ENV_PREFIX}{self.field.upper()}"


_SETTINGS: tuple[_Setting, ...] = (
    _Setting("default_timeout_seconds", "timeouts", "default_seconds", _parse_seconds),
    _Setting("kill_grace_seconds", "timeouts", None, _parse_seconds),
    _Setting("signal_grace_seconds", "signals", "grace_seconds", _parse_seconds),
    _Setting("kill_fallback_delay_seconds", "signals", "fallback_delay_seconds", _parse_seconds),
    _Setting("elevation_tool", "elevation", "tool", _parse_text),
    _Setting("scratch_paths", "elevation", None, _parse_path_list),
)
_BY_FIELD: dict[str, _Setting] = {setting.field: setting for setting in _SETTINGS}
_SECTIONS: dict[str, dict[str, _Setting]] = {}
for _setting in _SETTINGS:
    _keys = _SECTIONS.setdefault(_setting.section, {})
    _keys[_setting.field] = _setting
    if _setting.alias is not None:
        _keys[_setting.alias] = _setting


def env_override_name(field_name: str) -> str | None:
    """Environment variable that overrides one config field, if any."""

    setting = _BY_FIELD.get(field_name)
    return None if setting is None else setting.env_var


def resolve_config_path(explicit: Path | None = None) -> Path:
    """Config file location: explicit path, then `$HARVESTBIN_CONFIG`, then the cwd."""

    if explicit is not None:
        return explicit.expanduser().resolve()
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.cwd() / CONFIG_FILENAME


def _file_entries(payload: dict[str, object], path: Path) -> list[tuple[_Setting, str, object]]:
    entries: list[tuple[_Setting, str, object]] = []
    for key, raw in payload.items():
        section = _SECTIONS.get(key)
        if section is None:
            setting = _BY_FIELD.get(key)
            if setting is None:
                logger.warning("Ignoring unknown harvestbin config key '%s'.", key)
            else:
                entries.append((setting, f"'{key}'", raw))
            continue
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid value for '{key}' in '{path}': expected table.")
        for section_key, section_raw in cast("dict[str, object]", raw).items():
            setting = section.get(section_key)
            if setting is None:
                logger.warning("Ignoring unknown harvestbin config key '%s.%s'.", key, section_key)
                continue
            entries.append((setting, f"'{key}.{section_key}'", section_raw))
    return entries


def load_config_with_sources(
    path: Path | None = None,
) -> tuple[HarvestConfig, dict[str, ConfigSource]]:
    """Resolve the config and record which layer supplied each field."""

    defaults = HarvestConfig()
    values: dict[str, object] = {f.name: getattr(defaults, f.name) for f in fields(HarvestConfig)}
    sources: dict[str, ConfigSource] = dict.fromkeys(values, "builtin")

    resolved = resolve_config_path(path)
    if resolved.is_file():
        payload = tomllib.loads(resolved.read_text(encoding="utf-8"))
        for setting, where, raw in _file_entries(payload, resolved):
            values[setting.field] = setting.parse(raw, where, False)
            sources[setting.field] = "file"

    for setting in _SETTINGS:
        raw_env = os.getenv(setting.env_var)
        if raw_env is None:
            continue
        values[setting.field] = setting.parse(
            raw_env, f"environment override '{setting.env_var}'", True
        )
        sources[setting.field] = "env var"

    return HarvestConfig(**cast("dict[str, Any]", values)), sources


def load_config(path: Path | None = None) -> HarvestConfig:
    """Load `harvestbin.toml` and apply environment overrides."""

    config, _ = load_config_with_sources(path)
    return config
