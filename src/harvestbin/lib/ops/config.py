"""`config show`: the resolved engine settings and the layer each came from."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING

from harvestbin.lib.config.settings import (
    ConfigSource,
    HarvestConfig,
    env_override_name,
    load_config_with_sources,
    resolve_config_path,
)
from harvestbin.lib.ops.registry import OperationSpec, operation

if TYPE_CHECKING:
    from harvestbin.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class ConfigShowInput:
    config_path: str | None = None


@dataclass(frozen=True, slots=True)
class ConfigResolvedValue:
    key: str
    value: object
    source: ConfigSource
    env_var: str | None = None

    @property
    def display_value(self) -> str:
        if isinstance(self.value, tuple):
            return ", ".join(str(item) for item in self.value) or "(none)"
        return str(self.value)


@dataclass(frozen=True, slots=True)
class ConfigShowOutput:
    path: str
    exists: bool
    values: tuple[ConfigResolvedValue, ...]

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        suffix = "" if self.exists else " (not found, using defaults)"
        rows = [f"path: {self.path}{suffix}"]
        for item in self.values:
            origin = item.source if item.env_var is None else f"{item.source} ({item.env_var})"
            rows.append(f"{item.key}: {item.display_value} [source: {origin}]")
        return "\n".join(rows)


def _env_var_for(key: str, source: ConfigSource) -> str | None:
    return env_override_name(key) if source == "env var" else None


def config_show_sync(payload: ConfigShowInput) -> ConfigShowOutput:
    explicit = Path(payload.config_path).expanduser() if payload.config_path else None
    path = resolve_config_path(explicit)
    config, sources = load_config_with_sources(explicit)

    return ConfigShowOutput(
        path=path.as_posix(),
        exists=path.is_file(),
        values=tuple(
            ConfigResolvedValue(
                key=field.name,
                value=getattr(config, field.name),
                source=sources[field.name],
                env_var=_env_var_for(field.name, sources[field.name]),
            )
            for field in fields(HarvestConfig)
        ),
    )


async def config_show(payload: ConfigShowInput) -> ConfigShowOutput:
    return await asyncio.to_thread(config_show_sync, payload)


operation(
    OperationSpec[ConfigShowInput, ConfigShowOutput](
        name="config.show",
        handler=config_show,
        sync_handler=config_show_sync,
        input_type=ConfigShowInput,
        output_type=ConfigShowOutput,
        description="Show resolved config values and where each came from.",
        cli_only=True,
    )
)
