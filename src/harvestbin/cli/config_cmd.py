"""CLI command handlers for config.* operations."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Annotated, Any

from cyclopts import Parameter

from harvestbin.cli.registration import register_group
from harvestbin.lib.ops.config import ConfigShowInput, config_show_sync

Emitter = Callable[[Any], None]


def _config_show(
    emit: Emitter,
    config_path: Annotated[
        str | None,
        Parameter(name="--config", help="Config file to read instead of the default."),
    ] = None,
) -> None:
    emit(config_show_sync(ConfigShowInput(config_path=config_path)))


def register_config_commands(app: Any, emit: Emitter) -> tuple[set[str], dict[str, str]]:
    return register_group(
        app,
        "config",
        {
            "config.show": partial(_config_show, emit),
        },
    )
