"""Registry of harvestbin operations exposed on the CLI and as MCP tools.

An operation is registered once, at import of its module under
`harvestbin.lib.ops`, and both surfaces are generated from the registry.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")

_OPERATION_MODULES: tuple[str, ...] = (
    "harvestbin.lib.ops.command",
    "harvestbin.lib.ops.config",
    "harvestbin.lib.ops.output",
    "harvestbin.lib.ops.process",
)


@dataclass(frozen=True, slots=True)
class OperationSpec(Generic[InputT, OutputT]):
    """One operation and how each surface exposes it.

    `name` is `<group>.<command>`. Unless given explicitly, the CLI command is
    `harvestbin <group> <command>` and the MCP tool is `<group>_<command>`.
    """

    name: str
    handler: Callable[[InputT], Coroutine[Any, Any, OutputT]]
    input_type: type[InputT]
    output_type: type[OutputT]
    description: str
    sync_handler: Callable[[InputT], OutputT] | None = None
    cli_only: bool = False
    mcp_only: bool = False
    cli_group: str = ""
    cli_name: str = ""
    mcp_name: str = ""

    def __post_init__(self) -> None:
        group, dot, command = self.name.partition(".")
        if not dot or not group or not command:
            raise ValueError(f"Operation name '{self.name}' must look like 'group.command'")
        if self.cli_only and self.mcp_only:
            raise ValueError(f"Operation '{self.name}' cannot be both cli_only and mcp_only")
        if not self.cli_group:
            object.__setattr__(self, "cli_group", group)
        if not self.cli_name:
            object.__setattr__(self, "cli_name", command)
        if not self.mcp_name:
            object.__setattr__(self, "mcp_name", f"{group}_{command}")

    @property
    def cli_path(self) -> str:
        return f"{self.cli_group}.{self.cli_name}"

    @property
    def on_cli(self) -> bool:
        return not self.mcp_only

    @property
    def on_mcp(self) -> bool:
        return not self.cli_only


_OPERATIONS: dict[str, OperationSpec[Any, Any]] = {}
_loaded = False


def operation(spec: OperationSpec[InputT, OutputT]) -> OperationSpec[InputT, OutputT]:
    existing = _OPERATIONS.get(spec.name)
    if existing is not None:
        raise ValueError(
            f"Duplicate operation name '{spec.name}': already registered by {existing.handler}"
        )
    _OPERATIONS[spec.name] = spec
    return spec


def _load_operation_modules() -> None:
    global _loaded
    if _loaded:
        return
    for module_name in _OPERATION_MODULES:
        importlib.import_module(module_name)
    # Set last so a failed import is retried on the next lookup.
    _loaded = True


def get_all_operations() -> list[OperationSpec[Any, Any]]:
    """Every registered operation, ordered by name."""

    _load_operation_modules()
    return sorted(_OPERATIONS.values(), key=lambda spec: spec.name)


def get_operation(name: str) -> OperationSpec[Any, Any]:
    _load_operation_modules()
    try:
        return _OPERATIONS[name]
    except KeyError:
        raise KeyError(f"Unknown operation '{name}'") from None


def get_cli_operations(group: str) -> list[OperationSpec[Any, Any]]:
    """Operations that `harvestbin <group> ...` should expose."""

    return [spec for spec in get_all_operations() if spec.on_cli and spec.cli_group == group]


def get_mcp_tool_names() -> frozenset[str]:
    return frozenset(spec.mcp_name for spec in get_all_operations() if spec.on_mcp)
