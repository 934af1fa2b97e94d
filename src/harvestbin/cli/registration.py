"""Mount registry operations onto a cyclopts app."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

from harvestbin.lib.ops.registry import get_cli_operations

CommandHandler: TypeAlias = Callable[..., None]


def register_group(
    app: Any,
    group: str,
    handlers: Mapping[str, CommandHandler],
) -> tuple[set[str], dict[str, str]]:
    """Register one cyclopts command per CLI operation in group.

    Returns the registered `group.command` paths and each operation's help
    text keyed by operation name. Every operation in the group needs a handler.
    """

    registered: set[str] = set()
    descriptions: dict[str, str] = {}
    for op in get_cli_operations(group):
        handler = handlers.get(op.name)
        if handler is None:
            raise ValueError(f"No CLI handler registered for operation '{op.name}'")
        # cyclopts reads __name__ from registered callables; partials have none.
        handler.__name__ = f"cmd_{group}_{op.cli_name}"  # type: ignore[attr-defined]
        app.command(handler, name=op.cli_name, help=op.description)
        registered.add(op.cli_path)
        descriptions[op.name] = op.description
    return registered, descriptions
