"""Protocol interfaces for dependency inversion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from harvestbin.lib.command import CommandDescriptor
    from harvestbin.lib.domain import ExecutionResult


class CommandRunner(Protocol):
    """Async interface for running one command descriptor to completion."""

    async def execute(
        self,
        command: CommandDescriptor,
        timeout_seconds: float | None = None,
        *,
        report: bool = True,
    ) -> ExecutionResult: ...
