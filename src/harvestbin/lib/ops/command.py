"""Command execution operations."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING

from harvestbin.lib.command import Command
from harvestbin.lib.domain import ExecutionResult
from harvestbin.lib.exec.errors import ValidationFailedError
from harvestbin.lib.ops._runtime import build_engine, resolve_cwd
from harvestbin.lib.ops.registry import OperationSpec, operation
from harvestbin.lib.safety.firewall import validate_elevated_command

if TYPE_CHECKING:
    from harvestbin.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class CommandExecInput:
    program: str
    arguments: tuple[str, ...] = ()
    sudo: bool = False
    affected_process: str | None = None
    timeout_secs: float | None = None
    cwd: str | None = None


@dataclass(frozen=True, slots=True)
class CommandCheckInput:
    program: str
    arguments: tuple[str, ...] = ()
    sudo: bool = True


@dataclass(frozen=True, slots=True)
class CommandCheckOutput:
    ok: bool
    argv: tuple[str, ...]
    reason: str | None = None

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        if self.ok:
            return f"ok: {shlex.join(self.argv)}"
        return f"rejected: {self.reason}"


@dataclass(frozen=True, slots=True)
class CommandElevationInput:
    config_path: str | None = None


@dataclass(frozen=True, slots=True)
class CommandElevationOutput:
    tool: str
    available: bool

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        status = "available" if self.available else "unavailable"
        return f"{self.tool}: {status}"


def _to_command(
    program: str,
    arguments: tuple[str, ...],
    *,
    sudo: bool,
    affected_process: str | None = None,
) -> Command:
    return Command(
        program=program,
        arguments=tuple(arguments),
        requires_elevation=sudo,
        affected_process=affected_process,
    )


async def command_exec(payload: CommandExecInput) -> ExecutionResult:
    engine = build_engine()
    command = _to_command(
        payload.program,
        payload.arguments,
        sudo=payload.sudo,
        affected_process=payload.affected_process,
    )
    return await engine.execute(
        command,
        payload.timeout_secs,
        cwd=resolve_cwd(payload.cwd),
    )


def command_exec_sync(payload: CommandExecInput) -> ExecutionResult:
    return asyncio.run(command_exec(payload))


def command_check_sync(payload: CommandCheckInput) -> CommandCheckOutput:
    """Dry-run validation: the same checks `exec` applies, without spawning."""

    engine = build_engine()
    command = _to_command(payload.program, payload.arguments, sudo=payload.sudo)
    argv = engine.resolve_argv(command)
    try:
        command.validate()
        validate_elevated_command(command, scratch_paths=engine.scratch_paths)
    except ValidationFailedError as exc:
        return CommandCheckOutput(ok=False, argv=argv, reason=exc.message)
    return CommandCheckOutput(ok=True, argv=argv)


async def command_check(payload: CommandCheckInput) -> CommandCheckOutput:
    return await asyncio.to_thread(command_check_sync, payload)


async def command_elevation(payload: CommandElevationInput) -> CommandElevationOutput:
    engine = build_engine(payload.config_path)
    available = await engine.elevation_available()
    return CommandElevationOutput(tool=engine.elevation_tool, available=available)


def command_elevation_sync(payload: CommandElevationInput) -> CommandElevationOutput:
    return asyncio.run(command_elevation(payload))


operation(
    OperationSpec[CommandExecInput, ExecutionResult](
        name="command.exec",
        handler=command_exec,
        sync_handler=command_exec_sync,
        input_type=CommandExecInput,
        output_type=ExecutionResult,
        description="Run a command to completion under a timeout and return its output.",
    )
)

operation(
    OperationSpec[CommandCheckInput, CommandCheckOutput](
        name="command.check",
        handler=command_check,
        sync_handler=command_check_sync,
        input_type=CommandCheckInput,
        output_type=CommandCheckOutput,
        description="Validate a command against the elevation firewall without running it.",
    )
)

operation(
    OperationSpec[CommandElevationInput, CommandElevationOutput](
        name="command.elevation",
        handler=command_elevation,
        sync_handler=command_elevation_sync,
        input_type=CommandElevationInput,
        output_type=CommandElevationOutput,
        description="Report whether the elevation tool runs without a credential prompt.",
    )
)
