"""CLI command handlers for command.* operations."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Annotated, Any

from cyclopts import Parameter

from harvestbin.cli.output import exit_code_for_error
from harvestbin.cli.registration import register_group
from harvestbin.lib.domain import InvocationContext
from harvestbin.lib.exec.errors import ErrorReport, ExecutionError, build_error_report
from harvestbin.lib.ops.command import (
    CommandCheckInput,
    CommandElevationInput,
    CommandExecInput,
    command_check_sync,
    command_elevation_sync,
    command_exec_sync,
)

Emitter = Callable[[Any], None]
ReportEmitter = Callable[[ErrorReport], None]


def _command_exec(
    emit: Emitter,
    emit_report: ReportEmitter,
    program: str,
    *arguments: str,
    sudo: Annotated[
        bool,
        Parameter(name="--sudo", help="Run through the elevation tool after firewall checks."),
    ] = False,
    timeout_secs: Annotated[
        float | None,
        Parameter(name="--timeout-secs", help="Timeout in seconds; 0 disables it."),
    ] = None,
    affected_process: Annotated[
        str | None,
        Parameter(
            name="--affected-process",
            help="Process name to signal after the command succeeds.",
        ),
    ] = None,
    cwd: Annotated[
        str | None,
        Parameter(name="--cwd", help="Working directory for the command."),
    ] = None,
) -> None:
    payload = CommandExecInput(
        program=program,
        arguments=tuple(arguments),
        sudo=sudo,
        affected_process=affected_process,
        timeout_secs=timeout_secs,
        cwd=cwd,
    )
    try:
        result = command_exec_sync(payload)
    except ExecutionError as exc:
        context = InvocationContext(
            program=program,
            arguments=tuple(arguments),
            working_directory=cwd,
        )
        emit_report(build_error_report(exc, context))
        raise SystemExit(exit_code_for_error(exc)) from None
    emit(result)


def _command_check(
    emit: Emitter,
    program: str,
    *arguments: str,
    sudo: Annotated[
        bool,
        Parameter(name="--sudo", help="Apply the elevation firewall (default on)."),
    ] = True,
) -> None:
    output = command_check_sync(
        CommandCheckInput(program=program, arguments=tuple(arguments), sudo=sudo)
    )
    emit(output)
    if not output.ok:
        raise SystemExit(2)


def _command_elevation(
    emit: Emitter,
    config_path: Annotated[
        str | None,
        Parameter(name="--config", help="Config file to read the elevation tool from."),
    ] = None,
) -> None:
    emit(command_elevation_sync(CommandElevationInput(config_path=config_path)))


def register_command_commands(
    app: Any,
    emit: Emitter,
    emit_report: ReportEmitter,
) -> tuple[set[str], dict[str, str]]:
    return register_group(
        app,
        "command",
        {
            "command.exec": partial(_command_exec, emit, emit_report),
            "command.check": partial(_command_check, emit),
            "command.elevation": partial(_command_elevation, emit),
        },
    )
