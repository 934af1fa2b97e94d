"""CLI command handlers for process.* operations."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Annotated, Any

from cyclopts import Parameter

from harvestbin.cli.registration import register_group
from harvestbin.lib.ops.process import (
    ProcessKillInput,
    ProcessQueryInput,
    ProcessSignalInput,
    process_kill_sync,
    process_pids_sync,
    process_running_sync,
    process_signal_sync,
)

Emitter = Callable[[Any], None]

_SIGNAL_HELP = "Signal to send: TERM, KILL, INT or QUIT."


def _process_signal(
    emit: Emitter,
    name: str,
    signal: Annotated[str, Parameter(name="--signal", help=_SIGNAL_HELP)] = "TERM",
    grace_secs: Annotated[
        float | None,
        Parameter(name="--grace-secs", help="Seconds to wait before signalling."),
    ] = None,
) -> None:
    emit(process_signal_sync(ProcessSignalInput(name=name, signal=signal, grace_secs=grace_secs)))


def _process_kill(
    emit: Emitter,
    pid: int,
    signal: Annotated[str, Parameter(name="--signal", help=_SIGNAL_HELP)] = "TERM",
) -> None:
    emit(process_kill_sync(ProcessKillInput(pid=pid, signal=signal)))


def _process_pids(emit: Emitter, name: str) -> None:
    emit(process_pids_sync(ProcessQueryInput(name=name)))


def _process_running(emit: Emitter, name: str) -> None:
    output = process_running_sync(ProcessQueryInput(name=name))
    emit(output)
    if not output.running:
        raise SystemExit(1)


def register_process_commands(app: Any, emit: Emitter) -> tuple[set[str], dict[str, str]]:
    return register_group(
        app,
        "process",
        {
            "process.signal": partial(_process_signal, emit),
            "process.kill": partial(_process_kill, emit),
            "process.pids": partial(_process_pids, emit),
            "process.running": partial(_process_running, emit),
        },
    )
