"""Process signalling and lookup operations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from harvestbin.lib.exec.signals import ProcessSignal
from harvestbin.lib.ops._runtime import build_engine
from harvestbin.lib.ops.registry import OperationSpec, operation

if TYPE_CHECKING:
    from harvestbin.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class ProcessSignalInput:
    name: str
    signal: str = ProcessSignal.TERM.value
    grace_secs: float | None = None


@dataclass(frozen=True, slots=True)
class ProcessKillInput:
    pid: int
    signal: str = ProcessSignal.TERM.value


@dataclass(frozen=True, slots=True)
class ProcessQueryInput:
    name: str


@dataclass(frozen=True, slots=True)
class ProcessActionOutput:
    target: str
    signal: str

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return f"ok: sent {self.signal} to {self.target}"


@dataclass(frozen=True, slots=True)
class ProcessPidsOutput:
    name: str
    pids: tuple[int, ...]

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        if not self.pids:
            return "(no matching processes)"
        return "\n".join(str(pid) for pid in self.pids)


@dataclass(frozen=True, slots=True)
class ProcessRunningOutput:
    name: str
    running: bool

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        status = "running" if self.running else "not running"
        return f"{self.name}: {status}"


def _parse_signal(raw: str) -> ProcessSignal:
    normalized = raw.strip().upper().removeprefix("SIG")
    try:
        return ProcessSignal(normalized)
    except ValueError as exc:
        choices = ", ".join(item.value for item in ProcessSignal)
        raise ValueError(f"Unsupported signal '{raw}'. Expected one of: {choices}.") from exc


async def process_signal(payload: ProcessSignalInput) -> ProcessActionOutput:
    sig = _parse_signal(payload.signal)
    engine = build_engine()
    await engine.signaler.signal_by_name(payload.name, sig, grace_seconds=payload.grace_secs)
    return ProcessActionOutput(target=payload.name, signal=sig.value)


def process_signal_sync(payload: ProcessSignalInput) -> ProcessActionOutput:
    return asyncio.run(process_signal(payload))


async def process_kill(payload: ProcessKillInput) -> ProcessActionOutput:
    sig = _parse_signal(payload.signal)
    engine = build_engine()
    await engine.signaler.signal_by_id(payload.pid, sig)
    return ProcessActionOutput(target=f"pid {payload.pid}", signal=sig.value)


def process_kill_sync(payload: ProcessKillInput) -> ProcessActionOutput:
    return asyncio.run(process_kill(payload))


async def process_pids(payload: ProcessQueryInput) -> ProcessPidsOutput:
    engine = build_engine()
    pids = await engine.signaler.list_pids(payload.name)
    return ProcessPidsOutput(name=payload.name, pids=tuple(pids))


def process_pids_sync(payload: ProcessQueryInput) -> ProcessPidsOutput:
    return asyncio.run(process_pids(payload))


async def process_running(payload: ProcessQueryInput) -> ProcessRunningOutput:
    engine = build_engine()
    running = await engine.signaler.is_running(payload.name)
    return ProcessRunningOutput(name=payload.name, running=running)


def process_running_sync(payload: ProcessQueryInput) -> ProcessRunningOutput:
    return asyncio.run(process_running(payload))


operation(
    OperationSpec[ProcessSignalInput, ProcessActionOutput](
        name="process.signal",
        handler=process_signal,
        sync_handler=process_signal_sync,
        input_type=ProcessSignalInput,
        output_type=ProcessActionOutput,
        description="Signal every process whose command line matches a name.",
    )
)

operation(
    OperationSpec[ProcessKillInput, ProcessActionOutput](
        name="process.kill",
        handler=process_kill,
        sync_handler=process_kill_sync,
        input_type=ProcessKillInput,
        output_type=ProcessActionOutput,
        description="Send a signal to one process by PID.",
    )
)

operation(
    OperationSpec[ProcessQueryInput, ProcessPidsOutput](
        name="process.pids",
        handler=process_pids,
        sync_handler=process_pids_sync,
        input_type=ProcessQueryInput,
        output_type=ProcessPidsOutput,
        description="List PIDs whose command line matches a name.",
    )
)

operation(
    OperationSpec[ProcessQueryInput, ProcessRunningOutput](
        name="process.running",
        handler=process_running,
        sync_handler=process_running_sync,
        input_type=ProcessQueryInput,
        output_type=ProcessRunningOutput,
        description="Report whether any process matches a name.",
    )
)
