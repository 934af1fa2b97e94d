"""Targeted process signalling with graceful-then-forceful escalation."""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Iterable
from enum import StrEnum
from typing import TYPE_CHECKING, Final

import structlog

from harvestbin.lib.command import Command
from harvestbin.lib.config.settings import HarvestConfig
from harvestbin.lib.domain import InvocationContext
from harvestbin.lib.exec.errors import (
    SIGNAL_EXIT_BASE,
    ExecutionFailedError,
    ValidationFailedError,
    classify_error,
)
from harvestbin.lib.extract.output import parse_lines

if TYPE_CHECKING:
    from harvestbin.lib.ports import CommandRunner

logger = structlog.get_logger(__name__)

_DEFAULT_CONFIG = HarvestConfig()
DEFAULT_SIGNAL_GRACE_SECONDS = _DEFAULT_CONFIG.signal_grace_seconds
DEFAULT_KILL_FALLBACK_DELAY_SECONDS = _DEFAULT_CONFIG.kill_fallback_delay_seconds
DEFAULT_QUERY_TIMEOUT_SECONDS = 10.0

PROTECTED_PROCESS_NAMES: Final[frozenset[str]] = frozenset(
    {"kernel", "launchd", "init", "systemd", "kernel_task"}
)
INVALID_NAME_CHARACTERS: Final[tuple[str, ...]] = (
    ";",
    "&",
    "|",
    "`",
    "$",
    "(",
    ")",
    "<",
    ">",
    '"',
    "'",
)
# pgrep and ps exit status when nothing matched.
NO_MATCH_EXIT_CODE: Final[int] = 1
PROCESS_MATCH_TOOL = "pgrep"
PROCESS_NAME_TOOL = "ps"
INIT_PID: Final[int] = 1


class ProcessSignal(StrEnum):
    TERM = "TERM"
    KILL = "KILL"
    INT = "INT"
    QUIT = "QUIT"

    @property
    def signum(self) -> signal.Signals:
        return signal.Signals[f"SIG{self.value}"]

    @property
    def flag(self) -> str:
        return f"-{self.value}"


def normalize_exit_code(raw_return_code: int) -> int:
    """Map asyncio's negative signal return codes onto the 128+N convention."""

    if raw_return_code >= 0:
        return raw_return_code
    return SIGNAL_EXIT_BASE + (-raw_return_code)


def validate_process_name(name: str) -> None:
    if not name or not name.strip():
        raise ValidationFailedError("Process name cannot be empty")
    for character in INVALID_NAME_CHARACTERS:
        if character in name:
            raise ValidationFailedError(f"Process name contains invalid character: {character}")
    if name.lstrip().startswith("-"):
        raise ValidationFailedError(f"Process name cannot start with '-': {name}")
    if name.strip().lower() in PROTECTED_PROCESS_NAMES:
        raise ValidationFailedError(f"Cannot signal protected system process: {name}")


class ProcessSignaler:
    """Signal processes by name (pattern match on the full command line) or PID."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        grace_seconds: float = DEFAULT_SIGNAL_GRACE_SECONDS,
        fallback_delay_seconds: float = DEFAULT_KILL_FALLBACK_DELAY_SECONDS,
        query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
    ) -> None:
        self._runner = runner
        self._grace_seconds = grace_seconds
        self._fallback_delay_seconds = fallback_delay_seconds
        self._query_timeout_seconds = query_timeout_seconds

    async def _query(self, program: str, *arguments: str) -> str | None:
        """Run a process lookup tool; None when it reports no match."""

        query = Command(program=program, arguments=arguments)
        try:
            result = await self._runner.execute(
                query,
                timeout_seconds=self._query_timeout_seconds,
                report=False,
            )
        except ExecutionFailedError as exc:
            if exc.exit_code == NO_MATCH_EXIT_CODE:
                return None
            raise
        return result.stdout

    async def _executable_names(self, pids: list[int]) -> dict[int, str]:
        output = await self._query(
            PROCESS_NAME_TOOL,
            "-o",
            "pid=,comm=",
            "-p",
            ",".join(str(pid) for pid in pids),
        )
        names: dict[int, str] = {}
        for line in parse_lines(output or ""):
            fields = line.split(maxsplit=1)
            if len(fields) == 2 and fields[0].isdigit():
                names[int(fields[0])] = os.path.basename(fields[1]).lower()
        return names

    async def list_pids(self, name: str) -> list[int]:
        """Return PIDs whose command line matches name.

        The match is a pattern search over full command lines, so this process,
        PID 1 and anything whose executable is a protected system process are
        dropped from the result, as are PIDs that exited before their names
        were read.
        """

        validate_process_name(name)
        output = await self._query(PROCESS_MATCH_TOOL, "-f", "--", name)
        if output is None:
            return []

        excluded = {os.getpid(), INIT_PID}
        candidates = [
            int(line)
            for line in parse_lines(output)
            if line.isdigit() and int(line) not in excluded
        ]
        if not candidates:
            return []

        names = await self._executable_names(candidates)
        return [
            pid
            for pid in candidates
            if pid in names and names[pid] not in PROTECTED_PROCESS_NAMES
        ]

    async def is_running(self, name: str) -> bool:
        return bool(await self.list_pids(name))

    async def signal_by_id(self, pid: int, sig: ProcessSignal = ProcessSignal.TERM) -> None:
        if pid <= 0:
            raise ValidationFailedError(f"Invalid process ID: {pid}")
        try:
            os.kill(pid, sig.signum)
        except OSError as exc:
            context = InvocationContext(program="kill", arguments=(sig.flag, str(pid)))
            raise classify_error(exc, context) from exc
        logger.debug("process_signalled", pid=pid, signal=sig.value)

    async def signal_by_name(
        self,
        name: str,
        sig: ProcessSignal = ProcessSignal.TERM,
        grace_seconds: float | None = None,
    ) -> None:
        """Signal every process matching name.

        Waits the grace period first. A TERM that reached at least one process
        is followed, after the fallback delay, by KILL to whichever of those
        processes still match. Finding no process is not an error.
        """

        validate_process_name(name)
        grace = self._grace_seconds if grace_seconds is None else grace_seconds
        if grace > 0:
            await asyncio.sleep(grace)

        signalled = self._deliver(await self.list_pids(name), sig)
        if sig is not ProcessSignal.TERM or not signalled:
            return

        await asyncio.sleep(self._fallback_delay_seconds)
        survivors = [pid for pid in await self.list_pids(name) if pid in signalled]
        if survivors:
            logger.warning("process_kill_fallback", name=name, pids=survivors)
            self._deliver(survivors, ProcessSignal.KILL)

    def _deliver(self, pids: Iterable[int], sig: ProcessSignal) -> set[int]:
        delivered: set[int] = set()
        for pid in pids:
            try:
                os.kill(pid, sig.signum)
            except ProcessLookupError:
                # Exited between listing and delivery.
                continue
            except OSError as exc:
                context = InvocationContext(program="kill", arguments=(sig.flag, str(pid)))
                raise classify_error(exc, context) from exc
            delivered.add(pid)
        logger.debug("processes_signalled", pids=sorted(delivered), signal=sig.value)
        return delivered
