"""Async command execution: validate, spawn, race the timeout, classify."""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any, TypeAlias

import structlog

from harvestbin.lib.command import Command, CommandDescriptor
from harvestbin.lib.config.settings import HarvestConfig, load_config
from harvestbin.lib.domain import ExecutionResult, InvocationContext
from harvestbin.lib.exec.errors import (
    ExecutionError,
    ExecutionFailedError,
    classify_error,
    report_error,
)
from harvestbin.lib.exec.signals import ProcessSignaler, normalize_exit_code
from harvestbin.lib.exec.timeout import cancel_and_wait, terminate_process, wait_for_process_exit
from harvestbin.lib.extract.output import decode_output
from harvestbin.lib.logging import bind_command
from harvestbin.lib.safety.firewall import validate_elevated_command

Spawner: TypeAlias = Callable[..., Awaitable[asyncio.subprocess.Process]]

_DEFAULT_CONFIG = HarvestConfig()
logger = structlog.get_logger(__name__)


class ExecutionEngine:
    """Runs command descriptors to completion under a timeout.

    Elevation is a plain parameter: elevated commands run as
    `<elevation_tool> <program> <arguments...>` after passing the firewall.
    """

    def __init__(
        self,
        *,
        elevation_tool: str = _DEFAULT_CONFIG.elevation_tool,
        default_timeout_seconds: float = _DEFAULT_CONFIG.default_timeout_seconds,
        kill_grace_seconds: float = _DEFAULT_CONFIG.kill_grace_seconds,
        signal_grace_seconds: float = _DEFAULT_CONFIG.signal_grace_seconds,
        kill_fallback_delay_seconds: float = _DEFAULT_CONFIG.kill_fallback_delay_seconds,
        scratch_paths: tuple[str, ...] = _DEFAULT_CONFIG.scratch_paths,
        spawner: Spawner | None = None,
    ) -> None:
        if not elevation_tool.strip():
            raise ValueError("elevation_tool must not be empty.")
        self.elevation_tool = elevation_tool
        self.default_timeout_seconds = default_timeout_seconds
        self.kill_grace_seconds = kill_grace_seconds
        self.scratch_paths = scratch_paths
        self._spawner: Spawner = spawner or asyncio.create_subprocess_exec
        self.signaler = ProcessSignaler(
            self,
            grace_seconds=signal_grace_seconds,
            fallback_delay_seconds=kill_fallback_delay_seconds,
        )

    @classmethod
    def from_config(cls, config: HarvestConfig | None = None, **overrides: Any) -> ExecutionEngine:
        resolved = load_config() if config is None else config
        options: dict[str, Any] = {
            "elevation_tool": resolved.elevation_tool,
            "default_timeout_seconds": resolved.default_timeout_seconds,
            "kill_grace_seconds": resolved.kill_grace_seconds,
            "signal_grace_seconds": resolved.signal_grace_seconds,
            "kill_fallback_delay_seconds": resolved.kill_fallback_delay_seconds,
            "scratch_paths": resolved.scratch_paths,
        }
        options.update(overrides)
        return cls(**options)

    def resolve_argv(self, command: CommandDescriptor) -> tuple[str, ...]:
        if command.requires_elevation:
            return (self.elevation_tool, command.program, *command.arguments)
        return (command.program, *command.arguments)

    async def execute(
        self,
        command: CommandDescriptor,
        timeout_seconds: float | None = None,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        report: bool = True,
    ) -> ExecutionResult:
        """Run one command and return its buffered result.

        A None timeout uses the engine default; zero or less disables it.
        Non-zero exits raise ExecutionFailedError; every raised error is one of
        the taxonomy kinds. With report=False failures are raised without the
        `command_failed` log event, for callers that treat some exits as answers.
        """

        context = InvocationContext.from_command(
            command,
            working_directory=None if cwd is None else str(cwd),
            environment=env,
        )
        with bind_command(command):
            try:
                return await self._execute_checked(command, timeout_seconds, cwd=cwd, env=env)
            except ExecutionError as exc:
                if report:
                    report_error(exc, context)
                raise
            except Exception as exc:
                mapped = classify_error(exc, context)
                if report:
                    report_error(mapped, context)
                raise mapped from exc

    async def _execute_checked(
        self,
        command: CommandDescriptor,
        timeout_seconds: float | None,
        *,
        cwd: Path | None,
        env: Mapping[str, str] | None,
    ) -> ExecutionResult:
        command.validate()
        if command.requires_elevation:
            validate_elevated_command(command, scratch_paths=self.scratch_paths)

        result = await self._run_process(
            self.resolve_argv(command),
            timeout_seconds=(
                self.default_timeout_seconds if timeout_seconds is None else timeout_seconds
            ),
            cwd=cwd,
            env=env,
        )
        if not result.succeeded:
            raise ExecutionFailedError(result.exit_code, result.stderr)

        if command.affected_process is not None:
            await self.signaler.signal_by_name(command.affected_process)
        return result

    def execute_sync(
        self,
        command: CommandDescriptor,
        timeout_seconds: float | None = None,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ExecutionResult:
        return asyncio.run(self.execute(command, timeout_seconds, cwd=cwd, env=env))

    async def elevation_available(self) -> bool:
        """Whether the elevation tool runs without prompting for credentials."""

        check = Command(program=self.elevation_tool, arguments=("-n", "true"))
        try:
            result = await self.execute(check, timeout_seconds=self.default_timeout_seconds)
        except ExecutionError:
            return False
        return result.succeeded

    async def _run_process(
        self,
        argv: tuple[str, ...],
        *,
        timeout_seconds: float,
        cwd: Path | None,
        env: Mapping[str, str] | None,
    ) -> ExecutionResult:
        child_env = None if env is None else {**os.environ, **env}
        started = time.monotonic()
        process = await self._spawner(
            *argv,
            cwd=None if cwd is None else str(cwd),
            env=child_env,
            start_new_session=True,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        if process.stdout is None or process.stderr is None:
            raise RuntimeError("Subprocess did not expose stdout/stderr pipes.")
        logger.debug("process_spawned", pid=process.pid, argv=list(argv))

        stdout_task = asyncio.ensure_future(process.stdout.read())
        stderr_task = asyncio.ensure_future(process.stderr.read())
        readers = (stdout_task, stderr_task)
        try:
            raw_return_code = await wait_for_process_exit(
                process,
                timeout_seconds=timeout_seconds,
                kill_grace_seconds=self.kill_grace_seconds,
                readers=readers,
            )
            stdout_bytes, stderr_bytes = stdout_task.result(), stderr_task.result()
        except asyncio.CancelledError:
            await terminate_process(
                process,
                grace_seconds=self.kill_grace_seconds,
                readers=readers,
            )
            raise
        finally:
            await cancel_and_wait(*readers)

        elapsed = time.monotonic() - started
        exit_code = normalize_exit_code(raw_return_code)
        logger.debug("process_exited", pid=process.pid, exit_code=exit_code, elapsed=elapsed)
        return ExecutionResult(
            exit_code=exit_code,
            stdout=decode_output(stdout_bytes),
            stderr=decode_output(stderr_bytes),
            elapsed_seconds=elapsed,
        )


async def execute_command(
    command: CommandDescriptor,
    timeout_seconds: float | None = None,
    *,
    config: HarvestConfig | None = None,
) -> ExecutionResult:
    """Run one command with an engine built from the loaded config."""

    engine = ExecutionEngine.from_config(config)
    return await engine.execute(command, timeout_seconds)
