"""Timeout race and termination helpers for subprocess execution."""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Collection
from typing import Any

import structlog

from harvestbin.lib.config.settings import HarvestConfig
from harvestbin.lib.exec.errors import CommandTimeoutError
from harvestbin.lib.exec.process_groups import signal_orphaned_group, signal_process_group

DEFAULT_KILL_GRACE_SECONDS = HarvestConfig().kill_grace_seconds
logger = structlog.get_logger(__name__)


async def cancel_and_wait(*tasks: asyncio.Future[Any]) -> None:
    """Cancel unfinished tasks and wait until every one has settled."""

    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _signal_remaining(
    process: asyncio.subprocess.Process,
    readers: Collection[asyncio.Future[Any]],
    signum: signal.Signals,
) -> bool:
    if process.returncode is None:
        return signal_process_group(process, signum)
    if all(reader.done() for reader in readers):
        return False
    return signal_orphaned_group(process, signum)


async def _settled(
    process: asyncio.subprocess.Process,
    readers: Collection[asyncio.Future[Any]],
    timeout_seconds: float,
) -> bool:
    exit_task = asyncio.ensure_future(process.wait())
    try:
        await asyncio.wait({exit_task, *readers}, timeout=timeout_seconds)
    finally:
        await cancel_and_wait(exit_task)
    return process.returncode is not None and all(reader.done() for reader in readers)


async def terminate_process(
    process: asyncio.subprocess.Process,
    *,
    grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    readers: Collection[asyncio.Future[Any]] = (),
) -> None:
    """SIGTERM the child's group, then SIGKILL it if still alive after grace_seconds.

    The group counts as alive until the child has exited and every reader in
    readers has reached EOF, so descendants holding the pipes are killed too.
    """

    if not _signal_remaining(process, readers, signal.SIGTERM):
        return
    if await _settled(process, readers, grace_seconds):
        return

    logger.warning(
        "process_kill_escalated",
        pid=process.pid,
        grace_seconds=grace_seconds,
    )
    if _signal_remaining(process, readers, signal.SIGKILL):
        await _settled(process, readers, grace_seconds)


async def wait_for_process_exit(
    process: asyncio.subprocess.Process,
    *,
    timeout_seconds: float | None,
    kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    readers: Collection[asyncio.Future[Any]] = (),
) -> int:
    """Race process completion against a timer; terminate the group if the timer wins.

    Completion means the process exited and every reader in readers reached
    EOF. A timeout of None or <= 0 waits indefinitely. When both branches are
    ready in the same loop iteration, completion wins only if the return code
    was already latched and the readers had finished when the race resolved.
    """

    if timeout_seconds is None or timeout_seconds <= 0:
        return_code = await process.wait()
        if readers:
            await asyncio.wait(readers)
        return return_code

    exit_task = asyncio.ensure_future(process.wait())
    try:
        await asyncio.wait({exit_task, *readers}, timeout=timeout_seconds)
        latched = process.returncode
        readers_done = all(reader.done() for reader in readers)
    finally:
        await cancel_and_wait(exit_task)

    if latched is not None and readers_done:
        return latched

    logger.debug(
        "process_timeout_fired",
        pid=process.pid,
        timeout_seconds=timeout_seconds,
        exited=latched is not None,
    )
    await terminate_process(process, grace_seconds=kill_grace_seconds, readers=readers)
    raise CommandTimeoutError(timeout_seconds)
