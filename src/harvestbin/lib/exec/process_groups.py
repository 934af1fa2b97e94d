"""Delivery of lifecycle signals to a spawned child's process group.

Children are started with `start_new_session=True`, so the group id equals
the child's pid and signalling the group also reaches anything the child
forked.
"""

from __future__ import annotations

import asyncio
import os
import signal

import structlog

logger = structlog.get_logger(__name__)


def _target_group(pid: int) -> int | None:
    try:
        return os.getpgid(pid)
    except ProcessLookupError:
        return None


def signal_process_group(process: asyncio.subprocess.Process, signum: signal.Signals) -> bool:
    """Send signum to the child's group and report whether anything was signalled.

    A child already reaped is skipped. A child still in our own group gets
    the signal alone.
    """

    if process.returncode is not None or process.pid is None:
        return False

    pgid = _target_group(process.pid)
    if pgid is None:
        return False

    try:
        if pgid == os.getpgrp():
            process.send_signal(signum)
        else:
            os.killpg(pgid, signum)
    except ProcessLookupError:
        # Reaped between the group lookup and delivery.
        return False

    logger.debug("process_group_signalled", pid=process.pid, pgid=pgid, signal=signum.name)
    return True


def signal_orphaned_group(process: asyncio.subprocess.Process, signum: signal.Signals) -> bool:
    """Signal what is left of the child's group after the child itself was reaped.

    The group id outlives its leader while any member remains, so descendants
    still holding the child's pipes are reached through it.
    """

    pgid = process.pid
    if pgid is None or pgid == os.getpgrp():
        return False
    try:
        os.killpg(pgid, signum)
    except ProcessLookupError:
        return False

    logger.debug("process_group_signalled", pid=process.pid, pgid=pgid, signal=signum.name)
    return True
