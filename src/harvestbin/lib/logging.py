"""Structured diagnostics for the engine, CLI and MCP server.

Every event is a structlog key/value record on stderr. Stdout belongs to the
captured command output and the rendered op results.
"""

from __future__ import annotations

import logging as std_logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from harvestbin.lib.command import CommandDescriptor

# Indexed by -v count, clamped to the last entry.
_VERBOSITY_LEVELS: tuple[int, ...] = (std_logging.WARNING, std_logging.INFO, std_logging.DEBUG)


def level_for_verbosity(verbosity: int) -> int:
    index = min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)
    return _VERBOSITY_LEVELS[index]


def _processors(json_mode: bool) -> list[structlog.typing.Processor]:
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_mode:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(json_mode: bool = False, verbosity: int = 0) -> None:
    """Route structlog and stdlib records (mcp, asyncio) to stderr at one level."""

    level = level_for_verbosity(verbosity)
    handler = std_logging.StreamHandler(sys.stderr)
    handler.setFormatter(std_logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    std_logging.basicConfig(level=level, handlers=[handler], force=True)

    structlog.configure(
        processors=_processors(json_mode),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@contextmanager
def bind_command(command: CommandDescriptor) -> Iterator[None]:
    """Tag every event logged inside the block with the command being run."""

    with structlog.contextvars.bound_contextvars(
        program=command.program,
        elevated=command.requires_elevation,
    ):
        yield
