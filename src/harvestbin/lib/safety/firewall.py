"""Static pre-execution checks for commands run through the elevation tool.

This is a denylist over command/argument shapes, not a shell parser and not a
sandbox. Symlinks and relative paths that resolve into protected roots after
validation are not caught.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from typing import TYPE_CHECKING, Final

import structlog

from harvestbin.lib.config.settings import HarvestConfig
from harvestbin.lib.exec.errors import ValidationFailedError

if TYPE_CHECKING:
    from harvestbin.lib.command import CommandDescriptor

logger = structlog.get_logger(__name__)

# Longest first so the reported pattern names the full operator.
SHELL_METACHARACTERS: Final[tuple[str, ...]] = (
    "&&",
    "||",
    "$(",
    "${",
    ";",
    "&",
    "|",
    "`",
    "$",
)
DESTRUCTIVE_COMMANDS: Final[frozenset[str]] = frozenset({"rm", "format", "dd", "chmod", "chown"})
PROTECTED_DELETE_ROOTS: Final[tuple[str, ...]] = (
    "/",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/System",
)
PROTECTED_MODIFY_ROOTS: Final[tuple[str, ...]] = (
    "/bin",
    "/sbin",
    "/usr/bin",
    "/usr/sbin",
    "/System",
)
DEFAULT_SCRATCH_PATHS: Final[tuple[str, ...]] = HarvestConfig().scratch_paths


def find_shell_metacharacter(value: str) -> str | None:
    """Return the first unsafe pattern found in value, if any."""

    for pattern in SHELL_METACHARACTERS:
        if pattern in value:
            return pattern
    return None


def _matches_root(argument: str, roots: Iterable[str]) -> str | None:
    for root in roots:
        if argument.startswith(root):
            return root
    return None


def _check_metacharacters(command: CommandDescriptor) -> None:
    pattern = find_shell_metacharacter(command.program)
    if pattern is not None:
        raise ValidationFailedError(f"Command contains potentially unsafe pattern: {pattern}")
    for argument in command.arguments:
        pattern = find_shell_metacharacter(argument)
        if pattern is not None:
            raise ValidationFailedError(
                f"Argument contains potentially unsafe pattern: {pattern}"
            )


def _check_delete(arguments: Iterable[str], scratch_paths: tuple[str, ...]) -> None:
    for argument in arguments:
        if _matches_root(argument, scratch_paths) is not None:
            continue
        if _matches_root(argument, PROTECTED_DELETE_ROOTS) is not None:
            raise ValidationFailedError(f"Refusing to delete system path: {argument}")


def _check_modify(arguments: Iterable[str]) -> None:
    for argument in arguments:
        if _matches_root(argument, PROTECTED_MODIFY_ROOTS) is not None:
            raise ValidationFailedError(f"Refusing to modify system path: {argument}")


def command_name(program: str) -> str:
    """Basename used to recognise destructive commands given by absolute path."""

    return posixpath.basename(program.rstrip("/")) or program


def validate_elevated_command(
    command: CommandDescriptor,
    *,
    scratch_paths: tuple[str, ...] = DEFAULT_SCRATCH_PATHS,
) -> None:
    """Reject unsafe shapes for a command that will run elevated.

    No-op when the command does not require elevation.
    """

    if not command.requires_elevation:
        return

    _check_metacharacters(command)

    name = command_name(command.program)
    if name not in DESTRUCTIVE_COMMANDS:
        return

    logger.debug("destructive_command_checked", program=command.program)
    if name == "rm":
        _check_delete(command.arguments, scratch_paths)
    elif name in {"chmod", "chown"}:
        _check_modify(command.arguments)
