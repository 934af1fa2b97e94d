"""Pre-execution safety checks."""

from harvestbin.lib.safety.firewall import (
    DESTRUCTIVE_COMMANDS,
    PROTECTED_DELETE_ROOTS,
    PROTECTED_MODIFY_ROOTS,
    SHELL_METACHARACTERS,
    find_shell_metacharacter,
    validate_elevated_command,
)

__all__ = [
    "DESTRUCTIVE_COMMANDS",
    "PROTECTED_DELETE_ROOTS",
    "PROTECTED_MODIFY_ROOTS",
    "SHELL_METACHARACTERS",
    "find_shell_metacharacter",
    "validate_elevated_command",
]
