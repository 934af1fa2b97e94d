"""Execution engine primitives.

The engine (`spawn`) and signaler (`signals`) import `harvestbin.lib.command`;
import them from their own modules.
"""

from harvestbin.lib.exec.errors import (
    CommandTimeoutError,
    ErrorKind,
    ErrorReport,
    ExecutionError,
    ExecutionFailedError,
    InvalidOutputError,
    OutputParsingError,
    PermissionDeniedError,
    TypeMismatchError,
    UnknownDomainError,
    UnknownKeyError,
    ValidationFailedError,
    build_error_report,
    classify_error,
    classify_exit_code,
    recovery_suggestions,
    report_error,
)
from harvestbin.lib.exec.timeout import (
    DEFAULT_KILL_GRACE_SECONDS,
    terminate_process,
    wait_for_process_exit,
)

__all__ = [
    "DEFAULT_KILL_GRACE_SECONDS",
    "CommandTimeoutError",
    "ErrorKind",
    "ErrorReport",
    "ExecutionError",
    "ExecutionFailedError",
    "InvalidOutputError",
    "OutputParsingError",
    "PermissionDeniedError",
    "TypeMismatchError",
    "UnknownDomainError",
    "UnknownKeyError",
    "ValidationFailedError",
    "build_error_report",
    "classify_error",
    "classify_exit_code",
    "recovery_suggestions",
    "report_error",
    "terminate_process",
    "wait_for_process_exit",
]
