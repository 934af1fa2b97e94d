"""Closed error taxonomy, failure classification and recovery hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from harvestbin.lib.domain import InvocationContext
    from harvestbin.lib.formatting import FormatContext

logger = structlog.get_logger(__name__)


class ErrorKind(StrEnum):
    VALIDATION_FAILED = "validation_failed"
    EXECUTION_FAILED = "execution_failed"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    OUTPUT_PARSING_FAILED = "output_parsing_failed"
    INVALID_OUTPUT = "invalid_output"
    UNKNOWN_DOMAIN = "unknown_domain"
    UNKNOWN_KEY = "unknown_key"
    TYPE_MISMATCH = "type_mismatch"


class ExecutionError(Exception):
    """Base class for every error that crosses the engine boundary."""

    kind: ErrorKind = ErrorKind.EXECUTION_FAILED

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value, "message": self.message}


class ValidationFailedError(ExecutionError):
    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Command validation failed: {reason}")


class ExecutionFailedError(ExecutionError):
    kind = ErrorKind.EXECUTION_FAILED

    def __init__(self, exit_code: int, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Command execution failed with exit code {exit_code}: {stderr}")

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["exit_code"] = self.exit_code
        payload["stderr"] = self.stderr
        return payload


class PermissionDeniedError(ExecutionError):
    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self) -> None:
        super().__init__("Permission denied")


class CommandTimeoutError(ExecutionError, TimeoutError):
    """Raised after a timed-out process has been terminated."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        message = "Command execution timed out"
        if timeout_seconds is not None:
            message = f"{message} after {timeout_seconds:.3f}s"
        super().__init__(message)


class OutputParsingError(ExecutionError):
    kind = ErrorKind.OUTPUT_PARSING_FAILED

    def __init__(self) -> None:
        super().__init__("Failed to parse command output")


class InvalidOutputError(ExecutionError):
    kind = ErrorKind.INVALID_OUTPUT

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid command output: {reason}")


class UnknownDomainError(ExecutionError):
    kind = ErrorKind.UNKNOWN_DOMAIN

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown domain: {name}")


class UnknownKeyError(ExecutionError):
    kind = ErrorKind.UNKNOWN_KEY

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown key: {name}")


class TypeMismatchError(ExecutionError):
    kind = ErrorKind.TYPE_MISMATCH

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Type mismatch: expected {expected}, got {actual}")


_PERMISSION_MARKERS: tuple[str, ...] = ("permission denied",)
_NOT_FOUND_MARKERS: tuple[str, ...] = ("command not found", "no such file or directory")
_TIMEOUT_MARKERS: tuple[str, ...] = ("timeout", "timed out")
_NETWORK_MARKERS: tuple[str, ...] = ("network", "connection")

SIGNAL_EXIT_BASE = 128
_SIGNAL_EXIT_MAX = 165


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def _describe(raw: BaseException) -> str:
    description = str(raw).strip()
    return description or type(raw).__name__


def classify_exit_code(
    exit_code: int,
    context: InvocationContext,
    detail: str = "",
) -> ExecutionError:
    """Map a raw exit code onto the taxonomy using the shell exit-code contract."""

    if exit_code == 0:
        return ValidationFailedError("Unexpected success exit code in error context")
    if exit_code == 1:
        return ExecutionFailedError(exit_code, f"General error: {detail}")
    if exit_code == 2:
        return ValidationFailedError("Misuse of shell builtin or invalid arguments")
    if exit_code == 126:
        return PermissionDeniedError()
    if exit_code == 127:
        return ValidationFailedError(f"Command '{context.program}' not found")
    if SIGNAL_EXIT_BASE <= exit_code <= _SIGNAL_EXIT_MAX:
        signum = exit_code - SIGNAL_EXIT_BASE
        return ExecutionFailedError(
            exit_code,
            f"Process terminated by signal {signum}: {detail}",
        )
    return ExecutionFailedError(exit_code, detail)


def classify_error(
    raw: BaseException,
    context: InvocationContext,
    exit_code: int | None = None,
) -> ExecutionError:
    """Convert any raised error into one of the taxonomy kinds."""

    if isinstance(raw, ExecutionError):
        return raw

    description = _describe(raw)
    normalized = description.lower()

    if isinstance(raw, PermissionError) or _contains_any(normalized, _PERMISSION_MARKERS):
        return PermissionDeniedError()
    if _contains_any(normalized, _NOT_FOUND_MARKERS):
        return ValidationFailedError(
            f"Command '{context.program}' not found. Ensure it is installed and in PATH."
        )
    if isinstance(raw, TimeoutError) or _contains_any(normalized, _TIMEOUT_MARKERS):
        return CommandTimeoutError()
    if _contains_any(normalized, _NETWORK_MARKERS):
        return ExecutionFailedError(
            exit_code if exit_code is not None else -1,
            f"Network error: {description}",
        )

    if exit_code is not None:
        return classify_exit_code(exit_code, context, detail=description)
    return ExecutionFailedError(-1, description)


_KIND_SUGGESTIONS: dict[ErrorKind, tuple[str, ...]] = {
    ErrorKind.VALIDATION_FAILED: ("Review the validation error and correct the input",),
    ErrorKind.EXECUTION_FAILED: ("Check the command output for specific error details",),
    ErrorKind.PERMISSION_DENIED: (
        "Check file and directory permissions",
        "Run with appropriate user privileges",
        "Use sudo if elevated privileges are required",
    ),
    ErrorKind.TIMEOUT: (
        "Increase the command timeout value",
        "Check if the process is hanging or waiting for input",
        "Ensure sufficient system resources are available",
    ),
    ErrorKind.OUTPUT_PARSING_FAILED: (
        "Verify the command produces expected output format",
        "Check for malformed or incomplete output",
        "Ensure proper encoding (UTF-8) is used",
    ),
    ErrorKind.INVALID_OUTPUT: (
        "Check the command output format",
        "Verify the command executed successfully",
        "Review any parsing or formatting requirements",
    ),
    ErrorKind.UNKNOWN_DOMAIN: (
        "Verify the domain name is correct",
        "Check available domains with 'defaults domains'",
    ),
    ErrorKind.UNKNOWN_KEY: (
        "Verify the key exists in the specified domain",
        "List available keys to find the correct one",
    ),
    ErrorKind.TYPE_MISMATCH: (
        "Convert the value to the expected type",
        "Check the current type of the stored value",
        "Use appropriate type conversion utilities",
    ),
}


def _validation_suggestions(error: ValidationFailedError) -> tuple[str, ...]:
    reason = error.reason.lower()
    if "not found" in reason:
        return (
            "Install the required command with the system package manager",
            "Check that the command is in your PATH environment variable",
            "Verify the command name spelling",
        )
    if "invalid arguments" in reason:
        return (
            "Check the command syntax and arguments",
            "Refer to the command's manual page (man <command>)",
            "Ensure all required parameters are provided",
        )
    return _KIND_SUGGESTIONS[ErrorKind.VALIDATION_FAILED]


def _execution_suggestions(error: ExecutionFailedError) -> tuple[str, ...]:
    stderr = error.stderr.lower()
    suggestions = list(_KIND_SUGGESTIONS[ErrorKind.EXECUTION_FAILED])
    if "permission denied" in stderr:
        suggestions.append("Try running with elevated privileges (sudo)")
        suggestions.append("Check file and directory permissions")
    if "file not found" in stderr or "no such file" in stderr:
        suggestions.append("Verify that the target file or directory exists")
        suggestions.append("Check the file path for typos")
    if _contains_any(stderr, _NETWORK_MARKERS):
        suggestions.append("Check your network connection")
        suggestions.append("Verify network settings and firewall configuration")
        suggestions.append("Try again after a short delay")
    return tuple(suggestions)


def recovery_suggestions(error: ExecutionError | ErrorKind) -> tuple[str, ...]:
    """Return user-facing remediation hints; never empty."""

    if isinstance(error, ErrorKind):
        return _KIND_SUGGESTIONS[error]
    if isinstance(error, ValidationFailedError):
        return _validation_suggestions(error)
    if isinstance(error, ExecutionFailedError):
        return _execution_suggestions(error)
    if isinstance(error, UnknownDomainError):
        return (f"Verify the domain '{error.name}' is correct", *_KIND_SUGGESTIONS[error.kind][1:])
    if isinstance(error, UnknownKeyError):
        return (
            f"Verify the key '{error.name}' exists in the specified domain",
            *_KIND_SUGGESTIONS[error.kind][1:],
        )
    if isinstance(error, TypeMismatchError):
        return (
            f"Convert the value to the expected type: {error.expected}",
            f"Check the current type: {error.actual}",
            "Use appropriate type conversion utilities",
        )
    return _KIND_SUGGESTIONS[error.kind]


@dataclass(frozen=True, slots=True)
class ErrorReport:
    """Classified error bundled with its invocation context and hints."""

    error: ExecutionError
    context: InvocationContext
    suggestions: tuple[str, ...]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        lines = [
            f"Error: {self.error.message}",
            f"Command: {self.context.command_line}",
        ]
        if self.context.working_directory is not None:
            lines.append(f"Working Directory: {self.context.working_directory}")
        lines.append(f"Timestamp: {self.timestamp.isoformat()}")
        lines.append("Recovery Suggestions:")
        lines.extend(
            f"{index}. {suggestion}" for index, suggestion in enumerate(self.suggestions, start=1)
        )
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "error": self.error.to_dict(),
            "program": self.context.program,
            "arguments": list(self.context.arguments),
            "working_directory": self.context.working_directory,
            "suggestions": list(self.suggestions),
            "timestamp": self.timestamp.isoformat(),
        }


def build_error_report(error: ExecutionError, context: InvocationContext) -> ErrorReport:
    return ErrorReport(
        error=error,
        context=context,
        suggestions=recovery_suggestions(error),
    )


def report_error(error: ExecutionError, context: InvocationContext) -> ErrorReport:
    """Build an error report and log it."""

    report = build_error_report(error, context)
    logger.info(
        "command_failed",
        kind=error.kind.value,
        error=error.message,
        program=context.program,
        arguments=list(context.arguments),
        suggestions=list(report.suggestions),
    )
    return report
