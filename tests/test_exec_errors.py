"""Error taxonomy, classification and recovery hint tests."""

from __future__ import annotations

import pytest

from harvestbin.lib.domain import InvocationContext
from harvestbin.lib.exec.errors import (
    CommandTimeoutError,
    ErrorKind,
    ExecutionError,
    ExecutionFailedError,
    OutputParsingError,
    PermissionDeniedError,
    TypeMismatchError,
    UnknownKeyError,
    ValidationFailedError,
    build_error_report,
    classify_error,
    classify_exit_code,
    recovery_suggestions,
    report_error,
)

CONTEXT = InvocationContext(program="mytool", arguments=("--flag", "value"))


@pytest.mark.parametrize(
    "exit_code,expected_type,message_part",
    [
        pytest.param(0, ValidationFailedError, "Unexpected success", id="zero"),
        pytest.param(1, ExecutionFailedError, "General error: boom", id="general"),
        pytest.param(2, ValidationFailedError, "invalid arguments", id="misuse"),
        pytest.param(126, PermissionDeniedError, "Permission denied", id="not-executable"),
        pytest.param(127, ValidationFailedError, "Command 'mytool' not found", id="not-found"),
        pytest.param(130, ExecutionFailedError, "signal 2", id="sigint"),
        pytest.param(137, ExecutionFailedError, "signal 9", id="sigkill"),
        pytest.param(165, ExecutionFailedError, "signal 37", id="signal-range-end"),
        pytest.param(166, ExecutionFailedError, "boom", id="opaque-above-range"),
        pytest.param(42, ExecutionFailedError, "boom", id="opaque"),
    ],
)
def test_classify_exit_code_table(
    exit_code: int,
    expected_type: type[ExecutionError],
    message_part: str,
) -> None:
    error = classify_exit_code(exit_code, CONTEXT, detail="boom")
    assert type(error) is expected_type
    assert message_part in error.message


def test_signal_exit_keeps_exit_code() -> None:
    error = classify_exit_code(143, CONTEXT, detail="")
    assert isinstance(error, ExecutionFailedError)
    assert error.exit_code == 143
    assert "Process terminated by signal 15" in error.stderr


@pytest.mark.parametrize(
    "raw,expected_type",
    [
        pytest.param(PermissionError(13, "nope"), PermissionDeniedError, id="permission-error"),
        pytest.param(
            RuntimeError("Permission denied (os error 13)"),
            PermissionDeniedError,
            id="marker",
        ),
        pytest.param(TimeoutError(), CommandTimeoutError, id="timeout-error"),
        pytest.param(RuntimeError("operation timed out"), CommandTimeoutError, id="timed-out"),
        pytest.param(RuntimeError("Connection refused"), ExecutionFailedError, id="network"),
        pytest.param(RuntimeError("something odd"), ExecutionFailedError, id="fallback"),
    ],
)
def test_classify_error_markers(raw: BaseException, expected_type: type[ExecutionError]) -> None:
    assert type(classify_error(raw, CONTEXT)) is expected_type


def test_classify_error_not_found_mentions_program() -> None:
    raw = FileNotFoundError(2, "No such file or directory", "mytool")
    error = classify_error(raw, CONTEXT)
    assert isinstance(error, ValidationFailedError)
    assert "not found" in error.message
    assert "mytool" in error.message


def test_classify_error_passes_taxonomy_errors_through() -> None:
    original = UnknownKeyError("AppleLocale")
    assert classify_error(original, CONTEXT) is original


def test_classify_error_network_uses_given_exit_code() -> None:
    error = classify_error(RuntimeError("network unreachable"), CONTEXT, exit_code=7)
    assert isinstance(error, ExecutionFailedError)
    assert error.exit_code == 7
    assert error.stderr.startswith("Network error:")


def test_classify_error_falls_back_to_exit_code_table() -> None:
    error = classify_error(RuntimeError("exited"), CONTEXT, exit_code=126)
    assert isinstance(error, PermissionDeniedError)


def test_classify_error_without_exit_code_is_minus_one() -> None:
    error = classify_error(RuntimeError("weird"), CONTEXT)
    assert isinstance(error, ExecutionFailedError)
    assert error.exit_code == -1


def test_timeout_error_is_also_builtin_timeout() -> None:
    error = CommandTimeoutError(0.25)
    assert isinstance(error, TimeoutError)
    assert error.kind is ErrorKind.TIMEOUT
    assert error.message == "Command execution timed out after 0.250s"


@pytest.mark.parametrize(
    "error",
    [
        pytest.param(ValidationFailedError("Program cannot be empty"), id="validation"),
        pytest.param(ExecutionFailedError(1, ""), id="execution"),
        pytest.param(PermissionDeniedError(), id="permission"),
        pytest.param(CommandTimeoutError(), id="timeout"),
        pytest.param(OutputParsingError(), id="parsing"),
        pytest.param(UnknownKeyError("k"), id="unknown-key"),
        pytest.param(TypeMismatchError("int", "abc"), id="type-mismatch"),
    ],
)
def test_recovery_suggestions_never_empty(error: ExecutionError) -> None:
    assert recovery_suggestions(error)


@pytest.mark.parametrize("kind", list(ErrorKind))
def test_every_kind_has_suggestions(kind: ErrorKind) -> None:
    assert recovery_suggestions(kind)


def test_suggestions_refine_by_message() -> None:
    not_found = recovery_suggestions(ValidationFailedError("Command 'x' not found"))
    assert any("PATH" in hint for hint in not_found)

    network = recovery_suggestions(ExecutionFailedError(1, "connection reset by peer"))
    assert any("network connection" in hint for hint in network)

    denied = recovery_suggestions(ExecutionFailedError(1, "rm: permission denied"))
    assert any("sudo" in hint for hint in denied)


def test_error_report_format_text_lists_numbered_suggestions() -> None:
    context = InvocationContext(
        program="mytool",
        arguments=("--flag",),
        working_directory="/tmp/work",
    )
    report = build_error_report(PermissionDeniedError(), context)
    text = report.format_text()

    assert text.startswith("Error: Permission denied")
    assert "Command: mytool --flag" in text
    assert "Working Directory: /tmp/work" in text
    assert "Timestamp: " in text
    assert "1. Check file and directory permissions" in text
    assert "3. Use sudo if elevated privileges are required" in text


def test_error_report_to_dict_carries_error_payload() -> None:
    report = report_error(ExecutionFailedError(3, "bad"), CONTEXT)
    payload = report.to_dict()
    assert payload["error"] == {
        "kind": "execution_failed",
        "message": "Command execution failed with exit code 3: bad",
        "exit_code": 3,
        "stderr": "bad",
    }
    assert payload["program"] == "mytool"
    assert payload["arguments"] == ["--flag", "value"]
    assert payload["suggestions"]
