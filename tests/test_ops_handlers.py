"""Operation handlers called directly, without a surface."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from harvestbin.lib.domain import ExecutionResult
from harvestbin.lib.exec.errors import (
    ExecutionFailedError,
    OutputParsingError,
    UnknownKeyError,
    ValidationFailedError,
)
from harvestbin.lib.ops.command import (
    CommandCheckInput,
    CommandExecInput,
    command_check_sync,
    command_exec,
    command_exec_sync,
)
from harvestbin.lib.ops.config import ConfigShowInput, config_show_sync
from harvestbin.lib.ops.output import (
    OutputCleanInput,
    OutputExtractInput,
    OutputParseInput,
    output_clean_sync,
    output_extract,
    output_extract_sync,
    output_parse_sync,
)
from harvestbin.lib.ops.process import ProcessSignalInput, process_signal_sync

PY = sys.executable


def test_command_exec_sync_returns_result(tmp_path: Path) -> None:
    result = command_exec_sync(
        CommandExecInput(
            program=PY,
            arguments=("-c", "import os; print(os.getcwd())"),
            cwd=str(tmp_path),
        )
    )
    assert isinstance(result, ExecutionResult)
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_command_exec_raises_taxonomy_error() -> None:
    with pytest.raises(ExecutionFailedError):
        await command_exec(CommandExecInput(program=PY, arguments=("-c", "raise SystemExit(9)")))


def test_command_check_reports_rejection_without_raising() -> None:
    output = command_check_sync(CommandCheckInput(program="chmod", arguments=("777", "/bin/ls")))
    assert output.ok is False
    assert output.argv == ("sudo", "chmod", "777", "/bin/ls")
    assert output.reason == "Command validation failed: Refusing to modify system path: /bin/ls"
    assert output.format_text().startswith("rejected: ")


def test_command_check_without_sudo_skips_firewall() -> None:
    output = command_check_sync(
        CommandCheckInput(program="rm", arguments=("/usr/x",), sudo=False)
    )
    assert output.ok is True
    assert output.format_text() == "ok: rm /usr/x"


def test_command_check_still_validates_descriptor() -> None:
    output = command_check_sync(CommandCheckInput(program=" ", sudo=False))
    assert output.ok is False
    assert output.reason == "Command validation failed: Program cannot be empty"


def test_output_clean() -> None:
    assert output_clean_sync(OutputCleanInput(text="\x1b[1mbold\x1b[0m\r\n")).text == "bold"


@pytest.mark.parametrize(
    "payload,expected",
    [
        pytest.param(
            OutputExtractInput(text="enabled = yes", key="enabled", as_type="bool"),
            True,
            id="kv-bool",
        ),
        pytest.param(
            OutputExtractInput(
                text='{"a": {"b": 1.5}}',
                key="a.b",
                format="json",
                as_type="float",
            ),
            1.5,
            id="json-float",
        ),
        pytest.param(
            OutputExtractInput(
                text="Size: 512 MB",
                key="size",
                format="regex",
                pattern=r"Size: (\d+)",
                as_type="int",
            ),
            512,
            id="regex-int",
        ),
        pytest.param(
            OutputExtractInput(text='name: "quoted"', key="name", separator=":"),
            "quoted",
            id="string-unquoted",
        ),
    ],
)
def test_output_extract(payload: OutputExtractInput, expected: object) -> None:
    output = output_extract_sync(payload)
    assert output.found is True
    assert output.value == expected


def test_output_extract_missing_and_required() -> None:
    output = output_extract_sync(OutputExtractInput(text="a=1", key="b"))
    assert output.found is False
    assert output.format_text() == ""
    with pytest.raises(UnknownKeyError):
        output_extract_sync(OutputExtractInput(text="a=1", key="b", required=True))


@pytest.mark.parametrize(
    "payload,message",
    [
        pytest.param(OutputExtractInput(text="", key="k", format="xml"), "Unsupported format"),
        pytest.param(OutputExtractInput(text="", key="k", format="regex"), "requires a pattern"),
        pytest.param(OutputExtractInput(text="", key="k", as_type="date"), "Unsupported type"),
    ],
)
def test_output_extract_rejects_bad_options(payload: OutputExtractInput, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        output_extract_sync(payload)


@pytest.mark.asyncio
async def test_output_extract_async_handler() -> None:
    output = await output_extract(OutputExtractInput(text="k=v", key="k"))
    assert output.value == "v"


def test_output_parse_modes() -> None:
    text = "PID NAME\n1 init\n2 kthreadd"
    columns = output_parse_sync(OutputParseInput(text=text, mode="columns"))
    assert columns.data == [["1", "init"], ["2", "kthreadd"]]
    assert columns.format_text() == "1  init\n2  kthreadd"

    lines = output_parse_sync(OutputParseInput(text=text, mode="lines"))
    assert lines.data == ["PID NAME", "1 init", "2 kthreadd"]

    kv = output_parse_sync(OutputParseInput(text="a=1\nb=2", mode="kv"))
    assert kv.format_text() == "a: 1\nb: 2"

    with pytest.raises(OutputParsingError):
        output_parse_sync(OutputParseInput(text="{", mode="json"))
    with pytest.raises(ValueError, match="Unsupported parse mode"):
        output_parse_sync(OutputParseInput(text="", mode="yaml"))


def test_process_signal_validates_before_lookup() -> None:
    with pytest.raises(ValidationFailedError, match="protected"):
        process_signal_sync(ProcessSignalInput(name="init", grace_secs=0))


def test_process_signal_rejects_unsupported_signal() -> None:
    with pytest.raises(ValueError, match="Unsupported signal"):
        process_signal_sync(ProcessSignalInput(name="Dock", signal="SIGHUP"))


def test_config_show_defaults(tmp_path: Path) -> None:
    output = config_show_sync(ConfigShowInput(config_path=str(tmp_path / "none.toml")))
    assert output.exists is False
    sources = {item.key: item.source for item in output.values}
    assert set(sources.values()) == {"builtin"}
    assert "(not found, using defaults)" in output.format_text()


def test_config_show_reports_file_and_env_sources(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    config_file = tmp_path / "harvestbin.toml"
    # Same value as the built-in default still counts as coming from the file.
    config_file.write_text('[elevation]\ntool = "sudo"\n', encoding="utf-8")
    monkeypatch.setenv("HARVESTBIN_KILL_GRACE_SECONDS", "4")

    output = config_show_sync(ConfigShowInput(config_path=str(config_file)))
    by_key = {item.key: item for item in output.values}
    assert by_key["elevation_tool"].source == "file"
    assert by_key["kill_grace_seconds"].source == "env var"
    assert by_key["kill_grace_seconds"].env_var == "HARVESTBIN_KILL_GRACE_SECONDS"
    assert by_key["kill_grace_seconds"].value == 4.0
    assert by_key["default_timeout_seconds"].source == "builtin"
    assert "[source: env var (HARVESTBIN_KILL_GRACE_SECONDS)]" in output.format_text()
