"""Tool payload coercion and FastMCP signatures."""

from __future__ import annotations

import inspect

import pytest

from harvestbin.lib.ops.codec import (
    coerce_input_payload,
    signature_from_dataclass,
)
from harvestbin.lib.ops.command import CommandExecInput
from harvestbin.lib.ops.process import ProcessKillInput


def test_coerce_exec_payload() -> None:
    payload = coerce_input_payload(
        CommandExecInput,
        {
            "program": "defaults",
            "arguments": ["read", "com.apple.dock"],
            "sudo": "yes",
            "timeout_secs": "2.5",
        },
    )
    assert payload == CommandExecInput(
        program="defaults",
        arguments=("read", "com.apple.dock"),
        sudo=True,
        timeout_secs=2.5,
    )


def test_single_string_argument_becomes_tuple() -> None:
    payload = coerce_input_payload(CommandExecInput, {"program": "ls", "arguments": "-la"})
    assert payload.arguments == ("-la",)


def test_coerce_int_field() -> None:
    assert coerce_input_payload(ProcessKillInput, {"pid": "42"}).pid == 42


def test_missing_required_field() -> None:
    with pytest.raises(TypeError, match="Missing required field 'program'"):
        coerce_input_payload(CommandExecInput, {})


def test_non_mapping_input_rejected() -> None:
    with pytest.raises(TypeError, match="must be an object"):
        coerce_input_payload(CommandExecInput, ["ls"])


def test_boolean_words_and_optional_none() -> None:
    payload = coerce_input_payload(
        CommandExecInput,
        {"program": "ls", "sudo": "off", "timeout_secs": None},
    )
    assert payload.sudo is False
    assert payload.timeout_secs is None

    with pytest.raises(ValueError, match="Expected a boolean"):
        coerce_input_payload(CommandExecInput, {"program": "ls", "sudo": "maybe"})


def test_non_list_arguments_rejected() -> None:
    with pytest.raises(TypeError, match="Expected a list"):
        coerce_input_payload(CommandExecInput, {"program": "ls", "arguments": 5})


def test_signature_from_dataclass_is_keyword_only() -> None:
    signature = signature_from_dataclass(CommandExecInput)
    assert list(signature.parameters) == [
        "program",
        "arguments",
        "sudo",
        "affected_process",
        "timeout_secs",
        "cwd",
    ]
    program = signature.parameters["program"]
    assert program.kind is inspect.Parameter.KEYWORD_ONLY
    assert program.default is inspect.Parameter.empty
    assert signature.parameters["sudo"].default is False
