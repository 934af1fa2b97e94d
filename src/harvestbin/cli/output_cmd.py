"""CLI command handlers for output.* operations.

Each command reads the text to process from stdin unless `--text` is given.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from functools import partial
from typing import Annotated, Any

from cyclopts import Parameter

from harvestbin.cli.registration import register_group
from harvestbin.lib.ops.output import (
    OutputCleanInput,
    OutputExtractInput,
    OutputParseInput,
    output_clean_sync,
    output_extract_sync,
    output_parse_sync,
)

Emitter = Callable[[Any], None]

_TEXT_HELP = "Text to process; read from stdin when omitted."


def _read_text(text: str | None) -> str:
    if text is not None:
        return text
    return sys.stdin.read()


def _output_clean(
    emit: Emitter,
    text: Annotated[str | None, Parameter(name="--text", help=_TEXT_HELP)] = None,
) -> None:
    emit(output_clean_sync(OutputCleanInput(text=_read_text(text))))


def _output_extract(
    emit: Emitter,
    key: str,
    text: Annotated[str | None, Parameter(name="--text", help=_TEXT_HELP)] = None,
    value_format: Annotated[
        str,
        Parameter(name="--format-as", help="Lookup style: kv, json or regex."),
    ] = "kv",
    separator: Annotated[
        str,
        Parameter(name="--separator", help="Key/value separator for kv lookups."),
    ] = "=",
    path: Annotated[
        str | None,
        Parameter(name="--path", help="Dotted JSON path; defaults to KEY."),
    ] = None,
    pattern: Annotated[
        str | None,
        Parameter(name="--pattern", help="Regular expression for regex lookups."),
    ] = None,
    as_type: Annotated[
        str,
        Parameter(name="--type", help="Coerce the value: string, int, float or bool."),
    ] = "string",
    required: Annotated[
        bool,
        Parameter(name="--required", help="Fail when the key is missing."),
    ] = False,
) -> None:
    output = output_extract_sync(
        OutputExtractInput(
            text=_read_text(text),
            key=key,
            format=value_format,
            separator=separator,
            path=path,
            pattern=pattern,
            as_type=as_type,
            required=required,
        )
    )
    emit(output)


def _output_parse(
    emit: Emitter,
    text: Annotated[str | None, Parameter(name="--text", help=_TEXT_HELP)] = None,
    mode: Annotated[
        str,
        Parameter(name="--mode", help="Parse as kv, lines, columns or json."),
    ] = "kv",
    separator: Annotated[
        str,
        Parameter(name="--separator", help="Key/value separator for kv mode."),
    ] = "=",
    header_line: Annotated[
        int,
        Parameter(name="--header-line", help="Line index skipped in columns mode."),
    ] = 0,
) -> None:
    emit(
        output_parse_sync(
            OutputParseInput(
                text=_read_text(text),
                mode=mode,
                separator=separator,
                header_line=header_line,
            )
        )
    )


def register_output_commands(app: Any, emit: Emitter) -> tuple[set[str], dict[str, str]]:
    return register_group(
        app,
        "output",
        {
            "output.clean": partial(_output_clean, emit),
            "output.extract": partial(_output_extract, emit),
            "output.parse": partial(_output_parse, emit),
        },
    )
