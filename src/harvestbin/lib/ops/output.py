"""Output normalization and extraction operations."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from harvestbin.lib.extract.output import (
    JsonPath,
    KeyValue,
    Regex,
    ValueFormat,
    clean_output,
    extract_value,
    parse_columnar,
    parse_json,
    parse_key_value,
    parse_lines,
)
from harvestbin.lib.extract.values import (
    parse_bool,
    parse_float,
    parse_int,
    parse_string,
    require_value,
)
from harvestbin.lib.ops.registry import OperationSpec, operation

if TYPE_CHECKING:
    from collections.abc import Callable

    from harvestbin.lib.formatting import FormatContext

_VALUE_PARSERS: dict[str, Callable[[str], Any]] = {
    "string": parse_string,
    "int": parse_int,
    "float": parse_float,
    "bool": parse_bool,
}
_PARSE_MODES = ("kv", "lines", "columns", "json")


@dataclass(frozen=True, slots=True)
class OutputCleanInput:
    text: str


@dataclass(frozen=True, slots=True)
class OutputCleanOutput:
    text: str

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return self.text


@dataclass(frozen=True, slots=True)
class OutputExtractInput:
    text: str
    key: str
    format: str = "kv"
    separator: str = "="
    path: str | None = None
    pattern: str | None = None
    as_type: str = "string"
    required: bool = False


@dataclass(frozen=True, slots=True)
class OutputExtractOutput:
    key: str
    found: bool
    value: object = None

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        if not self.found:
            return ""
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


@dataclass(frozen=True, slots=True)
class OutputParseInput:
    text: str
    mode: str = "kv"
    separator: str = "="
    header_line: int = 0


@dataclass(frozen=True, slots=True)
class OutputParseOutput:
    mode: str
    data: object

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        from harvestbin.cli.format_helpers import kv_block, tabular

        if self.mode == "kv" and isinstance(self.data, dict):
            return kv_block([(str(key), str(value)) for key, value in self.data.items()])
        if self.mode == "lines" and isinstance(self.data, list):
            return "\n".join(str(line) for line in self.data)
        if self.mode == "columns" and isinstance(self.data, list):
            return tabular([[str(cell) for cell in row] for row in self.data])
        return json.dumps(self.data, indent=2, sort_keys=True)


def _value_format(payload: OutputExtractInput) -> ValueFormat:
    fmt = payload.format.strip().lower()
    if fmt == "kv":
        return KeyValue(separator=payload.separator)
    if fmt == "json":
        return JsonPath(path=payload.path)
    if fmt == "regex":
        if not payload.pattern:
            raise ValueError("Format 'regex' requires a pattern.")
        return Regex(pattern=payload.pattern)
    raise ValueError(f"Unsupported format '{payload.format}'. Expected one of: kv, json, regex.")


def output_clean_sync(payload: OutputCleanInput) -> OutputCleanOutput:
    return OutputCleanOutput(text=clean_output(payload.text))


async def output_clean(payload: OutputCleanInput) -> OutputCleanOutput:
    return await asyncio.to_thread(output_clean_sync, payload)


def output_extract_sync(payload: OutputExtractInput) -> OutputExtractOutput:
    parser = _VALUE_PARSERS.get(payload.as_type.strip().lower())
    if parser is None:
        choices = ", ".join(_VALUE_PARSERS)
        raise ValueError(f"Unsupported type '{payload.as_type}'. Expected one of: {choices}.")

    fmt = _value_format(payload)
    if payload.required:
        raw: str | None = require_value(payload.text, payload.key, fmt)
    else:
        raw = extract_value(payload.text, payload.key, fmt)
    if raw is None:
        return OutputExtractOutput(key=payload.key, found=False)
    return OutputExtractOutput(key=payload.key, found=True, value=parser(raw))


async def output_extract(payload: OutputExtractInput) -> OutputExtractOutput:
    return await asyncio.to_thread(output_extract_sync, payload)


def output_parse_sync(payload: OutputParseInput) -> OutputParseOutput:
    mode = payload.mode.strip().lower()
    data: object
    if mode == "kv":
        data = parse_key_value(payload.text, separator=payload.separator)
    elif mode == "lines":
        data = parse_lines(payload.text)
    elif mode == "columns":
        data = parse_columnar(payload.text, header_line=payload.header_line)
    elif mode == "json":
        data = parse_json(payload.text)
    else:
        choices = ", ".join(_PARSE_MODES)
        raise ValueError(f"Unsupported parse mode '{payload.mode}'. Expected one of: {choices}.")
    return OutputParseOutput(mode=mode, data=data)


async def output_parse(payload: OutputParseInput) -> OutputParseOutput:
    return await asyncio.to_thread(output_parse_sync, payload)


operation(
    OperationSpec[OutputCleanInput, OutputCleanOutput](
        name="output.clean",
        handler=output_clean,
        sync_handler=output_clean_sync,
        input_type=OutputCleanInput,
        output_type=OutputCleanOutput,
        description="Strip escape sequences and control characters from command output.",
    )
)

operation(
    OperationSpec[OutputExtractInput, OutputExtractOutput](
        name="output.extract",
        handler=output_extract,
        sync_handler=output_extract_sync,
        input_type=OutputExtractInput,
        output_type=OutputExtractOutput,
        description="Extract one value from command output by key, JSON path or regex.",
    )
)

operation(
    OperationSpec[OutputParseInput, OutputParseOutput](
        name="output.parse",
        handler=output_parse,
        sync_handler=output_parse_sync,
        input_type=OutputParseInput,
        output_type=OutputParseOutput,
        description="Parse command output as key/value pairs, lines, columns or JSON.",
    )
)
