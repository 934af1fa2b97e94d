"""Rendering of op results and error reports for the harvestbin CLI.

Three modes: `text` (human), `json` (one object per line) and `porcelain`
(one `key=value` record per line, tab separated, nested keys dotted).
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, cast, get_args

from harvestbin.lib.exec.errors import CommandTimeoutError, ExecutionError, ExecutionFailedError
from harvestbin.lib.formatting import FormatContext, render_text
from harvestbin.lib.serialization import to_jsonable

if TYPE_CHECKING:
    from harvestbin.lib.exec.errors import ErrorReport

OutputFormat = Literal["text", "json", "porcelain"]
OUTPUT_FORMATS: tuple[str, ...] = get_args(OutputFormat)

# Same status coreutils `timeout` exits with.
TIMEOUT_EXIT_CODE = 124
GENERIC_FAILURE_EXIT_CODE = 1


@dataclass(frozen=True, slots=True)
class OutputConfig:
    format: OutputFormat
    verbosity: int = 0

    @property
    def format_context(self) -> FormatContext:
        return FormatContext(verbosity=self.verbosity)


def normalize_output_format(
    *,
    requested: str | None,
    json_mode: bool,
    porcelain_mode: bool,
) -> OutputFormat:
    """Pick the output mode; `--json` beats `--porcelain` beats `--format`."""

    if json_mode:
        return "json"
    if porcelain_mode:
        return "porcelain"
    candidate = (requested or "text").strip().lower()
    if candidate not in OUTPUT_FORMATS:
        raise SystemExit(f"--format must be one of: {', '.join(OUTPUT_FORMATS)}")
    return cast("OutputFormat", candidate)


def _porcelain_scalar(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    return text.replace("\\", "\\\\").replace("\t", "\\t").replace("\n", "\\n")


def _flatten(prefix: str, value: object, fields: dict[str, str]) -> None:
    if isinstance(value, dict):
        for key, item in cast("dict[str, object]", value).items():
            _flatten(f"{prefix}.{key}" if prefix else key, item, fields)
    elif isinstance(value, list):
        items = cast("list[object]", value)
        if any(isinstance(item, (dict, list)) for item in items):
            fields[prefix] = json.dumps(items, sort_keys=True)
        else:
            fields[prefix] = ",".join(_porcelain_scalar(item) for item in items)
    else:
        fields[prefix] = _porcelain_scalar(value)


def porcelain_record(value: object) -> str:
    """Render one JSON-compatible value as a single porcelain line.

    >>> porcelain_record({"mode": "kv", "data": {"a": "1"}, "pids": [3, 4]})
    'data.a=1\\tmode=kv\\tpids=3,4'
    """

    if not isinstance(value, dict):
        return _porcelain_scalar(value)
    fields: dict[str, str] = {}
    _flatten("", value, fields)
    return "\t".join(f"{key}={fields[key]}" for key in sorted(fields))


def _emit_text(value: Any, config: OutputConfig) -> None:
    if isinstance(value, (dict, list)):
        print(json.dumps(to_jsonable(value), sort_keys=True, indent=2))
        return
    print(render_text(value, config.format_context))


def _emit_json(value: Any, config: OutputConfig) -> None:
    print(json.dumps(to_jsonable(value), sort_keys=True))


def _emit_porcelain(value: Any, config: OutputConfig) -> None:
    payload = to_jsonable(value)
    records = payload if isinstance(payload, list) else [payload]
    for record in cast("list[object]", records):
        print(porcelain_record(record))


_EMITTERS: dict[str, Callable[[Any, OutputConfig], None]] = {
    "text": _emit_text,
    "json": _emit_json,
    "porcelain": _emit_porcelain,
}


def emit(value: Any, config: OutputConfig) -> None:
    _EMITTERS[config.format](value, config)


def emit_error_report(report: ErrorReport, config: OutputConfig) -> None:
    """Write a failure report to stderr; porcelain falls back to JSON."""

    if config.format == "text":
        print(report.format_text(config.format_context), file=sys.stderr)
        return
    print(json.dumps(to_jsonable(report), sort_keys=True), file=sys.stderr)


def exit_code_for_error(error: ExecutionError) -> int:
    """Process exit status for a failed operation."""

    if isinstance(error, CommandTimeoutError):
        return TIMEOUT_EXIT_CODE
    if isinstance(error, ExecutionFailedError) and error.exit_code > 0:
        return error.exit_code
    return GENERIC_FAILURE_EXIT_CODE
