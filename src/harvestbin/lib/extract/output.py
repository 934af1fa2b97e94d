"""Deterministic normalization and parsing of captured command output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, TypeAlias, cast

from harvestbin.lib.exec.errors import OutputParsingError

# CSI (ESC [ ... final byte) and OSC (ESC ] ... BEL | ESC \) sequences, then
# any two-byte ESC sequence.
_ANSI_RE = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)
# C0/C1 controls and DEL, except tab, newline and carriage return.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_FALLBACK_ENCODING = "latin-1"


@dataclass(frozen=True, slots=True)
class KeyValue:
    """Look the key up in `key<separator>value` lines."""

    separator: str = "="


@dataclass(frozen=True, slots=True)
class JsonPath:
    """Walk a dotted path through a JSON object; defaults to the lookup key."""

    path: str | None = None


@dataclass(frozen=True, slots=True)
class Regex:
    """Return capture group 1 of the first match, else the whole match."""

    pattern: str


ValueFormat: TypeAlias = KeyValue | JsonPath | Regex


def decode_output(data: bytes) -> str:
    """Decode captured bytes as UTF-8, falling back to Latin-1."""

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode(_FALLBACK_ENCODING)


def clean_output(text: str) -> str:
    """Strip escape/control sequences, normalize line endings and trim.

    >>> clean_output("  \\x1b[31mRed Text\\x1b[0m  \\r\\n")
    'Red Text'
    """

    stripped = _ANSI_RE.sub("", text)
    stripped = _CONTROL_RE.sub("", stripped)
    normalized = stripped.replace("\r\n", "\n").replace("\r", "\n")
    return normalized.strip()


def parse_key_value(text: str, separator: str = "=") -> dict[str, str]:
    """Parse `key<sep>value` lines; later duplicate keys win."""

    if not separator:
        raise ValueError("Separator must not be empty.")

    result: dict[str, str] = {}
    for line in clean_output(text).split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        key, sep, value = trimmed.partition(separator)
        if not sep:
            continue
        result[key.strip()] = value.strip()
    return result


def parse_lines(text: str, skip_empty: bool = True) -> list[str]:
    cleaned = clean_output(text)
    lines = cleaned.split("\n")
    if not skip_empty:
        return lines
    return [line.strip() for line in lines if line.strip()]


def parse_columnar(text: str, header_line: int = 0) -> list[list[str]]:
    """Whitespace-tokenize every non-empty line except the header line.

    >>> parse_columnar("PID  NAME\\n1  init\\n42  sshd")
    [['1', 'init'], ['42', 'sshd']]
    """

    lines = parse_lines(text, skip_empty=True)
    if len(lines) <= header_line:
        return []
    return [line.split() for index, line in enumerate(lines) if index != header_line]


def parse_json(text: str) -> Any:
    """Parse cleaned output as JSON or raise OutputParsingError."""

    try:
        return json.loads(clean_output(text))
    except json.JSONDecodeError as exc:
        raise OutputParsingError() from exc


def _render_json_scalar(value: object) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _extract_json_value(text: str, path: str) -> str | None:
    try:
        current: object = json.loads(clean_output(text))
    except json.JSONDecodeError:
        return None

    for component in path.split("."):
        if not isinstance(current, dict):
            return None
        mapping = cast("dict[str, object]", current)
        if component not in mapping:
            return None
        current = mapping[component]
    return _render_json_scalar(current)


def _extract_regex_value(text: str, pattern: str) -> str | None:
    try:
        compiled = re.compile(pattern)
    except re.error:
        return None
    match = compiled.search(text)
    if match is None:
        return None
    if compiled.groups >= 1 and match.group(1) is not None:
        return match.group(1)
    return match.group(0)


def extract_value(text: str, key: str, fmt: ValueFormat | None = None) -> str | None:
    """Extract one value from command output, or None when absent."""

    resolved = KeyValue() if fmt is None else fmt
    if isinstance(resolved, KeyValue):
        return parse_key_value(text, separator=resolved.separator).get(key)
    if isinstance(resolved, JsonPath):
        return _extract_json_value(text, resolved.path or key)
    if isinstance(resolved, Regex):
        return _extract_regex_value(text, resolved.pattern)
    raise TypeError(f"Unsupported value format: {type(resolved).__name__}")
