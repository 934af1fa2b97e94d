"""Typed coercion of single values read back from command output."""

from __future__ import annotations

from harvestbin.lib.exec.errors import TypeMismatchError, UnknownKeyError
from harvestbin.lib.extract.output import ValueFormat, extract_value

_TRUE_TOKENS = frozenset({"1", "true", "yes"})
_FALSE_TOKENS = frozenset({"0", "false", "no"})


def parse_bool(raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in _TRUE_TOKENS:
        return True
    if normalized in _FALSE_TOKENS:
        return False
    raise TypeMismatchError("bool", raw)


def parse_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise TypeMismatchError("int", raw) from exc


def parse_float(raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise TypeMismatchError("float", raw) from exc


def parse_string(raw: str) -> str:
    """Trim and drop one pair of matching surrounding quotes."""

    trimmed = raw.strip()
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in {'"', "'"}:
        return trimmed[1:-1]
    return trimmed


def to_argument(value: bool | int | float | str) -> str:
    """Render a value the way command-line tools expect it."""

    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def require_value(text: str, key: str, fmt: ValueFormat | None = None) -> str:
    """Like extract_value, but a missing key is an error."""

    value = extract_value(text, key, fmt)
    if value is None:
        raise UnknownKeyError(key)
    return value
