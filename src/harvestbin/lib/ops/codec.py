"""Turn loosely typed tool arguments into operation input dataclasses.

MCP clients send JSON, so numbers may arrive as strings, flags as
"yes"/"no", and a lone command argument as a bare string instead of a list.
"""

from __future__ import annotations

import inspect
import types
from collections.abc import Callable, Mapping
from dataclasses import MISSING, Field, fields
from typing import Any, TypeVar, Union, cast, get_args, get_origin, get_type_hints

PayloadT = TypeVar("PayloadT")

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"", "0", "false", "no", "off"})


def _to_bool(value: object) -> bool:
    if not isinstance(value, str):
        return bool(value)
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"Expected a boolean, got '{value}'")


_SCALAR_CONVERTERS: dict[object, Callable[[Any], object]] = {
    str: str,
    int: int,
    float: float,
    bool: _to_bool,
}


def unwrap_optional(annotation: Any) -> Any:
    """`T | None` becomes `T`; other annotations are returned unchanged."""

    if get_origin(annotation) in (types.UnionType, Union):
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


def _coerce(annotation: Any, value: object) -> object:
    if value is None:
        return None

    target = unwrap_optional(annotation)
    origin = get_origin(target)
    if origin in (list, tuple):
        item_type = next(iter(get_args(target)), object)
        if isinstance(value, str):
            items: list[object] = [value]
        elif isinstance(value, (list, tuple)):
            items = list(cast("list[object] | tuple[object, ...]", value))
        else:
            raise TypeError(f"Expected a list, got {type(value).__name__}")
        coerced = [_coerce(item_type, item) for item in items]
        return tuple(coerced) if origin is tuple else coerced

    converter = _SCALAR_CONVERTERS.get(target)
    return value if converter is None else converter(value)


def _has_default(field: Field[Any]) -> bool:
    return field.default is not MISSING or field.default_factory is not MISSING


def coerce_input_payload(payload_type: type[PayloadT], raw_input: object) -> PayloadT:
    """Build payload_type from a tool-call argument mapping.

    Absent fields keep their dataclass defaults and unknown keys are ignored.
    """

    if raw_input is None:
        raw_input = {}
    if not isinstance(raw_input, Mapping):
        raise TypeError(f"Tool input must be an object, got {type(raw_input).__name__}")
    arguments = cast("Mapping[str, object]", raw_input)

    hints = get_type_hints(payload_type)
    kwargs: dict[str, object] = {}
    for field in fields(cast("Any", payload_type)):
        if field.name in arguments:
            kwargs[field.name] = _coerce(hints[field.name], arguments[field.name])
        elif not _has_default(field):
            raise TypeError(f"Missing required field '{field.name}'")
    return payload_type(**kwargs)


def _field_default(field: Field[Any]) -> object:
    if field.default is not MISSING:
        return field.default
    if field.default_factory is not MISSING:
        return field.default_factory()
    return inspect.Parameter.empty


def signature_from_dataclass(payload_type: type[object]) -> inspect.Signature:
    """Keyword-only signature mirroring the dataclass fields, for FastMCP."""

    hints = get_type_hints(payload_type, include_extras=True)
    return inspect.Signature(
        [
            inspect.Parameter(
                field.name,
                inspect.Parameter.KEYWORD_ONLY,
                default=_field_default(field),
                annotation=hints[field.name],
            )
            for field in fields(cast("Any", payload_type))
        ]
    )
