"""Output normalization and value extraction."""

from harvestbin.lib.extract.output import (
    JsonPath,
    KeyValue,
    Regex,
    ValueFormat,
    clean_output,
    decode_output,
    extract_value,
    parse_columnar,
    parse_json,
    parse_key_value,
    parse_lines,
)

__all__ = [
    "JsonPath",
    "KeyValue",
    "Regex",
    "ValueFormat",
    "clean_output",
    "decode_output",
    "extract_value",
    "parse_columnar",
    "parse_json",
    "parse_key_value",
    "parse_lines",
]
