"""Text rendering contract shared by results, error reports and op outputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class FormatContext:
    verbosity: int = 0

    @property
    def verbose(self) -> bool:
        """Whether timing and exit-status headers should be rendered."""

        return self.verbosity > 0


@runtime_checkable
class TextFormattable(Protocol):
    def format_text(self, ctx: FormatContext | None = None) -> str: ...


def render_text(value: object, ctx: FormatContext | None = None) -> str:
    """Render value through format_text when it has one, else str()."""

    if isinstance(value, TextFormattable):
        return value.format_text(ctx)
    return str(value)
