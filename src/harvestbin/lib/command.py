"""Command descriptor contract consumed by the execution engine."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from harvestbin.lib.exec.errors import ValidationFailedError


@runtime_checkable
class CommandDescriptor(Protocol):
    """Anything the engine can run.

    Implementations are plain value types; the engine only reads these
    attributes and calls `validate()` before spawning.
    """

    @property
    def program(self) -> str: ...

    @property
    def arguments(self) -> Sequence[str]: ...

    @property
    def requires_elevation(self) -> bool: ...

    @property
    def affected_process(self) -> str | None: ...

    def validate(self) -> None: ...


@dataclass(frozen=True, slots=True)
class Command:
    """Generic command descriptor built from a program and its arguments."""

    program: str
    arguments: tuple[str, ...] = field(default_factory=tuple)
    requires_elevation: bool = False
    affected_process: str | None = None

    @classmethod
    def from_argv(
        cls,
        argv: Sequence[str],
        *,
        requires_elevation: bool = False,
        affected_process: str | None = None,
    ) -> Command:
        if not argv:
            raise ValidationFailedError("Command line cannot be empty")
        return cls(
            program=argv[0],
            arguments=tuple(argv[1:]),
            requires_elevation=requires_elevation,
            affected_process=affected_process,
        )

    def validate(self) -> None:
        if not self.program.strip():
            raise ValidationFailedError("Program cannot be empty")
        for value in (self.program, *self.arguments):
            if "\x00" in value:
                raise ValidationFailedError(f"Command contains a null byte: {value!r}")
        if self.affected_process is not None and not self.affected_process.strip():
            raise ValidationFailedError("Affected process name cannot be blank")
