"""Core frozen result and context dataclasses."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from harvestbin.lib.command import CommandDescriptor
    from harvestbin.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Buffered outcome of one successful process execution."""

    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def has_output(self) -> bool:
        return bool(self.stdout) or bool(self.stderr)

    @property
    def combined_output(self) -> str:
        """Stdout followed by stderr, newline-separated when both are present."""

        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    def format_text(self, ctx: FormatContext | None = None) -> str:
        verbosity = 0 if ctx is None else ctx.verbosity
        if verbosity <= 0:
            return self.combined_output

        from harvestbin.cli.format_helpers import kv_block

        header = kv_block(
            [
                ("Exit code", str(self.exit_code)),
                ("Elapsed", f"{self.elapsed_seconds:.3f}s"),
            ]
        )
        if not self.has_output:
            return header
        return f"{header}\n\n{self.combined_output}"


@dataclass(frozen=True, slots=True)
class InvocationContext:
    """Diagnostic context attached to an error report."""

    program: str
    arguments: tuple[str, ...] = ()
    working_directory: str | None = None
    environment: Mapping[str, str] | None = None

    @classmethod
    def from_command(
        cls,
        command: CommandDescriptor,
        *,
        working_directory: str | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> InvocationContext:
        return cls(
            program=command.program,
            arguments=tuple(command.arguments),
            working_directory=working_directory,
            environment=environment,
        )

    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> InvocationContext:
        if not argv:
            return cls(program="")
        return cls(program=argv[0], arguments=tuple(argv[1:]))

    @property
    def command_line(self) -> str:
        return " ".join((self.program, *self.arguments)).strip()
