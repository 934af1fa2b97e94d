"""Cyclopts CLI entry point for harvestbin.

Global output flags (`--json`, `--porcelain`, `--format`, `-v`) may appear
anywhere before a `--` separator and are removed before cyclopts parses the
command line.
"""

from __future__ import annotations

import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Annotated, NoReturn

from cyclopts import App, Parameter

from harvestbin import __version__
from harvestbin.cli.command_cmd import register_command_commands
from harvestbin.cli.config_cmd import register_config_commands
from harvestbin.cli.output import (
    TIMEOUT_EXIT_CODE,
    OutputConfig,
    emit_error_report,
    exit_code_for_error,
    normalize_output_format,
)
from harvestbin.cli.output import emit as emit_output
from harvestbin.cli.output_cmd import register_output_commands
from harvestbin.cli.process_cmd import register_process_commands
from harvestbin.lib.exec.errors import ExecutionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from harvestbin.lib.exec.errors import ErrorReport

_VERBOSE_FLAGS = frozenset({"-v", "--verbose"})
_DEFAULT_OUTPUT = OutputConfig(format="text")

_OUTPUT_CONFIG: ContextVar[OutputConfig] = ContextVar("_OUTPUT_CONFIG", default=_DEFAULT_OUTPUT)


def emit(payload: object) -> None:
    emit_output(payload, _OUTPUT_CONFIG.get())


def emit_report(report: ErrorReport) -> None:
    emit_error_report(report, _OUTPUT_CONFIG.get())


def split_global_flags(argv: Sequence[str]) -> tuple[list[str], OutputConfig]:
    """Separate global output flags from the command line.

    >>> split_global_flags(["--json", "exec", "--", "ls", "--json"])
    (['exec', '--', 'ls', '--json'], OutputConfig(format='json', verbosity=0))
    """

    json_mode = False
    porcelain_mode = False
    requested: str | None = None
    verbosity = 0
    remaining: list[str] = []

    tokens = iter(argv)
    for token in tokens:
        if token == "--":
            remaining.append(token)
            remaining.extend(tokens)
            break
        if token == "--json":
            json_mode = True
        elif token == "--porcelain":
            porcelain_mode = True
        elif token == "--format":
            requested = next(tokens, None)
            if requested is None:
                raise SystemExit("--format requires a value")
        elif token.startswith("--format="):
            requested = token.partition("=")[2]
        elif token in _VERBOSE_FLAGS:
            verbosity += 1
        else:
            remaining.append(token)

    output_format = normalize_output_format(
        requested=requested,
        json_mode=json_mode,
        porcelain_mode=porcelain_mode,
    )
    return remaining, OutputConfig(format=output_format, verbosity=verbosity)


app = App(
    name="harvestbin",
    help="Run external commands under a timeout with a privilege firewall",
    version=__version__,
    help_formatter="plain",
)


@app.default
def root(
    json_mode: Annotated[
        bool,
        Parameter(name="--json", help="Emit results as JSON."),
    ] = False,
    output_format: Annotated[
        str | None,
        Parameter(name="--format", help="Output format: text, json or porcelain."),
    ] = None,
    porcelain: Annotated[
        bool,
        Parameter(name="--porcelain", help="Emit tab-separated key=value records."),
    ] = False,
    verbose: Annotated[
        bool,
        Parameter(name="--verbose", help="More log and result detail (-v, -vv)."),
    ] = False,
) -> None:
    """Print help; the global flags are listed here for discoverability."""

    _ = (json_mode, output_format, porcelain, verbose)
    app.help_print()


@app.command(name="serve")
def serve() -> None:
    """Serve harvestbin operations as MCP tools on stdio."""

    from harvestbin.server.main import run_server

    run_server()


process_app = App(
    name="process",
    help="Find and signal processes by name or PID",
    help_formatter="plain",
)
output_app = App(
    name="output",
    help="Clean, extract from and parse command output",
    help_formatter="plain",
)
config_app = App(name="config", help="Inspect the resolved configuration", help_formatter="plain")

for _sub_app in (process_app, output_app, config_app):
    app.command(_sub_app)

_CLI_COMMANDS: dict[str, str] = {}  # operation name -> help text
_CLI_PATHS: set[str] = set()

for _paths, _descriptions in (
    register_command_commands(app, emit, emit_report),
    register_process_commands(process_app, emit),
    register_output_commands(output_app, emit),
    register_config_commands(config_app, emit),
):
    _CLI_PATHS.update(_paths)
    _CLI_COMMANDS.update(_descriptions)


def get_registered_cli_commands() -> set[str]:
    """`group.command` paths mounted on the CLI."""

    return set(_CLI_PATHS)


def get_registered_cli_descriptions() -> dict[str, str]:
    return dict(_CLI_COMMANDS)


def _fail(exc: BaseException, exit_code: int) -> NoReturn:
    if isinstance(exc, ExecutionError):
        message = exc.message
    elif isinstance(exc, KeyError) and exc.args:
        message = str(exc.args[0])
    else:
        message = str(exc).strip() or type(exc).__name__
    print(f"error: {message}", file=sys.stderr)
    raise SystemExit(exit_code) from None


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the `harvestbin` script and `python -m harvestbin`."""

    from harvestbin.lib.logging import configure_logging

    args, output = split_global_flags(sys.argv[1:] if argv is None else argv)
    configure_logging(json_mode=output.format == "json", verbosity=output.verbosity)

    token = _OUTPUT_CONFIG.set(output)
    try:
        app(args)
    except ExecutionError as exc:
        _fail(exc, exit_code_for_error(exc))
    except TimeoutError as exc:
        _fail(exc, TIMEOUT_EXIT_CODE)
    except (KeyError, ValueError, OSError) as exc:
        _fail(exc, 1)
    finally:
        _OUTPUT_CONFIG.reset(token)
