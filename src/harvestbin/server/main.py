"""FastMCP server: one tool per registry operation not marked cli_only.

Tool arguments mirror the operation's input dataclass. Execution failures
surface as tool errors carrying the rendered error report, so the client
sees the same kind, message and recovery suggestions the CLI prints.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, cast

import structlog
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from harvestbin.lib.domain import InvocationContext
from harvestbin.lib.exec.errors import ExecutionError, build_error_report
from harvestbin.lib.logging import configure_logging
from harvestbin.lib.ops import OperationSpec, get_all_operations
from harvestbin.lib.ops.codec import coerce_input_payload, signature_from_dataclass
from harvestbin.lib.serialization import to_jsonable

logger = structlog.get_logger(__name__)

# MCP tool name -> operation
_TOOLS: dict[str, OperationSpec[Any, Any]] = {}


@asynccontextmanager
async def lifespan(_: FastMCP[Any]):
    # Stdout carries the protocol; JSON diagnostics go to stderr.
    configure_logging(json_mode=True)
    logger.info("mcp_server_started", tools=len(_TOOLS))
    yield {"tools": sorted(_TOOLS)}


mcp = FastMCP("harvestbin", lifespan=lifespan)


def _invocation_context(op: OperationSpec[Any, Any], payload: object) -> InvocationContext:
    """Context for the error report: the command itself for command.* tools."""

    program = getattr(payload, "program", None)
    if not isinstance(program, str):
        return InvocationContext(program=op.mcp_name)
    return InvocationContext(
        program=program,
        arguments=tuple(str(item) for item in getattr(payload, "arguments", ())),
        working_directory=getattr(payload, "cwd", None),
    )


def _build_tool_handler(op: OperationSpec[Any, Any]) -> Any:
    async def _tool(**kwargs: object) -> object:
        payload = coerce_input_payload(op.input_type, kwargs)
        try:
            result = await op.handler(payload)
        except ExecutionError as exc:
            report = build_error_report(exc, _invocation_context(op, payload))
            logger.info("mcp_tool_failed", tool=op.mcp_name, kind=exc.kind.value)
            raise ToolError(report.format_text()) from exc
        return to_jsonable(result)

    _tool.__name__ = f"tool_{op.mcp_name}"
    _tool.__doc__ = op.description
    # FastMCP derives the tool's input schema from the signature.
    cast("Any", _tool).__signature__ = signature_from_dataclass(op.input_type)
    return _tool


def _register_operation_tools() -> None:
    for op in get_all_operations():
        if not op.on_mcp:
            continue
        mcp.tool(name=op.mcp_name, description=op.description)(_build_tool_handler(op))
        _TOOLS[op.mcp_name] = op
    logger.debug("mcp_tools_registered", tools=sorted(_TOOLS))


def get_registered_mcp_tools() -> set[str]:
    return set(_TOOLS)


def get_registered_mcp_descriptions() -> dict[str, str]:
    """Tool descriptions keyed by operation name."""

    return {op.name: op.description for op in _TOOLS.values()}


def run_server() -> None:
    mcp.run(transport="stdio")


_register_operation_tools()


if __name__ == "__main__":
    run_server()
