"""Typed operations behind the harvestbin CLI commands and MCP tools."""

from harvestbin.lib.ops.registry import (
    OperationSpec,
    get_all_operations,
    get_cli_operations,
    get_mcp_tool_names,
    get_operation,
    operation,
)

__all__ = [
    "OperationSpec",
    "get_all_operations",
    "get_cli_operations",
    "get_mcp_tool_names",
    "get_operation",
    "operation",
]
