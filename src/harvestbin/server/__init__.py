"""Stdio MCP server publishing harvestbin operations as tools."""
