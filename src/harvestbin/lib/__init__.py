"""Core harvestbin library exports."""

from harvestbin.lib.domain import ExecutionResult, InvocationContext

__all__ = ["ExecutionResult", "InvocationContext"]
