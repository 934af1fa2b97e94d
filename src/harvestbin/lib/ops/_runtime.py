"""Engine construction for operation handlers."""

from __future__ import annotations

from pathlib import Path

from harvestbin.lib.config.settings import load_config
from harvestbin.lib.exec.spawn import ExecutionEngine


def resolve_cwd(cwd: str | None) -> Path | None:
    if cwd is None or not cwd.strip():
        return None
    return Path(cwd).expanduser()


def build_engine(config_path: str | None = None) -> ExecutionEngine:
    """Build an engine from the operational config."""

    explicit = Path(config_path).expanduser() if config_path else None
    return ExecutionEngine.from_config(load_config(explicit))
