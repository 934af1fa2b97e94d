"""Shared pytest fixtures for engine and CLI checks."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
_HARVESTBIN_ENV_VARS = (
    "HARVESTBIN_CONFIG",
    "HARVESTBIN_DEFAULT_TIMEOUT_SECONDS",
    "HARVESTBIN_KILL_GRACE_SECONDS",
    "HARVESTBIN_SIGNAL_GRACE_SECONDS",
    "HARVESTBIN_KILL_FALLBACK_DELAY_SECONDS",
    "HARVESTBIN_ELEVATION_TOOL",
    "HARVESTBIN_SCRATCH_PATHS",
)


@dataclass(frozen=True, slots=True)
class CliResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _HARVESTBIN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Point at a file that does not exist so a stray ./harvestbin.toml is ignored.
    monkeypatch.setenv("HARVESTBIN_CONFIG", str(tmp_path / "absent-harvestbin.toml"))


@pytest.fixture
def package_root() -> Path:
    return PACKAGE_ROOT


@pytest.fixture
def cli_env(package_root: Path) -> dict[str, str]:
    env = os.environ.copy()
    existing = env.get("PYTHONPATH", "")
    root = str(package_root / "src")
    env["PYTHONPATH"] = root if not existing else f"{root}:{existing}"
    return env


@pytest.fixture
def run_harvestbin(package_root: Path, cli_env: dict[str, str]) -> Callable[..., CliResult]:
    def _run(
        args: list[str],
        *,
        stdin: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> CliResult:
        completed = subprocess.run(
            [sys.executable, "-m", "harvestbin", *args],
            cwd=package_root,
            env={**cli_env, **(env or {})},
            input=stdin if stdin is not None else "",
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
        return CliResult(
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    return _run
