"""Operational config loading: TOML sections, env overrides and validation."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from harvestbin.lib.config.settings import (
    HarvestConfig,
    env_override_name,
    load_config,
    load_config_with_sources,
    resolve_config_path,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_file(tmp_path: Path) -> None:
    assert load_config(tmp_path / "missing.toml") == HarvestConfig()


def test_sections_are_applied(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "harvestbin.toml",
        """
[timeouts]
default_seconds = 12
kill_grace_seconds = 0.5

[signals]
grace_seconds = 0
fallback_delay_seconds = 3

[elevation]
tool = "doas"
scratch_paths = ["/tmp/harvest", "/var/folders"]
""",
    )
    config = load_config(path)
    assert config == HarvestConfig(
        default_timeout_seconds=12.0,
        kill_grace_seconds=0.5,
        signal_grace_seconds=0.0,
        kill_fallback_delay_seconds=3.0,
        elevation_tool="doas",
        scratch_paths=("/tmp/harvest", "/var/folders"),
    )


def test_top_level_keys_are_accepted(tmp_path: Path) -> None:
    path = _write(tmp_path / "harvestbin.toml", 'elevation_tool = "run0"\n')
    assert load_config(path).elevation_tool == "run0"


def test_env_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path / "harvestbin.toml", "[timeouts]\ndefault_seconds = 12\n")
    monkeypatch.setenv("HARVESTBIN_DEFAULT_TIMEOUT_SECONDS", "7.5")
    monkeypatch.setenv("HARVESTBIN_SCRATCH_PATHS", "/a:/b: :")
    monkeypatch.setenv("HARVESTBIN_ELEVATION_TOOL", " doas ")
    config = load_config(path)
    assert config.default_timeout_seconds == 7.5
    assert config.scratch_paths == ("/a", "/b")
    assert config.elevation_tool == "doas"


@pytest.mark.parametrize(
    "text,message",
    [
        pytest.param(
            '[timeouts]\nkill_grace_seconds = "soon"\n',
            "Invalid value for 'timeouts.kill_grace_seconds': expected float",
            id="float-type",
        ),
        pytest.param(
            "[timeouts]\ndefault_seconds = -1\n",
            "expected a non-negative number",
            id="negative",
        ),
        pytest.param(
            "[timeouts]\ndefault_seconds = true\n",
            "expected float",
            id="bool-is-not-float",
        ),
        pytest.param(
            '[elevation]\ntool = ""\n',
            "expected non-empty string",
            id="blank-tool",
        ),
        pytest.param(
            '[elevation]\nscratch_paths = "/tmp"\n',
            "expected array[str]",
            id="scratch-not-array",
        ),
        pytest.param(
            "timeouts = 3\n",
            "expected table",
            id="section-not-table",
        ),
    ],
)
def test_invalid_file_values(tmp_path: Path, text: str, message: str) -> None:
    path = _write(tmp_path / "harvestbin.toml", text)
    with pytest.raises(ValueError, match=message):
        load_config(path)


def test_invalid_env_value(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HARVESTBIN_KILL_GRACE_SECONDS", "later")
    with pytest.raises(ValueError, match="HARVESTBIN_KILL_GRACE_SECONDS"):
        load_config(tmp_path / "missing.toml")


def test_unknown_keys_warn(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = _write(tmp_path / "harvestbin.toml", "color = true\n[signals]\nbogus = 1\n")
    with caplog.at_level(logging.WARNING):
        assert load_config(path) == HarvestConfig()
    assert "Ignoring unknown harvestbin config key 'color'." in caplog.text
    assert "Ignoring unknown harvestbin config key 'signals.bogus'." in caplog.text


def test_resolve_config_path_precedence(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    explicit = tmp_path / "explicit.toml"
    assert resolve_config_path(explicit) == explicit.resolve()

    monkeypatch.setenv("HARVESTBIN_CONFIG", str(tmp_path / "from-env.toml"))
    assert resolve_config_path() == (tmp_path / "from-env.toml").resolve()

    monkeypatch.delenv("HARVESTBIN_CONFIG")
    monkeypatch.chdir(tmp_path)
    assert resolve_config_path().resolve() == (tmp_path / "harvestbin.toml").resolve()


def test_env_override_name() -> None:
    assert env_override_name("elevation_tool") == "HARVESTBIN_ELEVATION_TOOL"
    assert env_override_name("not_a_field") is None


def test_sources_track_each_layer(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path / "harvestbin.toml", "[signals]\ngrace_seconds = 2\n")
    monkeypatch.setenv("HARVESTBIN_ELEVATION_TOOL", "doas")
    config, sources = load_config_with_sources(path)
    assert config.signal_grace_seconds == 2.0
    assert sources["signal_grace_seconds"] == "file"
    assert sources["elevation_tool"] == "env var"
    assert sources["scratch_paths"] == "builtin"
