"""End-to-end CLI checks through `python -m harvestbin`."""

from __future__ import annotations

import json
import sys
from pathlib import Path

PY = sys.executable


def test_version(run_harvestbin) -> None:
    result = run_harvestbin(["--version"])
    assert result.returncode == 0
    assert "0.1.0" in result.stdout


def test_exec_prints_command_output(run_harvestbin) -> None:
    result = run_harvestbin(["exec", "--", PY, "-c", "print('hi from child')"])
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "hi from child"


def test_exec_json_mode(run_harvestbin) -> None:
    result = run_harvestbin(["--json", "exec", "--", PY, "-c", "print('hi')"])
    assert result.returncode == 0, result.stderr
    payload = json.loads(result.stdout)
    assert payload["exit_code"] == 0
    assert payload["stdout"] == "hi\n"
    assert payload["stderr"] == ""


def test_exec_failure_reports_and_propagates_exit_code(run_harvestbin) -> None:
    result = run_harvestbin(
        ["exec", "--", PY, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"]
    )
    assert result.returncode == 3
    assert "Error: Command execution failed with exit code 3: nope" in result.stderr
    assert "Recovery Suggestions:" in result.stderr
    assert "1. " in result.stderr


def test_exec_failure_json_report(run_harvestbin) -> None:
    result = run_harvestbin(["--format", "json", "exec", "--", PY, "-c", "raise SystemExit(4)"])
    assert result.returncode == 4
    report = json.loads(result.stderr.strip().splitlines()[-1])
    assert report["error"]["kind"] == "execution_failed"
    assert report["error"]["exit_code"] == 4
    assert report["suggestions"]


def test_exec_timeout_exits_124(run_harvestbin) -> None:
    result = run_harvestbin(
        ["exec", "--timeout-secs", "0.3", "--", PY, "-c", "import time; time.sleep(30)"]
    )
    assert result.returncode == 124
    assert "timed out" in result.stderr


def test_exec_missing_program(run_harvestbin) -> None:
    result = run_harvestbin(["exec", "harvestbin-missing-program"])
    assert result.returncode == 1
    assert "not found" in result.stderr


def test_exec_sudo_rejected_before_spawn(run_harvestbin) -> None:
    result = run_harvestbin(["exec", "--sudo", "rm", "/etc/hosts"])
    assert result.returncode == 1
    assert "Refusing to delete system path: /etc/hosts" in result.stderr


def test_check_rejects_protected_delete(run_harvestbin) -> None:
    result = run_harvestbin(["check", "rm", "/usr/lib/libthing.so"])
    assert result.returncode == 2
    assert result.stdout.startswith("rejected: Command validation failed: Refusing to delete")


def test_check_accepts_safe_command(run_harvestbin) -> None:
    result = run_harvestbin(["check", "--", "launchctl", "kickstart", "-k", "system/x"])
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "ok: sudo launchctl kickstart -k system/x"


def test_output_clean_reads_stdin(run_harvestbin) -> None:
    result = run_harvestbin(["output", "clean"], stdin="  \x1b[31mRed Text\x1b[0m  \r\n")
    assert result.returncode == 0, result.stderr
    assert result.stdout == "Red Text\n"


def test_output_extract_json(run_harvestbin) -> None:
    result = run_harvestbin(
        ["output", "extract", "version", "--format-as", "json"],
        stdin='{"version": "14.2", "build": 3}',
    )
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "14.2"


def test_output_extract_typed_and_required(run_harvestbin) -> None:
    ok = run_harvestbin(
        ["--json", "output", "extract", "count", "--type", "int"],
        stdin="count = 7\n",
    )
    assert ok.returncode == 0, ok.stderr
    assert json.loads(ok.stdout) == {"key": "count", "found": True, "value": 7}

    missing = run_harvestbin(["output", "extract", "absent", "--required"], stdin="a=1\n")
    assert missing.returncode == 1
    assert "Unknown key: absent" in missing.stderr


def test_output_parse_porcelain(run_harvestbin) -> None:
    result = run_harvestbin(["--porcelain", "output", "parse", "--mode", "kv"], stdin="a=1\nb=2\n")
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "data.a=1\tdata.b=2\tmode=kv"


def test_process_running_rejects_protected_name(run_harvestbin) -> None:
    result = run_harvestbin(["process", "running", "kernel"])
    assert result.returncode == 1
    assert "protected system process" in result.stderr


def test_process_kill_rejects_invalid_pid(run_harvestbin) -> None:
    result = run_harvestbin(["process", "kill", "0"])
    assert result.returncode == 1
    assert "Invalid process ID" in result.stderr


def test_process_signal_rejects_unknown_signal(run_harvestbin) -> None:
    result = run_harvestbin(["process", "signal", "Dock", "--signal", "HUP"])
    assert result.returncode == 1
    assert "Unsupported signal 'HUP'" in result.stderr


def test_config_show_reports_sources(run_harvestbin, tmp_path: Path) -> None:
    config_path = tmp_path / "harvestbin.toml"
    config_path.write_text('[elevation]\ntool = "doas"\n', encoding="utf-8")
    result = run_harvestbin(
        ["config", "show"],
        env={
            "HARVESTBIN_CONFIG": str(config_path),
            "HARVESTBIN_KILL_GRACE_SECONDS": "0.25",
        },
    )
    assert result.returncode == 0, result.stderr
    assert "elevation_tool: doas [source: file]" in result.stdout
    assert (
        "kill_grace_seconds: 0.25 [source: env var (HARVESTBIN_KILL_GRACE_SECONDS)]"
        in result.stdout
    )
    assert "default_timeout_seconds: 30.0 [source: builtin]" in result.stdout
