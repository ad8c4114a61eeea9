"""Tests for the commitwatch command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from commitwatch import __version__
from commitwatch.cli import cli
from commitwatch.doctor import DoctorCheck, DoctorReport

runner = CliRunner()

POSITIONALS = [
    "git@github.com:acme/app.git",
    "dev",
    "main",
    "git@github.com:acme/reports.git",
    "gh-pages",
]


def _failed_report(*_args, **_kwargs) -> DoctorReport:
    return DoctorReport(
        status="failed",
        checks=[
            DoctorCheck(
                id="credential",
                status="fail",
                message="GITHUB_PERSONAL_ACCESS_TOKEN environment variable is missing",
                remediation=["export GITHUB_PERSONAL_ACCESS_TOKEN=<token>"],
            )
        ],
    )


def _passed_report(*_args, **_kwargs) -> DoctorReport:
    return DoctorReport(status="passed", checks=[DoctorCheck(id="credential", status="pass", message="ok")])


def test_version() -> None:
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_checks_lists_defaults() -> None:
    result = runner.invoke(cli, ["checks"])

    assert result.exit_code == 0
    assert "tests" in result.output
    assert "format" in result.output


def test_checks_with_invalid_config_is_refused(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("unknown_key: 1\n", encoding="utf-8")

    result = runner.invoke(cli, ["checks", "--config", str(path)])

    assert result.exit_code == 2
    assert "unknown_key" in result.output


def test_doctor_failure_exits_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("commitwatch.cli.run_doctor", _failed_report)

    result = runner.invoke(cli, ["doctor", *POSITIONALS])

    assert result.exit_code == 2
    assert "credential" in result.output


def test_doctor_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("commitwatch.cli.run_doctor", _passed_report)

    result = runner.invoke(cli, ["doctor", *POSITIONALS, "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "passed"


def test_same_dev_and_release_branch_is_refused() -> None:
    args = [POSITIONALS[0], "dev", "dev", *POSITIONALS[3:]]

    result = runner.invoke(cli, ["doctor", *args])

    assert result.exit_code == 2
    assert "must differ" in result.output


def test_watch_refuses_when_preconditions_fail(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("commitwatch.cli.run_doctor", _failed_report)
    monkeypatch.setattr("commitwatch.cli.configure_logging", lambda level: None)

    result = runner.invoke(cli, ["watch", *POSITIONALS])

    assert result.exit_code == 2
    assert "not watching" in result.output


def test_watch_once_runs_a_single_cycle(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: dict[str, object] = {}

    class _Loop:
        def run(self, *, max_cycles=None):
            calls["max_cycles"] = max_cycles
            return 1

    class _Opened:
        def __init__(self, config, workdir, *, cancel, on_report):
            calls["workdir"] = workdir
            calls["poll_interval"] = config.poll_interval

        def __enter__(self):
            return _Loop()

        def __exit__(self, *exc_info):
            return False

    monkeypatch.setattr("commitwatch.cli.open_watch", _Opened)
    monkeypatch.setattr("commitwatch.cli.configure_logging", lambda level: None)
    monkeypatch.setattr("commitwatch.cli._install_signal_handlers", lambda cancel: None)

    result = runner.invoke(
        cli,
        ["watch", *POSITIONALS, "--once", "--skip-doctor", "--workdir", str(tmp_path / "work"), "--poll-interval", "2"],
    )

    assert result.exit_code == 0, result.output
    assert calls == {"workdir": (tmp_path / "work").resolve(), "poll_interval": 2.0, "max_cycles": 1}


def test_watch_unexpected_error_exits_1(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def _boom(*_args, **_kwargs):
        raise RuntimeError("clone failed")

    monkeypatch.setattr("commitwatch.cli.open_watch", _boom)
    monkeypatch.setattr("commitwatch.cli.configure_logging", lambda level: None)
    monkeypatch.setattr("commitwatch.cli._install_signal_handlers", lambda cancel: None)

    result = runner.invoke(cli, ["watch", *POSITIONALS, "--skip-doctor", "--workdir", str(tmp_path)])

    assert result.exit_code == 1
    assert "clone failed" in result.output
