"""Startup preconditions (doctor command).

Everything that would make the watch loop useless is verified before the
loop starts: the API credential, the git executable, every configured check
tool, GitHub-shaped remote URLs and the three branches the loop relies on.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

from commitwatch.config import WatchConfig
from commitwatch.git.exec import ExecError
from commitwatch.git.vcs import remote_branch_exists
from commitwatch.github.remote import parse_repo_slug

BranchProbe = Callable[[str, str], bool]


@dataclass
class DoctorCheck:
    """Individual precondition result."""

    id: str
    status: Literal["pass", "fail", "warn"]
    message: str
    remediation: list[str] = field(default_factory=list)


@dataclass
class DoctorReport:
    """All precondition results."""

    status: Literal["passed", "failed"] = "passed"
    checks: list[DoctorCheck] = field(default_factory=list)

    @property
    def failures(self) -> list[DoctorCheck]:
        return [check for check in self.checks if check.status == "fail"]

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "checks": [asdict(check) for check in self.checks]}


def _check_token(config: WatchConfig, environ: Mapping[str, str]) -> DoctorCheck:
    if config.token(environ):
        return DoctorCheck(
            id="credential",
            status="pass",
            message=f"{config.token_env} is set",
        )
    return DoctorCheck(
        id="credential",
        status="fail",
        message=f"{config.token_env} environment variable is missing",
        remediation=[
            "Create a GitHub personal access token with repo scope",
            f"export {config.token_env}=<token>",
        ],
    )


def _check_executable(check_id: str, executable: str, purpose: str) -> DoctorCheck:
    location = shutil.which(executable)
    if location:
        return DoctorCheck(id=check_id, status="pass", message=f"{executable} found at {location}")
    return DoctorCheck(
        id=check_id,
        status="fail",
        message=f"{executable} not found on PATH (needed for {purpose})",
        remediation=[f"Install {executable} or adjust the check command in the config file"],
    )


def _check_tools(config: WatchConfig) -> list[DoctorCheck]:
    results = [_check_executable("tool:git", "git", "all repository operations")]
    seen = {"git"}
    for check in config.checks:
        for command in (check.command, check.probe_command):
            executable = command[0]
            if executable in seen:
                continue
            seen.add(executable)
            results.append(_check_executable(f"tool:{executable}", executable, f"the {check.name} check"))
    return results


def _check_slug(check_id: str, url: str) -> DoctorCheck:
    slug = parse_repo_slug(url)
    if slug is None:
        return DoctorCheck(
            id=check_id,
            status="fail",
            message=f"cannot derive GitHub owner/repo from `{url}`",
            remediation=["Use git@github.com:OWNER/REPO.git or https://github.com/OWNER/REPO.git"],
        )
    return DoctorCheck(id=check_id, status="pass", message=f"{url} -> {slug}")


def _check_branch(check_id: str, url: str, branch: str, probe: BranchProbe) -> DoctorCheck:
    try:
        exists = probe(url, branch)
    except (ExecError, OSError) as exc:
        return DoctorCheck(
            id=check_id,
            status="fail",
            message=f"cannot reach {url}: {exc}",
            remediation=["Check network access and SSH keys / credentials for the remote"],
        )
    if exists:
        return DoctorCheck(id=check_id, status="pass", message=f"branch {branch} exists on {url}")
    return DoctorCheck(
        id=check_id,
        status="fail",
        message=f"branch {branch} does not exist on {url}",
        remediation=[f"Create and push {branch} before starting the watch loop"],
    )


def run_doctor(
    config: WatchConfig,
    *,
    environ: Mapping[str, str] | None = None,
    branch_probe: BranchProbe | None = None,
) -> DoctorReport:
    """Verify every startup precondition for ``config``."""
    env = os.environ if environ is None else environ
    report = DoctorReport()
    report.checks.append(_check_token(config, env))

    tools = _check_tools(config)
    report.checks.extend(tools)

    report.checks.append(_check_slug("remote:code", config.code_repo_url))
    report.checks.append(_check_slug("remote:report", config.report_repo_url))

    git_available = tools[0].status == "pass"
    if git_available:
        probe = branch_probe or (
            lambda url, branch: remote_branch_exists(url, branch, cwd=Path.cwd(), timeout=config.git_timeout)
        )
        for check_id, url, branch in (
            ("branch:dev", config.code_repo_url, config.dev_branch),
            ("branch:release", config.code_repo_url, config.release_branch),
            ("branch:report", config.report_repo_url, config.report_branch),
        ):
            report.checks.append(_check_branch(check_id, url, branch, probe))
    else:
        report.checks.append(
            DoctorCheck(id="branches", status="warn", message="branch checks skipped: git is unavailable")
        )

    report.status = "failed" if report.failures else "passed"
    return report
