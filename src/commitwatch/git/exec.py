"""Command runners for git and check tool invocations."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for subprocess execution."""

    argv: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined stdout and stderr, in that order."""
        return "".join(part for part in (self.stdout, self.stderr) if part)


class ExecError(RuntimeError):
    """Raised when a command returns non-zero in check mode."""

    def __init__(self, result: ExecResult):
        rendered = " ".join(result.argv)
        detail = (result.stderr or result.stdout).strip()
        super().__init__(f"command failed ({result.returncode}): {rendered}\n{detail}")
        self.result = result


class ExecTimeout(ExecError):
    """Raised when a command exceeds its time budget."""

    def __init__(self, result: ExecResult, timeout: float):
        super().__init__(result)
        self.timeout = timeout
        self.args = (f"command timed out after {timeout:g}s: {' '.join(result.argv)}",)


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    check: bool = True,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
    new_session: bool = False,
) -> ExecResult:
    """Run command and return structured result.

    A missing executable propagates as ``FileNotFoundError``. With
    ``new_session`` the child does not receive the terminal's SIGINT.
    """
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
            timeout=timeout,
            env=env,
            start_new_session=new_session,
        )
    except subprocess.TimeoutExpired as exc:
        result = ExecResult(
            argv=tuple(argv),
            cwd=cwd.resolve(),
            returncode=-1,
            stdout=_text(exc.stdout),
            stderr=_text(exc.stderr),
        )
        raise ExecTimeout(result, timeout or 0.0) from exc

    result = ExecResult(
        argv=tuple(argv),
        cwd=cwd.resolve(),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if check and result.returncode != 0:
        raise ExecError(result)
    return result


def run_git(
    args: list[str],
    *,
    repo_root: Path,
    check: bool = True,
    timeout: float | None = None,
) -> ExecResult:
    """Run git command rooted at repo."""
    return run_command(["git", *args], cwd=repo_root, check=check, timeout=timeout)
