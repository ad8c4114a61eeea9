"""Execute checks against the shared working tree."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from commitwatch.checks.types import (
    REPORT_PLACEHOLDER,
    CheckDefinition,
    CheckOutcome,
    CheckStatus,
    FailureCause,
    ProbeResult,
)
from commitwatch.git.exec import ExecResult, ExecTimeout, run_command
from commitwatch.git.vcs import CommitRef, GitRepository
from commitwatch.report.html import render_diff_html

logger = logging.getLogger(__name__)


def render_command(command: tuple[str, ...], report_path: Path | None) -> list[str]:
    """Substitute the report placeholder in ``command``."""
    if report_path is None:
        return [part for part in command if REPORT_PLACEHOLDER not in part]
    return [part.replace(REPORT_PLACEHOLDER, str(report_path)) for part in command]


def _sha(commit: CommitRef | str) -> str:
    return commit.sha if isinstance(commit, CommitRef) else commit


class CheckRunner:
    """Run configured checks in the repository working tree.

    ``run`` and ``probe`` check out the requested commit first; the caller
    owns serialization of the working tree.
    """

    def __init__(self, repo: GitRepository, *, default_timeout: float | None = None) -> None:
        self.repo = repo
        self.default_timeout = default_timeout

    def run(self, check: CheckDefinition, commit: CommitRef | str) -> CheckOutcome:
        self.repo.checkout(_sha(commit))
        return self.execute(check)

    def probe(self, check: CheckDefinition, commit: CommitRef | str) -> ProbeResult:
        """Run the bisection command of ``check`` against ``commit``."""
        self.repo.checkout(_sha(commit))
        outcome = self.execute(check, command=check.probe_command, collect_artifact=False)
        if outcome.inconclusive:
            return ProbeResult.SKIP
        if outcome.failed:
            return ProbeResult.BAD
        return ProbeResult.GOOD

    def execute(
        self,
        check: CheckDefinition,
        *,
        command: tuple[str, ...] | None = None,
        collect_artifact: bool = True,
    ) -> CheckOutcome:
        """Execute ``check`` against whatever is checked out."""
        timeout = check.timeout if check.timeout is not None else self.default_timeout
        with tempfile.TemporaryDirectory(prefix="commitwatch-check-") as scratch:
            report_path: Path | None = None
            if collect_artifact and check.artifact == "report-file":
                report_path = Path(scratch) / f"{check.name}.html"
            argv = render_command(command or check.command, report_path)

            try:
                result = run_command(
                    argv, cwd=self.repo.path, check=False, timeout=timeout, new_session=True
                )
            except ExecTimeout as exc:
                logger.warning("Check %s timed out after %ss", check.name, timeout)
                return CheckOutcome(
                    check=check,
                    status=CheckStatus.FAILURE,
                    cause=FailureCause.TIMEOUT,
                    output=exc.result.output,
                )
            except OSError as exc:
                logger.warning("Check %s could not be started: %s", check.name, exc)
                return CheckOutcome(
                    check=check,
                    status=CheckStatus.FAILURE,
                    cause=FailureCause.NOT_RUNNABLE,
                    output=str(exc),
                )

            artifact = self._artifact(check, result, report_path) if collect_artifact else None

        if result.returncode == 0:
            logger.info("Check %s succeeded", check.name)
            return CheckOutcome(
                check=check,
                status=CheckStatus.SUCCESS,
                returncode=0,
                artifact=artifact,
                output=result.output,
            )

        logger.info("Check %s failed with exit status %s", check.name, result.returncode)
        return CheckOutcome(
            check=check,
            status=CheckStatus.FAILURE,
            returncode=result.returncode,
            cause=FailureCause.EXIT_STATUS,
            artifact=artifact,
            output=result.output,
        )

    def _artifact(
        self,
        check: CheckDefinition,
        result: ExecResult,
        report_path: Path | None,
    ) -> bytes | None:
        if check.artifact == "report-file":
            if report_path is not None and report_path.is_file() and report_path.stat().st_size:
                return report_path.read_bytes()
            return None
        if check.artifact == "diff":
            # Only a failing formatter produces a diff worth publishing.
            if result.returncode == 0:
                return None
            return render_diff_html(result.stdout)
        return None
