"""Poll the development branch and feed new commits to the pipeline."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import httpx

from commitwatch.bisect import FaultLocalizer
from commitwatch.checks.runner import CheckRunner
from commitwatch.config import WatchConfig
from commitwatch.git.exec import ExecError
from commitwatch.git.vcs import GitRepository
from commitwatch.github.client import build_client
from commitwatch.github.identity import GitHubIdentityResolver
from commitwatch.github.issues import GitHubIssueTracker
from commitwatch.github.remote import require_repo_slug
from commitwatch.pipeline.commit_pipeline import CommitPipeline
from commitwatch.pipeline.types import CommitReport
from commitwatch.report.publisher import ReportPublisher

logger = logging.getLogger(__name__)

CODE_CLONE_DIRNAME = "code"
REPORT_CLONE_DIRNAME = "reports"


class WatchLoop:
    """Cooperative polling loop over one repository.

    The loop only suspends while waiting for the next poll (on ``cancel``)
    or while an operation is running, so no two operations overlap.
    """

    def __init__(
        self,
        *,
        repo: GitRepository,
        pipeline: CommitPipeline,
        dev_branch: str,
        poll_interval: float = 15.0,
        cancel: threading.Event | None = None,
        last_seen: str | None = None,
        on_report: Callable[[CommitReport], None] | None = None,
    ) -> None:
        self.repo = repo
        self.pipeline = pipeline
        self.dev_branch = dev_branch
        self.poll_interval = poll_interval
        self.cancel = cancel or threading.Event()
        self.last_seen = last_seen
        self.on_report = on_report

    def poll_once(self) -> list[CommitReport] | None:
        """Run one detection cycle.

        Returns the reports of processed commits, or None when the remote
        could not be read this cycle.
        """
        try:
            tip = self.repo.fetch_tip(self.dev_branch)
        except ExecError as exc:
            logger.warning("Fetching %s failed; retrying next cycle: %s", self.dev_branch, exc)
            return None

        if tip == self.last_seen:
            return []

        try:
            commits = self.repo.enumerate_range(self.last_seen, tip)
        except ExecError as exc:
            logger.warning("Listing commits up to %s failed; retrying next cycle: %s", tip[:7], exc)
            return None

        if not commits:
            logger.info("%s moved to %s without new commits", self.dev_branch, tip[:7])
            self.last_seen = tip
            return []

        logger.info("%d new commit(s) on %s", len(commits), self.dev_branch)
        reports = self.pipeline.process(commits)
        if self.on_report is not None:
            for report in reports:
                self.on_report(report)
        if len(reports) == len(commits) and not any(report.abandoned for report in reports):
            self.last_seen = tip
        return reports

    def run(self, *, max_cycles: int | None = None) -> int:
        """Poll until cancelled (or ``max_cycles`` cycles ran); return cycles run."""
        cycles = 0
        while not self.cancel.is_set():
            self.poll_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self.cancel.wait(self.poll_interval)
        logger.info("Watch loop stopped after %d cycle(s)", cycles)
        return cycles


@contextmanager
def open_watch(
    config: WatchConfig,
    workdir: Path,
    *,
    cancel: threading.Event | None = None,
    transport: httpx.BaseTransport | None = None,
    on_report: Callable[[CommitReport], None] | None = None,
) -> Iterator[WatchLoop]:
    """Clone the watched repository and wire a ready-to-run ``WatchLoop``."""
    cancel = cancel or threading.Event()
    repo = GitRepository.clone(
        config.code_repo_url,
        workdir / CODE_CLONE_DIRNAME,
        branch=config.dev_branch,
        remote=config.remote,
        timeout=config.git_timeout,
        network_timeout=config.git_timeout,
    )
    repo.ensure_identity()
    last_seen = repo.head()

    publisher = ReportPublisher(
        config.report_repo_url,
        config.report_branch,
        workdir / REPORT_CLONE_DIRNAME,
        remote=config.remote,
        timeout=config.git_timeout,
        network_timeout=config.git_timeout,
    )
    runner = CheckRunner(repo, default_timeout=config.check_timeout)

    with build_client(
        config.token(),
        api_url=config.github_api_url,
        timeout=config.http_timeout,
        transport=transport,
    ) as client:
        pipeline = CommitPipeline(
            repo=repo,
            runner=runner,
            localizer=FaultLocalizer(repo, runner),
            checks=config.checks,
            release_branch=config.release_branch,
            marker=config.marker,
            tracker=GitHubIssueTracker(client, require_repo_slug(config.code_repo_url)),
            publisher=publisher,
            identity=GitHubIdentityResolver(client),
            dead_letter_dir=config.dead_letter_dir,
            cancel=cancel,
        )
        yield WatchLoop(
            repo=repo,
            pipeline=pipeline,
            dev_branch=config.dev_branch,
            poll_interval=config.poll_interval,
            cancel=cancel,
            last_seen=last_seen,
            on_report=on_report,
        )
