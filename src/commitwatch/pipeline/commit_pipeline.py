"""Per-commit evaluation state machine: check, then report or promote."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from pathlib import Path

from commitwatch.artifacts import write_dead_letter
from commitwatch.bisect import FaultLocalizer
from commitwatch.checks.runner import CheckRunner
from commitwatch.checks.types import CheckDefinition, CheckOutcome
from commitwatch.git.exec import ExecError
from commitwatch.git.vcs import CommitRef, GitRepository
from commitwatch.github.identity import IdentityResolver
from commitwatch.github.issues import Issue, IssueSubmissionError, IssueTracker
from commitwatch.pipeline.messages import draft_conflict_issue, draft_failure_issue
from commitwatch.pipeline.types import CommitReport, EvaluationResult, PipelineState
from commitwatch.report.publisher import ReportPublisher, ReportPublishError

logger = logging.getLogger(__name__)


class CommitPipeline:
    """Evaluate commits one at a time and act on the result.

    Every commit goes ``start -> checking -> reporting | promoting -> done``.
    The success marker tag is only moved on a commit whose checks all
    passed. A failure while handling one commit is logged and recorded on
    its ``CommitReport``; the next commit is still processed. A commit whose
    evaluation is interrupted by ``cancel`` is marked abandoned and has no
    side effects.
    """

    def __init__(
        self,
        *,
        repo: GitRepository,
        runner: CheckRunner,
        localizer: FaultLocalizer,
        checks: Sequence[CheckDefinition],
        release_branch: str,
        marker: str,
        tracker: IssueTracker,
        publisher: ReportPublisher | None = None,
        identity: IdentityResolver | None = None,
        dead_letter_dir: Path | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.repo = repo
        self.runner = runner
        self.localizer = localizer
        self.checks = tuple(checks)
        self.release_branch = release_branch
        self.marker = marker
        self.tracker = tracker
        self.publisher = publisher
        self.identity = identity
        self.dead_letter_dir = dead_letter_dir
        self.cancel = cancel or threading.Event()

    def process(self, commits: Sequence[CommitRef]) -> list[CommitReport]:
        """Process ``commits`` in the given (ancestry) order."""
        reports: list[CommitReport] = []
        for index, commit in enumerate(commits):
            if self.cancel.is_set():
                logger.info("Shutdown requested; %d commit(s) left unprocessed", len(commits) - index)
                break
            reports.append(self.process_commit(commit))
        return reports

    def process_commit(self, commit: CommitRef) -> CommitReport:
        logger.info("Evaluating %s", commit.sha)
        report = CommitReport(commit=commit)
        try:
            evaluation = self._evaluate(commit, report)
            if evaluation is None:
                logger.info("Shutdown requested; abandoning %s before acting on its results", commit.short)
                report.abandoned = True
            elif evaluation.all_passed:
                self._promote(commit, report)
            else:
                self._report_failure(evaluation, report)
        except Exception as exc:
            logger.exception("Processing of %s stopped in state %s", commit.short, report.state.value)
            report.error = str(exc)
        report.enter(PipelineState.DONE)
        return report

    def _evaluate(self, commit: CommitRef, report: CommitReport) -> EvaluationResult | None:
        """Run every check and localize failures; None when cancelled midway."""
        report.enter(PipelineState.CHECKING)
        outcomes: list[CheckOutcome] = []
        for check in self.checks:
            outcomes.append(self.runner.run(check, commit))
            if self.cancel.is_set():
                return None

        known_good = self.repo.resolve(self.marker)
        first_bad: dict[str, CommitRef | None] = {}
        for outcome in outcomes:
            if not outcome.failed:
                continue
            if outcome.inconclusive:
                logger.info("%s did not produce a verdict; skipping localization", outcome.name)
                first_bad[outcome.name] = None
                continue
            first_bad[outcome.name] = self.localizer.localize(outcome.check, known_good, commit)
            if self.cancel.is_set():
                return None

        evaluation = EvaluationResult(commit=commit, outcomes=tuple(outcomes), first_bad=first_bad)
        report.evaluation = evaluation
        return evaluation

    def _report_failure(self, evaluation: EvaluationResult, report: CommitReport) -> None:
        report.enter(PipelineState.REPORTING)
        commit = evaluation.commit

        artifacts = evaluation.artifacts()
        if artifacts and self.publisher is not None:
            try:
                report.bundle = self.publisher.publish(commit.sha, artifacts)
            except ReportPublishError as exc:
                logger.error("Reports for %s were not published; filing issue without links: %s", commit.short, exc)

        draft = draft_failure_issue(evaluation, report.bundle.urls if report.bundle else None)
        report.issue = draft.to_issue(assignee=self._assignee(commit))
        report.issue_url = self._submit(commit, report.issue)

    def _promote(self, commit: CommitRef, report: CommitReport) -> None:
        report.enter(PipelineState.PROMOTING)

        self.repo.tag(self.marker, commit.sha, force=True)
        report.marker_moved = True
        self.repo.push(f"refs/tags/{self.marker}", force=True)
        logger.info("Moved %s to %s", self.marker, commit.short)

        release_tip = self.repo.fetch_tip(self.release_branch)
        self.repo.checkout_branch_at(self.release_branch, release_tip)
        result = self.repo.merge(commit.sha)
        if result.merged:
            self.repo.push(self.release_branch)
            report.merged = True
            logger.info("Merged %s into %s", commit.short, self.release_branch)
            return

        report.merged = False
        logger.warning("Merging %s into %s conflicts", commit.short, self.release_branch)
        self.repo.reset_merge_state()
        draft = draft_conflict_issue(commit, self.release_branch, result.output)
        report.issue = draft.to_issue()
        report.issue_url = self._submit(commit, report.issue)

    def _assignee(self, commit: CommitRef) -> str | None:
        if self.identity is None:
            return None
        contact = commit.author_email
        if not contact:
            try:
                contact = self.repo.author_identity(commit.sha)
            except ExecError as exc:
                logger.warning("Author of %s unknown; filing issue unassigned: %s", commit.short, exc)
                return None
        return self.identity.lookup(contact)

    def _submit(self, commit: CommitRef, issue: Issue) -> str | None:
        """Submit ``issue`` once; an undelivered issue is logged and saved."""
        try:
            return self.tracker.create_issue(issue)
        except IssueSubmissionError as exc:
            logger.error(
                "ISSUE NOT CREATED for %s: %s\nTitle: %s\nBody:\n%s",
                commit.short,
                exc,
                issue.title,
                issue.body,
            )
            if self.dead_letter_dir is not None:
                path = write_dead_letter(
                    self.dead_letter_dir,
                    commit=commit.sha,
                    kind="issue",
                    payload=issue.to_payload(),
                )
                logger.error("Undelivered issue saved to %s", path)
            return None
