"""In-memory stand-ins for the pipeline's collaborators."""

from __future__ import annotations

from collections.abc import Mapping

from commitwatch.checks.types import (
    CheckDefinition,
    CheckOutcome,
    CheckStatus,
    FailureCause,
)
from commitwatch.git.vcs import CommitRef, MergeResult
from commitwatch.github.issues import Issue, IssueSubmissionError
from commitwatch.report.publisher import ReportBundle, ReportPublishError

TESTS = CheckDefinition(
    name="tests",
    command=("pytest", "--html={report}"),
    artifact="report-file",
    no_units_exit_code=5,
)
FORMAT = CheckDefinition(name="format", command=("black", "--check", "--diff", "."), artifact="diff")


def commit(index: int) -> CommitRef:
    return CommitRef(sha=f"{index:07d}" + "a" * 33, author_email=f"dev{index}@example.com")


def passed(check: CheckDefinition) -> CheckOutcome:
    return CheckOutcome(check=check, status=CheckStatus.SUCCESS, returncode=0)


def failed(
    check: CheckDefinition,
    returncode: int | None = 1,
    *,
    cause: FailureCause = FailureCause.EXIT_STATUS,
    artifact: bytes | None = None,
) -> CheckOutcome:
    return CheckOutcome(
        check=check,
        status=CheckStatus.FAILURE,
        returncode=returncode,
        cause=cause,
        artifact=artifact,
    )


class FakeRepo:
    def __init__(self, *, marker: str | None = None, conflicts: set[str] | None = None):
        self.tags: dict[str, str] = {}
        if marker is not None:
            self.tags["dev-ci-success"] = marker
        self.conflicts = conflicts or set()
        self.pushed: list[tuple[tuple[str, ...], bool]] = []
        self.merged: list[str] = []
        self.resets = 0
        self.calls: list[str] = []

    def resolve(self, ref: str) -> str | None:
        return self.tags.get(ref)

    def tag(self, name: str, ref: str, *, force: bool = True) -> None:
        self.calls.append(f"tag {name} {ref[:7]}")
        self.tags[name] = ref

    def push(self, *refspecs: str, force: bool = False) -> None:
        self.calls.append(f"push {' '.join(refspecs)}")
        self.pushed.append((refspecs, force))

    def fetch_tip(self, branch: str) -> str:
        self.calls.append(f"fetch {branch}")
        return "f" * 40

    def checkout_branch_at(self, branch: str, start: str) -> None:
        self.calls.append(f"checkout {branch}")

    def merge(self, ref: str) -> MergeResult:
        self.calls.append(f"merge {ref[:7]}")
        if ref in self.conflicts:
            return MergeResult(merged=False, output="CONFLICT (content): Merge conflict in app.py\n")
        self.merged.append(ref)
        return MergeResult(merged=True, output="Fast-forward\n")

    def reset_merge_state(self) -> None:
        self.calls.append("reset-merge")
        self.resets += 1

    def author_identity(self, ref: str) -> str:
        return "fallback@example.com"


class FakeRunner:
    """Return scripted outcomes keyed by (check name, sha)."""

    def __init__(self, outcomes: Mapping[tuple[str, str], CheckOutcome] | None = None, *, fail_on: str | None = None):
        self.outcomes = dict(outcomes or {})
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []

    def run(self, check: CheckDefinition, target: CommitRef) -> CheckOutcome:
        self.calls.append((check.name, target.sha))
        if target.sha == self.fail_on:
            raise RuntimeError("checkout exploded")
        return self.outcomes.get((check.name, target.sha), passed(check))


class FakeLocalizer:
    def __init__(self, answers: Mapping[str, CommitRef | None] | None = None):
        self.answers = dict(answers or {})
        self.calls: list[tuple[str, str | None, str]] = []

    def localize(self, check: CheckDefinition, known_good: str | None, known_bad: CommitRef) -> CommitRef | None:
        self.calls.append((check.name, known_good, known_bad.sha))
        if known_good is None:
            return None
        return self.answers.get(check.name)


class FakeTracker:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.issues: list[Issue] = []

    def create_issue(self, issue: Issue) -> str:
        if self.fail:
            raise IssueSubmissionError("tracker unavailable")
        self.issues.append(issue)
        return f"https://github.com/acme/app/issues/{len(self.issues)}"


class FakePublisher:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.published: list[tuple[str, dict[str, bytes]]] = []

    def publish(self, commit_sha: str, artifacts: Mapping[str, bytes]) -> ReportBundle:
        if self.fail:
            raise ReportPublishError("push rejected")
        self.published.append((commit_sha, dict(artifacts)))
        directory = f"{commit_sha}-1700000000"
        paths = {name: f"{directory}/{name}.html" for name in artifacts}
        return ReportBundle(
            commit=commit_sha,
            timestamp=1700000000,
            directory=directory,
            paths=paths,
            urls={name: f"https://acme.github.io/reports/{path}" for name, path in paths.items()},
        )


class FakeIdentity:
    def __init__(self, logins: Mapping[str, str] | None = None):
        self.logins = dict(logins or {})

    def lookup(self, contact: str) -> str | None:
        return self.logins.get(contact)
