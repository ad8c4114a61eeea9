"""Issue wording for failed evaluations and merge conflicts.

The failure title is chosen from a priority table over the ``tests`` and
``format`` outcomes; the result is a ``FailureKind`` computed once and then
rendered.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from commitwatch.checks.types import CheckOutcome, FailureCause
from commitwatch.git.vcs import CommitRef
from commitwatch.github.issues import Issue
from commitwatch.pipeline.types import EvaluationResult

TESTS_CHECK = "tests"
FORMAT_CHECK = "format"

HEADER = "Automatically generated message"
NO_TESTS = "Unit tests do not exist in the repository or do not work correctly"


class FailureKind(str, Enum):
    BOTH_FAILED_NO_TESTS = "both-failed-no-tests"
    BOTH_FAILED = "both-failed"
    TESTS_FAILED_NO_TESTS = "tests-failed-no-tests"
    TESTS_FAILED = "tests-failed"
    FORMAT_FAILED = "format-failed"
    OTHER_FAILED = "other-failed"


_SUMMARIES: dict[FailureKind, str] = {
    FailureKind.BOTH_FAILED_NO_TESTS: f"{NO_TESTS} and formatting test failed.",
    FailureKind.BOTH_FAILED: "failed unit and formatting tests.",
    FailureKind.TESTS_FAILED_NO_TESTS: f"{NO_TESTS} and formatting test passed.",
    FailureKind.TESTS_FAILED: "failed unit tests.",
    FailureKind.FORMAT_FAILED: "failed formatting test.",
}


def classify_failure(
    tests_failed: bool,
    format_failed: bool,
    tests_no_units: bool = False,
) -> FailureKind | None:
    """Map the tests/format outcome combination to its issue kind."""
    if tests_failed and format_failed:
        return FailureKind.BOTH_FAILED_NO_TESTS if tests_no_units else FailureKind.BOTH_FAILED
    if tests_failed:
        return FailureKind.TESTS_FAILED_NO_TESTS if tests_no_units else FailureKind.TESTS_FAILED
    if format_failed:
        return FailureKind.FORMAT_FAILED
    return None


def classify(evaluation: EvaluationResult) -> FailureKind | None:
    """Return the issue kind for ``evaluation``, or None when everything passed."""
    tests = evaluation.outcome(TESTS_CHECK)
    fmt = evaluation.outcome(FORMAT_CHECK)
    # A test runner that cannot be started counts as "no working unit tests".
    no_units = tests is not None and (tests.no_units or tests.cause is FailureCause.NOT_RUNNABLE)
    kind = classify_failure(
        tests_failed=tests is not None and tests.failed,
        format_failed=fmt is not None and fmt.failed,
        tests_no_units=no_units,
    )
    if kind is None and evaluation.failures:
        return FailureKind.OTHER_FAILED
    return kind


def summary_for(kind: FailureKind, evaluation: EvaluationResult) -> str:
    if kind is FailureKind.OTHER_FAILED:
        names = ", ".join(outcome.name for outcome in evaluation.failures)
        return f"failed {names} checks."
    return _SUMMARIES[kind]


@dataclass(frozen=True)
class IssueDraft:
    """Issue content assembled from ordered body sections."""

    kind: FailureKind | None
    title: str
    sections: tuple[str, ...]
    labels: frozenset[str]

    def render_body(self) -> str:
        return "\n".join(self.sections) + "\n"

    def to_issue(self, assignee: str | None = None) -> Issue:
        return Issue(title=self.title, body=self.render_body(), labels=self.labels, assignee=assignee)


def _first_bad_line(name: str, first_bad: Mapping[str, CommitRef | None]) -> str:
    commit = first_bad.get(name)
    if commit is None:
        return f"first bad commit for {name} could not be determined"
    return f"first bad commit for {name} was {commit.sha}"


def _cause_line(outcome: CheckOutcome) -> str | None:
    if outcome.cause is FailureCause.TIMEOUT:
        return f"{outcome.name} did not finish before its time limit"
    if outcome.cause is FailureCause.NOT_RUNNABLE:
        detail = outcome.output.strip().splitlines()
        reason = f": {detail[0]}" if detail else ""
        return f"{outcome.name} could not be run{reason}"
    return None


def draft_failure_issue(
    evaluation: EvaluationResult,
    report_urls: Mapping[str, str] | None = None,
) -> IssueDraft:
    """Build the issue for an evaluation with at least one failed check."""
    kind = classify(evaluation)
    if kind is None:
        raise ValueError(f"{evaluation.commit.short} has no failed checks to report")

    commit = evaluation.commit
    summary = summary_for(kind, evaluation)
    failures = evaluation.failures

    sections: list[str] = [HEADER, "", f"{commit.sha} {summary}"]
    sections.extend(_first_bad_line(outcome.name, evaluation.first_bad) for outcome in failures)
    sections.extend(line for line in (_cause_line(outcome) for outcome in failures) if line)

    urls = report_urls or {}
    for outcome in evaluation.outcomes:
        url = urls.get(outcome.name)
        if url:
            sections.append(f"{outcome.name.capitalize()} report: {url}")

    return IssueDraft(
        kind=kind,
        title=f"{commit.short} {summary}",
        sections=tuple(sections),
        labels=frozenset(outcome.check.label for outcome in failures),
    )


def draft_conflict_issue(commit: CommitRef, release_branch: str, merge_output: str) -> IssueDraft:
    """Build the issue reporting that ``commit`` does not merge cleanly."""
    sections = (
        HEADER,
        f"Merging {commit.sha} into {release_branch} failed:",
        "",
        merge_output.rstrip(),
    )
    return IssueDraft(
        kind=None,
        title=f"{commit.short} merge conflict",
        sections=sections,
        labels=frozenset(),
    )
