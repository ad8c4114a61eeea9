"""End-to-end pipeline runs against real throwaway repositories."""

from __future__ import annotations

import sys
from pathlib import Path

from commitwatch.bisect import FaultLocalizer
from commitwatch.checks.runner import CheckRunner
from commitwatch.checks.types import CheckDefinition
from commitwatch.git.vcs import GitRepository
from commitwatch.pipeline.commit_pipeline import CommitPipeline
from commitwatch.pipeline.messages import NO_TESTS
from git_utils import _git, commit_file
from pipeline_fakes import FakeTracker

MARKER = "main-ci-success"

# Scribbles on a tracked file every run, like a test suite writing fixtures.
TESTS_CODE = (
    "import sys\n"
    "open('README.md', 'a').write('ran\\n')\n"
    "sys.exit(5 if 'none' in open('state.txt').read() else 0)\n"
)
FORMAT_CODE = "import sys; sys.exit('fmt-bad' in open('state.txt').read())"

TESTS = CheckDefinition(name="tests", command=(sys.executable, "-c", TESTS_CODE), no_units_exit_code=5)
FORMAT = CheckDefinition(name="format", command=(sys.executable, "-c", FORMAT_CODE))


def test_green_then_red_then_red_localizes_to_first_red(
    repo_with_origin: tuple[Path, Path],
    tmp_path: Path,
) -> None:
    repo_path, remote = repo_with_origin
    base = _git(repo_path, "rev-parse", "HEAD")
    _git(repo_path, "push", "origin", "main:release")
    green = commit_file(repo_path, "state.txt", "ok\n")
    first_red = commit_file(repo_path, "state.txt", "none fmt-bad\n")
    second_red = commit_file(repo_path, "other.txt", "unrelated\n")
    _git(repo_path, "push", "origin", "main")

    clone = GitRepository.clone(str(remote), tmp_path / "clone", branch="main")
    clone.ensure_identity()
    runner = CheckRunner(clone)
    tracker = FakeTracker()
    pipeline = CommitPipeline(
        repo=clone,
        runner=runner,
        localizer=FaultLocalizer(clone, runner),
        checks=(TESTS, FORMAT),
        release_branch="release",
        marker=MARKER,
        tracker=tracker,
    )

    reports = pipeline.process(clone.enumerate_range(base, second_red))

    assert [report.commit.sha for report in reports] == [green, first_red, second_red]
    assert [report.error for report in reports] == [None, None, None]
    assert reports[0].merged is True
    assert [report.marker_moved for report in reports] == [True, False, False]
    assert _git(remote, "rev-parse", MARKER) == green
    assert _git(remote, "rev-parse", "release") == green

    assert len(tracker.issues) == 2
    for issue, culprit in zip(tracker.issues, (first_red, second_red)):
        assert issue.title == f"{culprit[:7]} {NO_TESTS} and formatting test failed."
        assert issue.labels == frozenset({"ci-tests", "ci-format"})
    later = tracker.issues[1].body
    assert f"first bad commit for tests was {first_red}" in later
    assert f"first bad commit for format was {first_red}" in later

    assert clone.head() == second_red
    assert clone.is_clean()
    assert (clone.path / "README.md").read_text(encoding="utf-8") == "# test\n"
