"""First-bad-commit localization by binary search over commit ancestry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from commitwatch.checks.runner import CheckRunner
from commitwatch.checks.types import CheckDefinition, ProbeResult
from commitwatch.git.exec import ExecError
from commitwatch.git.vcs import CommitRef, GitRepository

_T = TypeVar("_T")

logger = logging.getLogger(__name__)

Probe = Callable[[_T], ProbeResult]


def _pick_probe_index(good: int, bad: int, skipped: set[int]) -> int | None:
    """Return the untested index closest to the middle of ``(good, bad)``."""
    middle = (good + bad) // 2
    for offset in range(bad - good):
        for index in (middle - offset, middle + offset):
            if good < index < bad and index not in skipped:
                return index
    return None


def first_bad_commit(candidates: Sequence[_T], probe: Probe[_T]) -> _T | None:
    """Binary-search ``candidates`` for the first one ``probe`` reports as bad.

    ``candidates`` must be ordered oldest first. The last candidate is known
    to be bad and the (implicit) predecessor of the first one is known to be
    good, so the last candidate is never probed. Candidates whose probe
    returns ``SKIP`` are excluded and a neighbour is tried instead.

    Returns None when the answer cannot be narrowed to a single candidate,
    for example because every remaining candidate had to be skipped.
    """
    if not candidates:
        return None

    good = -1
    bad = len(candidates) - 1
    skipped: set[int] = set()
    while bad - good > 1:
        index = _pick_probe_index(good, bad, skipped)
        if index is None:
            logger.info(
                "Bisection inconclusive: %d untestable candidate(s) between good and bad",
                bad - good - 1,
            )
            return None
        verdict = probe(candidates[index])
        if verdict is ProbeResult.BAD:
            bad = index
        elif verdict is ProbeResult.GOOD:
            good = index
        else:
            skipped.add(index)
    return candidates[bad]


class FaultLocalizer:
    """Drive ``first_bad_commit`` with a check over a git ancestry interval."""

    def __init__(self, repo: GitRepository, runner: CheckRunner) -> None:
        self.repo = repo
        self.runner = runner

    def localize(
        self,
        check: CheckDefinition,
        known_good: str | None,
        known_bad: CommitRef,
    ) -> CommitRef | None:
        """Return the first commit in ``(known_good, known_bad]`` failing ``check``."""
        if known_good is None:
            logger.info("No known-good commit yet; cannot localize %s failure", check.name)
            return None

        try:
            candidates = self.repo.enumerate_range(known_good, known_bad.sha, ancestry_path=True)
            if not candidates or candidates[-1].sha != known_bad.sha:
                logger.info(
                    "%s is not a descendant of %s; cannot localize %s failure",
                    known_bad.short,
                    known_good[:7],
                    check.name,
                )
                return None

            found = first_bad_commit(candidates, lambda commit: self.runner.probe(check, commit))
        except ExecError as exc:
            logger.warning("Localization of %s failure aborted: %s", check.name, exc)
            return None
        finally:
            self._restore(known_bad)

        if found is not None:
            logger.info("First bad commit for %s is %s", check.name, found.short)
        return found

    def _restore(self, commit: CommitRef) -> None:
        try:
            self.repo.checkout(commit.sha)
        except ExecError as exc:
            logger.warning("Could not restore working tree to %s: %s", commit.short, exc)
