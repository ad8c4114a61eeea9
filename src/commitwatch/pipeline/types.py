"""Pipeline domain types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from commitwatch.checks.types import CheckOutcome
from commitwatch.git.vcs import CommitRef
from commitwatch.github.issues import Issue
from commitwatch.report.publisher import ReportBundle


class PipelineState(str, Enum):
    START = "start"
    CHECKING = "checking"
    REPORTING = "reporting"
    PROMOTING = "promoting"
    DONE = "done"


@dataclass(frozen=True)
class EvaluationResult:
    """Check outcomes for one commit plus the first bad commit per failure.

    A ``None`` entry in ``first_bad`` means localization was inconclusive.
    """

    commit: CommitRef
    outcomes: tuple[CheckOutcome, ...]
    first_bad: Mapping[str, CommitRef | None] = field(default_factory=dict)

    @property
    def failures(self) -> tuple[CheckOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.failed)

    @property
    def all_passed(self) -> bool:
        return not self.failures

    def outcome(self, name: str) -> CheckOutcome | None:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def artifacts(self) -> dict[str, bytes]:
        return {
            outcome.name: outcome.artifact
            for outcome in self.outcomes
            if outcome.artifact is not None
        }


@dataclass
class CommitReport:
    """What the pipeline did with one commit."""

    commit: CommitRef
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.START])
    evaluation: EvaluationResult | None = None
    bundle: ReportBundle | None = None
    issue: Issue | None = None
    issue_url: str | None = None
    marker_moved: bool = False
    merged: bool | None = None
    error: str | None = None
    abandoned: bool = False

    @property
    def state(self) -> PipelineState:
        return self.states[-1]

    def enter(self, state: PipelineState) -> None:
        self.states.append(state)
