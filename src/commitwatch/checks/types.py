"""Check definitions and outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

REPORT_PLACEHOLDER = "{report}"

# git bisect run treats this exit code as "cannot test this revision".
SKIP_EXIT_CODE = 125

ArtifactKind = Literal["none", "report-file", "diff"]
ARTIFACT_KINDS: tuple[str, ...] = ("none", "report-file", "diff")


class CheckStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class FailureCause(str, Enum):
    """Why a check did not succeed."""

    EXIT_STATUS = "exit-status"
    TIMEOUT = "timeout"
    NOT_RUNNABLE = "not-runnable"


class ProbeResult(str, Enum):
    """Verdict of a single bisection probe."""

    GOOD = "good"
    BAD = "bad"
    SKIP = "skip"


@dataclass(frozen=True)
class CheckDefinition:
    """Static description of one quality check."""

    name: str
    command: tuple[str, ...]
    bisect_command: tuple[str, ...] = ()
    artifact: ArtifactKind = "none"
    no_units_exit_code: int | None = None
    timeout: float | None = None
    description: str = ""

    @property
    def probe_command(self) -> tuple[str, ...]:
        return self.bisect_command or self.command

    @property
    def label(self) -> str:
        return f"ci-{self.name}"


@dataclass(frozen=True)
class CheckOutcome:
    """Result of running one check against one commit."""

    check: CheckDefinition
    status: CheckStatus
    returncode: int | None = None
    cause: FailureCause | None = None
    artifact: bytes | None = field(default=None, repr=False)
    output: str = field(default="", repr=False)

    @property
    def name(self) -> str:
        return self.check.name

    @property
    def failed(self) -> bool:
        return self.status is CheckStatus.FAILURE

    @property
    def no_units(self) -> bool:
        """True when the tool reported that it found nothing to check."""
        sentinel = self.check.no_units_exit_code
        return self.failed and sentinel is not None and self.returncode == sentinel

    @property
    def inconclusive(self) -> bool:
        if not self.failed:
            return False
        if self.cause in (FailureCause.TIMEOUT, FailureCause.NOT_RUNNABLE):
            return True
        return self.returncode == SKIP_EXIT_CODE
