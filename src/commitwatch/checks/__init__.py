"""Quality checks run against each observed commit."""

from commitwatch.checks.runner import CheckRunner
from commitwatch.checks.types import (
    CheckDefinition,
    CheckOutcome,
    CheckStatus,
    FailureCause,
    ProbeResult,
)

__all__ = [
    "CheckDefinition",
    "CheckOutcome",
    "CheckRunner",
    "CheckStatus",
    "FailureCause",
    "ProbeResult",
]
