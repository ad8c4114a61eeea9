"""Git access for the watched repository."""

from commitwatch.git.exec import ExecError, ExecResult, ExecTimeout, run_command, run_git
from commitwatch.git.vcs import CommitRef, GitRepository, MergeResult

__all__ = [
    "CommitRef",
    "ExecError",
    "ExecResult",
    "ExecTimeout",
    "GitRepository",
    "MergeResult",
    "run_command",
    "run_git",
]
