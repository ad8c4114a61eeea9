"""Git-backed version control port for the watched and report repositories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from commitwatch.git.exec import ExecResult, run_command, run_git

logger = logging.getLogger(__name__)

_LOG_FORMAT = "--format=%H%x00%ae%x00%ct"

DEFAULT_IDENTITY_NAME = "commitwatch"
DEFAULT_IDENTITY_EMAIL = "commitwatch@users.noreply.github.com"


@dataclass(frozen=True)
class CommitRef:
    """Observed commit with the metadata the pipeline needs."""

    sha: str
    author_email: str = ""
    timestamp: int = 0

    @property
    def short(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging a commit into the checked-out branch."""

    merged: bool
    output: str

    @property
    def conflicted(self) -> bool:
        return not self.merged


def _parse_log_line(line: str) -> CommitRef:
    sha, email, timestamp = line.split("\x00", 2)
    return CommitRef(sha=sha.strip(), author_email=email.strip(), timestamp=int(timestamp.strip() or 0))


class GitRepository:
    """Working-tree operations against one local clone.

    All operations mutate or read the same working tree and must be called
    from one thread at a time.
    """

    def __init__(
        self,
        path: Path,
        *,
        remote: str = "origin",
        timeout: float | None = None,
        network_timeout: float | None = None,
    ) -> None:
        self.path = path.resolve()
        self.remote = remote
        self.timeout = timeout
        self.network_timeout = network_timeout if network_timeout is not None else timeout

    @classmethod
    def clone(
        cls,
        url: str,
        path: Path,
        *,
        branch: str | None = None,
        remote: str = "origin",
        timeout: float | None = None,
        network_timeout: float | None = None,
    ) -> GitRepository:
        """Clone ``url`` into ``path`` and return the repository handle."""
        path.parent.mkdir(parents=True, exist_ok=True)
        argv = ["git", "clone", "--origin", remote]
        if branch:
            argv.extend(["--branch", branch])
        argv.extend([url, str(path)])
        logger.info("Cloning %s into %s", url, path)
        run_command(argv, cwd=path.parent, timeout=network_timeout or timeout)
        return cls(path, remote=remote, timeout=timeout, network_timeout=network_timeout)

    def _git(self, args: list[str], *, check: bool = True, network: bool = False) -> ExecResult:
        timeout = self.network_timeout if network else self.timeout
        return run_git(args, repo_root=self.path, check=check, timeout=timeout)

    def head(self) -> str:
        return self._git(["rev-parse", "HEAD"]).stdout.strip()

    def resolve(self, ref: str) -> str | None:
        """Return the commit sha for ``ref``, or None when it does not exist."""
        result = self._git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def remote_url(self) -> str:
        return self._git(["remote", "get-url", self.remote]).stdout.strip()

    def ensure_identity(
        self,
        name: str = DEFAULT_IDENTITY_NAME,
        email: str = DEFAULT_IDENTITY_EMAIL,
    ) -> None:
        """Configure a committer identity locally when none is configured."""
        if self._git(["config", "user.email"], check=False).returncode != 0:
            self._git(["config", "user.email", email])
        if self._git(["config", "user.name"], check=False).returncode != 0:
            self._git(["config", "user.name", name])

    def fetch_tip(self, branch: str) -> str:
        """Fetch ``branch`` from the remote and return its tip sha."""
        self._git(["fetch", self.remote, branch], network=True)
        return self._git(["rev-parse", "FETCH_HEAD"]).stdout.strip()

    def switch(self, branch: str) -> None:
        self._git(["switch", "--quiet", branch])

    def enumerate_range(
        self,
        start: str | None,
        end: str,
        *,
        ancestry_path: bool = False,
    ) -> list[CommitRef]:
        """List commits in ``(start, end]``, parents before children."""
        args = ["log", "--reverse", "--topo-order", _LOG_FORMAT]
        if ancestry_path and start:
            args.append("--ancestry-path")
        args.append(f"{start}..{end}" if start else end)
        output = self._git(args).stdout
        return [_parse_log_line(line) for line in output.splitlines() if line.strip()]

    def commit_ref(self, ref: str) -> CommitRef:
        output = self._git(["log", "-n", "1", _LOG_FORMAT, ref]).stdout.strip()
        return _parse_log_line(output)

    def author_identity(self, ref: str) -> str:
        return self._git(["log", "-n", "1", "--format=%ae", ref]).stdout.strip()

    def checkout(self, ref: str) -> None:
        """Detach at ``ref``, discarding whatever a previous check left behind."""
        self._git(["checkout", "--quiet", "--force", "--detach", ref])
        self._clean()

    def checkout_branch_at(self, branch: str, start: str) -> None:
        """Create or reset local ``branch`` to ``start`` and check it out."""
        self._git(["checkout", "--quiet", "--force", "-B", branch, start])
        self._clean()

    def _clean(self) -> None:
        # Ignored files (tool caches) survive; untracked leftovers do not.
        self._git(["clean", "--quiet", "-f", "-f", "-d"])

    def tag(self, name: str, ref: str, *, force: bool = True) -> None:
        args = ["tag"]
        if force:
            args.append("--force")
        args.extend([name, ref])
        self._git(args)

    def push(self, *refspecs: str, force: bool = False) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        args.append(self.remote)
        args.extend(refspecs)
        self._git(args, network=True)

    def merge(self, ref: str) -> MergeResult:
        """Merge ``ref`` into the current branch; conflicts are not raised."""
        result = self._git(["merge", "--no-edit", ref], check=False)
        return MergeResult(merged=result.returncode == 0, output=result.output)

    def reset_merge_state(self) -> None:
        """Abort an in-progress merge, leaving the working tree clean."""
        aborted = self._git(["merge", "--abort"], check=False)
        if aborted.returncode != 0:
            self._git(["reset", "--merge"])

    def is_clean(self) -> bool:
        """Return True when no tracked file is modified and no merge is in progress."""
        status = self._git(["status", "--porcelain", "--untracked-files=no"]).stdout.strip()
        merge_head = self._git(["rev-parse", "--verify", "--quiet", "MERGE_HEAD"], check=False)
        return not status and merge_head.returncode != 0

    def commit_paths(self, paths: list[str], message: str) -> None:
        self._git(["add", "--", *paths])
        self._git(["commit", "--quiet", "-m", message])


def remote_branch_exists(url: str, branch: str, *, cwd: Path, timeout: float | None = None) -> bool:
    """Return True when ``branch`` exists on the remote at ``url``."""
    result = run_command(
        ["git", "ls-remote", "--exit-code", "--heads", url, branch],
        cwd=cwd,
        check=False,
        timeout=timeout,
    )
    return result.returncode == 0
