"""Publish check artifacts into a report repository served by GitHub Pages."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from commitwatch.artifacts import sha256_bytes, write_json
from commitwatch.git.exec import ExecError
from commitwatch.git.vcs import GitRepository
from commitwatch.github.remote import RepoSlug, require_repo_slug

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".html"
BUNDLE_FILENAME = "bundle.json"


class ReportPublishError(RuntimeError):
    """Raised when artifacts could not be written, committed or pushed."""


@dataclass(frozen=True)
class ReportBundle:
    """Artifacts published for one failing commit."""

    commit: str
    timestamp: int
    directory: str
    paths: Mapping[str, str] = field(default_factory=dict)
    urls: Mapping[str, str] = field(default_factory=dict)


class ReportPublisher:
    """Append-only report store backed by a branch of a dedicated repository.

    The local clone is created on first use and reused for the lifetime of
    the publisher. Calls are serialized through an internal lock. ``slug``
    overrides the Pages location derived from ``url``.
    """

    def __init__(
        self,
        url: str,
        branch: str,
        clone_path: Path,
        *,
        remote: str = "origin",
        timeout: float | None = None,
        network_timeout: float | None = None,
        clock: Callable[[], float] = time.time,
        slug: RepoSlug | None = None,
    ) -> None:
        self.url = url
        self.branch = branch
        self.clone_path = clone_path
        self.remote = remote
        self.timeout = timeout
        self.network_timeout = network_timeout
        self.slug: RepoSlug = slug or require_repo_slug(url)
        self._clock = clock
        self._lock = threading.Lock()
        self._repo: GitRepository | None = None

    def url_for(self, relative_path: str) -> str:
        return self.slug.pages_url(relative_path)

    def publish(self, commit: str, artifacts: Mapping[str, bytes]) -> ReportBundle:
        """Write, commit and push ``artifacts`` keyed by check name."""
        with self._lock:
            try:
                repo = self._checkout()
                return self._publish(repo, commit, artifacts)
            except (ExecError, OSError) as exc:
                raise ReportPublishError(f"publishing report for {commit[:7]} failed: {exc}") from exc

    def _checkout(self) -> GitRepository:
        if (self.clone_path / ".git").exists():
            if self._repo is None:
                logger.info("Reusing report clone at %s", self.clone_path)
                self._repo = GitRepository(
                    self.clone_path,
                    remote=self.remote,
                    timeout=self.timeout,
                    network_timeout=self.network_timeout,
                )
                self._repo.switch(self.branch)
                self._repo.ensure_identity()
            return self._repo

        if self._repo is not None:
            logger.warning("Report clone at %s disappeared; cloning again", self.clone_path)
        self._repo = GitRepository.clone(
            self.url,
            self.clone_path,
            branch=self.branch,
            remote=self.remote,
            timeout=self.timeout,
            network_timeout=self.network_timeout,
        )
        self._repo.ensure_identity()
        return self._repo

    def _publish(self, repo: GitRepository, commit: str, artifacts: Mapping[str, bytes]) -> ReportBundle:
        repo.checkout_branch_at(self.branch, repo.fetch_tip(self.branch))
        timestamp = int(self._clock())
        directory = f"{commit}-{timestamp}"
        target = repo.path / directory
        target.mkdir(parents=True, exist_ok=True)

        paths: dict[str, str] = {}
        digests: dict[str, str] = {}
        for name in sorted(artifacts):
            relative = f"{directory}/{name}{ARTIFACT_SUFFIX}"
            (repo.path / relative).write_bytes(artifacts[name])
            paths[name] = relative
            digests[name] = sha256_bytes(artifacts[name])

        urls = {name: self.url_for(relative) for name, relative in paths.items()}
        write_json(
            target / BUNDLE_FILENAME,
            {
                "commit": commit,
                "timestamp": timestamp,
                "artifacts": {
                    name: {"path": paths[name], "url": urls[name], "sha256": digests[name]}
                    for name in paths
                },
            },
        )

        repo.commit_paths([directory], f"{commit} report.")
        repo.push(self.branch)
        logger.info("Published %d report artifact(s) for %s", len(paths), commit[:7])
        return ReportBundle(commit=commit, timestamp=timestamp, directory=directory, paths=paths, urls=urls)
