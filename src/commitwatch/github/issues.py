"""Issue tracker port backed by GitHub issues."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from commitwatch.github.remote import RepoSlug

logger = logging.getLogger(__name__)


class IssueSubmissionError(RuntimeError):
    """Raised when the tracker did not accept an issue."""


@dataclass(frozen=True)
class Issue:
    """Write-once issue payload."""

    title: str
    body: str
    labels: frozenset[str] = field(default_factory=frozenset)
    assignee: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": self.title, "body": self.body}
        if self.labels:
            payload["labels"] = sorted(self.labels)
        if self.assignee:
            payload["assignees"] = [self.assignee]
        return payload


class IssueTracker(Protocol):
    def create_issue(self, issue: Issue) -> str: ...


class GitHubIssueTracker:
    """Create issues in one GitHub repository."""

    def __init__(self, client: httpx.Client, repo: RepoSlug) -> None:
        self.client = client
        self.repo = repo

    def create_issue(self, issue: Issue) -> str:
        """Submit ``issue`` once and return its HTML URL."""
        path = f"/repos/{self.repo.owner}/{self.repo.name}/issues"
        try:
            response = self.client.post(path, json=issue.to_payload())
        except httpx.HTTPError as exc:
            raise IssueSubmissionError(f"issue request to {self.repo} failed: {exc}") from exc

        if response.status_code >= 400:
            raise IssueSubmissionError(
                f"GitHub rejected issue for {self.repo} ({response.status_code}): {response.text.strip()}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise IssueSubmissionError(f"unexpected issue response from {self.repo}: {exc}") from exc
        url = data.get("html_url") if isinstance(data, dict) else None
        if not isinstance(url, str):
            raise IssueSubmissionError(f"issue response from {self.repo} has no html_url")
        logger.info("Created issue %s", url)
        return url
