"""GitHub remote URL parsing and static-hosting URL derivation."""

from __future__ import annotations

import re
from dataclasses import dataclass

_SSH_PATTERN = re.compile(r"^(?:ssh://)?git@github\.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")
_HTTPS_PATTERN = re.compile(r"^https://(?:[^@/]+@)?github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class RepoSlug:
    """Owner and name of a GitHub repository."""

    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"

    def pages_url(self, path: str) -> str:
        """Public GitHub Pages URL for ``path`` inside this repository."""
        return f"https://{self.owner}.github.io/{self.name}/{path.lstrip('/')}"


def parse_repo_slug(remote_url: str) -> RepoSlug | None:
    """Derive owner/repo from an SSH or HTTPS GitHub remote URL."""
    value = remote_url.strip()
    for pattern in (_SSH_PATTERN, _HTTPS_PATTERN):
        match = pattern.match(value)
        if match:
            return RepoSlug(owner=match.group("owner"), name=match.group("repo"))
    return None


def require_repo_slug(remote_url: str) -> RepoSlug:
    slug = parse_repo_slug(remote_url)
    if slug is None:
        raise ValueError(f"cannot derive GitHub owner/repo from remote URL `{remote_url}`")
    return slug
