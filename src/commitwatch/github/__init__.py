"""GitHub integrations: issues, identities and hosting conventions."""

from commitwatch.github.client import build_client
from commitwatch.github.identity import GitHubIdentityResolver, IdentityResolver
from commitwatch.github.issues import GitHubIssueTracker, Issue, IssueSubmissionError, IssueTracker
from commitwatch.github.remote import RepoSlug, parse_repo_slug, require_repo_slug

__all__ = [
    "GitHubIdentityResolver",
    "GitHubIssueTracker",
    "IdentityResolver",
    "Issue",
    "IssueSubmissionError",
    "IssueTracker",
    "RepoSlug",
    "build_client",
    "parse_repo_slug",
    "require_repo_slug",
]
