"""Shared HTTP client setup for the GitHub REST API."""

from __future__ import annotations

import httpx

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


def github_headers(token: str | None = None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def build_client(
    token: str | None,
    *,
    api_url: str = DEFAULT_API_URL,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Return an ``httpx.Client`` rooted at the GitHub API."""
    return httpx.Client(
        base_url=api_url.rstrip("/"),
        headers=github_headers(token),
        timeout=timeout,
        transport=transport,
    )
