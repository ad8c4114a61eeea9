"""Tests for email to GitHub login resolution."""

from __future__ import annotations

import httpx

from commitwatch.github.client import build_client
from commitwatch.github.identity import GitHubIdentityResolver


def _resolver(handler) -> GitHubIdentityResolver:
    return GitHubIdentityResolver(build_client(None, transport=httpx.MockTransport(handler)))


def test_unique_match_returns_login() -> None:
    queries: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        queries.append(request.url.params["q"])
        return httpx.Response(200, json={"total_count": 1, "items": [{"login": "octocat"}]})

    resolver = _resolver(handler)

    assert resolver.lookup("octo@example.com") == "octocat"
    assert resolver.lookup("octo@example.com") == "octocat"
    assert queries == ["octo@example.com"]


def test_ambiguous_match_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"total_count": 2, "items": [{"login": "a"}, {"login": "b"}]})

    assert _resolver(handler).lookup("dev@example.com") is None


def test_http_error_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "rate limited"})

    assert _resolver(handler).lookup("dev@example.com") is None


def test_malformed_body_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not json")

    assert _resolver(handler).lookup("dev@example.com") is None


def test_blank_contact_is_not_looked_up() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert _resolver(handler).lookup("  ") is None
