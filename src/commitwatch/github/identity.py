"""Best-effort mapping of commit author emails to GitHub logins."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    def lookup(self, contact: str) -> str | None: ...


class GitHubIdentityResolver:
    """Resolve an email through the GitHub user search API.

    Only an unambiguous match is returned. Any failure yields None.
    """

    def __init__(self, client: httpx.Client) -> None:
        self.client = client
        self._cache: dict[str, str | None] = {}

    def lookup(self, contact: str) -> str | None:
        contact = contact.strip()
        if not contact:
            return None
        if contact in self._cache:
            return self._cache[contact]

        login = self._search(contact)
        self._cache[contact] = login
        return login

    def _search(self, contact: str) -> str | None:
        try:
            response = self.client.get("/search/users", params={"q": contact})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("GitHub user lookup for %s failed: %s", contact, exc)
            return None

        if not isinstance(data, dict) or data.get("total_count") != 1:
            return None
        items = data.get("items")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        login = items[0].get("login")
        return login if isinstance(login, str) and login else None
