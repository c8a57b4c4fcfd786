#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Repository Commit Digest
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Recent-commit digest across the configured GitHub repositories.

Each repository is fetched independently; a failing repository contributes a
single error line and never affects the others. Results are always assembled
in configuration order, whatever order the requests finish in.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

import requests

from .config import GitHubConfig

logger = logging.getLogger(__name__)

EMPTY_DIGEST = "—"
SHORT_SHA_LENGTH = 7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def first_line(message: str) -> str:
    """Return the subject line of a commit message."""
    return (message or "").split("\n", 1)[0].strip()


def format_commit(repo: str, commit: dict) -> str:
    """Render one commit object from the commits API as a digest line."""
    sha = (commit.get("sha") or "")[:SHORT_SHA_LENGTH]
    message = (commit.get("commit") or {}).get("message") or ""
    return f"• {repo}@{sha} — {first_line(message)}"


def error_line(repo: str) -> str:
    return f"• {repo}: (error fetching commits)"


def empty_line(repo: str, hours: int = 24) -> str:
    return f"• {repo}: 0 commits in last {hours}h"


class RepoDigestFetcher:
    """Fetch and render recent commits per repository."""

    def __init__(
        self,
        config: GitHubConfig,
        timeout: float = 10.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.timeout = timeout
        self.clock = clock or _utcnow

    def _headers(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def since(self) -> str:
        """ISO-8601 start of the lookback window ending now."""
        start = self.clock() - timedelta(hours=self.config.lookback_hours)
        return start.isoformat()

    def fetch_digest(self, repo: str) -> str:
        """
        Build the digest for a single repository.

        Args:
            repo: Repository identifier in ``owner/name`` form

        Returns:
            Newline-joined commit lines, or a single placeholder line
        """
        url = f"{self.config.api_url}/repos/{repo}/commits"
        params = {"since": self.since(), "per_page": self.config.per_page}

        try:
            resp = requests.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Commit fetch for %s failed: %s", repo, e)
            return error_line(repo)

        if not resp.ok:
            logger.warning("Commit fetch for %s returned HTTP %s", repo, resp.status_code)
            return error_line(repo)

        try:
            commits = resp.json()
        except ValueError:
            logger.warning("Commit fetch for %s returned non-JSON body", repo)
            return error_line(repo)

        if not isinstance(commits, list):
            logger.warning("Commit fetch for %s returned unexpected payload type %s", repo, type(commits).__name__)
            return error_line(repo)

        if not commits:
            return empty_line(repo, self.config.lookback_hours)

        return "\n".join(format_commit(repo, c) for c in commits[: self.config.per_page])

    def _fetch_isolated(self, repo: str) -> str:
        try:
            return self.fetch_digest(repo)
        except Exception:
            # e.g. a commits array holding something other than commit objects
            logger.exception("Unexpected error building digest for %s", repo)
            return error_line(repo)

    async def fetch_all(self, repos: Optional[Iterable[str]] = None) -> str:
        """
        Fetch every repository concurrently and join the digests in order.

        Returns ``"—"`` when there are no repositories to report on.
        """
        targets: List[str] = list(self.config.repos if repos is None else repos)
        if not targets:
            return EMPTY_DIGEST

        # gather() preserves argument order regardless of completion order
        results = await asyncio.gather(*(asyncio.to_thread(self._fetch_isolated, repo) for repo in targets))
        return "\n".join(results)
