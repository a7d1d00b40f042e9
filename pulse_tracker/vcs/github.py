"""
GitHub VCS provider implementation for PulseTracker.

Uses the GitHub REST API to fetch pull requests (with reviews) and commits.
"""

import asyncio
import os
from datetime import datetime
from typing import Any

import httpx
from dotenv import load_dotenv

from pulse_tracker.http_client import DEFAULT_TIMEOUT, _get_async_http_client
from pulse_tracker.models import (
    Commit,
    PullRequest,
    commit_from_github,
    parse_iso,
    pull_request_from_github,
)
from pulse_tracker.vcs.base import BaseVCSProvider

# Load environment variables
load_dotenv()

GITHUB_API = "https://api.github.com"

# Page size and page cap for list endpoints
PER_PAGE = 100
MAX_PAGES = 5


class GitHubProvider(BaseVCSProvider):
    """GitHub VCS provider using the REST API."""

    def __init__(
        self,
        token: str | None = None,
        verify_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        include_reviews: bool = True,
        max_pages: int = MAX_PAGES,
    ):
        """
        Initialize GitHub provider.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable.
            verify_ssl: Verify TLS certificates.
            timeout: Per-request deadline in seconds.
            include_reviews: Fetch reviews for every PR (one request per PR).
            max_pages: Maximum pages fetched per list endpoint.

        Raises:
            ValueError: If token is not provided and GITHUB_TOKEN env var is not set
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token or len(self.token) == 0:
            raise ValueError(
                "GITHUB_TOKEN is required for GitHub provider.\n"
                "\n"
                "To get started:\n"
                "1. Create a GitHub Personal Access Token:\n"
                "   → https://github.com/settings/tokens/new\n"
                "2. Select scope: 'repo' (or 'public_repo' for public repositories)\n"
                "3. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.include_reviews = include_reviews
        self.max_pages = max_pages

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a REST endpoint.

        Raises:
            httpx.HTTPStatusError: If the API returns an error status.
        """
        headers = {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github.v3+json",
        }
        client = await _get_async_http_client(self.verify_ssl, self.timeout)
        response = await client.get(f"{GITHUB_API}{path}", params=params, headers=headers)
        if response.is_error:
            try:
                detail = response.json().get("message") or response.reason_phrase
            except ValueError:
                detail = response.reason_phrase
            raise httpx.HTTPStatusError(
                f"GitHub API error: {response.status_code} - {detail}",
                request=response.request,
                response=response,
            )
        return response.json()

    async def fetch_pull_requests(
        self, owner: str, repo: str, since: datetime | None = None
    ) -> list[PullRequest]:
        """
        Fetch pull requests in every state, most recently updated first.

        Paging stops at the first PR last updated before ``since``.
        """
        raw_prs: list[dict[str, Any]] = []
        for page in range(1, self.max_pages + 1):
            batch = await self._get(
                f"/repos/{owner}/{repo}/pulls",
                {
                    "state": "all",
                    "per_page": PER_PAGE,
                    "page": page,
                    "sort": "updated",
                    "direction": "desc",
                },
            )
            reached_cutoff = False
            for item in batch:
                updated_at = parse_iso(item.get("updated_at"))
                if since is not None and updated_at is not None and updated_at < since:
                    reached_cutoff = True
                    break
                raw_prs.append(item)
            if reached_cutoff or len(batch) < PER_PAGE:
                break

        reviews: list[list[dict[str, Any]]] = [[] for _ in raw_prs]
        if self.include_reviews and raw_prs:
            reviews = await asyncio.gather(
                *(self.fetch_reviews(owner, repo, item.get("number")) for item in raw_prs)
            )

        return [
            pull_request_from_github(item, item_reviews, repo=repo)
            for item, item_reviews in zip(raw_prs, reviews)
        ]

    async def fetch_reviews(self, owner: str, repo: str, number: int | None) -> list[dict[str, Any]]:
        if number is None:
            return []
        return await self._get(
            f"/repos/{owner}/{repo}/pulls/{number}/reviews", {"per_page": PER_PAGE}
        )

    async def fetch_commits(
        self, owner: str, repo: str, since: datetime | None = None
    ) -> list[Commit]:
        commits: list[Commit] = []
        params: dict[str, Any] = {"per_page": PER_PAGE}
        if since is not None:
            params["since"] = since.isoformat()
        for page in range(1, self.max_pages + 1):
            batch = await self._get(f"/repos/{owner}/{repo}/commits", {**params, "page": page})
            commits.extend(commit_from_github(item, repo=repo) for item in batch)
            if len(batch) < PER_PAGE:
                break
        return commits
