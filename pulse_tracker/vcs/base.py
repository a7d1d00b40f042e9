"""
Base class for source-control providers.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import NamedTuple

from pulse_tracker.models import Commit, PullRequest, utc_now


class VCSActivity(NamedTuple):
    """Pull requests and commits fetched for one repository window."""

    pull_requests: list[PullRequest]
    commits: list[Commit]


class BaseVCSProvider(ABC):
    """Interface every source-control provider implements."""

    @abstractmethod
    async def fetch_pull_requests(
        self, owner: str, repo: str, since: datetime | None = None
    ) -> list[PullRequest]:
        """Pull requests updated since ``since`` (all when None)."""

    @abstractmethod
    async def fetch_commits(
        self, owner: str, repo: str, since: datetime | None = None
    ) -> list[Commit]:
        """Commits authored since ``since`` (all when None)."""

    async def get_activity(
        self, owner: str, repo: str, days: int = 30, now: datetime | None = None
    ) -> VCSActivity:
        """Fetch PRs and commits for the last ``days`` days concurrently."""
        since = (now or utc_now()) - timedelta(days=days)
        pull_requests, commits = await asyncio.gather(
            self.fetch_pull_requests(owner, repo, since),
            self.fetch_commits(owner, repo, since),
        )
        return VCSActivity(pull_requests, commits)
