"""Commit counts and recent activity."""

from datetime import datetime, timedelta
from typing import Iterable, NamedTuple

from pulse_tracker.models import Commit, PullRequest, utc_now


class CommitMetrics(NamedTuple):
    total: int = 0
    by_author: dict[str, int] = {}


class ActivityWindow(NamedTuple):
    """Commits and PRs opened inside a recent window."""

    commits: int
    pull_requests: int

    @property
    def total_activity(self) -> int:
        return self.commits + self.pull_requests


def calculate_commit_metrics(commits: Iterable[Commit]) -> CommitMetrics:
    """Counts commits, grouped by login (or display name when no login)."""
    by_author: dict[str, int] = {}
    total = 0
    for commit in commits:
        total += 1
        author = commit.resolved_author
        by_author[author] = by_author.get(author, 0) + 1
    return CommitMetrics(total, by_author)


def activity_for_date_range(
    commits: Iterable[Commit],
    pull_requests: Iterable[PullRequest],
    days: int = 7,
    now: datetime | None = None,
) -> ActivityWindow:
    """
    Counts commits and PRs created strictly after ``now - days``.

    Callers pass an already member-filtered set.
    """
    now = now or utc_now()
    cutoff = now - timedelta(days=days)
    recent_commits = sum(
        1 for commit in commits if commit.timestamp is not None and commit.timestamp > cutoff
    )
    recent_prs = sum(1 for pr in pull_requests if pr.created_at > cutoff)
    return ActivityWindow(recent_commits, recent_prs)
