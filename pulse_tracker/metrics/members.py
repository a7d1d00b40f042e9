"""
Per-member metrics and cross-vendor identity resolution.

Issue-tracker assignees and source-control authors are matched to configured
members in two tiers: exact vendor ids first (ClickUp user id, GitHub login),
then normalized name comparison. A fuzzy match that fits more than one member
is reported and left unresolved instead of picking one arbitrarily.
"""

import re
from datetime import datetime
from typing import Iterable, NamedTuple

from rich.console import Console

from pulse_tracker.metrics.base import (
    is_blocked,
    is_in_progress,
    is_open,
    ratio,
)
from pulse_tracker.metrics.commits import CommitMetrics, calculate_commit_metrics
from pulse_tracker.metrics.pull_requests import PullRequestMetrics, calculate_pr_metrics
from pulse_tracker.metrics.velocity import completed_tasks
from pulse_tracker.models import Commit, Member, PullRequest, Task

console = Console(stderr=True)

# Minimum normalized length before substring matching is attempted
_MIN_FUZZY_LENGTH = 3
_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def normalize_identity(value: str | None) -> str:
    """Lowercase and strip everything but letters and digits."""
    if not value:
        return ""
    return _NON_ALNUM.sub("", value.casefold())


class MemberTaskMetrics(NamedTuple):
    total: int = 0
    completed: int = 0
    open: int = 0
    in_progress: int = 0
    blocked: int = 0
    completion_rate: float = 0  # percent


class MemberMetrics(NamedTuple):
    """Individual-scope breakdown for one member."""

    member: Member
    tasks: MemberTaskMetrics
    pull_requests: PullRequestMetrics
    commits: CommitMetrics
    last_active: datetime | None = None


class MemberResolver:
    """Resolve vendor identities to configured team members."""

    def __init__(self, members: Iterable[Member], verbose: bool = False):
        self.members = tuple(members)
        self.verbose = verbose
        self.ambiguous: dict[str, list[str]] = {}
        self._cache: dict[tuple[str | None, str | None], Member | None] = {}

    def resolve(
        self, identifier: str | None = None, handle: str | None = None
    ) -> Member | None:
        """
        Resolve a vendor identity to a member.

        Args:
            identifier: Vendor numeric id (issue-tracker user id).
            handle: Username, login, or display name.

        Returns:
            The matching Member, or None when nothing (or more than one
            member) matches.
        """
        key = (identifier, handle)
        if key not in self._cache:
            self._cache[key] = self._resolve(identifier, handle)
        return self._cache[key]

    def _resolve(self, identifier: str | None, handle: str | None) -> Member | None:
        exact = self._exact_match(identifier, handle)
        if exact is not None:
            return exact

        needle = normalize_identity(handle)
        if not needle:
            return None

        candidates = [
            member
            for member in self.members
            if needle in (normalize_identity(member.name), normalize_identity(member.github_login))
        ]
        if not candidates and len(needle) >= _MIN_FUZZY_LENGTH:
            candidates = [member for member in self.members if self._contains(member, needle)]

        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            names = sorted(member.name for member in candidates)
            self.ambiguous[handle or ""] = names
            console.print(
                f"[yellow]Ambiguous member match for '{handle}': "
                f"{', '.join(names)}. Add an explicit id mapping.[/yellow]"
            )
        elif self.verbose:
            console.print(f"[dim]No team member matches '{handle}'[/dim]")
        return None

    def _exact_match(self, identifier: str | None, handle: str | None) -> Member | None:
        for member in self.members:
            if identifier is not None and member.clickup_id is not None:
                if str(member.clickup_id) == str(identifier):
                    return member
            if handle and member.github_login:
                if member.github_login.casefold() == handle.casefold():
                    return member
        return None

    @staticmethod
    def _contains(member: Member, needle: str) -> bool:
        for value in (member.name, member.github_login):
            hay = normalize_identity(value)
            if len(hay) < _MIN_FUZZY_LENGTH:
                continue
            if needle in hay or hay in needle:
                return True
        return False


def discover_members(
    tasks: Iterable[Task],
    pull_requests: Iterable[PullRequest],
    commits: Iterable[Commit],
) -> list[Member]:
    """
    Build a member list from every identity seen across sources.

    Used when no team roster is configured. Identities whose normalized
    names coincide are merged into one member.
    """
    found: dict[str, Member] = {}

    def _add(name: str, github_login: str | None = None, clickup_id: str | None = None):
        key = normalize_identity(name)
        if not key or key == "unknown":
            return
        existing = found.get(key)
        if existing is None:
            found[key] = Member(name=name, github_login=github_login, clickup_id=clickup_id)
        else:
            found[key] = existing._replace(
                github_login=existing.github_login or github_login,
                clickup_id=existing.clickup_id or clickup_id,
            )

    for task in tasks:
        for assignee in task.assignees:
            _add(assignee.username, clickup_id=assignee.id)
    for pr in pull_requests:
        _add(pr.author, github_login=pr.author)
    for commit in commits:
        _add(commit.resolved_author, github_login=commit.login)

    return list(found.values())


def tasks_for_member(
    tasks: Iterable[Task], member: Member, resolver: MemberResolver
) -> list[Task]:
    return [
        task
        for task in tasks
        if any(resolver.resolve(a.id, a.username) == member for a in task.assignees)
    ]


def pull_requests_for_member(
    pull_requests: Iterable[PullRequest], member: Member, resolver: MemberResolver
) -> list[PullRequest]:
    return [pr for pr in pull_requests if resolver.resolve(handle=pr.author) == member]


def commits_for_member(
    commits: Iterable[Commit], member: Member, resolver: MemberResolver
) -> list[Commit]:
    matched = []
    for commit in commits:
        owner = None
        if commit.login:
            owner = resolver.resolve(handle=commit.login)
        if owner is None:
            owner = resolver.resolve(handle=commit.author)
        if owner == member:
            matched.append(commit)
    return matched


def calculate_task_metrics(
    tasks: Iterable[Task], window_days: int = 7, now: datetime | None = None
) -> MemberTaskMetrics:
    """
    Task breakdown for an already member-filtered task set.

    ``completed`` only counts tasks finished within ``window_days``;
    ``completion_rate`` is 0 when there are no tasks.
    """
    items = list(tasks)
    completed = len(completed_tasks(items, window_days, now))
    return MemberTaskMetrics(
        total=len(items),
        completed=completed,
        open=sum(1 for task in items if is_open(task)),
        in_progress=sum(1 for task in items if is_in_progress(task)),
        blocked=sum(1 for task in items if is_blocked(task)),
        completion_rate=ratio(completed, len(items), 0) * 100,
    )


def calculate_member_metrics(
    member: Member,
    tasks: Iterable[Task],
    pull_requests: Iterable[PullRequest],
    commits: Iterable[Commit],
    resolver: MemberResolver | None = None,
    window_days: int = 7,
    now: datetime | None = None,
) -> MemberMetrics:
    """
    Intersect the team data with one member's tasks, PRs and commits.

    Args:
        member: The member to report on.
        tasks: Team task snapshot.
        pull_requests: Team PR snapshot.
        commits: Team commit snapshot.
        resolver: Identity resolver (defaults to one holding just ``member``).
        window_days: Window for counting completed tasks.
        now: Reference time.
    """
    resolver = resolver or MemberResolver([member])
    member_tasks = tasks_for_member(tasks, member, resolver)
    member_prs = pull_requests_for_member(pull_requests, member, resolver)
    member_commits = commits_for_member(commits, member, resolver)

    activity = [pr.updated_at or pr.created_at for pr in member_prs] + [
        commit.timestamp for commit in member_commits if commit.timestamp is not None
    ]

    return MemberMetrics(
        member=member,
        tasks=calculate_task_metrics(member_tasks, window_days, now),
        pull_requests=calculate_pr_metrics(member_prs),
        commits=calculate_commit_metrics(member_commits),
        last_active=max(activity) if activity else None,
    )
