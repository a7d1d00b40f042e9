"""
Concurrent data collection from every configured source.

All vendor requests are issued together and awaited jointly. A failing
source contributes no records and one error string; the rest of the snapshot
is still usable by the calculators.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable

from rich.console import Console

from pulse_tracker.config import Settings
from pulse_tracker.models import DataSnapshot, Task, utc_now
from pulse_tracker.tracker import ClickUpClient
from pulse_tracker.vcs import get_vcs_provider
from pulse_tracker.vcs.base import BaseVCSProvider, VCSActivity

console = Console(stderr=True)


def _describe(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


def build_clickup_client(settings: Settings, include_comments: bool = True) -> ClickUpClient:
    return ClickUpClient(
        token=settings.clickup.token,
        verify_ssl=settings.verify_ssl,
        timeout=settings.request_timeout,
        include_comments=include_comments,
    )


def build_vcs_provider(settings: Settings) -> BaseVCSProvider:
    return get_vcs_provider(
        "github",
        token=settings.github.token,
        verify_ssl=settings.verify_ssl,
        timeout=settings.request_timeout,
    )


async def collect_snapshot(
    settings: Settings,
    days: int | None = None,
    now: datetime | None = None,
    vcs: BaseVCSProvider | None = None,
    clickup: ClickUpClient | None = None,
) -> DataSnapshot:
    """
    Fetch tasks, pull requests, commits, and members into one snapshot.

    Args:
        settings: Loaded settings.
        days: Lookback window for source-control data (default: settings).
        now: Reference time recorded on the snapshot.
        vcs: Source-control provider (built from settings when omitted).
        clickup: Issue-tracker client (built from settings when omitted).

    Returns:
        DataSnapshot; ``errors`` lists one message per failed source.
    """
    days = days or settings.window_days
    now = now or utc_now()
    errors: list[str] = []
    jobs: list[tuple[str, Awaitable[Any]]] = []

    if settings.clickup.list_ids:
        try:
            clickup = clickup or build_clickup_client(settings)
        except ValueError as e:
            errors.append(f"ClickUp: {_describe(e)}")
        else:
            for list_id in settings.clickup.list_ids:
                jobs.append((f"ClickUp list {list_id}", clickup.fetch_tasks_from_list(list_id)))
    elif settings.verbose:
        console.print("[dim]No ClickUp lists configured; skipping tasks[/dim]")

    if settings.github.owner and settings.github.repos:
        try:
            vcs = vcs or build_vcs_provider(settings)
        except ValueError as e:
            errors.append(f"GitHub: {_describe(e)}")
        else:
            owner = settings.github.owner
            for repo in settings.github.repos:
                jobs.append((f"GitHub {owner}/{repo}", vcs.get_activity(owner, repo, days, now)))
    elif settings.verbose:
        console.print("[dim]No GitHub repositories configured; skipping code metrics[/dim]")

    results = await asyncio.gather(*(job for _, job in jobs), return_exceptions=True)

    tasks: list[Task] = []
    pull_requests = []
    commits = []
    for (label, _), result in zip(jobs, results):
        if isinstance(result, BaseException):
            errors.append(f"{label}: {_describe(result)}")
            console.print(f"[red]Failed to fetch {label}: {_describe(result)}[/red]")
        elif isinstance(result, VCSActivity):
            pull_requests.extend(result.pull_requests)
            commits.extend(result.commits)
        else:
            tasks.extend(result)

    return DataSnapshot(
        tasks=tuple(tasks),
        pull_requests=tuple(pull_requests),
        commits=tuple(commits),
        members=settings.team,
        errors=tuple(errors),
        fetched_at=now,
    )


def make_task_fetcher(settings: Settings, clickup: ClickUpClient | None = None):
    """Task-only fetcher for the stagnation detector's periodic refresh."""
    client = clickup or build_clickup_client(settings)

    async def fetch_tasks() -> list[Task]:
        return await client.fetch_tasks(settings.clickup.list_ids)

    return fetch_tasks
