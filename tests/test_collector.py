"""Tests for concurrent snapshot collection."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from pulse_tracker.collector import collect_snapshot, make_task_fetcher
from pulse_tracker.config import ClickUpSettings, GitHubSettings, Settings
from pulse_tracker.models import Commit, Member, PullRequest, Task
from pulse_tracker.vcs.base import VCSActivity

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class FakeClickUp:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.requested = []

    async def fetch_tasks_from_list(self, list_id):
        self.requested.append(list_id)
        if list_id in self.failing:
            raise RuntimeError("ClickUp API error: 500 - Internal error")
        return [Task(f"{list_id}-1", "Task", "in progress", NOW)]

    async def fetch_tasks(self, list_ids):
        tasks = []
        for list_id in list_ids:
            tasks.extend(await self.fetch_tasks_from_list(list_id))
        return tasks


class FakeVCS:
    def __init__(self):
        self.calls = []

    async def get_activity(self, owner, repo, days=30, now=None):
        self.calls.append((owner, repo, days, now))
        return VCSActivity(
            [PullRequest(f"{repo}-pr", "alice", NOW - timedelta(days=1), "open")],
            [Commit(f"{repo}-c", "alice", NOW - timedelta(days=1))],
        )


def _settings(**kwargs):
    return Settings(
        github=GitHubSettings(token="ghp_test", owner="acme", repos=("api", "web")),
        clickup=ClickUpSettings(token="pk_test", list_ids=("100", "200")),
        team=(Member("Alice", "alice"),),
        **kwargs,
    )


def test_collects_every_source():
    clickup = FakeClickUp()
    vcs = FakeVCS()
    snapshot = asyncio.run(
        collect_snapshot(_settings(window_days=14), now=NOW, vcs=vcs, clickup=clickup)
    )

    assert sorted(task.id for task in snapshot.tasks) == ["100-1", "200-1"]
    assert len(snapshot.pull_requests) == 2
    assert len(snapshot.commits) == 2
    assert snapshot.members == (Member("Alice", "alice"),)
    assert snapshot.errors == ()
    assert snapshot.fetched_at == NOW
    assert vcs.calls == [("acme", "api", 14, NOW), ("acme", "web", 14, NOW)]


def test_failed_source_becomes_error_string():
    """One failing list does not prevent the rest of the snapshot."""
    snapshot = asyncio.run(
        collect_snapshot(_settings(), now=NOW, vcs=FakeVCS(), clickup=FakeClickUp({"100"}))
    )
    assert [task.id for task in snapshot.tasks] == ["200-1"]
    assert len(snapshot.pull_requests) == 2
    assert snapshot.errors == ("ClickUp list 100: ClickUp API error: 500 - Internal error",)


def test_missing_credentials_are_reported():
    settings = _settings()._replace(
        github=GitHubSettings(token=None, owner="acme", repos=("api",))
    )
    with patch.dict("os.environ", {}, clear=True):
        snapshot = asyncio.run(collect_snapshot(settings, now=NOW, clickup=FakeClickUp()))
    assert len(snapshot.tasks) == 2
    assert len(snapshot.errors) == 1
    assert snapshot.errors[0].startswith("GitHub: GITHUB_TOKEN is required")


def test_unconfigured_sources_are_skipped():
    snapshot = asyncio.run(collect_snapshot(Settings(), now=NOW))
    assert snapshot.tasks == ()
    assert snapshot.pull_requests == ()
    assert snapshot.errors == ()


def test_task_fetcher_uses_configured_lists():
    clickup = FakeClickUp()
    fetch_tasks = make_task_fetcher(_settings(), clickup)
    tasks = asyncio.run(fetch_tasks())
    assert clickup.requested == ["100", "200"]
    assert len(tasks) == 2
