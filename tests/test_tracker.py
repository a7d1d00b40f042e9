"""Tests for the ClickUp client."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from pulse_tracker.metrics.base import is_blocked
from pulse_tracker.tracker import ClickUpClient


def _mock_client(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async def _get_client(*args, **kwargs):
        return client

    return patch("pulse_tracker.tracker._get_async_http_client", _get_client)


def _task(task_id, status="in progress"):
    return {
        "id": task_id,
        "name": f"Task {task_id}",
        "status": {"status": status},
        "date_created": "1714550400000",
        "date_updated": "1714636800000",
        "assignees": [{"id": 42, "username": "alice"}],
        "points": 3,
        "priority": {"priority": "urgent"},
        "url": f"https://app.clickup.com/t/{task_id}",
    }


def test_client_requires_token():
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(ValueError, match="CLICKUP_TOKEN is required"):
            ClickUpClient()


def test_client_reads_token_from_env():
    with patch.dict("os.environ", {"CLICKUP_TOKEN": "pk_env"}):
        assert ClickUpClient().token == "pk_env"


def test_fetch_tasks_follows_pages():
    """Pages are requested until ClickUp reports the last one."""
    pages = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v2/list/900/task"
        assert request.headers["Authorization"] == "pk_test"
        page = int(request.url.params["page"])
        pages.append(page)
        return httpx.Response(
            200, json={"tasks": [_task(f"t{page}")], "last_page": page == 1}
        )

    client = ClickUpClient(token="pk_test")
    with _mock_client(handler):
        tasks = asyncio.run(client.fetch_tasks_from_list("900"))

    assert pages == [0, 1]
    assert [task.id for task in tasks] == ["t0", "t1"]
    task = tasks[0]
    assert task.status == "in progress"
    assert task.created_at == datetime(2024, 5, 1, 8, tzinfo=timezone.utc)
    assert task.assignees[0].id == "42"
    assert task.story_points == 3
    assert task.priority == "urgent"


def test_comments_are_attached():
    """With comments enabled, comment text feeds blocker detection."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v2/list/900/task":
            return httpx.Response(200, json={"tasks": [_task("t1")], "last_page": True})
        if request.url.path == "/api/v2/task/t1/comment":
            return httpx.Response(
                200,
                json={
                    "comments": [
                        {"comment_text": "Stuck waiting on the vendor", "user": {"username": "bob"}}
                    ]
                },
            )
        return httpx.Response(404, json={"err": "Not found"})

    client = ClickUpClient(token="pk_test", include_comments=True)
    with _mock_client(handler):
        tasks = asyncio.run(client.fetch_tasks_from_list("900"))

    assert tasks[0].comments[0].author == "bob"
    assert is_blocked(tasks[0])


def test_fetch_tasks_from_several_lists():
    def handler(request: httpx.Request) -> httpx.Response:
        list_id = request.url.path.split("/")[4]
        return httpx.Response(200, json={"tasks": [_task(f"{list_id}-1")], "last_page": True})

    client = ClickUpClient(token="pk_test")
    with _mock_client(handler):
        tasks = asyncio.run(client.fetch_tasks(["100", "200"]))
    assert sorted(task.id for task in tasks) == ["100-1", "200-1"]


def test_api_error_is_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"err": "Token invalid", "ECODE": "OAUTH_025"})

    client = ClickUpClient(token="pk_bad")
    with _mock_client(handler):
        with pytest.raises(httpx.HTTPStatusError, match="ClickUp API error: 401 - Token invalid"):
            asyncio.run(client.fetch_tasks_from_list("900"))
