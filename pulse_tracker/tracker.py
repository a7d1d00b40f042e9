"""
ClickUp issue-tracker client.

Fetches tasks (optionally with comments) through the
ClickUp REST API v2.
"""

import asyncio
import os
from typing import Any

import httpx
from dotenv import load_dotenv

from pulse_tracker.http_client import DEFAULT_TIMEOUT, _get_async_http_client
from pulse_tracker.models import Task, task_from_clickup

# Load environment variables
load_dotenv()

CLICKUP_API = "https://api.clickup.com/api/v2"

MAX_PAGES = 10


class ClickUpClient:
    """Async client for the ClickUp REST API."""

    def __init__(
        self,
        token: str | None = None,
        verify_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        include_comments: bool = False,
        max_pages: int = MAX_PAGES,
    ):
        """
        Initialize the ClickUp client.

        Args:
            token: ClickUp personal API token. If not provided, reads from
                   CLICKUP_TOKEN environment variable.
            verify_ssl: Verify TLS certificates.
            timeout: Per-request deadline in seconds.
            include_comments: Fetch comments for every task (one request per
                task) so comment-based blocker detection works.
            max_pages: Maximum task pages fetched per list.

        Raises:
            ValueError: If no token is available.
        """
        self.token = token or os.getenv("CLICKUP_TOKEN")
        if not self.token:
            raise ValueError(
                "CLICKUP_TOKEN is required for the ClickUp client.\n"
                "\n"
                "Generate a personal token under ClickUp → Settings → Apps, then:\n"
                "   export CLICKUP_TOKEN='pk_...'  # Linux/macOS\n"
                "   or add to your .env file: CLICKUP_TOKEN=pk_...\n"
            )
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.include_comments = include_comments
        self.max_pages = max_pages

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        GET a ClickUp endpoint.

        Raises:
            httpx.HTTPStatusError: If the API returns an error status.
        """
        headers = {"Authorization": self.token, "Content-Type": "application/json"}
        client = await _get_async_http_client(self.verify_ssl, self.timeout)
        response = await client.get(f"{CLICKUP_API}{path}", params=params, headers=headers)
        if response.is_error:
            try:
                detail = response.json().get("err") or response.reason_phrase
            except ValueError:
                detail = response.reason_phrase
            raise httpx.HTTPStatusError(
                f"ClickUp API error: {response.status_code} - {detail}",
                request=response.request,
                response=response,
            )
        return response.json()

    async def fetch_tasks_from_list(
        self,
        list_id: str,
        include_closed: bool = True,
        archived: bool = False,
        subtasks: bool = True,
    ) -> list[Task]:
        """Fetch every task in a list, following pagination."""
        raw_tasks: list[dict[str, Any]] = []
        for page in range(self.max_pages):
            data = await self._get(
                f"/list/{list_id}/task",
                {
                    "archived": str(archived).lower(),
                    "include_closed": str(include_closed).lower(),
                    "subtasks": str(subtasks).lower(),
                    "page": page,
                },
            )
            batch = data.get("tasks") or []
            raw_tasks.extend(batch)
            if not batch or data.get("last_page", True):
                break

        if self.include_comments and raw_tasks:
            comments = await asyncio.gather(
                *(self.fetch_task_comments(item.get("id")) for item in raw_tasks)
            )
            raw_tasks = [
                {**item, "comments": item_comments}
                for item, item_comments in zip(raw_tasks, comments)
            ]

        return [task_from_clickup(item) for item in raw_tasks]

    async def fetch_task_comments(self, task_id: str | None) -> list[dict[str, Any]]:
        if not task_id:
            return []
        data = await self._get(f"/task/{task_id}/comment")
        return data.get("comments") or []

    async def fetch_tasks(self, list_ids: list[str] | tuple[str, ...]) -> list[Task]:
        """Fetch tasks from several lists concurrently."""
        results = await asyncio.gather(*(self.fetch_tasks_from_list(i) for i in list_ids))
        return [task for tasks in results for task in tasks]

